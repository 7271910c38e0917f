"""
Trade Database Model

Append-only log of executed buys and sells.
"""

from sqlalchemy import Column, String, Float, Text, ForeignKey
from uuid import uuid4

from src.infrastructure.database.models.base import BaseModel


class TradeModel(BaseModel):
    """Trade database model."""

    __tablename__ = "ai_trades"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    model_id = Column(String, ForeignKey("ai_models.id"),
                      nullable=False, index=True)
    ticker = Column(String, nullable=False)
    stock_name = Column(String, nullable=True)
    market = Column(String, nullable=False)
    trade_type = Column(String, nullable=False)
    shares = Column(Float, nullable=False)
    price = Column(Float, nullable=False)
    total_amount = Column(Float, nullable=False)
    reasoning = Column(Text, nullable=True)
    scenario = Column(Text, nullable=True)
