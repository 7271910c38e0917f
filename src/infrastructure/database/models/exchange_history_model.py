"""
Exchange History Database Model

Append-only log of KRW/USD conversions.
"""

from sqlalchemy import Column, String, Float, Text, ForeignKey
from uuid import uuid4

from src.infrastructure.database.models.base import BaseModel


class ExchangeHistoryModel(BaseModel):
    """Currency exchange database model."""

    __tablename__ = "ai_exchange_history"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    model_id = Column(String, ForeignKey("ai_models.id"),
                      nullable=False, index=True)
    exchange_type = Column(String, nullable=False)
    krw_amount = Column(Float, nullable=False)
    usd_amount = Column(Float, nullable=False)
    exchange_rate = Column(Float, nullable=False)
    reasoning = Column(Text, nullable=True)
