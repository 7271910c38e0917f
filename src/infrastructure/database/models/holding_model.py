"""
Holding Database Model

Position of an AI model in a single ticker.
"""

from sqlalchemy import Column, String, Float, ForeignKey, UniqueConstraint
from uuid import uuid4

from src.infrastructure.database.models.base import BaseModel


class HoldingModel(BaseModel):
    """Holding database model."""

    __tablename__ = "ai_portfolios"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    model_id = Column(String, ForeignKey("ai_models.id"),
                      nullable=False, index=True)
    ticker = Column(String, nullable=False)
    stock_name = Column(String, nullable=True)
    market = Column(String, nullable=False)
    shares = Column(Float, nullable=False)
    avg_price = Column(Float, nullable=False)
    current_price = Column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "model_id",
            "ticker",
            "market",
            name="uq_holding_model_ticker_market",
        ),
    )
