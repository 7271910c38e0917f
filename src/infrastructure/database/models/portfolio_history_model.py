"""
Portfolio History Database Model

Periodic total-value snapshots (KRW) used by the charts.
"""

from sqlalchemy import Column, String, Float, DateTime, ForeignKey
from uuid import uuid4

from src.infrastructure.database.models.base import BaseModel, utc_now


class PortfolioHistoryModel(BaseModel):
    """Portfolio value history database model."""

    __tablename__ = "ai_portfolio_history"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    model_id = Column(String, ForeignKey("ai_models.id"),
                      nullable=False, index=True)
    total_value = Column(Float, nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False,
                         index=True, default=utc_now)
