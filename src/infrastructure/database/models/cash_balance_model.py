"""
Cash Balance Database Model

Dual-currency cash per AI model.
"""

from sqlalchemy import Column, String, Float, ForeignKey, CheckConstraint
from uuid import uuid4

from src.infrastructure.database.models.base import BaseModel


class CashBalanceModel(BaseModel):
    """Cash balance database model."""

    __tablename__ = "ai_cash_balances"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    model_id = Column(String, ForeignKey("ai_models.id"),
                      nullable=False, unique=True)
    krw_balance = Column(Float, nullable=False, default=0.0)
    usd_balance = Column(Float, nullable=False, default=0.0)

    __table_args__ = (
        CheckConstraint("krw_balance >= 0", name="ck_cash_krw_non_negative"),
        CheckConstraint("usd_balance >= 0", name="ck_cash_usd_non_negative"),
    )
