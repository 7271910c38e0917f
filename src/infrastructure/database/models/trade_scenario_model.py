from sqlalchemy import Column, String, Text, ForeignKey
from uuid import uuid4

from src.infrastructure.database.models.base import BaseModel


class TradeScenarioModel(BaseModel):
    """HOLD decisions, kept so the reasoning is not lost."""

    __tablename__ = "ai_trade_scenarios"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    model_id = Column(String, ForeignKey("ai_models.id"),
                      nullable=False, index=True)
    market = Column(String, nullable=False)
    action = Column(String, nullable=False, default="HOLD")
    reasoning = Column(Text, nullable=True)
