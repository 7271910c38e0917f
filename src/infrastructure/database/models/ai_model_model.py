"""
AI Model Database Model

One row per competing AI trader.
"""

from sqlalchemy import Column, String, Float, Boolean
from uuid import uuid4

from src.infrastructure.database.models.base import BaseModel


class AIModelModel(BaseModel):
    """AI trader database model."""

    __tablename__ = "ai_models"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    name = Column(String, nullable=False)
    provider = Column(String, nullable=False)
    avatar_color = Column(String, nullable=True)
    initial_capital = Column(Float, nullable=False, default=0.0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
