import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models.portfolio_history_model import PortfolioHistoryModel
from src.domain.portfolio.dtos.portfolio_dto import PortfolioHistoryPointDTO

logger = logging.getLogger(__name__)


class PortfolioHistoryRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def save(
        self,
        model_id: str,
        total_value: float,
        recorded_at: Optional[datetime] = None,
    ) -> None:
        point = PortfolioHistoryModel(model_id=model_id, total_value=total_value)
        if recorded_at is not None:
            point.recorded_at = recorded_at
        self.session.add(point)
        await self.session.commit()

    async def list_since(self, since: datetime) -> List[PortfolioHistoryPointDTO]:
        stmt = (
            select(PortfolioHistoryModel)
            .where(PortfolioHistoryModel.recorded_at >= since)
            .order_by(PortfolioHistoryModel.recorded_at.asc())
        )
        res = await self.session.execute(stmt)
        return [PortfolioHistoryPointDTO.model_validate(m) for m in res.scalars().all()]

    async def exists_for_date(self, model_id: str, day: date) -> bool:
        """True when the model has any point on ``day`` (UTC)."""
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        end = start + timedelta(days=1)
        stmt = (
            select(PortfolioHistoryModel.id)
            .where(
                PortfolioHistoryModel.model_id == model_id,
                PortfolioHistoryModel.recorded_at >= start,
                PortfolioHistoryModel.recorded_at < end,
            )
            .limit(1)
        )
        res = await self.session.execute(stmt)
        return res.first() is not None
