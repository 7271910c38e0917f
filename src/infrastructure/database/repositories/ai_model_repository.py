import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models.ai_model_model import AIModelModel
from src.domain.portfolio.dtos.portfolio_dto import AIModelDTO

logger = logging.getLogger(__name__)


class AIModelRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_active_models(self) -> List[AIModelDTO]:
        stmt = (
            select(AIModelModel)
            .where(AIModelModel.is_active.is_(True))
            .order_by(AIModelModel.created_at.asc())
        )
        res = await self.session.execute(stmt)
        return [AIModelDTO.model_validate(m) for m in res.scalars().all()]

    async def get_by_id(self, model_id: str) -> Optional[AIModelDTO]:
        stmt = select(AIModelModel).where(AIModelModel.id == model_id)
        res = await self.session.execute(stmt)
        model = res.scalar_one_or_none()
        return AIModelDTO.model_validate(model) if model else None

    async def set_active(self, model_id: str, is_active: bool) -> bool:
        stmt = select(AIModelModel).where(AIModelModel.id == model_id)
        res = await self.session.execute(stmt)
        model = res.scalar_one_or_none()
        if not model:
            return False

        model.is_active = is_active
        await self.session.commit()
        return True
