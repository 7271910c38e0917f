import logging
from typing import List, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from src.commons.enums.market_enums import Market
from src.infrastructure.database.models.holding_model import HoldingModel
from src.domain.portfolio.dtos.portfolio_dto import HoldingDTO

logger = logging.getLogger(__name__)


class HoldingRepository:
    """
    Repository for per-model positions (ai_portfolios).
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _model_to_dto(model: HoldingModel) -> HoldingDTO:
        return HoldingDTO(
            id=model.id,
            model_id=model.model_id,
            ticker=model.ticker,
            stock_name=model.stock_name,
            market=Market(model.market),
            shares=float(model.shares),
            avg_price=float(model.avg_price),
            current_price=float(
                model.current_price) if model.current_price is not None else None,
            updated_at=model.updated_at,
        )

    async def list_by_model(self, model_id: str) -> List[HoldingDTO]:
        stmt = (
            select(HoldingModel)
            .where(HoldingModel.model_id == model_id)
            .order_by(HoldingModel.updated_at.desc())
        )
        res = await self.session.execute(stmt)
        return [self._model_to_dto(m) for m in res.scalars().all()]

    async def list_all(self) -> List[HoldingDTO]:
        res = await self.session.execute(select(HoldingModel))
        return [self._model_to_dto(m) for m in res.scalars().all()]

    async def get_by_ticker(
        self,
        model_id: str,
        ticker: str,
        market: Market,
    ) -> Optional[HoldingDTO]:
        stmt = select(HoldingModel).where(
            HoldingModel.model_id == model_id,
            HoldingModel.ticker == ticker,
            HoldingModel.market == market.value,
        )
        res = await self.session.execute(stmt)
        model = res.scalar_one_or_none()
        return self._model_to_dto(model) if model else None

    async def insert(
        self,
        model_id: str,
        ticker: str,
        market: Market,
        shares: float,
        price: float,
        stock_name: Optional[str] = None,
    ) -> HoldingDTO:
        model = HoldingModel(
            model_id=model_id,
            ticker=ticker,
            stock_name=stock_name,
            market=market.value,
            shares=shares,
            avg_price=price,
            current_price=price,
        )
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return self._model_to_dto(model)

    async def update(
        self,
        holding_id: str,
        shares: Optional[float] = None,
        avg_price: Optional[float] = None,
        current_price: Optional[float] = None,
    ) -> bool:
        """
        Partial update; None fields are left untouched.
        """
        stmt = select(HoldingModel).where(HoldingModel.id == holding_id)
        res = await self.session.execute(stmt)
        model = res.scalar_one_or_none()
        if model is None:
            return False

        if shares is not None:
            model.shares = shares
        if avg_price is not None:
            model.avg_price = avg_price
        if current_price is not None:
            model.current_price = current_price

        await self.session.commit()
        return True

    async def delete(self, holding_id: str) -> bool:
        res = await self.session.execute(
            delete(HoldingModel).where(HoldingModel.id == holding_id)
        )
        await self.session.commit()
        return (res.rowcount or 0) > 0
