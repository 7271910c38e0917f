import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.commons.enums.market_enums import Market, TradeType
from src.infrastructure.database.models.trade_model import TradeModel
from src.domain.trading.dtos.trade_dto import TradeDTO

logger = logging.getLogger(__name__)


class TradeRepository:
    """
    Repository for the append-only trade log.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize repository.

        Args:
            session: Database session
        """
        self.session = session

    async def save(
        self,
        model_id: str,
        ticker: str,
        market: Market,
        trade_type: TradeType,
        shares: float,
        price: float,
        stock_name: Optional[str] = None,
        reasoning: Optional[str] = None,
        scenario: Optional[str] = None,
    ) -> TradeDTO:
        """
        Append a trade.

        Args:
            model_id: AI model that traded
            ticker: Instrument code
            market: KR or US
            trade_type: BUY or SELL
            shares: Executed quantity
            price: Execution price in the market's currency

        Returns:
            The persisted trade, total_amount = shares * price
        """
        model = TradeModel(
            model_id=model_id,
            ticker=ticker,
            stock_name=stock_name,
            market=market.value,
            trade_type=trade_type.value,
            shares=shares,
            price=price,
            total_amount=shares * price,
            reasoning=reasoning,
            scenario=scenario,
        )

        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)

        return TradeDTO.model_validate(model)

    async def list_all(self) -> List[TradeDTO]:
        stmt = select(TradeModel).order_by(TradeModel.created_at.asc())
        res = await self.session.execute(stmt)
        return [TradeDTO.model_validate(m) for m in res.scalars().all()]

    async def list_by_model_since(
        self,
        model_id: str,
        since: datetime,
    ) -> List[TradeDTO]:
        """Trades of a model newer than ``since``, newest first."""
        stmt = (
            select(TradeModel)
            .where(TradeModel.model_id == model_id, TradeModel.created_at >= since)
            .order_by(TradeModel.created_at.desc())
        )
        res = await self.session.execute(stmt)
        return [TradeDTO.model_validate(m) for m in res.scalars().all()]

    async def exists_since(
        self,
        model_id: str,
        market: Market,
        since: datetime,
    ) -> bool:
        stmt = (
            select(TradeModel.id)
            .where(
                TradeModel.model_id == model_id,
                TradeModel.market == market.value,
                TradeModel.created_at >= since,
            )
            .limit(1)
        )
        res = await self.session.execute(stmt)
        return res.first() is not None
