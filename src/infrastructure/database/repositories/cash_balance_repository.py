import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models.cash_balance_model import CashBalanceModel
from src.domain.portfolio.dtos.portfolio_dto import CurrencyBalances

logger = logging.getLogger(__name__)


class CashBalanceRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _get_model(self, model_id: str) -> Optional[CashBalanceModel]:
        stmt = select(CashBalanceModel).where(
            CashBalanceModel.model_id == model_id)
        res = await self.session.execute(stmt)
        return res.scalar_one_or_none()

    async def get_balances(self, model_id: str) -> Optional[CurrencyBalances]:
        row = await self._get_model(model_id)
        if row is None:
            return None
        return CurrencyBalances(
            krw_balance=float(row.krw_balance),
            usd_balance=float(row.usd_balance),
        )

    async def update_balances(
        self,
        model_id: str,
        krw_balance: float,
        usd_balance: float,
    ) -> bool:
        """
        Overwrite both balances in a single write.
        Returns False when the model has no cash row.
        """
        row = await self._get_model(model_id)
        if row is None:
            logger.warning(f"No cash balance row for model {model_id}")
            return False

        row.krw_balance = krw_balance
        row.usd_balance = usd_balance
        await self.session.commit()
        return True
