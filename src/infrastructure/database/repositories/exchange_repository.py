from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.commons.enums.market_enums import ExchangeType
from src.infrastructure.database.models.exchange_history_model import ExchangeHistoryModel


class ExchangeRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def save(
        self,
        model_id: str,
        exchange_type: ExchangeType,
        krw_amount: float,
        usd_amount: float,
        exchange_rate: float,
        reasoning: Optional[str] = None,
    ) -> None:
        self.session.add(
            ExchangeHistoryModel(
                model_id=model_id,
                exchange_type=exchange_type.value,
                krw_amount=krw_amount,
                usd_amount=usd_amount,
                exchange_rate=exchange_rate,
                reasoning=reasoning,
            )
        )
        await self.session.commit()
