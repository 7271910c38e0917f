from sqlalchemy.ext.asyncio import AsyncSession

from src.commons.enums.market_enums import Market, TradeAction
from src.infrastructure.database.models.trade_scenario_model import TradeScenarioModel


class TradeScenarioRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def save_hold(self, model_id: str, market: Market, reasoning: str) -> None:
        self.session.add(
            TradeScenarioModel(
                model_id=model_id,
                market=market.value,
                action=TradeAction.HOLD.value,
                reasoning=reasoning,
            )
        )
        await self.session.commit()
