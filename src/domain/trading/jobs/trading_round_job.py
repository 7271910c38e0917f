import logging
from datetime import datetime, timezone

from src.commons.enums.market_enums import Market
from src.domain.market.calendar import MarketCalendar
from src.domain.trading.trading_service import TradingService
from src.infrastructure.notifications.notifier import NotificationService


logger = logging.getLogger(__name__)


class TradingRoundJob:
    """Every tick, run a trading round for each market that is open."""

    def __init__(
        self,
        trading_service: TradingService,
        calendar: MarketCalendar,
        notifier: NotificationService,
    ) -> None:
        self.trading_service = trading_service
        self.calendar = calendar
        self.notifier = notifier

    async def run(self) -> None:
        logger.info(f"⏰ [{datetime.now(timezone.utc).isoformat()}] Trading schedule triggered")

        for market in (Market.KR, Market.US):
            if not self.calendar.is_market_open(market):
                logger.info(f"{market.flag} {market.value} market is CLOSED")
                continue

            logger.info(f"{market.flag} {market.value} market is OPEN - running trading round")
            try:
                result = await self.trading_service.run_market_trading_round(market)
                if result.trades_executed > 0:
                    logger.info(f"{market.flag} {result.trades_executed} trades executed")
            except Exception as e:
                logger.error(f"❌ {market.value} trading error: {e}")
                await self.notifier.send_error_notification(f"{market.value} Trading", str(e))

    async def trigger(self, market: Market) -> dict:
        logger.info(f"🔧 Manual trading trigger: {market.value}")
        result = await self.trading_service.run_market_trading_round(market)
        return {"success": result.success, "trades_executed": result.trades_executed}
