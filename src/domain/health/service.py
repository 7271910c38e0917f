import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable

from src.commons.enums.market_enums import Market
from src.domain.decision.decision_service import DecisionService
from src.domain.market.calendar import MarketCalendar
from src.infrastructure.config.settings import Settings
from src.infrastructure.database.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


def format_uptime(seconds: int) -> str:
    """``93784`` -> ``"1d 2h 3m 4s"``; zero units are omitted except seconds."""
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


class HealthService:
    def __init__(
        self,
        ledger: LedgerStore,
        calendar: MarketCalendar,
        decision_service: DecisionService,
        settings: Settings,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ledger = ledger
        self.calendar = calendar
        self.decision_service = decision_service
        self.settings = settings
        self.clock = clock
        self.started_at = clock()

    def uptime_seconds(self) -> int:
        return int(self.clock() - self.started_at)

    async def check_database_health(self) -> bool:
        try:
            return await self.ledger.health_check()
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def get_health(self) -> dict:
        uptime = self.uptime_seconds()
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": uptime,
            "uptime_formatted": format_uptime(uptime),
            "markets": self.calendar.get_market_status(),
            "database": await self.check_database_health(),
        }

    def get_info(self) -> dict:
        status = self.calendar.get_market_status()
        is_dst = self.calendar.is_us_dst()
        us_hours = self.calendar.hours(Market.US)

        return {
            "name": self.settings.app_name,
            "version": self.settings.app_version,
            "uptime": format_uptime(self.uptime_seconds()),
            "environment": self.settings.environment.value,
            "timezone": self.settings.scheduler_timezone,
            "daylight_saving_time": is_dst,
            "schedules": {
                "trading": "every 30 minutes",
                "portfolio_record": "every 30 minutes",
                "daily_report": "weekdays 16:00",
            },
            "markets": {
                "KR": {**status["kr"], "hours": "09:00 ~ 15:00 KST"},
                "US": {
                    **status["us"],
                    "hours": f"{us_hours['open']} ~ {us_hours['close']} KST"
                    + (" (DST)" if is_dst else ""),
                },
            },
        }

    async def _model_health(self, model) -> dict:
        key_status = self.decision_service.get_api_key_status(model.provider)
        recent = await self.ledger.get_recent_trades_by_model(model.id, 24)
        last_trade = recent[0].created_at if recent else None

        return {
            "provider": model.provider,
            "name": model.name,
            "has_key": key_status["has_key"],
            "is_valid": key_status["is_valid"],
            "error": key_status["error"],
            "api_key_status": DecisionService.get_api_key_status_label(key_status).value,
            "trades_last_24h": len(recent),
            "last_trade_time": last_trade.isoformat() if last_trade else None,
        }

    async def get_ai_health(self) -> dict:
        models = await self.ledger.get_ai_models()
        providers = await asyncio.gather(*(self._model_health(m) for m in models))
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "providers": list(providers),
        }
