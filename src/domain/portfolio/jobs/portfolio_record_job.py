import asyncio
import logging
from typing import Awaitable, Callable, Optional

from src.domain.portfolio.portfolio_service import PortfolioService
from src.infrastructure.notifications.notifier import NotificationService


logger = logging.getLogger(__name__)


class PortfolioRecordJob:

    def __init__(
        self,
        portfolio_service: PortfolioService,
        notifier: NotificationService,
        retries: int = 2,
        retry_delay: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.portfolio_service = portfolio_service
        self.notifier = notifier
        self.retries = retries
        self.retry_delay = retry_delay
        self._sleep = sleep

    async def run(self) -> Optional[dict]:
        """Record every model's value; returns None once all attempts failed."""
        attempts = self.retries + 1

        for attempt in range(1, attempts + 1):
            try:
                return await self.portfolio_service.record_all_portfolio_values()
            except Exception as e:
                if attempt < attempts:
                    logger.warning(
                        f"🔁 Portfolio record failed (attempt {attempt}/{attempts}), "
                        f"retrying in {self.retry_delay:g}s: {e}"
                    )
                    await self._sleep(self.retry_delay)
                    continue

                logger.error(f"❌ Portfolio record failed after {attempts} attempts: {e}")
                await self.notifier.send_error_notification("Portfolio Record", str(e))

        return None
