import logging

from src.domain.portfolio.portfolio_service import PortfolioService
from src.infrastructure.notifications.notifier import NotificationService


logger = logging.getLogger(__name__)


class DailyReportJob:

    def __init__(self, portfolio_service: PortfolioService, notifier: NotificationService) -> None:
        self.portfolio_service = portfolio_service
        self.notifier = notifier

    async def run(self) -> None:
        reports = await self.portfolio_service.get_model_reports()
        if not reports:
            logger.info("📊 No active models, daily report skipped")
            return

        await self.notifier.send_daily_report(reports)
        logger.info(f"📊 Daily report sent for {len(reports)} models")
