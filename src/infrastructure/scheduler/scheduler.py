from typing import Awaitable, Callable, List, Optional
import logging
from zoneinfo import ZoneInfo
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.jobstores.base import JobLookupError

from src.infrastructure.scheduler.cron_expression_enum import CronSchedule


logger = logging.getLogger(__name__)


class JobScheduler:
    """
    Cron scheduler for the trading and valuation jobs. A job never overlaps
    with itself and missed runs are coalesced into one.
    """

    def __init__(
        self,
        timezone: str = "Asia/Seoul",
    ):
        self.timezone = timezone
        self.scheduler: Optional[AsyncIOScheduler] = None

        logger.info(f"JobScheduler initialized with timezone: {timezone}")

    @property
    def running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    async def start(self) -> None:
        logger.info("Starting scheduler...")

        if self.running:
            logger.warning("The scheduler is already running")
            return

        self.scheduler = AsyncIOScheduler(
            timezone=ZoneInfo(self.timezone),
            job_defaults={"coalesce": True, "max_instances": 1},
        )

        self.scheduler.start()
        logger.info(f"Scheduler running in timezone: {self.timezone}")

    def add_cron_job(
        self,
        job_id: str,
        func: Callable[[], Awaitable[object]],
        schedule: CronSchedule,
    ) -> None:
        if self.scheduler is None:
            raise RuntimeError("Scheduler not started")

        self.scheduler.add_job(
            func,
            CronTrigger.from_crontab(str(schedule), timezone=ZoneInfo(self.timezone)),
            id=job_id,
            replace_existing=True,
        )
        logger.info(f"⏰ {job_id} scheduled ({schedule.name}: {schedule.value})")

    def job_ids(self) -> List[str]:
        if self.scheduler is None:
            return []
        return [job.id for job in self.scheduler.get_jobs()]

    async def shutdown(self) -> None:
        if self.running:
            logger.info("Shutting down scheduler...")
            try:
                self.scheduler.shutdown(wait=False)
                logger.info("Scheduler shut down correctly")
            except JobLookupError as e:
                logger.error(f"Error shutting down scheduler: {e}")
