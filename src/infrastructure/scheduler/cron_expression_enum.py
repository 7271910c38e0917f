from enum import Enum


class CronSchedule(Enum):
    """
    CRON expressions used by the trading jobs. Times are in the
    scheduler's timezone (Asia/Seoul).
    """
    EVERY_30_MINUTES = "*/30 * * * *"
    WEEKDAYS_4PM = "0 16 * * 1-5"

    def __str__(self) -> str:
        return self.value
