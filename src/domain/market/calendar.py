from datetime import datetime, time, timedelta
from typing import Callable, Dict, Optional
from zoneinfo import ZoneInfo

from src.commons.enums.market_enums import Market

KST = ZoneInfo("Asia/Seoul")


def _nth_sunday(year: int, month: int, n: int) -> datetime:
    first = datetime(year, month, 1)
    # weekday(): Monday=0 .. Sunday=6
    offset = (6 - first.weekday()) % 7
    return first + timedelta(days=offset + 7 * (n - 1))


class MarketCalendar:
    """
    Opening hours of the KR and US equity markets, in Korean wall-clock
    time. Holidays are not modelled.
    """

    KR_OPEN = time(9, 0)
    KR_CLOSE = time(15, 0)
    US_OPEN = time(23, 30)
    US_CLOSE = time(6, 0)
    US_OPEN_DST = time(22, 30)
    US_CLOSE_DST = time(5, 0)

    OPEN_LABEL = "현재 장중"

    def __init__(
        self,
        now_fn: Optional[Callable[[], datetime]] = None,
        tz: ZoneInfo = KST,
    ):
        self.tz = tz
        self.now_fn = now_fn or (lambda: datetime.now(self.tz))

    def _local(self, now: Optional[datetime]) -> datetime:
        now = now or self.now_fn()
        if now.tzinfo is not None:
            now = now.astimezone(self.tz)
        return now.replace(tzinfo=None)

    def is_us_dst(self, now: Optional[datetime] = None) -> bool:
        """Second Sunday of March 02:00 up to first Sunday of November 02:00."""
        local = self._local(now)
        start = _nth_sunday(local.year, 3, 2).replace(hour=2)
        end = _nth_sunday(local.year, 11, 1).replace(hour=2)
        return start <= local < end

    def is_market_open(self, market: Market, now: Optional[datetime] = None) -> bool:
        local = self._local(now)
        t = local.time()

        if market == Market.KR:
            return local.weekday() < 5 and self.KR_OPEN <= t < self.KR_CLOSE

        if self.is_us_dst(local):
            open_, close = self.US_OPEN_DST, self.US_CLOSE_DST
        else:
            open_, close = self.US_OPEN, self.US_CLOSE

        if t >= open_:
            session_day = local.date()
        elif t < close:
            # after midnight KST the session still belongs to the previous US day
            session_day = local.date() - timedelta(days=1)
        else:
            return False
        return session_day.weekday() < 5

    def hours(self, market: Market, now: Optional[datetime] = None) -> Dict[str, str]:
        if market == Market.KR:
            open_, close = self.KR_OPEN, self.KR_CLOSE
        elif self.is_us_dst(now):
            open_, close = self.US_OPEN_DST, self.US_CLOSE_DST
        else:
            open_, close = self.US_OPEN, self.US_CLOSE
        return {"open": open_.strftime("%H:%M"), "close": close.strftime("%H:%M")}

    def get_market_status(self, now: Optional[datetime] = None) -> Dict[str, object]:
        local = self._local(now)
        status: Dict[str, object] = {}

        for market in Market:
            is_open = self.is_market_open(market, local)
            hours = self.hours(market, local)
            status[market.value.lower()] = {
                "is_open": is_open,
                "next_open": self.OPEN_LABEL if is_open else hours["open"],
                "next_close": hours["close"] if is_open else "-",
            }

        status["is_dst"] = self.is_us_dst(local)
        return status
