from typing import Protocol, Optional, List, Dict, Any
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone

from src.commons.enums.market_enums import Market


@dataclass
class StockQuote:
    ticker: str
    price: float
    currency: str
    exchange: str
    name: Optional[str] = None
    change: float = 0.0
    change_percent: float = 0.0
    previous_close: float = 0.0
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    volume: Optional[float] = None
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass
class StockSearchResult:
    ticker: str
    name: str
    exchange: str
    type: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


class QuoteSource(Protocol):
    """
    A single upstream price source. Returns None when it has no usable
    price for the symbol; transport errors are raised to the caller.
    """

    async def get_quote(
        self,
        ticker: str,
        market: Market,
    ) -> Optional[StockQuote]:
        ...


class QuoteProvider(Protocol):
    async def get_quote(self, ticker: str, market: Market) -> Optional[StockQuote]:
        ...

    async def get_batch_quotes(
        self,
        tickers: List[tuple],
    ) -> Dict[str, StockQuote]:
        ...

    async def get_exchange_rate(self) -> float:
        ...
