import logging
from typing import Any, Dict, List, Optional

import httpx

from src.commons.enums.market_enums import Market
from src.infrastructure.data.quote_base import StockQuote, StockSearchResult

logger = logging.getLogger(__name__)


class TwelveDataError(Exception):
    pass


def _num(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class TwelveDataClient:
    """Thin async client for the Twelve Data REST API."""

    BASE_URL = "https://api.twelvedata.com"
    LISTED_EXCHANGES = {"KRX": "KOSPI", "KOSDAQ": "KOSDAQ"}
    LISTED_TYPES = ("Common Stock", "ETF")

    def __init__(
        self,
        api_key: Optional[str],
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.api_key = api_key or ""
        self.client = client or httpx.AsyncClient(
            base_url=self.BASE_URL,
            timeout=timeout,
            transport=httpx.AsyncHTTPTransport(retries=2),
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def close(self) -> None:
        await self.client.aclose()

    async def _get(self, path: str, params: Dict[str, str]) -> Dict[str, Any]:
        try:
            response = await self.client.get(
                path, params={**params, "apikey": self.api_key})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise TwelveDataError(
                f"{path} failed with status {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise TwelveDataError(f"{path} failed: {e}") from e

        if not isinstance(data, dict):
            raise TwelveDataError(f"{path} returned {type(data).__name__} payload")
        return data

    @staticmethod
    def _to_quote(data: Dict[str, Any], ticker: str, market: Market) -> StockQuote:
        quote = StockQuote(
            ticker=ticker,
            name=data.get("name"),
            price=_num(data.get("close")),
            change=_num(data.get("change")),
            change_percent=_num(data.get("percent_change")),
            previous_close=_num(data.get("previous_close")),
            open=_num(data["open"]) if data.get("open") else None,
            high=_num(data["high"]) if data.get("high") else None,
            low=_num(data["low"]) if data.get("low") else None,
            volume=_num(data.get("volume")),
            currency=market.currency.value,
            exchange=data.get("exchange") or (
                "KRX" if market == Market.KR else "US"),
        )
        if market == Market.KR:
            quote.price = round(quote.price)
            quote.change = round(quote.change)
            quote.previous_close = round(quote.previous_close)
            quote.open = round(quote.open) if quote.open else None
            quote.high = round(quote.high) if quote.high else None
            quote.low = round(quote.low) if quote.low else None
        return quote

    async def get_quote(self, ticker: str, market: Market) -> Optional[StockQuote]:
        data = await self._get("/quote", {"symbol": ticker})
        if data.get("code") or not data.get("close"):
            logger.warning(
                f"⚠️ Twelve Data has no quote for {ticker}: {data.get('message', 'No data')}")
            return None
        return self._to_quote(data, data.get("symbol") or ticker, market)

    async def get_quotes(self, tickers: List[str], market: Market = Market.US) -> Dict[str, StockQuote]:
        """
        One request for several symbols. A single-symbol request returns a
        flat payload; several symbols come back keyed by symbol.
        """
        if not tickers:
            return {}

        data = await self._get("/quote", {"symbol": ",".join(tickers)})
        payloads = {tickers[0]: data} if len(tickers) == 1 else data

        quotes: Dict[str, StockQuote] = {}
        for symbol, payload in payloads.items():
            if isinstance(payload, dict) and payload.get("close"):
                quotes[symbol] = self._to_quote(payload, symbol, market)
        return quotes

    async def get_exchange_rate(self, symbol: str = "USD/KRW") -> Optional[float]:
        data = await self._get("/exchange_rate", {"symbol": symbol})
        rate = _num(data.get("rate"))
        return rate if rate > 0 else None

    async def list_stocks(self, exchange: str) -> List[StockSearchResult]:
        data = await self._get("/stocks", {"exchange": exchange})
        stocks = data.get("data") or []
        label = self.LISTED_EXCHANGES.get(exchange, exchange)

        results = [
            StockSearchResult(
                ticker=s["symbol"],
                name=s.get("name") or s["symbol"],
                exchange=label,
                type=s["type"],
            )
            for s in stocks
            if s.get("type") in self.LISTED_TYPES and s.get("symbol")
        ]
        logger.info(f"📊 {exchange}: {len(stocks)} listings loaded")
        return results
