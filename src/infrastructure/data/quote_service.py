import hashlib
import logging
import math
import random
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from src.commons.enums.market_enums import Market, TopStocksCategory
from src.infrastructure.data.cache import TTLCache
from src.infrastructure.data.quote_base import StockQuote, StockSearchResult
from src.infrastructure.data.stock_catalog import (
    DEFAULT_KR_STOCKS,
    DEFAULT_US_STOCKS,
    MOCK_KR_DEFAULT_PRICE,
    MOCK_KR_PRICES,
    MOCK_US_DEFAULT_PRICE,
    MOCK_US_PRICES,
)
from src.infrastructure.data.twelve_data import TwelveDataClient, TwelveDataError
from src.infrastructure.data.yfinance import YFinanceQuoteService

logger = logging.getLogger(__name__)

StockUniverse = Dict[Market, List[StockSearchResult]]


class QuoteService:
    """
    Market data facade: quotes with provider fallback, USD/KRW rate and the
    tradable universe. It never raises; when every upstream fails it serves
    a simulated quote so a trading round can still run.
    """

    DEFAULT_EXCHANGE_RATE = 1320.0
    US_BATCH_SIZE = 8
    TOP_STOCKS_POOL = 40

    def __init__(
        self,
        twelve_data: TwelveDataClient,
        yahoo: YFinanceQuoteService,
        rate_cache: TTLCache[float],
        stock_list_cache: TTLCache[StockUniverse],
        now_fn: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.twelve_data = twelve_data
        self.yahoo = yahoo
        self.rate_cache = rate_cache
        self.stock_list_cache = stock_list_cache
        self.now_fn = now_fn

        self._names: Dict[str, str] = {}
        for stock in DEFAULT_KR_STOCKS + DEFAULT_US_STOCKS:
            self._names[stock.ticker] = stock.name

    async def close(self) -> None:
        await self.twelve_data.close()

    # ---------------------------------------------------------------
    # Quotes
    # ---------------------------------------------------------------
    async def get_quote(self, ticker: str, market: Market) -> Optional[StockQuote]:
        name = self._names.get(ticker)

        if self.twelve_data.enabled:
            try:
                quote = await self.twelve_data.get_quote(ticker, market)
                if quote and quote.price > 0:
                    if market == Market.KR:
                        quote.name = name or quote.name or ticker
                    logger.debug(
                        f"📈 {ticker} ({market.value}) via Twelve Data: {quote.price}")
                    return quote
            except TwelveDataError as e:
                logger.warning(f"⚠️ Twelve Data quote failed for {ticker}: {e}")

        try:
            quote = await self.yahoo.get_quote(ticker, market, name=name)
            if quote and quote.price > 0:
                logger.debug(
                    f"📈 {ticker} ({market.value}) via Yahoo: {quote.price}")
                return quote
        except Exception as e:
            logger.warning(f"⚠️ Yahoo quote failed for {ticker}: {e}")

        logger.warning(f"📉 Quote unavailable, using simulated data: {ticker}")
        return self.mock_quote(ticker, market)

    async def get_batch_quotes(
        self,
        tickers: Iterable[Tuple[str, Market]],
    ) -> Dict[str, StockQuote]:
        """
        Quotes keyed by ticker. US tickers go to Twelve Data in chunks;
        KR tickers are quoted one by one.
        """
        pairs = list(tickers)
        us_tickers = list(dict.fromkeys(t for t, m in pairs if m == Market.US))
        kr_tickers = list(dict.fromkeys(t for t, m in pairs if m == Market.KR))

        results: Dict[str, StockQuote] = {}

        if us_tickers:
            if not self.twelve_data.enabled:
                for ticker in us_tickers:
                    results[ticker] = self.mock_quote(ticker, Market.US)
            else:
                for i in range(0, len(us_tickers), self.US_BATCH_SIZE):
                    chunk = us_tickers[i: i + self.US_BATCH_SIZE]
                    try:
                        results.update(
                            await self.twelve_data.get_quotes(chunk, Market.US))
                    except TwelveDataError as e:
                        logger.error(f"❌ Twelve Data batch error for {chunk}: {e}")

                for ticker in us_tickers:
                    if ticker not in results:
                        quote = await self.get_quote(ticker, Market.US)
                        if quote:
                            results[ticker] = quote

        for ticker in kr_tickers:
            quote = await self.get_quote(ticker, Market.KR)
            if quote:
                results[ticker] = quote

        return results

    # ---------------------------------------------------------------
    # Exchange rate
    # ---------------------------------------------------------------
    def simulated_exchange_rate(self, now: Optional[datetime] = None) -> float:
        now = now or self.now_fn()
        minutes = math.floor(now.timestamp() / 60)
        variation = math.sin(minutes / 10) * 50 + math.cos(minutes / 5) * 30
        return float(round(self.DEFAULT_EXCHANGE_RATE + variation))

    async def get_exchange_rate(self) -> float:
        cached = self.rate_cache.get()
        if cached is not None:
            return cached

        if not self.twelve_data.enabled:
            rate = self.simulated_exchange_rate()
            self.rate_cache.set(rate)
            return rate

        try:
            rate = await self.twelve_data.get_exchange_rate("USD/KRW")
            if rate:
                self.rate_cache.set(rate)
                return rate
        except TwelveDataError as e:
            logger.error(f"❌ Exchange rate error: {e}")

        return self.rate_cache.last() or self.DEFAULT_EXCHANGE_RATE

    # ---------------------------------------------------------------
    # Universe
    # ---------------------------------------------------------------
    async def _fetch_kr_listings(self) -> List[StockSearchResult]:
        if not self.twelve_data.enabled:
            logger.warning("⚠️ TWELVE_DATA_API_KEY not set, using default KR list")
            return []

        listings: List[StockSearchResult] = []
        for exchange in TwelveDataClient.LISTED_EXCHANGES:
            try:
                listings.extend(await self.twelve_data.list_stocks(exchange))
            except TwelveDataError as e:
                logger.warning(f"⚠️ Twelve Data {exchange} listing failed: {e}")
        return listings

    async def fetch_all_stocks(self) -> StockUniverse:
        cached = self.stock_list_cache.get()
        if cached is not None:
            return cached

        kr_stocks = await self._fetch_kr_listings()
        if kr_stocks:
            for stock in kr_stocks:
                self._names[stock.ticker] = stock.name
            logger.info(f"📊 Loaded {len(kr_stocks)} KR listings")
        else:
            kr_stocks = list(DEFAULT_KR_STOCKS)

        universe: StockUniverse = {
            Market.KR: kr_stocks,
            Market.US: list(DEFAULT_US_STOCKS),
        }
        self.stock_list_cache.set(universe)
        return universe

    # ---------------------------------------------------------------
    # Tool helpers
    # ---------------------------------------------------------------
    async def search_stocks(
        self,
        keyword: str,
        market: Market,
        limit: int = 10,
    ) -> List[dict]:
        universe = await self.fetch_all_stocks()
        needle = (keyword or "").strip().lower()

        matches = [
            s for s in universe[market]
            if not needle or needle in s.ticker.lower() or needle in s.name.lower()
        ]
        return [s.to_dict() for s in matches[:limit]]

    async def get_stock_quote_for_tool(self, ticker: str, market: Market) -> Optional[dict]:
        quote = await self.get_quote(ticker, market)
        if not quote:
            return None
        return {
            "ticker": quote.ticker,
            "name": quote.name or self._names.get(ticker, ticker),
            "market": market.value,
            "price": quote.price,
            "change": quote.change,
            "change_percent": quote.change_percent,
            "volume": quote.volume,
            "high": quote.high,
            "low": quote.low,
            "currency": quote.currency,
        }

    async def get_top_stocks(
        self,
        market: Market,
        category: TopStocksCategory = TopStocksCategory.MARKET_CAP,
        limit: int = 20,
    ) -> List[dict]:
        """
        Ranked slice of the universe. The default lists are ordered by
        market cap, so that category keeps list order; the others rank a
        quoted pool by volume or daily change.
        """
        universe = (await self.fetch_all_stocks())[market]
        pool_size = limit if category == TopStocksCategory.MARKET_CAP else max(
            limit, self.TOP_STOCKS_POOL)
        pool = universe[:pool_size]

        quotes = await self.get_batch_quotes((s.ticker, market) for s in pool)
        rows = [
            {
                "ticker": s.ticker,
                "name": s.name,
                "price": quotes[s.ticker].price,
                "change_percent": quotes[s.ticker].change_percent,
                "volume": quotes[s.ticker].volume or 0,
            }
            for s in pool
            if s.ticker in quotes
        ]

        if category == TopStocksCategory.VOLUME:
            rows.sort(key=lambda r: r["volume"], reverse=True)
        elif category == TopStocksCategory.GAINERS:
            rows.sort(key=lambda r: r["change_percent"], reverse=True)
        elif category == TopStocksCategory.LOSERS:
            rows.sort(key=lambda r: r["change_percent"])

        return rows[:limit]

    # ---------------------------------------------------------------
    # Simulated quotes
    # ---------------------------------------------------------------
    def _seeded_rng(self, ticker: str) -> random.Random:
        hour = self.now_fn().strftime("%Y%m%d%H")
        digest = hashlib.sha256(f"{ticker}:{hour}".encode("utf-8")).digest()
        return random.Random(int.from_bytes(digest[:8], "big"))

    def mock_quote(self, ticker: str, market: Market) -> StockQuote:
        """Deterministic for a given ticker within the same hour."""
        rng = self._seeded_rng(ticker)

        if market == Market.KR:
            name, base = MOCK_KR_PRICES.get(
                ticker, (self._names.get(ticker, f"종목 {ticker}"), MOCK_KR_DEFAULT_PRICE))
            change_percent = rng.uniform(-3.0, 3.0)
            change = round(base * change_percent / 100)
            price = base + change
            exchange = "KRX"
        else:
            ticker = ticker.upper()
            name, base = MOCK_US_PRICES.get(
                ticker, (self._names.get(ticker, ticker), MOCK_US_DEFAULT_PRICE))
            change_percent = rng.uniform(-2.0, 2.0)
            change = round(base * change_percent / 100, 2)
            price = round(base + change, 2)
            exchange = "US"

        return StockQuote(
            ticker=ticker,
            name=name,
            price=float(price),
            change=float(change),
            change_percent=round(change_percent, 2),
            previous_close=float(base),
            currency=market.currency.value,
            exchange=exchange,
            timestamp=self.now_fn(),
        )
