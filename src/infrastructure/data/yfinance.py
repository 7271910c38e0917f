from __future__ import annotations

from typing import Optional

import logging

import anyio
import pandas as pd
import yfinance as yf

from src.commons.enums.market_enums import Market
from src.infrastructure.data.quote_base import StockQuote


logger = logging.getLogger(__name__)


# ==========================
# Infraestructure: yfinance
# ==========================

class YFinanceQuoteService:
    """
    Yahoo Finance fallback. KR tickers need an exchange suffix
    (``.KS`` for KOSPI, ``.KQ`` for KOSDAQ); US tickers are used as is.
    """

    KOSPI_SUFFIX = ".KS"
    KOSDAQ_SUFFIX = ".KQ"

    def __init__(self, lookback_period: str = "5d") -> None:
        self.lookback_period = lookback_period

    @staticmethod
    def _normalize_index_tz(df: pd.DataFrame) -> pd.DataFrame:
        if not isinstance(df.index, pd.DatetimeIndex):
            df = df.copy()
            df.index = pd.to_datetime(df.index)

        if df.index.tz is not None:
            df = df.copy()
            df.index = df.index.tz_localize(None)

        return df.sort_index()

    def _download_history(self, yahoo_symbol: str) -> pd.DataFrame:
        """Blocking call into yfinance."""
        df = yf.Ticker(yahoo_symbol).history(
            period=self.lookback_period,
            interval="1d",
            auto_adjust=False,
        )
        if df is None or df.empty:
            return pd.DataFrame()
        return self._normalize_index_tz(df)

    async def get_quote_for_symbol(
        self,
        yahoo_symbol: str,
        ticker: str,
        market: Market,
        name: Optional[str] = None,
    ) -> Optional[StockQuote]:
        df = await anyio.to_thread.run_sync(self._download_history, yahoo_symbol)

        if df.empty or "Close" not in df.columns:
            logger.warning(f"YFinance returned empty data for {yahoo_symbol}")
            return None

        last = df.iloc[-1]
        price = float(last["Close"])
        previous_close = float(df["Close"].iloc[-2]) if len(df) > 1 else price
        if price <= 0:
            return None

        change = price - previous_close
        change_percent = (change / previous_close * 100) if previous_close > 0 else 0.0

        quote = StockQuote(
            ticker=ticker,
            name=name or ticker,
            price=price,
            change=change,
            change_percent=round(change_percent, 2),
            previous_close=previous_close,
            open=float(last["Open"]) if pd.notna(last.get("Open")) else None,
            high=float(last["High"]) if pd.notna(last.get("High")) else None,
            low=float(last["Low"]) if pd.notna(last.get("Low")) else None,
            volume=float(last["Volume"]) if pd.notna(last.get("Volume")) else 0.0,
            currency=market.currency.value,
            exchange="KRX" if market == Market.KR else "US",
        )

        if market == Market.KR:
            quote.price = round(quote.price)
            quote.change = round(quote.change)
            quote.previous_close = round(quote.previous_close)
            quote.open = round(quote.open) if quote.open else None
            quote.high = round(quote.high) if quote.high else None
            quote.low = round(quote.low) if quote.low else None

        return quote

    async def get_quote(
        self,
        ticker: str,
        market: Market,
        name: Optional[str] = None,
    ) -> Optional[StockQuote]:
        if market == Market.US:
            return await self.get_quote_for_symbol(ticker, ticker, market, name)

        for suffix in (self.KOSPI_SUFFIX, self.KOSDAQ_SUFFIX):
            try:
                quote = await self.get_quote_for_symbol(
                    f"{ticker}{suffix}", ticker, market, name)
            except Exception as e:
                logger.warning(f"YFinance error for {ticker}{suffix}: {e}")
                continue
            if quote and quote.price > 0:
                return quote

        return None
