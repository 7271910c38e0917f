from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional
from uuid import uuid4

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.commons.enums.market_enums import ExchangeType, Market, TradeType
from src.domain.portfolio.dtos.portfolio_dto import (
    AIModelDTO,
    CurrencyBalances,
    HoldingDTO,
    PortfolioHistoryPointDTO,
)
from src.domain.trading.dtos.trade_dto import TradeDTO
from src.infrastructure.data.quote_base import StockQuote


class InMemoryLedger:
    """Dict-backed stand-in for LedgerStore with the same method surface."""

    def __init__(self) -> None:
        self.models: List[AIModelDTO] = []
        self.balances: Dict[str, CurrencyBalances] = {}
        self.holdings: Dict[str, HoldingDTO] = {}
        self.trades: List[TradeDTO] = []
        self.exchanges: List[dict] = []
        self.scenarios: List[dict] = []
        self.history: List[PortfolioHistoryPointDTO] = []
        self.fail_writes = False

    # ---- setup helpers ----
    def add_model(self, name: str = "GPT", provider: str = "openai",
                  krw: float = 0.0, usd: float = 0.0,
                  initial_capital: float = 10_000_000.0) -> AIModelDTO:
        model = AIModelDTO(
            id=str(uuid4()), name=name, provider=provider,
            initial_capital=initial_capital)
        self.models.append(model)
        self.balances[model.id] = CurrencyBalances(krw_balance=krw, usd_balance=usd)
        return model

    def add_history(self, model_id: str, value: float, at: datetime) -> None:
        self.history.append(
            PortfolioHistoryPointDTO(model_id=model_id, total_value=value, recorded_at=at))

    # ---- models ----
    async def get_ai_models(self) -> List[AIModelDTO]:
        return list(self.models)

    async def get_model(self, model_id: str) -> Optional[AIModelDTO]:
        return next((m for m in self.models if m.id == model_id), None)

    # ---- cash ----
    async def get_currency_balances(self, model_id: str) -> CurrencyBalances:
        return self.balances.get(model_id, CurrencyBalances()).model_copy()

    async def update_cash_balance(self, model_id: str, krw_balance: float, usd_balance: float) -> bool:
        if self.fail_writes:
            return False
        self.balances[model_id] = CurrencyBalances(krw_balance=krw_balance, usd_balance=usd_balance)
        return True

    async def record_exchange(self, model_id: str, exchange_type: ExchangeType, krw_amount: float,
                              usd_amount: float, exchange_rate: float,
                              reasoning: Optional[str] = None) -> bool:
        self.exchanges.append({
            "model_id": model_id,
            "type": exchange_type,
            "krw_amount": krw_amount,
            "usd_amount": usd_amount,
            "rate": exchange_rate,
            "reasoning": reasoning,
        })
        return True

    # ---- holdings ----
    async def get_holdings(self, model_id: str) -> List[HoldingDTO]:
        return [h.model_copy() for h in self.holdings.values() if h.model_id == model_id]

    async def get_all_holdings(self) -> List[HoldingDTO]:
        return [h.model_copy() for h in self.holdings.values()]

    async def get_holding_by_ticker(self, model_id: str, ticker: str, market: Market) -> Optional[HoldingDTO]:
        for h in self.holdings.values():
            if h.model_id == model_id and h.ticker == ticker and h.market == market:
                return h.model_copy()
        return None

    async def insert_holding(self, model_id: str, ticker: str, market: Market, shares: float,
                             price: float, stock_name: Optional[str] = None) -> bool:
        if self.fail_writes:
            return False
        holding = HoldingDTO(
            id=str(uuid4()), model_id=model_id, ticker=ticker, stock_name=stock_name,
            market=market, shares=shares, avg_price=price, current_price=price)
        self.holdings[holding.id] = holding
        return True

    async def update_holding(self, holding_id: str, shares: Optional[float] = None,
                             avg_price: Optional[float] = None,
                             current_price: Optional[float] = None) -> bool:
        if self.fail_writes or holding_id not in self.holdings:
            return False
        holding = self.holdings[holding_id]
        if shares is not None:
            holding.shares = shares
        if avg_price is not None:
            holding.avg_price = avg_price
        if current_price is not None:
            holding.current_price = current_price
        return True

    async def update_holding_current_price(self, holding_id: str, price: float) -> bool:
        return await self.update_holding(holding_id, current_price=price)

    async def delete_holding(self, holding_id: str) -> bool:
        if self.fail_writes:
            return False
        return self.holdings.pop(holding_id, None) is not None

    # ---- trades ----
    async def record_trade(self, model_id: str, ticker: str, market: Market, trade_type: TradeType,
                           shares: float, price: float, stock_name: Optional[str] = None,
                           reasoning: Optional[str] = None,
                           scenario: Optional[str] = None) -> Optional[TradeDTO]:
        trade = TradeDTO(
            id=str(uuid4()), model_id=model_id, ticker=ticker, stock_name=stock_name,
            market=market, trade_type=trade_type, shares=shares, price=price,
            total_amount=shares * price, reasoning=reasoning, scenario=scenario,
            created_at=datetime.now(timezone.utc))
        self.trades.append(trade)
        return trade

    async def get_all_trades(self) -> List[TradeDTO]:
        return list(self.trades)

    async def get_recent_trades_by_model(self, model_id: str, hours: int = 24) -> List[TradeDTO]:
        since = datetime.now(timezone.utc) - timedelta(hours=hours)
        return sorted(
            (t for t in self.trades if t.model_id == model_id and t.created_at >= since),
            key=lambda t: t.created_at,
            reverse=True,
        )

    async def has_traded_today(self, model_id: str, market: Market) -> bool:
        today = datetime.now(timezone.utc).date()
        return any(
            t.model_id == model_id and t.market == market and t.created_at.date() == today
            for t in self.trades
        )

    async def record_hold_scenario(self, model_id: str, market: Market, reasoning: str) -> bool:
        self.scenarios.append({"model_id": model_id, "market": market, "reasoning": reasoning})
        return True

    # ---- history ----
    async def record_portfolio_value(self, model_id: str, total_value: float) -> bool:
        return await self.record_portfolio_value_at(model_id, total_value, datetime.now(timezone.utc))

    async def record_portfolio_value_at(self, model_id: str, total_value: float,
                                        recorded_at: datetime) -> bool:
        if self.fail_writes:
            return False
        self.add_history(model_id, total_value, recorded_at)
        return True

    async def get_portfolio_history(self, days: int = 30) -> List[PortfolioHistoryPointDTO]:
        since = datetime.now(timezone.utc) - timedelta(days=days)
        return sorted(
            (p for p in self.history if p.recorded_at >= since),
            key=lambda p: p.recorded_at,
        )

    async def has_portfolio_history_for_date(self, model_id: str, day: date) -> bool:
        return any(
            p.model_id == model_id and p.recorded_at.date() == day
            for p in self.history
        )

    async def health_check(self) -> bool:
        return True


class FakeQuotes:
    """Fixed-price quote source with a constant USD/KRW rate."""

    def __init__(self, prices: Optional[Dict[str, float]] = None, rate: float = 1300.0,
                 universe: Optional[Dict[Market, list]] = None) -> None:
        self.prices = dict(prices or {})
        self.rate = rate
        self.universe = universe or {}
        self.batch_calls: List[list] = []
        self.search_stocks = AsyncMock(return_value=[])
        self.get_top_stocks = AsyncMock(return_value=[])

    def _quote(self, ticker: str, market: Market) -> Optional[StockQuote]:
        if ticker not in self.prices:
            return None
        return StockQuote(
            ticker=ticker,
            price=self.prices[ticker],
            currency=market.currency.value,
            exchange="TEST",
            name=ticker,
        )

    async def get_quote(self, ticker: str, market: Market) -> Optional[StockQuote]:
        return self._quote(ticker, market)

    async def get_batch_quotes(self, tickers) -> Dict[str, StockQuote]:
        pairs = list(tickers)
        self.batch_calls.append(pairs)
        quotes = {}
        for ticker, market in pairs:
            quote = self._quote(ticker, market)
            if quote:
                quotes[ticker] = quote
        return quotes

    async def get_exchange_rate(self) -> float:
        return self.rate

    async def get_stock_quote_for_tool(self, ticker: str, market: Market) -> Optional[dict]:
        quote = self._quote(ticker, market)
        return quote.to_dict() if quote else None

    async def fetch_all_stocks(self) -> dict:
        return {market: list(self.universe.get(market, [])) for market in Market}


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def quotes() -> FakeQuotes:
    return FakeQuotes(prices={"005930": 70_000.0, "000660": 120_000.0, "AAPL": 200.0})


@pytest.fixture
def notifier() -> MagicMock:
    notifier = MagicMock()
    notifier.send_trade_notification = AsyncMock()
    notifier.send_round_summary = AsyncMock()
    notifier.send_error_notification = AsyncMock()
    notifier.send_daily_report = AsyncMock()
    notifier.broadcast = AsyncMock()
    return notifier


@pytest.fixture
def make_quotes():
    return FakeQuotes
