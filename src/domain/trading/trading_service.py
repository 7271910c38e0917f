import logging
from typing import Any, Dict, List, Optional

from src.commons.enums.market_enums import ExchangeType, Market, TopStocksCategory, TradeAction, TradeType
from src.domain.decision.decision_service import DecisionService
from src.domain.decision.dtos.decision_dto import TradeDecision
from src.domain.portfolio.dtos.portfolio_dto import AIModelDTO
from src.domain.trading.dtos.trade_dto import (
    ExchangeResult,
    MarketDataSnapshot,
    RoundModelResult,
    StockSnapshot,
    TradeDTO,
    TradingRoundResult,
)
from src.domain.trading.errors import (
    InsufficientFundsError,
    InsufficientSharesError,
    LedgerWriteError,
    TradeRejectedError,
)
from src.infrastructure.data.quote_service import QuoteService
from src.infrastructure.database.ledger_store import LedgerStore
from src.infrastructure.notifications.notifier import NotificationService
from src.infrastructure.rate_limit.rate_limiter import MinIntervalRateLimiter


logger = logging.getLogger(__name__)

SKIPPED_NO_API_KEY = "SKIPPED_NO_API_KEY"


class TradingService:
    def __init__(
        self,
        ledger: LedgerStore,
        quotes: QuoteService,
        decisions: DecisionService,
        notifier: NotificationService,
        rate_limiter: MinIntervalRateLimiter,
        max_exchange_ratio: float = 0.8,
        decision_exchange_ratio: float = 0.5,
        auto_exchange_buffer: float = 1.01,
        use_tools: bool = True,
    ):
        self.ledger = ledger
        self.quotes = quotes
        self.decisions = decisions
        self.notifier = notifier
        self.rate_limiter = rate_limiter
        self.max_exchange_ratio = max_exchange_ratio
        self.decision_exchange_ratio = decision_exchange_ratio
        self.auto_exchange_buffer = auto_exchange_buffer
        self.use_tools = use_tools

        self._register_tool_handlers()

    # ------------------------------------------------------------------
    # Tools exposed to the models
    # ------------------------------------------------------------------
    def _register_tool_handlers(self) -> None:
        self.decisions.register_tool_handler("search_stocks", self._tool_search_stocks)
        self.decisions.register_tool_handler("get_stock_quote", self._tool_get_stock_quote)
        self.decisions.register_tool_handler("get_top_stocks", self._tool_get_top_stocks)
        logger.info("🔧 AI tool handlers registered")

    @staticmethod
    def _tool_market(args: Dict[str, Any]) -> Market:
        return Market(str(args.get("market", "")).upper())

    async def _tool_search_stocks(self, args: Dict[str, Any]) -> Any:
        keyword = str(args.get("keyword") or "")
        market = self._tool_market(args)
        limit = int(args.get("limit") or 10)

        logger.info(f"🔍 Tool: search_stocks({keyword!r}, {market.value})")
        return await self.quotes.search_stocks(keyword, market, limit)

    async def _tool_get_stock_quote(self, args: Dict[str, Any]) -> Any:
        ticker = str(args.get("ticker") or "")
        market = self._tool_market(args)

        logger.info(f"📈 Tool: get_stock_quote({ticker!r}, {market.value})")
        quote = await self.quotes.get_stock_quote_for_tool(ticker, market)
        if not quote:
            return {"error": f"Failed to get quote for {ticker}"}
        return quote

    async def _tool_get_top_stocks(self, args: Dict[str, Any]) -> Any:
        market = self._tool_market(args)
        category = TopStocksCategory(args.get("category") or TopStocksCategory.MARKET_CAP.value)
        limit = int(args.get("limit") or 20)

        logger.info(f"📊 Tool: get_top_stocks({market.value}, {category.value}, {limit})")
        return await self.quotes.get_top_stocks(market, category, limit)

    # ------------------------------------------------------------------
    # Market snapshot (single-shot protocol)
    # ------------------------------------------------------------------
    async def get_market_snapshot(self) -> MarketDataSnapshot:
        universe = await self.quotes.fetch_all_stocks()
        pairs = [(s.ticker, market) for market, stocks in universe.items() for s in stocks]
        quotes = await self.quotes.get_batch_quotes(pairs)

        snapshot = MarketDataSnapshot()
        for market in (Market.KR, Market.US):
            for stock in universe.get(market, []):
                quote = quotes.get(stock.ticker)
                if not quote:
                    continue
                snapshot.stocks.append(
                    StockSnapshot(
                        ticker=stock.ticker,
                        name=stock.name,
                        market=market,
                        price=quote.price,
                        change=quote.change,
                        change_percent=quote.change_percent,
                        volume=quote.volume,
                        high=quote.high,
                        low=quote.low,
                    )
                )
        return snapshot

    # ------------------------------------------------------------------
    # Currency exchange
    # ------------------------------------------------------------------
    async def exchange_krw_to_usd(
        self,
        model_id: str,
        krw_amount: float,
        max_ratio: Optional[float] = None,
        reasoning: Optional[str] = None,
    ) -> ExchangeResult:
        ratio = self.max_exchange_ratio if max_ratio is None else max_ratio
        rate = await self.quotes.get_exchange_rate()
        balances = await self.ledger.get_currency_balances(model_id)

        actual_krw = min(krw_amount, balances.krw_balance * ratio)
        if actual_krw <= 0:
            return ExchangeResult(success=False, error="No KRW available to exchange")

        usd_amount = actual_krw / rate
        logger.info(
            f"💱 KRW→USD: requested ₩{krw_amount:,.0f}, converting ₩{actual_krw:,.0f} "
            f"(cap {ratio:.0%}) @ {rate:,.2f}"
        )

        updated = await self.ledger.update_cash_balance(
            model_id,
            balances.krw_balance - actual_krw,
            balances.usd_balance + usd_amount,
        )
        if not updated:
            return ExchangeResult(success=False, error="Balance update failed")

        await self.ledger.record_exchange(
            model_id, ExchangeType.KRW_TO_USD, actual_krw, usd_amount, rate, reasoning)

        return ExchangeResult(success=True, krw_amount=actual_krw, usd_amount=usd_amount)

    async def exchange_usd_to_krw(
        self,
        model_id: str,
        usd_amount: float,
        max_ratio: Optional[float] = None,
        reasoning: Optional[str] = None,
    ) -> ExchangeResult:
        ratio = self.max_exchange_ratio if max_ratio is None else max_ratio
        rate = await self.quotes.get_exchange_rate()
        balances = await self.ledger.get_currency_balances(model_id)

        actual_usd = min(usd_amount, balances.usd_balance * ratio)
        if actual_usd <= 0:
            return ExchangeResult(success=False, error="No USD available to exchange")

        krw_amount = actual_usd * rate
        logger.info(
            f"💱 USD→KRW: requested ${usd_amount:,.2f}, converting ${actual_usd:,.2f} "
            f"(cap {ratio:.0%}) @ {rate:,.2f}"
        )

        updated = await self.ledger.update_cash_balance(
            model_id,
            balances.krw_balance + krw_amount,
            balances.usd_balance - actual_usd,
        )
        if not updated:
            return ExchangeResult(success=False, error="Balance update failed")

        await self.ledger.record_exchange(
            model_id, ExchangeType.USD_TO_KRW, krw_amount, actual_usd, rate, reasoning)

        return ExchangeResult(success=True, krw_amount=krw_amount, usd_amount=actual_usd)

    # ------------------------------------------------------------------
    # Trade execution
    # ------------------------------------------------------------------
    async def _debit_for_buy(self, model_id: str, market: Market, total: float) -> None:
        balances = await self.ledger.get_currency_balances(model_id)

        if market == Market.KR:
            if balances.krw_balance < total:
                raise InsufficientFundsError(
                    f"KRW balance ₩{balances.krw_balance:,.0f} < ₩{total:,.0f}")
            if not await self.ledger.update_cash_balance(
                    model_id, balances.krw_balance - total, balances.usd_balance):
                raise LedgerWriteError("cash balance update failed")
            return

        if balances.usd_balance < total:
            shortfall = total - balances.usd_balance
            rate = await self.quotes.get_exchange_rate()
            needed_krw = shortfall * rate * self.auto_exchange_buffer

            if balances.krw_balance < needed_krw:
                raise InsufficientFundsError(
                    f"USD short by ${shortfall:,.2f} and KRW cannot cover ₩{needed_krw:,.0f}")

            logger.info(f"💱 Auto-exchange for US buy: ₩{needed_krw:,.0f}")
            result = await self.exchange_krw_to_usd(
                model_id, needed_krw, reasoning="Auto-exchange for US buy")
            if not result.success:
                raise InsufficientFundsError(f"auto-exchange failed: {result.error}")

            balances = await self.ledger.get_currency_balances(model_id)
            if balances.usd_balance < total:
                raise InsufficientFundsError(
                    f"USD balance ${balances.usd_balance:,.2f} < ${total:,.2f} after auto-exchange")

        if not await self.ledger.update_cash_balance(
                model_id, balances.krw_balance, balances.usd_balance - total):
            raise LedgerWriteError("cash balance update failed")

    async def _apply_buy(
        self,
        model_id: str,
        ticker: str,
        stock_name: Optional[str],
        market: Market,
        shares: float,
        price: float,
    ) -> None:
        await self._debit_for_buy(model_id, market, shares * price)

        holding = await self.ledger.get_holding_by_ticker(model_id, ticker, market)
        if holding:
            total_shares = holding.shares + shares
            avg_price = (holding.shares * holding.avg_price + shares * price) / total_shares
            ok = await self.ledger.update_holding(
                holding.id, shares=total_shares, avg_price=avg_price, current_price=price)
        else:
            ok = await self.ledger.insert_holding(
                model_id, ticker, market, shares, price, stock_name)

        if not ok:
            raise LedgerWriteError("holding write failed")

    async def _apply_sell(
        self,
        model_id: str,
        ticker: str,
        market: Market,
        shares: float,
        price: float,
    ) -> None:
        holding = await self.ledger.get_holding_by_ticker(model_id, ticker, market)
        if not holding:
            raise InsufficientSharesError(f"no holding for {ticker}")
        if holding.shares < shares:
            raise InsufficientSharesError(
                f"holding {holding.shares:g} < requested {shares:g} for {ticker}")

        total = shares * price
        balances = await self.ledger.get_currency_balances(model_id)
        if market == Market.KR:
            ok = await self.ledger.update_cash_balance(
                model_id, balances.krw_balance + total, balances.usd_balance)
        else:
            ok = await self.ledger.update_cash_balance(
                model_id, balances.krw_balance, balances.usd_balance + total)
        if not ok:
            raise LedgerWriteError("cash balance update failed")

        if holding.shares == shares:
            ok = await self.ledger.delete_holding(holding.id)
        else:
            ok = await self.ledger.update_holding(
                holding.id, shares=holding.shares - shares, current_price=price)
        if not ok:
            raise LedgerWriteError("holding write failed")

    async def execute_trade(
        self,
        model_id: str,
        ticker: str,
        stock_name: Optional[str],
        market: Market,
        trade_type: TradeType,
        shares: float,
        price: float,
        reasoning: Optional[str] = None,
        scenario: Optional[str] = None,
    ) -> Optional[TradeDTO]:
        """
        Apply a trade to cash and holdings, then append it to the trade log.

        Returns None when the trade is rejected (funds, shares) or a ledger
        write fails. Earlier writes are not rolled back in that case.
        """
        try:
            if trade_type == TradeType.BUY:
                await self._apply_buy(model_id, ticker, stock_name, market, shares, price)
            else:
                await self._apply_sell(model_id, ticker, market, shares, price)
        except TradeRejectedError as e:
            logger.error(
                f"❌ {trade_type.value} {ticker} x{shares:g} rejected for {model_id}: {e}")
            return None

        return await self.ledger.record_trade(
            model_id=model_id,
            ticker=ticker,
            market=market,
            trade_type=trade_type,
            shares=shares,
            price=price,
            stock_name=stock_name,
            reasoning=reasoning,
            scenario=scenario,
        )

    async def _apply_decision_exchange(self, model: AIModelDTO, decision: TradeDecision) -> None:
        exchange = decision.exchange
        logger.info(f"💱 {model.name}: exchange requested - {exchange.reason}")

        if exchange.type == ExchangeType.KRW_TO_USD:
            result = await self.exchange_krw_to_usd(
                model.id, exchange.amount, self.decision_exchange_ratio, exchange.reason)
        else:
            result = await self.exchange_usd_to_krw(
                model.id, exchange.amount, self.decision_exchange_ratio, exchange.reason)

        if result.success:
            logger.info(
                f"  ✅ ₩{result.krw_amount:,.0f} ⇄ ${result.usd_amount:,.2f} ({exchange.type.value})")
        else:
            logger.error(f"  ❌ Exchange failed: {result.error}")

    async def execute_trade_decision(
        self,
        model: AIModelDTO,
        decision: TradeDecision,
        market: Market,
    ) -> bool:
        if decision.exchange:
            await self._apply_decision_exchange(model, decision)

        if decision.action == TradeAction.HOLD:
            logger.info(f"[{model.name}] HOLD - {decision.reasoning}")
            await self.ledger.record_hold_scenario(model.id, market, decision.reasoning)
            return False

        ticker, shares = decision.ticker, decision.shares
        if not ticker or not shares or shares <= 0:
            logger.error(f"[{model.name}] Invalid trade decision: {decision.model_dump()}")
            return False

        quote = await self.quotes.get_quote(ticker, market)
        if not quote or quote.price <= 0:
            logger.error(f"[{model.name}] Quote unavailable for {ticker}")
            return False

        trade_type = TradeType(decision.action.value)
        trade = await self.execute_trade(
            model.id,
            ticker,
            decision.stock_name or quote.name or ticker,
            market,
            trade_type,
            shares,
            quote.price,
            decision.reasoning,
            decision.scenario,
        )
        if not trade:
            return False

        logger.info(
            f"[{model.name}] {trade_type.value} filled: {ticker} x{shares:g} "
            f"@ {market.currency_symbol}{quote.price:,}"
        )
        await self.notifier.send_trade_notification(
            model.name, trade_type, ticker, shares, quote.price, market)
        return True

    # ------------------------------------------------------------------
    # Trading round
    # ------------------------------------------------------------------
    async def run_market_trading_round(self, market: Market) -> TradingRoundResult:
        logger.info(f"=== {market.flag} {market.value} trading round started ===")

        results: List[RoundModelResult] = []
        trades_executed = 0

        try:
            models = await self.ledger.get_ai_models()
            if not models:
                logger.info("No active AI models.")
                return TradingRoundResult(success=False, trades_executed=0, results=results)

            await self.quotes.get_exchange_rate()
            snapshot = None if self.use_tools else await self.get_market_snapshot()
            self.rate_limiter.reset()

            for model in models:
                await self.rate_limiter.acquire()

                holdings = [h for h in await self.ledger.get_holdings(model.id) if h.market == market]
                balances = await self.ledger.get_currency_balances(model.id)

                logger.info(
                    f"[{model.name}] analysing {market.value}: "
                    f"₩{balances.krw_balance:,.0f} / ${balances.usd_balance:,.2f}"
                )

                if snapshot is None:
                    decision = await self.decisions.request_trade_analysis_with_tools(
                        model.provider, holdings, balances, market)
                else:
                    decision = await self.decisions.request_trade_analysis(
                        model.provider, holdings, balances, snapshot, market)

                if decision is None:
                    logger.warning(f"[{model.name}] no decision (API key missing or unusable) - skipped")
                    results.append(RoundModelResult(model=model.name, action=SKIPPED_NO_API_KEY, ticker=""))
                    continue

                if await self.execute_trade_decision(model, decision, market):
                    trades_executed += 1

                results.append(
                    RoundModelResult(model=model.name, action=decision.action.value, ticker=decision.ticker or ""))

            logger.info(f"=== {market.value} trading round finished: {trades_executed} trades ===")

            if trades_executed > 0:
                await self.notifier.send_round_summary(market, trades_executed)

            return TradingRoundResult(success=True, trades_executed=trades_executed, results=results)

        except Exception as e:
            logger.error(f"❌ {market.value} trading round failed: {e}")
            return TradingRoundResult(success=False, trades_executed=trades_executed, results=results)
