import logging
from collections import OrderedDict
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Dict, List

import pandas as pd

from src.commons.enums.market_enums import Market
from src.domain.portfolio.dtos.portfolio_dto import AIModelDTO, CurrencyBalances, HoldingDTO
from src.infrastructure.data.quote_service import QuoteService
from src.infrastructure.database.ledger_store import LedgerStore

logger = logging.getLogger(__name__)

# KST midnight, expressed in UTC
DAY_CLOSE_UTC = time(15, 0, tzinfo=timezone.utc)
FILL_LOOKBACK_DAYS = 365


def _utc_date(value: datetime) -> date:
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(timezone.utc).date()


def _day_close(day: date) -> datetime:
    return datetime.combine(day, DAY_CLOSE_UTC)


def portfolio_value(
    balances: CurrencyBalances,
    holdings: List[HoldingDTO],
    exchange_rate: float,
) -> float:
    """Total value in KRW: both cash balances plus holdings, USD converted at ``exchange_rate``."""
    cash = balances.krw_balance + balances.usd_balance * exchange_rate
    stocks = sum(
        h.total_value * (exchange_rate if h.market == Market.US else 1.0)
        for h in holdings
    )
    return cash + stocks


class PortfolioService:
    def __init__(
        self,
        ledger: LedgerStore,
        quotes: QuoteService,
        now_fn: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.ledger = ledger
        self.quotes = quotes
        self.now_fn = now_fn

    # ------------------------------------------------------------------
    # Valuation
    # ------------------------------------------------------------------
    async def update_all_holdings_with_current_prices(self) -> int:
        holdings = await self.ledger.get_all_holdings()
        if not holdings:
            logger.info("📈 No holdings to update")
            return 0

        pairs = list(OrderedDict.fromkeys((h.ticker, h.market) for h in holdings))
        quotes = await self.quotes.get_batch_quotes(pairs)

        updated = 0
        for holding in holdings:
            quote = quotes.get(holding.ticker)
            if quote and quote.price > 0:
                if await self.ledger.update_holding_current_price(holding.id, quote.price):
                    updated += 1

        logger.info(f"📈 Holding prices updated: {updated}/{len(holdings)}")
        return updated

    async def _model_value(self, model: AIModelDTO, exchange_rate: float) -> float:
        holdings = await self.ledger.get_holdings(model.id)
        balances = await self.ledger.get_currency_balances(model.id)
        return portfolio_value(balances, holdings, exchange_rate)

    async def record_all_portfolio_values(self) -> dict:
        logger.info("📊 Recording portfolio values...")
        await self.update_all_holdings_with_current_prices()

        models = await self.ledger.get_ai_models()
        rate = await self.quotes.get_exchange_rate()
        logger.info(f"📊 Valuing {len(models)} models (rate ₩{rate:,.2f})")

        recorded = 0
        for model in models:
            try:
                total = await self._model_value(model, rate)
                if await self.ledger.record_portfolio_value(model.id, total):
                    recorded += 1
                    logger.debug(f"  ✓ {model.name}: ₩{total:,.0f}")
                else:
                    logger.warning(f"  ⚠️ {model.name}: portfolio value not recorded")
            except Exception as e:
                logger.error(f"  ✗ {model.name}: valuation failed: {e}")

        logger.info(f"📊 Portfolio values recorded: {recorded}/{len(models)}")
        return {"recorded": recorded, "total": len(models)}

    async def get_model_reports(self) -> List[dict]:
        """Current value and return versus initial capital, per active model."""
        models = await self.ledger.get_ai_models()
        rate = await self.quotes.get_exchange_rate()

        reports = []
        for model in models:
            total = await self._model_value(model, rate)
            capital = model.initial_capital
            reports.append({
                "model_name": model.name,
                "total_value": total,
                "return_rate": (total - capital) / capital * 100 if capital else 0.0,
            })
        return reports

    # ------------------------------------------------------------------
    # History maintenance
    # ------------------------------------------------------------------
    async def fill_missing_portfolio_history(self) -> dict:
        """Carry the last known value into every weekday that has no point."""
        logger.info("📊 Filling missing portfolio history...")

        models = await self.ledger.get_ai_models()
        history = await self.ledger.get_portfolio_history(FILL_LOOKBACK_DAYS)
        today = _utc_date(self.now_fn())
        filled = 0

        for model in models:
            points = sorted(
                (p for p in history if p.model_id == model.id),
                key=lambda p: p.recorded_at,
            )
            if not points:
                continue

            closes: Dict[date, float] = {}
            for point in points:
                closes[_utc_date(point.recorded_at)] = point.total_value

            day = _utc_date(points[0].recorded_at)
            previous = points[0].total_value
            while day <= today:
                if day in closes:
                    previous = closes[day]
                elif day.weekday() < 5:
                    if await self.ledger.record_portfolio_value_at(model.id, previous, _day_close(day)):
                        filled += 1
                        logger.debug(f"  ✓ {model.name} {day}: ₩{previous:,.0f} (filled)")
                day += timedelta(days=1)

        logger.info(f"📊 History fill finished: {filled} points added")
        return {"success": True, "filled_dates": filled}

    async def migrate_portfolio_history_from_trades(self) -> dict:
        """
        Backfill one point per trading day from the trade log.

        Trades carry no fees, so a trade never changes total value; each
        missing day is recorded at today's value.
        """
        logger.info("🔄 Migrating portfolio history from trades...")

        models = await self.ledger.get_ai_models()
        trades = await self.ledger.get_all_trades()
        rate = await self.quotes.get_exchange_rate()
        today = _utc_date(self.now_fn())

        migrated = 0
        skipped = 0
        errors: List[str] = []

        for model in models:
            trade_dates = sorted(
                {_utc_date(t.created_at) for t in trades if t.model_id == model.id and t.created_at},
                reverse=True,
            )

            if not trade_dates:
                if not await self.ledger.has_portfolio_history_for_date(model.id, today):
                    await self.ledger.record_portfolio_value_at(
                        model.id, model.initial_capital, self.now_fn())
                    migrated += 1
                continue

            value = await self._model_value(model, rate)
            for day in trade_dates:
                if await self.ledger.has_portfolio_history_for_date(model.id, day):
                    skipped += 1
                    continue

                if await self.ledger.record_portfolio_value_at(model.id, value, _day_close(day)):
                    migrated += 1
                    logger.debug(f"  ✓ {model.name} {day}: ₩{value:,.0f}")
                else:
                    errors.append(f"{model.name} {day}: save failed")

        logger.info(f"🔄 Migration finished: {migrated} created, {skipped} skipped")
        return {
            "success": not errors,
            "migrated_dates": migrated,
            "skipped_dates": skipped,
            "errors": errors,
        }

    # ------------------------------------------------------------------
    # Charts
    # ------------------------------------------------------------------
    async def _history_frame(self, days: int) -> pd.DataFrame:
        models = await self.ledger.get_ai_models()
        names = {m.id: m.name for m in models}
        history = await self.ledger.get_portfolio_history(days)

        rows = [
            {
                "model": names[p.model_id],
                "recorded_at": p.recorded_at,
                "date": _utc_date(p.recorded_at).isoformat(),
                "value": p.total_value,
            }
            for p in history
            if p.model_id in names
        ]
        frame = pd.DataFrame(rows, columns=["model", "recorded_at", "date", "value"])
        return frame.sort_values("recorded_at", kind="stable")

    async def get_portfolio_history_series(self, days: int = 30) -> List[dict]:
        frame = await self._history_frame(days)

        series: List[dict] = []
        for recorded_at, group in frame.groupby("recorded_at", sort=True):
            series.append({
                "date": group["date"].iloc[0],
                "timestamp": pd.Timestamp(recorded_at).isoformat(),
                "values": {
                    row.model: float(row.value) for row in group.itertuples()
                },
            })
        return series

    async def get_candle_chart_data(self, days: int = 30) -> Dict[str, List[dict]]:
        """Daily OHLC of each model's value; change is against the previous day's close."""
        frame = await self._history_frame(days)
        if frame.empty:
            return {}

        daily = (
            frame.groupby(["model", "date"], sort=True)["value"]
            .agg(open="first", high="max", low="min", close="last")
            .reset_index()
        )
        previous = daily.groupby("model")["close"].shift(1)
        previous = previous.where(previous > 0)
        change = daily["close"] - previous
        daily["change"] = change.fillna(0.0).round()
        daily["change_percent"] = (change / previous * 100).fillna(0.0).round(2)

        candles: Dict[str, List[dict]] = {}
        for model, group in daily.groupby("model", sort=False):
            candles[model] = [
                {
                    "date": row.date,
                    "open": float(row.open),
                    "high": float(row.high),
                    "low": float(row.low),
                    "close": float(row.close),
                    "change": float(row.change),
                    "change_percent": float(row.change_percent),
                }
                for row in group.itertuples()
            ]
        return candles

