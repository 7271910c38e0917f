import json

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from src.commons.enums.market_enums import ExchangeType, Market, TradeAction, TradeType
from src.commons.enums.provider_enums import AIProvider
from src.domain.decision.decision_service import DecisionService
from src.domain.decision.dtos.decision_dto import ExchangeInstruction, TradeDecision
from src.domain.decision.providers.openai_compatible import OpenAICompatibleBackend
from src.domain.decision.tools import DECISION_TOOL, ToolRegistry
from src.domain.trading.trading_service import SKIPPED_NO_API_KEY, TradingService
from src.infrastructure.data.quote_base import StockSearchResult
from src.infrastructure.rate_limit.rate_limiter import MinIntervalRateLimiter


@pytest.fixture
def decisions():
    decisions = MagicMock()
    decisions.request_trade_analysis_with_tools = AsyncMock(return_value=None)
    decisions.request_trade_analysis = AsyncMock(return_value=None)
    return decisions


@pytest.fixture
def trading_service(ledger, quotes, decisions, notifier):
    return TradingService(
        ledger=ledger,
        quotes=quotes,
        decisions=decisions,
        notifier=notifier,
        rate_limiter=MinIntervalRateLimiter(0),
    )


async def buy(service, model, ticker, shares, price, market=Market.KR):
    return await service.execute_trade(
        model.id, ticker, ticker, market, TradeType.BUY, shares, price)


async def sell(service, model, ticker, shares, price, market=Market.KR):
    return await service.execute_trade(
        model.id, ticker, ticker, market, TradeType.SELL, shares, price)


def test_tool_handlers_registered_on_construction(trading_service, decisions):
    names = [c.args[0] for c in decisions.register_tool_handler.call_args_list]

    assert names == ["search_stocks", "get_stock_quote", "get_top_stocks"]


# ==================== EXECUTE TRADE ====================

@pytest.mark.asyncio
async def test_kr_buy_debits_krw_and_creates_holding(trading_service, ledger):
    model = ledger.add_model(krw=1_000_000)

    trade = await buy(trading_service, model, "005930", 10, 70_000)

    assert trade is not None
    assert trade.total_amount == 700_000
    holdings = await ledger.get_holdings(model.id)
    assert len(holdings) == 1
    assert holdings[0].shares == 10
    assert holdings[0].avg_price == 70_000
    assert ledger.balances[model.id].krw_balance == 300_000
    assert len(ledger.trades) == 1


@pytest.mark.asyncio
async def test_repeated_buys_use_weighted_average_cost(trading_service, ledger):
    model = ledger.add_model(krw=5_000_000)

    await buy(trading_service, model, "005930", 10, 70_000)
    await buy(trading_service, model, "005930", 30, 80_000)

    holding = await ledger.get_holding_by_ticker(model.id, "005930", Market.KR)
    assert holding.shares == 40
    assert holding.avg_price == pytest.approx((10 * 70_000 + 30 * 80_000) / 40, abs=1e-6)


@pytest.mark.asyncio
async def test_buy_rejected_when_krw_insufficient(trading_service, ledger):
    model = ledger.add_model(krw=100_000)

    trade = await buy(trading_service, model, "005930", 10, 70_000)

    assert trade is None
    assert ledger.trades == []
    assert ledger.holdings == {}
    assert ledger.balances[model.id].krw_balance == 100_000


@pytest.mark.asyncio
async def test_partial_sell_keeps_average_price(trading_service, ledger):
    model = ledger.add_model(krw=1_000_000)
    await buy(trading_service, model, "005930", 10, 70_000)

    trade = await sell(trading_service, model, "005930", 4, 75_000)

    assert trade.trade_type == TradeType.SELL
    holding = await ledger.get_holding_by_ticker(model.id, "005930", Market.KR)
    assert holding.shares == 6
    assert holding.avg_price == 70_000
    assert ledger.balances[model.id].krw_balance == 300_000 + 4 * 75_000


@pytest.mark.asyncio
async def test_full_sell_deletes_holding(trading_service, ledger):
    model = ledger.add_model(krw=1_000_000)
    await buy(trading_service, model, "005930", 10, 70_000)

    await sell(trading_service, model, "005930", 10, 70_000)

    assert await ledger.get_holdings(model.id) == []
    assert ledger.balances[model.id].krw_balance == 1_000_000
    assert len(ledger.trades) == 2


@pytest.mark.asyncio
async def test_sell_more_than_held_is_rejected(trading_service, ledger):
    model = ledger.add_model(krw=1_000_000)
    await buy(trading_service, model, "005930", 5, 70_000)

    assert await sell(trading_service, model, "005930", 6, 70_000) is None
    assert await sell(trading_service, model, "000660", 1, 120_000) is None
    assert len(ledger.trades) == 1


@pytest.mark.asyncio
async def test_us_buy_uses_usd_without_exchange(trading_service, ledger):
    model = ledger.add_model(krw=0, usd=1_000)

    trade = await buy(trading_service, model, "AAPL", 2, 200, market=Market.US)

    assert trade is not None
    assert ledger.balances[model.id].usd_balance == 600
    assert ledger.exchanges == []


@pytest.mark.asyncio
async def test_us_buy_auto_exchanges_shortfall_with_buffer(trading_service, ledger):
    model = ledger.add_model(krw=1_000_000, usd=0)

    trade = await buy(trading_service, model, "AAPL", 2, 200, market=Market.US)

    assert trade is not None
    assert len(ledger.exchanges) == 1
    needed_krw = 400 * 1300 * 1.01
    assert ledger.exchanges[0]["krw_amount"] == pytest.approx(needed_krw)
    balances = ledger.balances[model.id]
    assert balances.krw_balance == pytest.approx(1_000_000 - needed_krw)
    assert balances.usd_balance == pytest.approx(needed_krw / 1300 - 400)


@pytest.mark.asyncio
async def test_auto_exchange_is_attempted_once(trading_service, ledger):
    # enough KRW in total, but the 80% cap leaves USD short after one conversion
    model = ledger.add_model(krw=300_000, usd=0)

    trade = await buy(trading_service, model, "AAPL", 1, 200, market=Market.US)

    assert trade is None
    assert len(ledger.exchanges) == 1
    assert ledger.exchanges[0]["krw_amount"] == pytest.approx(240_000)
    assert ledger.holdings == {}


@pytest.mark.asyncio
async def test_auto_exchange_skipped_when_krw_cannot_cover(trading_service, ledger):
    model = ledger.add_model(krw=100_000, usd=0)

    trade = await buy(trading_service, model, "AAPL", 1, 200, market=Market.US)

    assert trade is None
    assert ledger.exchanges == []


@pytest.mark.asyncio
async def test_failed_balance_write_returns_none(trading_service, ledger):
    model = ledger.add_model(krw=1_000_000)
    ledger.fail_writes = True

    assert await buy(trading_service, model, "005930", 1, 70_000) is None
    assert ledger.trades == []


# ==================== EXCHANGE ====================

@pytest.mark.asyncio
async def test_exchange_capped_at_max_ratio(trading_service, ledger):
    model = ledger.add_model(krw=1_000_000, usd=0)

    result = await trading_service.exchange_krw_to_usd(model.id, 2_000_000)

    assert result.success
    assert result.krw_amount == pytest.approx(800_000)
    assert result.usd_amount == pytest.approx(800_000 / 1300)
    balances = ledger.balances[model.id]
    assert balances.krw_balance == pytest.approx(200_000)
    assert balances.usd_balance >= 0
    assert ledger.exchanges[0]["type"] == ExchangeType.KRW_TO_USD


@pytest.mark.asyncio
async def test_usd_to_krw_with_explicit_ratio(trading_service, ledger):
    model = ledger.add_model(krw=0, usd=1_000)

    result = await trading_service.exchange_usd_to_krw(model.id, 900, max_ratio=0.5)

    assert result.usd_amount == pytest.approx(500)
    assert result.krw_amount == pytest.approx(650_000)
    assert ledger.balances[model.id].usd_balance == pytest.approx(500)


@pytest.mark.asyncio
async def test_exchange_with_empty_balance_fails(trading_service, ledger):
    model = ledger.add_model(krw=0, usd=0)

    result = await trading_service.exchange_krw_to_usd(model.id, 10_000)

    assert not result.success
    assert ledger.exchanges == []


# ==================== DECISIONS ====================

@pytest.mark.asyncio
async def test_hold_records_scenario(trading_service, ledger):
    model = ledger.add_model(krw=1_000_000)
    decision = TradeDecision(action=TradeAction.HOLD, reasoning="관망")

    executed = await trading_service.execute_trade_decision(model, decision, Market.KR)

    assert executed is False
    assert ledger.scenarios == [{"model_id": model.id, "market": Market.KR, "reasoning": "관망"}]
    assert ledger.trades == []


@pytest.mark.asyncio
async def test_buy_decision_fills_at_live_quote_and_notifies(trading_service, ledger, notifier):
    model = ledger.add_model(krw=1_000_000)
    decision = TradeDecision(action=TradeAction.BUY, ticker="005930", shares=3, reasoning="저평가")

    executed = await trading_service.execute_trade_decision(model, decision, Market.KR)

    assert executed is True
    assert ledger.trades[0].price == 70_000
    assert ledger.trades[0].reasoning == "저평가"
    notifier.send_trade_notification.assert_awaited_once_with(
        model.name, TradeType.BUY, "005930", 3, 70_000.0, Market.KR)


@pytest.mark.asyncio
async def test_decision_without_shares_is_rejected(trading_service, ledger):
    model = ledger.add_model(krw=1_000_000)
    decision = TradeDecision(action=TradeAction.BUY, ticker="005930")

    assert await trading_service.execute_trade_decision(model, decision, Market.KR) is False
    assert ledger.trades == []


@pytest.mark.asyncio
async def test_decision_with_unknown_quote_is_rejected(trading_service, ledger):
    model = ledger.add_model(krw=1_000_000)
    decision = TradeDecision(action=TradeAction.BUY, ticker="999999", shares=1)

    assert await trading_service.execute_trade_decision(model, decision, Market.KR) is False


@pytest.mark.asyncio
async def test_decision_exchange_uses_half_ratio(trading_service, ledger):
    model = ledger.add_model(krw=1_000_000)
    decision = TradeDecision(
        action=TradeAction.HOLD,
        exchange=ExchangeInstruction(type=ExchangeType.KRW_TO_USD, amount=1_000_000, reason="분산"),
    )

    await trading_service.execute_trade_decision(model, decision, Market.US)

    assert ledger.exchanges[0]["krw_amount"] == pytest.approx(500_000)
    assert ledger.exchanges[0]["reasoning"] == "분산"


# ==================== TRADING ROUND ====================

@pytest.mark.asyncio
async def test_round_without_models_fails(trading_service):
    result = await trading_service.run_market_trading_round(Market.KR)

    assert result.success is False
    assert result.trades_executed == 0


@pytest.mark.asyncio
async def test_round_records_skip_when_no_decision(trading_service, ledger, decisions):
    ledger.add_model(name="Claude", provider="anthropic", krw=1_000_000)

    result = await trading_service.run_market_trading_round(Market.KR)

    assert result.success is True
    assert result.trades_executed == 0
    assert result.results[0].model == "Claude"
    assert result.results[0].action == SKIPPED_NO_API_KEY
    decisions.request_trade_analysis_with_tools.assert_awaited_once()


@pytest.mark.asyncio
async def test_round_passes_market_holdings_only(trading_service, ledger, decisions):
    model = ledger.add_model(krw=1_000_000, usd=1_000)
    await buy(trading_service, model, "005930", 1, 70_000)
    await buy(trading_service, model, "AAPL", 1, 200, market=Market.US)

    await trading_service.run_market_trading_round(Market.US)

    provider, holdings, balances, market = decisions.request_trade_analysis_with_tools.call_args.args
    assert provider == "openai"
    assert [h.ticker for h in holdings] == ["AAPL"]
    assert market == Market.US


@pytest.mark.asyncio
async def test_round_counts_trades_and_sends_summary(trading_service, ledger, decisions, notifier):
    ledger.add_model(name="GPT", krw=1_000_000)
    ledger.add_model(name="Gemini", provider="google", krw=1_000_000)
    decisions.request_trade_analysis_with_tools.side_effect = [
        TradeDecision(action=TradeAction.BUY, ticker="005930", shares=1),
        TradeDecision(action=TradeAction.HOLD),
    ]

    result = await trading_service.run_market_trading_round(Market.KR)

    assert result.success is True
    assert result.trades_executed == 1
    assert [(r.model, r.action) for r in result.results] == [("GPT", "BUY"), ("Gemini", "HOLD")]
    notifier.send_round_summary.assert_awaited_once_with(Market.KR, 1)


@pytest.mark.asyncio
async def test_round_catches_unexpected_errors(trading_service, ledger, decisions):
    ledger.add_model(krw=1_000_000)
    decisions.request_trade_analysis_with_tools.side_effect = RuntimeError("boom")

    result = await trading_service.run_market_trading_round(Market.KR)

    assert result.success is False
    assert result.trades_executed == 0


@pytest.mark.asyncio
async def test_round_survives_malformed_decision_fields(ledger, quotes, notifier):
    ledger.add_model(name="GPT", krw=1_000_000)
    ledger.add_model(name="DeepSeek", krw=1_000_000)
    replies = [
        {"action": "HOLD", "reasoning": "x", "scenario": {"a": 1}},
        {"action": "HOLD", "reasoning": "관망"},
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        args = replies.pop(0)
        return httpx.Response(200, json={"choices": [{"message": {"tool_calls": [{
            "id": "call_1",
            "type": "function",
            "function": {"name": DECISION_TOOL, "arguments": json.dumps(args)},
        }]}}]})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    decisions = DecisionService(
        api_keys={AIProvider.OPENAI: "sk-test"},
        backends={AIProvider.OPENAI: OpenAICompatibleBackend("sk-test", "gpt-4o-mini", client)},
        tool_registry=ToolRegistry(),
    )
    service = TradingService(
        ledger=ledger,
        quotes=quotes,
        decisions=decisions,
        notifier=notifier,
        rate_limiter=MinIntervalRateLimiter(0),
    )

    result = await service.run_market_trading_round(Market.KR)

    assert result.success is True
    assert [(r.model, r.action) for r in result.results] == [
        ("GPT", SKIPPED_NO_API_KEY),
        ("DeepSeek", "HOLD"),
    ]
    assert len(ledger.scenarios) == 1


# ==================== SINGLE-SHOT PROTOCOL ====================

UNIVERSE = {
    Market.KR: [
        StockSearchResult(ticker="005930", name="삼성전자", exchange="KRX", type="Common Stock"),
        StockSearchResult(ticker="999999", name="상장폐지", exchange="KRX", type="Common Stock"),
    ],
    Market.US: [
        StockSearchResult(ticker="AAPL", name="Apple Inc.", exchange="NASDAQ", type="Common Stock"),
    ],
}


@pytest.mark.asyncio
async def test_market_snapshot_quotes_universe_in_one_batch(ledger, decisions, notifier, make_quotes):
    quotes = make_quotes(prices={"005930": 70_000.0, "AAPL": 200.0}, universe=UNIVERSE)
    service = TradingService(ledger, quotes, decisions, notifier, MinIntervalRateLimiter(0))

    snapshot = await service.get_market_snapshot()

    assert [(s.ticker, s.market, s.price) for s in snapshot.stocks] == [
        ("005930", Market.KR, 70_000.0),
        ("AAPL", Market.US, 200.0),
    ]
    assert snapshot.stocks[0].name == "삼성전자"
    assert len(quotes.batch_calls) == 1


@pytest.mark.asyncio
async def test_round_without_tools_sends_snapshot(ledger, decisions, notifier, make_quotes):
    quotes = make_quotes(prices={"005930": 70_000.0, "AAPL": 200.0}, universe=UNIVERSE)
    service = TradingService(
        ledger, quotes, decisions, notifier, MinIntervalRateLimiter(0), use_tools=False)
    ledger.add_model(name="GPT", krw=1_000_000)
    decisions.request_trade_analysis.return_value = TradeDecision(
        action=TradeAction.BUY, ticker="005930", shares=2)

    result = await service.run_market_trading_round(Market.KR)

    assert result.trades_executed == 1
    decisions.request_trade_analysis_with_tools.assert_not_awaited()
    provider, holdings, balances, snapshot, market = decisions.request_trade_analysis.call_args.args
    assert provider == "openai"
    assert market == Market.KR
    assert {s.ticker for s in snapshot.stocks} == {"005930", "AAPL"}
