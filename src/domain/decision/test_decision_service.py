import json

import httpx
import pytest

from src.commons.enums.market_enums import Market, TradeAction
from src.commons.enums.provider_enums import AIProvider, ApiKeyStatusLabel
from src.domain.decision.decision_service import DecisionService
from src.domain.decision.prompts import build_analysis_prompt
from src.domain.decision.providers.anthropic import AnthropicBackend
from src.domain.decision.providers.factory import build_backends, provider_keys
from src.domain.decision.providers.google import GoogleBackend
from src.domain.decision.providers.openai_compatible import OpenAICompatibleBackend
from src.domain.decision.tools import DECISION_TOOL, ToolRegistry
from src.domain.portfolio.dtos.portfolio_dto import CurrencyBalances, HoldingDTO
from src.domain.trading.dtos.trade_dto import MarketDataSnapshot, StockSnapshot


BALANCES = CurrencyBalances(krw_balance=1_000_000.0, usd_balance=500.0)


def tool_call_response(name, arguments, call_id="call_1"):
    return {
        "choices": [{
            "message": {
                "content": None,
                "tool_calls": [{
                    "id": call_id,
                    "type": "function",
                    "function": {"name": name, "arguments": json.dumps(arguments)},
                }],
            }
        }]
    }


def make_client(responses, requests):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        body = responses(len(requests)) if callable(responses) else responses
        return httpx.Response(200, json=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def make_service(client, key="sk-test", registry=None, max_tool_turns=5):
    backend = OpenAICompatibleBackend(
        key, "gpt-4o-mini", client, max_tool_turns=max_tool_turns)
    return DecisionService(
        api_keys={AIProvider.OPENAI: key},
        backends={AIProvider.OPENAI: backend},
        tool_registry=registry,
    )


# ==================== KEY STATUS ====================

@pytest.mark.parametrize(
    "provider,key,expected",
    [
        (AIProvider.OPENAI, "sk-abc", ApiKeyStatusLabel.VALID),
        (AIProvider.ANTHROPIC, "sk-abc", ApiKeyStatusLabel.INVALID),
        (AIProvider.ANTHROPIC, "sk-ant-abc", ApiKeyStatusLabel.VALID),
        (AIProvider.GOOGLE, "AIzaXYZ", ApiKeyStatusLabel.VALID),
        (AIProvider.XAI, "sk-abc", ApiKeyStatusLabel.INVALID),
        (AIProvider.CUSTOM, "anything", ApiKeyStatusLabel.VALID),
        (AIProvider.DEEPSEEK, None, ApiKeyStatusLabel.MISSING),
    ],
)
def test_api_key_status(provider, key, expected):
    service = DecisionService(api_keys={provider: key}, backends={})

    status = service.get_api_key_status(provider)

    assert DecisionService.get_api_key_status_label(status) == expected


def test_missing_key_names_env_variable():
    service = DecisionService(api_keys={}, backends={})

    status = service.get_api_key_status("deepseek")

    assert status == {
        "has_key": False,
        "is_valid": False,
        "error": "DEEPSEEK_API_KEY not configured",
    }


def test_unknown_provider_is_reported():
    service = DecisionService(api_keys={}, backends={})

    status = service.get_api_key_status("mistral")

    assert status["has_key"] is False
    assert "not supported" in status["error"]


def test_provider_keys_ignores_unknown_names():
    keys = provider_keys({"openai": "sk-1", "Anthropic": "sk-ant-2", "other": "x"})

    assert keys == {AIProvider.OPENAI: "sk-1", AIProvider.ANTHROPIC: "sk-ant-2"}


def test_build_backends_skips_missing_keys_and_incomplete_custom():
    client = httpx.AsyncClient()
    backends = build_backends(
        {AIProvider.OPENAI: "sk-1", AIProvider.GOOGLE: None, AIProvider.CUSTOM: "key"},
        client,
    )

    assert set(backends) == {AIProvider.OPENAI}


# ==================== DECISIONS ====================

@pytest.mark.asyncio
async def test_missing_key_returns_none_without_http_call():
    requests = []
    service = make_service(make_client({}, requests), key=None)

    decision = await service.request_trade_analysis_with_tools(
        AIProvider.OPENAI, [], BALANCES, Market.KR)

    assert decision is None
    assert requests == []


@pytest.mark.asyncio
async def test_invalid_key_format_returns_none_without_http_call():
    requests = []
    service = make_service(make_client({}, requests), key="bad-key")

    decision = await service.request_trade_analysis_with_tools(
        "openai", [], BALANCES, Market.KR)

    assert decision is None
    assert requests == []


@pytest.mark.asyncio
async def test_tool_results_are_fed_back_before_decision():
    requests = []
    registry = ToolRegistry()
    seen_args = []

    async def search(args):
        seen_args.append(args)
        return [{"ticker": "005930", "name": "삼성전자"}]

    registry.register("search_stocks", search)

    def responses(n):
        if n == 1:
            return tool_call_response("search_stocks", {"keyword": "삼성", "market": "KR"})
        return tool_call_response(DECISION_TOOL, {
            "action": "BUY",
            "ticker": "005930",
            "shares": 3,
            "reasoning": "저평가",
            "confidence": 70,
        }, call_id="call_2")

    service = make_service(make_client(responses, requests), registry=registry)

    decision = await service.request_trade_analysis_with_tools(
        AIProvider.OPENAI, [], BALANCES, Market.KR)

    assert decision.action == TradeAction.BUY
    assert decision.shares == 3
    assert seen_args == [{"keyword": "삼성", "market": "KR"}]
    assert len(requests) == 2
    tool_message = requests[1]["messages"][-1]
    assert tool_message["role"] == "tool"
    assert tool_message["tool_call_id"] == "call_1"
    assert "삼성전자" in tool_message["content"]


@pytest.mark.asyncio
async def test_tool_loop_stops_after_max_turns():
    requests = []
    registry = ToolRegistry()

    async def search(args):
        return []

    registry.register("search_stocks", search)
    service = make_service(
        make_client(tool_call_response("search_stocks", {"keyword": "x", "market": "US"}), requests),
        registry=registry,
    )

    decision = await service.request_trade_analysis_with_tools(
        AIProvider.OPENAI, [], BALANCES, Market.US)

    assert decision is None
    assert len(requests) == 5


@pytest.mark.asyncio
async def test_unknown_tool_error_goes_back_to_model():
    requests = []

    def responses(n):
        if n == 1:
            return tool_call_response("delete_everything", {})
        return {"choices": [{"message": {"content": '{"action": "HOLD", "reasoning": "관망"}'}}]}

    service = make_service(make_client(responses, requests))

    decision = await service.request_trade_analysis_with_tools(
        AIProvider.OPENAI, [], BALANCES, Market.KR)

    assert decision.action == TradeAction.HOLD
    assert "Unknown tool" in requests[1]["messages"][-1]["content"]


@pytest.mark.asyncio
async def test_vendor_error_returns_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": "rate limited"})

    service = make_service(httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    decision = await service.request_trade_analysis_with_tools(
        AIProvider.OPENAI, [], BALANCES, Market.KR)

    assert decision is None


# ==================== SINGLE-SHOT ====================

SNAPSHOT = MarketDataSnapshot(stocks=[
    StockSnapshot(ticker="005930", name="삼성전자", market=Market.KR, price=70_000, change_percent=1.5),
    StockSnapshot(ticker="AAPL", name="Apple Inc.", market=Market.US, price=200, change_percent=-0.4),
])


def text_response(content):
    return {"choices": [{"message": {"content": content}}]}


def test_analysis_prompt_lists_only_trading_market():
    prompt = build_analysis_prompt([], BALANCES, SNAPSHOT, Market.KR)

    assert "삼성전자 (005930): ₩70,000 (+1.50%)" in prompt
    assert "AAPL" not in prompt
    assert "USD_TO_KRW" in prompt


def test_analysis_prompt_shows_holding_return():
    holding = HoldingDTO(
        id="h1", model_id="m1", ticker="005930", stock_name="삼성전자",
        market=Market.KR, shares=10, avg_price=60_000, current_price=66_000)

    prompt = build_analysis_prompt([holding], BALANCES, SNAPSHOT, Market.KR)

    assert "- 삼성전자: 10주 @ ₩60,000 (현재가: ₩66,000, 수익률: +10.00%)" in prompt


@pytest.mark.asyncio
async def test_single_shot_parses_json_reply():
    requests = []
    reply = '분석 결과입니다. {"action": "BUY", "ticker": "005930", "shares": 5, "reasoning": "실적 개선"}'
    service = make_service(make_client(text_response(reply), requests))

    decision = await service.request_trade_analysis(
        AIProvider.OPENAI, [], BALANCES, SNAPSHOT, Market.KR)

    assert decision.action == TradeAction.BUY
    assert decision.shares == 5
    assert len(requests) == 1
    assert "tools" not in requests[0]
    assert "삼성전자" in requests[0]["messages"][-1]["content"]


@pytest.mark.asyncio
async def test_single_shot_malformed_reply_returns_none():
    requests = []
    service = make_service(make_client(text_response("매수를 추천합니다"), requests))

    decision = await service.request_trade_analysis(
        AIProvider.OPENAI, [], BALANCES, SNAPSHOT, Market.KR)

    assert decision is None
    assert len(requests) == 1


@pytest.mark.asyncio
async def test_single_shot_missing_key_returns_none_without_http_call():
    requests = []
    service = make_service(make_client(text_response("{}"), requests), key=None)

    decision = await service.request_trade_analysis(
        AIProvider.OPENAI, [], BALANCES, SNAPSHOT, Market.KR)

    assert decision is None
    assert requests == []


@pytest.mark.asyncio
async def test_anthropic_complete_returns_first_text_block():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"content": [
            {"type": "text", "text": '{"action": "HOLD"}'},
        ]})

    backend = AnthropicBackend(
        "sk-ant-test", "claude-3-haiku-20240307",
        httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    assert await backend.complete("prompt") == '{"action": "HOLD"}'
    assert seen[0].headers["x-api-key"] == "sk-ant-test"
    assert json.loads(seen[0].content)["messages"] == [{"role": "user", "content": "prompt"}]


@pytest.mark.asyncio
async def test_google_complete_passes_key_as_query_param():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"candidates": [
            {"content": {"parts": [{"text": '{"action": "SELL"}'}]}},
        ]})

    backend = GoogleBackend(
        "AIzaTest", "gemini-2.0-flash",
        httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    assert await backend.complete("prompt") == '{"action": "SELL"}'
    assert seen[0].url.params["key"] == "AIzaTest"
    assert seen[0].url.path.endswith("/gemini-2.0-flash:generateContent")


@pytest.mark.asyncio
async def test_google_complete_without_candidates_is_empty():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": []})

    backend = GoogleBackend(
        "AIzaTest", "gemini-2.0-flash",
        httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    assert await backend.complete("prompt") == ""
