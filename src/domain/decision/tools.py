import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Awaitable[Any]]
ToolExecutor = Callable[[str, Dict[str, Any]], Awaitable[Any]]

DECISION_TOOL = "make_trade_decision"


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    parameters: Dict[str, Any]


TOOL_DEFINITIONS: List[ToolDefinition] = [
    ToolDefinition(
        name="search_stocks",
        description=(
            '키워드로 종목을 검색합니다. 종목명, 티커, 섹터 등으로 검색 가능합니다. '
            '예: "반도체", "삼성", "AAPL", "테슬라"'
        ),
        parameters={
            "type": "object",
            "properties": {
                "keyword": {"type": "string", "description": "검색 키워드 (종목명, 티커, 섹터 등)"},
                "market": {"type": "string", "enum": ["KR", "US"], "description": "검색할 시장"},
                "limit": {"type": "number", "description": "최대 결과 수 (기본: 10)"},
            },
            "required": ["keyword", "market"],
        },
    ),
    ToolDefinition(
        name="get_stock_quote",
        description="특정 종목의 현재 시세를 조회합니다. 티커 코드가 필요합니다.",
        parameters={
            "type": "object",
            "properties": {
                "ticker": {"type": "string", "description": "종목 코드 (예: 005930, AAPL)"},
                "market": {"type": "string", "enum": ["KR", "US"], "description": "시장 구분"},
            },
            "required": ["ticker", "market"],
        },
    ),
    ToolDefinition(
        name="get_top_stocks",
        description="시가총액 상위 종목이나 거래량 상위 종목 등 주요 종목 목록을 가져옵니다.",
        parameters={
            "type": "object",
            "properties": {
                "market": {"type": "string", "enum": ["KR", "US"], "description": "시장 구분"},
                "category": {
                    "type": "string",
                    "enum": ["market_cap", "volume", "gainers", "losers"],
                    "description": "정렬 기준",
                },
                "limit": {"type": "number", "description": "최대 결과 수 (기본: 20)"},
            },
            "required": ["market"],
        },
    ),
    ToolDefinition(
        name=DECISION_TOOL,
        description="최종 매매 결정을 내립니다. 충분한 정보 수집 후 이 함수를 호출하세요.",
        parameters={
            "type": "object",
            "properties": {
                "action": {"type": "string", "enum": ["BUY", "SELL", "HOLD"], "description": "매매 행동"},
                "ticker": {"type": "string", "description": "종목 코드 (BUY/SELL인 경우 필수)"},
                "stockName": {"type": "string", "description": "종목명"},
                "shares": {"type": "number", "description": "매매 수량 (BUY/SELL인 경우 필수)"},
                "reasoning": {"type": "string", "description": "결정 이유 (한국어, 2-3문장)"},
                "confidence": {"type": "number", "description": "확신도 (0-100)"},
                "scenario": {"type": "string", "description": "시나리오 설명"},
                "exchange": {
                    "type": "object",
                    "description": "환전 정보 (필요시)",
                    "properties": {
                        "type": {"type": "string", "enum": ["KRW_TO_USD", "USD_TO_KRW"]},
                        "amount": {"type": "number"},
                        "reason": {"type": "string"},
                    },
                },
            },
            "required": ["action", "reasoning", "confidence"],
        },
    ),
]


class ToolRegistry:
    """
    Name -> async handler map for the auxiliary tools a model may call
    before deciding.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, ToolHandler] = {}

    def register(self, name: str, handler: ToolHandler) -> None:
        self._handlers[name] = handler

    async def execute(self, name: str, args: Dict[str, Any]) -> Any:
        """Run a handler; failures come back as an ``error`` payload for the model."""
        handler = self._handlers.get(name)
        if handler is None:
            return {"error": f"Unknown tool: {name}"}

        try:
            return await handler(args)
        except Exception as e:
            logger.error(f"❌ Tool {name} execution error: {e}")
            return {"error": f"Tool execution failed: {e}"}
