import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from src.domain.decision.dtos.decision_dto import TradeDecision
from src.domain.decision.tools import ToolDefinition, ToolExecutor

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """API key missing or malformed for a provider."""
    pass


class DecisionProviderError(Exception):
    """Vendor returned a non-2xx status or an unusable payload."""
    pass


def load_tool_args(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        logger.warning(f"⚠️ Could not decode tool arguments: {raw!r}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def dump_tool_result(result: Any) -> str:
    return json.dumps(result, ensure_ascii=False, default=str)


class DecisionBackend(ABC):
    """
    One vendor protocol family. ``complete`` is a single prompt/answer call;
    backends with ``supports_tools`` also run the multi-turn tool protocol.
    """

    supports_tools: bool = False
    temperature = 0.7

    def __init__(
        self,
        api_key: str,
        model: str,
        client: httpx.AsyncClient,
        max_tool_turns: int = 5,
        max_tokens: int = 500,
        max_tool_tokens: int = 1000,
    ):
        self.api_key = api_key
        self.model = model
        self.client = client
        self.max_tool_turns = max_tool_turns
        self.max_tokens = max_tokens
        self.max_tool_tokens = max_tool_tokens

    @property
    def name(self) -> str:
        return type(self).__name__

    async def _post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        try:
            response = await self.client.post(
                url, json=payload, headers=headers, params=params)
        except httpx.HTTPError as e:
            raise DecisionProviderError(f"{self.name} request failed: {e}") from e

        if response.is_error:
            raise DecisionProviderError(
                f"{self.name} API error: {response.status_code} - {response.text[:300]}")

        try:
            data = response.json()
        except ValueError as e:
            raise DecisionProviderError(f"{self.name} returned invalid JSON") from e

        if not isinstance(data, dict):
            raise DecisionProviderError(f"{self.name} returned unexpected payload")
        return data

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        ...

    async def run_tool_loop(
        self,
        prompt: str,
        tools: List[ToolDefinition],
        executor: ToolExecutor,
    ) -> Optional[TradeDecision]:
        raise NotImplementedError(f"{self.name} does not support tool calling")
