import logging
from typing import Any, Dict, List, Optional

import httpx

from src.domain.decision.dtos.decision_dto import TradeDecision
from src.domain.decision.parser import parse_ai_response, parse_tool_decision
from src.domain.decision.prompts import JSON_SYSTEM_PROMPT, TOOL_SYSTEM_PROMPT
from src.domain.decision.providers.base import (
    DecisionBackend,
    DecisionProviderError,
    dump_tool_result,
    load_tool_args,
)
from src.domain.decision.tools import DECISION_TOOL, ToolDefinition, ToolExecutor

logger = logging.getLogger(__name__)


class OpenAICompatibleBackend(DecisionBackend):
    """
    Chat-completions protocol shared by OpenAI, DeepSeek, xAI and any
    self-hosted endpoint exposing the same API.
    """

    supports_tools = True

    def __init__(
        self,
        api_key: str,
        model: str,
        client: httpx.AsyncClient,
        base_url: str = "https://api.openai.com/v1",
        **kwargs: Any,
    ):
        super().__init__(api_key, model, client, **kwargs)
        self.base_url = base_url.rstrip("/")

    @property
    def url(self) -> str:
        return f"{self.base_url}/chat/completions"

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    @staticmethod
    def _first_message(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        choices = data.get("choices") or []
        if not choices:
            return None
        return choices[0].get("message")

    async def complete(self, prompt: str) -> str:
        data = await self._post_json(
            self.url,
            {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": JSON_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
            },
            headers=self.headers,
        )
        message = self._first_message(data)
        return (message or {}).get("content") or ""

    async def run_tool_loop(
        self,
        prompt: str,
        tools: List[ToolDefinition],
        executor: ToolExecutor,
    ) -> Optional[TradeDecision]:
        functions = [
            {
                "type": "function",
                "function": {
                    "name": t.name,
                    "description": t.description,
                    "parameters": t.parameters,
                },
            }
            for t in tools
        ]
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": TOOL_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

        for _ in range(self.max_tool_turns):
            data = await self._post_json(
                self.url,
                {
                    "model": self.model,
                    "messages": messages,
                    "tools": functions,
                    "tool_choice": "auto",
                    "temperature": self.temperature,
                    "max_tokens": self.max_tool_tokens,
                },
                headers=self.headers,
            )
            message = self._first_message(data)
            if not message:
                return None

            tool_calls = message.get("tool_calls") or []
            if not tool_calls:
                content = message.get("content")
                return parse_ai_response(content) if content else None

            messages.append({
                "role": "assistant",
                "content": message.get("content") or "",
                "tool_calls": tool_calls,
            })

            for call in tool_calls:
                function = call.get("function") or {}
                name = function.get("name")
                args = load_tool_args(function.get("arguments"))
                logger.info(f"🔧 Tool call: {name}({args})")

                if name == DECISION_TOOL:
                    return parse_tool_decision(args)

                if not name:
                    raise DecisionProviderError(f"{self.name} sent a tool call without a name")

                result = await executor(name, args)
                messages.append({
                    "role": "tool",
                    "tool_call_id": call.get("id"),
                    "content": dump_tool_result(result),
                })

        logger.warning(f"⚠️ {self.model}: max tool turns reached without decision")
        return None
