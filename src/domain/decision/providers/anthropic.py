import logging
from typing import Any, Dict, List, Optional

from src.domain.decision.dtos.decision_dto import TradeDecision
from src.domain.decision.parser import parse_ai_response, parse_tool_decision
from src.domain.decision.providers.base import DecisionBackend, dump_tool_result, load_tool_args
from src.domain.decision.tools import DECISION_TOOL, ToolDefinition, ToolExecutor

logger = logging.getLogger(__name__)


class AnthropicBackend(DecisionBackend):
    """Anthropic Messages API with ``tool_use`` / ``tool_result`` blocks."""

    supports_tools = True
    URL = "https://api.anthropic.com/v1/messages"
    API_VERSION = "2023-06-01"

    @property
    def headers(self) -> Dict[str, str]:
        return {"x-api-key": self.api_key, "anthropic-version": self.API_VERSION}

    async def complete(self, prompt: str) -> str:
        data = await self._post_json(
            self.URL,
            {
                "model": self.model,
                "max_tokens": self.max_tokens,
                "messages": [{"role": "user", "content": prompt}],
            },
            headers=self.headers,
        )
        blocks = data.get("content") or []
        return next((b.get("text", "") for b in blocks if b.get("type") == "text"), "")

    async def run_tool_loop(
        self,
        prompt: str,
        tools: List[ToolDefinition],
        executor: ToolExecutor,
    ) -> Optional[TradeDecision]:
        tool_specs = [
            {"name": t.name, "description": t.description, "input_schema": t.parameters}
            for t in tools
        ]
        messages: List[Dict[str, Any]] = [{"role": "user", "content": prompt}]

        for _ in range(self.max_tool_turns):
            data = await self._post_json(
                self.URL,
                {
                    "model": self.model,
                    "max_tokens": self.max_tool_tokens,
                    "tools": tool_specs,
                    "messages": messages,
                },
                headers=self.headers,
            )
            content = data.get("content") or []
            if not content:
                return None

            tool_uses = [b for b in content if b.get("type") == "tool_use"]
            if not tool_uses:
                text = next((b.get("text") for b in content if b.get("type") == "text"), None)
                return parse_ai_response(text) if text else None

            messages.append({"role": "assistant", "content": content})

            results = []
            for block in tool_uses:
                name = block.get("name")
                args = load_tool_args(block.get("input"))
                logger.info(f"🔧 Tool call: {name}({args})")

                if name == DECISION_TOOL:
                    return parse_tool_decision(args)

                result = await executor(name, args)
                results.append({
                    "type": "tool_result",
                    "tool_use_id": block.get("id"),
                    "content": dump_tool_result(result),
                })

            messages.append({"role": "user", "content": results})

        logger.warning(f"⚠️ {self.model}: max tool turns reached without decision")
        return None
