import logging
from typing import Any, Dict, List, Optional

from src.domain.decision.dtos.decision_dto import TradeDecision
from src.domain.decision.parser import parse_ai_response, parse_tool_decision
from src.domain.decision.providers.base import DecisionBackend, load_tool_args
from src.domain.decision.tools import DECISION_TOOL, ToolDefinition, ToolExecutor

logger = logging.getLogger(__name__)


class GoogleBackend(DecisionBackend):
    """Gemini generateContent with function declarations."""

    supports_tools = True
    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    @property
    def url(self) -> str:
        return f"{self.BASE_URL}/{self.model}:generateContent"

    def _generation_config(self, max_tokens: int) -> Dict[str, Any]:
        return {"temperature": self.temperature, "maxOutputTokens": max_tokens}

    @staticmethod
    def _parts(data: Dict[str, Any]) -> List[Dict[str, Any]]:
        candidates = data.get("candidates") or []
        if not candidates:
            return []
        return (candidates[0].get("content") or {}).get("parts") or []

    async def complete(self, prompt: str) -> str:
        data = await self._post_json(
            self.url,
            {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": self._generation_config(self.max_tokens),
            },
            params={"key": self.api_key},
        )
        return next((p["text"] for p in self._parts(data) if p.get("text")), "")

    async def run_tool_loop(
        self,
        prompt: str,
        tools: List[ToolDefinition],
        executor: ToolExecutor,
    ) -> Optional[TradeDecision]:
        declarations = [{
            "function_declarations": [
                {"name": t.name, "description": t.description, "parameters": t.parameters}
                for t in tools
            ]
        }]
        contents: List[Dict[str, Any]] = [{"role": "user", "parts": [{"text": prompt}]}]

        for _ in range(self.max_tool_turns):
            data = await self._post_json(
                self.url,
                {
                    "contents": contents,
                    "tools": declarations,
                    "generationConfig": self._generation_config(self.max_tool_tokens),
                },
                params={"key": self.api_key},
            )
            parts = self._parts(data)
            if not parts:
                return None

            calls = [p["functionCall"] for p in parts if p.get("functionCall")]
            if not calls:
                text = next((p["text"] for p in parts if p.get("text")), None)
                return parse_ai_response(text) if text else None

            contents.append({"role": "model", "parts": parts})

            responses = []
            for call in calls:
                name = call.get("name")
                args = load_tool_args(call.get("args"))
                logger.info(f"🔧 Tool call: {name}({args})")

                if name == DECISION_TOOL:
                    return parse_tool_decision(args)

                result = await executor(name, args)
                responses.append({
                    "functionResponse": {"name": name, "response": {"result": result}},
                })

            contents.append({"role": "function", "parts": responses})

        logger.warning(f"⚠️ {self.model}: max tool turns reached without decision")
        return None
