import logging
from typing import Dict, List, Optional, Union

from src.commons.enums.market_enums import Market
from src.commons.enums.provider_enums import AIProvider, ApiKeyStatusLabel
from src.domain.decision.dtos.decision_dto import TradeDecision
from src.domain.decision.parser import parse_ai_response
from src.domain.decision.prompts import build_analysis_prompt, build_tool_based_prompt
from src.domain.decision.providers.base import (
    ConfigurationError,
    DecisionBackend,
    DecisionProviderError,
)
from src.domain.decision.tools import TOOL_DEFINITIONS, ToolHandler, ToolRegistry
from src.domain.portfolio.dtos.portfolio_dto import CurrencyBalances, HoldingDTO
from src.domain.trading.dtos.trade_dto import MarketDataSnapshot

logger = logging.getLogger(__name__)

KEY_PREFIXES: Dict[AIProvider, str] = {
    AIProvider.OPENAI: "sk-",
    AIProvider.ANTHROPIC: "sk-ant-",
    AIProvider.DEEPSEEK: "sk-",
    AIProvider.GOOGLE: "AIza",
    AIProvider.XAI: "xai-",
    AIProvider.CUSTOM: "",
}

KEY_ENV_NAMES: Dict[AIProvider, str] = {
    p: "CUSTOM_AI_API_KEY" if p == AIProvider.CUSTOM else f"{p.value.upper()}_API_KEY"
    for p in AIProvider
}

ProviderLike = Union[AIProvider, str]


class DecisionService:
    """
    Asks an AI provider for a trade decision.

    Every failure mode (no key, bad key format, vendor error, unparsable
    answer) ends in ``None`` so the caller can skip the model.
    """

    def __init__(
        self,
        api_keys: Dict[AIProvider, Optional[str]],
        backends: Dict[AIProvider, DecisionBackend],
        tool_registry: Optional[ToolRegistry] = None,
    ):
        self.api_keys = api_keys
        self.backends = backends
        self.tool_registry = tool_registry or ToolRegistry()

    def register_tool_handler(self, name: str, handler: ToolHandler) -> None:
        self.tool_registry.register(name, handler)

    # ---------------------------------------------------------------
    # Key status
    # ---------------------------------------------------------------
    def get_api_key_status(self, provider: ProviderLike) -> dict:
        parsed = AIProvider.parse(provider) if isinstance(provider, str) else provider
        if parsed is None:
            return {"has_key": False, "is_valid": False, "error": f"{provider} not supported"}

        key = self.api_keys.get(parsed)
        if not key:
            return {
                "has_key": False,
                "is_valid": False,
                "error": f"{KEY_ENV_NAMES[parsed]} not configured",
            }

        return {
            "has_key": True,
            "is_valid": key.startswith(KEY_PREFIXES[parsed]),
            "error": None,
        }

    @staticmethod
    def get_api_key_status_label(status: dict) -> ApiKeyStatusLabel:
        if not status["has_key"]:
            return ApiKeyStatusLabel.MISSING
        if not status["is_valid"]:
            return ApiKeyStatusLabel.INVALID
        return ApiKeyStatusLabel.VALID

    def _resolve_backend(self, provider: ProviderLike) -> DecisionBackend:
        status = self.get_api_key_status(provider)
        if not status["has_key"]:
            raise ConfigurationError(status["error"] or f"{provider}: API key not configured")
        if not status["is_valid"]:
            raise ConfigurationError(f"{provider}: invalid API key format")

        parsed = AIProvider.parse(provider) if isinstance(provider, str) else provider
        backend = self.backends.get(parsed)
        if backend is None:
            raise ConfigurationError(f"{provider}: no backend configured")
        return backend

    # ---------------------------------------------------------------
    # Decisions
    # ---------------------------------------------------------------
    async def request_trade_analysis(
        self,
        provider: ProviderLike,
        holdings: List[HoldingDTO],
        balances: CurrencyBalances,
        market_data: MarketDataSnapshot,
        market: Market,
    ) -> Optional[TradeDecision]:
        """Single-shot protocol: the whole market snapshot goes into the prompt."""
        try:
            backend = self._resolve_backend(provider)
        except ConfigurationError as e:
            logger.warning(f"⚠️ {e}. Skipping trade.")
            return None

        prompt = build_analysis_prompt(holdings, balances, market_data, market)

        try:
            response = await backend.complete(prompt)
        except DecisionProviderError as e:
            logger.error(f"❌ {provider} API error: {e}")
            return None

        decision = parse_ai_response(response)
        if decision is None:
            logger.warning(f"⚠️ {provider}: failed to parse response: {response[:200]}")
            return None

        logger.info(
            f"🤖 {provider}: decision {decision.action.value} {decision.ticker or ''} "
            f"(confidence: {decision.confidence:g})"
        )
        return decision

    async def request_trade_analysis_with_tools(
        self,
        provider: ProviderLike,
        holdings: List[HoldingDTO],
        balances: CurrencyBalances,
        market: Market,
    ) -> Optional[TradeDecision]:
        try:
            backend = self._resolve_backend(provider)
        except ConfigurationError as e:
            logger.warning(f"⚠️ {e}. Skipping trade.")
            return None

        prompt = build_tool_based_prompt(holdings, balances, market)

        try:
            if backend.supports_tools:
                decision = await backend.run_tool_loop(
                    prompt, TOOL_DEFINITIONS, self.tool_registry.execute)
            else:
                decision = parse_ai_response(await backend.complete(prompt))
        except DecisionProviderError as e:
            logger.error(f"❌ {provider} tool API error: {e}")
            return None

        if decision:
            logger.info(
                f"🤖 {provider}: tool-based decision {decision.action.value} "
                f"{decision.ticker or ''} (confidence: {decision.confidence:g})"
            )
        return decision
