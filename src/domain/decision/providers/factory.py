from typing import Dict, Optional

import httpx

from src.commons.enums.provider_enums import AIProvider
from src.domain.decision.providers.anthropic import AnthropicBackend
from src.domain.decision.providers.base import DecisionBackend
from src.domain.decision.providers.google import GoogleBackend
from src.domain.decision.providers.openai_compatible import OpenAICompatibleBackend

DEFAULT_MODELS: Dict[AIProvider, str] = {
    AIProvider.OPENAI: "gpt-4o-mini",
    AIProvider.ANTHROPIC: "claude-3-haiku-20240307",
    AIProvider.GOOGLE: "gemini-2.0-flash",
    AIProvider.XAI: "grok-3-fast",
    AIProvider.DEEPSEEK: "deepseek-chat",
}

OPENAI_COMPATIBLE_URLS: Dict[AIProvider, str] = {
    AIProvider.OPENAI: "https://api.openai.com/v1",
    AIProvider.DEEPSEEK: "https://api.deepseek.com/v1",
    AIProvider.XAI: "https://api.x.ai/v1",
}


def build_backends(
    api_keys: Dict[AIProvider, Optional[str]],
    client: httpx.AsyncClient,
    max_tool_turns: int = 5,
    custom_base_url: Optional[str] = None,
    custom_model: Optional[str] = None,
) -> Dict[AIProvider, DecisionBackend]:
    """
    One backend per provider with a key. The custom provider additionally
    needs a base URL and model name.
    """
    backends: Dict[AIProvider, DecisionBackend] = {}

    for provider, key in api_keys.items():
        if not key:
            continue

        if provider in OPENAI_COMPATIBLE_URLS:
            backends[provider] = OpenAICompatibleBackend(
                key,
                DEFAULT_MODELS[provider],
                client,
                base_url=OPENAI_COMPATIBLE_URLS[provider],
                max_tool_turns=max_tool_turns,
            )
        elif provider == AIProvider.ANTHROPIC:
            backends[provider] = AnthropicBackend(
                key, DEFAULT_MODELS[provider], client, max_tool_turns=max_tool_turns)
        elif provider == AIProvider.GOOGLE:
            backends[provider] = GoogleBackend(
                key, DEFAULT_MODELS[provider], client, max_tool_turns=max_tool_turns)
        elif provider == AIProvider.CUSTOM and custom_base_url and custom_model:
            backends[provider] = OpenAICompatibleBackend(
                key,
                custom_model,
                client,
                base_url=custom_base_url,
                max_tool_turns=max_tool_turns,
            )

    return backends


def provider_keys(raw_keys: Dict[str, Optional[str]]) -> Dict[AIProvider, Optional[str]]:
    """Map settings' ``{"openai": key, ...}`` onto provider enums."""
    keys: Dict[AIProvider, Optional[str]] = {}
    for name, key in raw_keys.items():
        provider = AIProvider.parse(name)
        if provider is not None:
            keys[provider] = key
    return keys
