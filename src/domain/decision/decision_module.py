import httpx
from dependency_injector import containers, providers

from .decision_service import DecisionService
from .providers.factory import build_backends, provider_keys
from .tools import ToolRegistry


class DecisionModule(containers.DeclarativeContainer):
    root = providers.DependenciesContainer()

    api_keys = providers.Singleton(
        provider_keys,
        raw_keys=root.config.provided.ai_api_keys.call(),
    )

    http_client = providers.Singleton(
        httpx.AsyncClient,
        timeout=root.config.provided.ai_request_timeout_seconds,
    )

    backends = providers.Singleton(
        build_backends,
        api_keys=api_keys,
        client=http_client,
        max_tool_turns=root.config.provided.ai_max_tool_turns,
        custom_base_url=root.config.provided.custom_ai_base_url,
        custom_model=root.config.provided.custom_ai_model,
    )

    tool_registry = providers.Singleton(ToolRegistry)

    decision_service = providers.Singleton(
        DecisionService,
        api_keys=api_keys,
        backends=backends,
        tool_registry=tool_registry,
    )
