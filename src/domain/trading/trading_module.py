from dependency_injector import containers, providers
from src.infrastructure.rate_limit.rate_limiter import MinIntervalRateLimiter
from .trading_service import TradingService
from .jobs.trading_round_job import TradingRoundJob


class TradingModule(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(modules=[".controller"])
    root = providers.DependenciesContainer()

    rate_limiter = providers.Factory(
        MinIntervalRateLimiter,
        interval=root.config.provided.model_call_interval_seconds,
    )

    trading_service = providers.Singleton(
        TradingService,
        ledger=root.ledger,
        quotes=root.quotes,
        decisions=root.decision_service,
        notifier=root.notifier,
        rate_limiter=rate_limiter,
        max_exchange_ratio=root.config.provided.max_exchange_ratio,
        decision_exchange_ratio=root.config.provided.decision_exchange_ratio,
        auto_exchange_buffer=root.config.provided.auto_exchange_buffer,
        use_tools=root.config.provided.ai_tool_calling_enabled,
    )

    trading_round_job = providers.Factory(
        TradingRoundJob,
        trading_service=trading_service,
        calendar=root.calendar,
        notifier=root.notifier,
    )
