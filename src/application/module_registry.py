from fastapi import FastAPI
from dependency_injector import providers
from src.application.container import container as root_container


def register_modules(app: FastAPI):
    # Register Decision Module
    from src.domain.decision.decision_module import DecisionModule

    decision_module = DecisionModule(
        root=providers.DependenciesContainer(
            config=root_container.config,
        ),
    )

    app.state.decision_module = decision_module

    # Register Health Module
    from src.domain.health.module import HealthModule
    from src.domain.health.controller import router as health_router

    health_container = HealthModule(
        root=providers.DependenciesContainer(
            config=root_container.config,
            ledger=root_container.ledger,
            calendar=root_container.calendar,
            decision_service=decision_module.decision_service,
        )
    )
    health_container.wire(modules=["src.domain.health.controller"])

    app.include_router(health_router)
    app.state.health_container = health_container

    # Register Trading Module
    from src.domain.trading.trading_module import TradingModule
    from src.domain.trading.controller import router as trading_router

    trading_module = TradingModule(
        root=providers.DependenciesContainer(
            config=root_container.config,
            ledger=root_container.ledger,
            quotes=root_container.quotes,
            notifier=root_container.notifier,
            calendar=root_container.calendar,
            decision_service=decision_module.decision_service,
        ),
    )
    trading_module.wire(modules=["src.domain.trading.controller"])

    app.include_router(trading_router)
    app.state.trading_module = trading_module

    # Register Portfolio Module
    from src.domain.portfolio.portfolio_module import PortfolioModule
    from src.domain.portfolio.controller import router as portfolio_router

    portfolio_module = PortfolioModule(
        root=providers.DependenciesContainer(
            config=root_container.config,
            ledger=root_container.ledger,
            quotes=root_container.quotes,
            notifier=root_container.notifier,
        ),
    )
    portfolio_module.wire(modules=["src.domain.portfolio.controller"])

    app.include_router(portfolio_router)
    app.state.portfolio_module = portfolio_module
