from dependency_injector import containers, providers
from .service import HealthService


class HealthModule(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(modules=[".controller"])
    root = providers.DependenciesContainer()
    service = providers.Singleton(
        HealthService,
        ledger=root.ledger,
        calendar=root.calendar,
        decision_service=root.decision_service,
        settings=root.config,
    )
