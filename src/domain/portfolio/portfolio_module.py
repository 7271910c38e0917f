from dependency_injector import containers, providers
from src.domain.portfolio.portfolio_service import PortfolioService
from src.domain.portfolio.jobs.portfolio_record_job import PortfolioRecordJob
from src.domain.portfolio.jobs.daily_report_job import DailyReportJob


class PortfolioModule(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(modules=[".controller"])
    root = providers.DependenciesContainer()

    portfolio_service = providers.Factory(
        PortfolioService,
        ledger=root.ledger,
        quotes=root.quotes,
    )

    portfolio_record_job = providers.Factory(
        PortfolioRecordJob,
        portfolio_service=portfolio_service,
        notifier=root.notifier,
        retries=root.config.provided.portfolio_record_retries,
        retry_delay=root.config.provided.portfolio_record_retry_delay_seconds,
    )

    daily_report_job = providers.Factory(
        DailyReportJob,
        portfolio_service=portfolio_service,
        notifier=root.notifier,
    )
