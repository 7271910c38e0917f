from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI
from src.application.container import container
from src.infrastructure.scheduler.scheduler import JobScheduler
from src.infrastructure.scheduler.cron_expression_enum import CronSchedule
from src.infrastructure.config.settings import settings
from src.domain.decision.decision_module import DecisionModule
from src.domain.trading.trading_module import TradingModule
from src.domain.trading.jobs.trading_round_job import TradingRoundJob
from src.domain.portfolio.portfolio_module import PortfolioModule
from src.domain.portfolio.jobs.portfolio_record_job import PortfolioRecordJob
from src.domain.portfolio.jobs.daily_report_job import DailyReportJob

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting AI trading backend...")
    scheduler: JobScheduler = container.scheduler()

    try:
        # 1) Database first
        await container.db_client().init(create_schema=settings.db_create_schema)
        logger.info("Database initialized successfully")

        # 2) Build the trading service so tool handlers are registered
        trading: TradingModule = app.state.trading_module
        trading.trading_service()
        logger.info("Trading service ready")

        if not settings.scheduler_enabled:
            logger.warning("⚠️ Scheduler disabled, only manual triggers will run")
            yield
            return

        # 3) Start scheduler
        await scheduler.start()
        logger.info("Scheduler started")

        # 4) Trading rounds
        trading_round_job: TradingRoundJob = trading.trading_round_job()
        scheduler.add_cron_job("trading_round_job", trading_round_job.run, CronSchedule.EVERY_30_MINUTES)

        # 5) Portfolio valuation
        portfolio_module: PortfolioModule = app.state.portfolio_module
        portfolio_record_job: PortfolioRecordJob = portfolio_module.portfolio_record_job()
        scheduler.add_cron_job("portfolio_record_job", portfolio_record_job.run, CronSchedule.EVERY_30_MINUTES)

        # 6) Daily report after the KR close
        daily_report_job: DailyReportJob = portfolio_module.daily_report_job()
        scheduler.add_cron_job("daily_report_job", daily_report_job.run, CronSchedule.WEEKDAYS_4PM)

        yield

    except Exception as e:
        logger.error(f"Error during startup: {str(e)}")
        raise

    finally:
        logger.info("Shutting down application...")

        try:
            await scheduler.shutdown()
            logger.info("Scheduler shut down successfully")
        except Exception as e:
            logger.error(f"Error shutting down scheduler: {e}")

        decision: DecisionModule = app.state.decision_module
        await decision.http_client().aclose()
        await container.quotes().close()
        await container.notifier().close()

        await container.db_client().close()
        logger.info("Application shut down successfully")
