from dependency_injector import containers, providers
from src.infrastructure.database.client import PostgresClient
from src.infrastructure.database.ledger_store import LedgerStore
from src.infrastructure.config.settings import Settings
from src.infrastructure.data.cache import TTLCache
from src.infrastructure.data.quote_service import QuoteService
from src.infrastructure.data.twelve_data import TwelveDataClient
from src.infrastructure.data.yfinance import YFinanceQuoteService
from src.infrastructure.notifications.notifier import NotificationService
from src.domain.market.calendar import MarketCalendar
from src.infrastructure.scheduler.scheduler import JobScheduler


class Container(containers.DeclarativeContainer):
    config = providers.Singleton(Settings)

    db_client = providers.Singleton(
        PostgresClient,
        db_url=config().async_database_url,
        pool_size=config().db_pool_size,
        max_overflow=config().db_max_overflow,
        pool_timeout=config().db_pool_timeout,
        pool_recycle=config().db_pool_recycle,
        echo=config().db_echo,
    )

    ledger = providers.Singleton(
        LedgerStore,
        client=db_client,
        retry_attempts=config().db_retry_attempts,
        retry_delay=config().db_retry_delay_seconds,
    )

    twelve_data = providers.Singleton(
        TwelveDataClient,
        api_key=config().twelve_data_api_key,
    )

    yahoo = providers.Singleton(
        YFinanceQuoteService,
    )

    quotes = providers.Singleton(
        QuoteService,
        twelve_data=twelve_data,
        yahoo=yahoo,
        rate_cache=providers.Singleton(TTLCache, ttl=config().exchange_rate_ttl_seconds),
        stock_list_cache=providers.Singleton(TTLCache, ttl=config().stock_list_ttl_seconds),
    )

    notifier = providers.Singleton(
        NotificationService,
        telegram_bot_token=config().telegram_bot_token,
        telegram_chat_id=config().telegram_chat_id,
        discord_webhook_url=config().discord_webhook_url,
    )

    calendar = providers.Singleton(
        MarketCalendar,
    )

    scheduler = providers.Singleton(
        JobScheduler,
        timezone=config().scheduler_timezone,
    )


container = Container()
