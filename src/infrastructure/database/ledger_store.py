import logging
from datetime import date, datetime, timedelta, timezone
from typing import Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from src.commons.enums.market_enums import ExchangeType, Market, TradeType
from src.domain.portfolio.dtos.portfolio_dto import (
    AIModelDTO,
    CurrencyBalances,
    HoldingDTO,
    PortfolioHistoryPointDTO,
)
from src.domain.trading.dtos.trade_dto import TradeDTO
from src.infrastructure.database.client import PostgresClient
from src.infrastructure.database.errors import LedgerError, TransientStoreError
from src.infrastructure.database.retry import with_retry
from src.infrastructure.database.repositories.ai_model_repository import AIModelRepository
from src.infrastructure.database.repositories.cash_balance_repository import CashBalanceRepository
from src.infrastructure.database.repositories.exchange_repository import ExchangeRepository
from src.infrastructure.database.repositories.holding_repository import HoldingRepository
from src.infrastructure.database.repositories.portfolio_history_repository import PortfolioHistoryRepository
from src.infrastructure.database.repositories.trade_repository import TradeRepository
from src.infrastructure.database.repositories.trade_scenario_repository import TradeScenarioRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LedgerStore:
    """
    Persistence facade for the simulated trading ledger.

    Every call opens its own session and runs through ``with_retry``.
    Reads fall back to empty defaults on non-transient errors; a transient
    error that survives all retries is raised to the caller. Writes report
    failure through their return value.

    Balance and holding updates are separate writes, so a failure between
    them leaves the ledger partially updated.
    """

    def __init__(
        self,
        client: PostgresClient,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
    ):
        self.client = client
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay

    async def _run(self, name: str, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async def operation() -> T:
            async with self.client.get_session() as session:
                return await work(session)

        return await with_retry(
            operation,
            attempts=self.retry_attempts,
            delay=self.retry_delay,
            name=name,
        )

    async def _read(self, name: str, work: Callable[[AsyncSession], Awaitable[T]], default: T) -> T:
        try:
            return await self._run(name, work)
        except TransientStoreError:
            raise
        except LedgerError as e:
            logger.error(f"❌ Failed to {name}: {e}")
            return default

    async def _write(self, name: str, work: Callable[[AsyncSession], Awaitable[object]]) -> bool:
        try:
            result = await self._run(name, work)
        except LedgerError as e:
            logger.error(f"❌ Failed to {name}: {e}")
            return False
        return result is not False

    # ========== AI Models ==========

    async def get_ai_models(self) -> List[AIModelDTO]:
        return await self._read(
            "fetch AI models",
            lambda s: AIModelRepository(s).get_active_models(),
            [],
        )

    async def get_model(self, model_id: str) -> Optional[AIModelDTO]:
        return await self._read(
            "fetch AI model",
            lambda s: AIModelRepository(s).get_by_id(model_id),
            None,
        )

    # ========== Cash Balances ==========

    async def get_currency_balances(self, model_id: str) -> CurrencyBalances:
        balances = await self._read(
            "fetch currency balances",
            lambda s: CashBalanceRepository(s).get_balances(model_id),
            None,
        )
        if balances is None:
            return CurrencyBalances(krw_balance=0.0, usd_balance=0.0)
        return balances

    async def update_cash_balance(
        self,
        model_id: str,
        krw_balance: float,
        usd_balance: float,
    ) -> bool:
        return await self._write(
            "update cash balance",
            lambda s: CashBalanceRepository(s).update_balances(
                model_id, krw_balance, usd_balance),
        )

    # ========== Exchange ==========

    async def record_exchange(
        self,
        model_id: str,
        exchange_type: ExchangeType,
        krw_amount: float,
        usd_amount: float,
        exchange_rate: float,
        reasoning: Optional[str] = None,
    ) -> bool:
        return await self._write(
            "record exchange",
            lambda s: ExchangeRepository(s).save(
                model_id,
                exchange_type,
                krw_amount,
                usd_amount,
                exchange_rate,
                reasoning,
            ),
        )

    # ========== Holdings ==========

    async def get_holdings(self, model_id: str) -> List[HoldingDTO]:
        return await self._read(
            "fetch holdings",
            lambda s: HoldingRepository(s).list_by_model(model_id),
            [],
        )

    async def get_all_holdings(self) -> List[HoldingDTO]:
        return await self._read(
            "fetch all holdings",
            lambda s: HoldingRepository(s).list_all(),
            [],
        )

    async def get_holding_by_ticker(
        self,
        model_id: str,
        ticker: str,
        market: Market,
    ) -> Optional[HoldingDTO]:
        return await self._read(
            "fetch holding",
            lambda s: HoldingRepository(s).get_by_ticker(model_id, ticker, market),
            None,
        )

    async def insert_holding(
        self,
        model_id: str,
        ticker: str,
        market: Market,
        shares: float,
        price: float,
        stock_name: Optional[str] = None,
    ) -> bool:
        return await self._write(
            "insert holding",
            lambda s: HoldingRepository(s).insert(
                model_id, ticker, market, shares, price, stock_name),
        )

    async def update_holding(
        self,
        holding_id: str,
        shares: Optional[float] = None,
        avg_price: Optional[float] = None,
        current_price: Optional[float] = None,
    ) -> bool:
        return await self._write(
            "update holding",
            lambda s: HoldingRepository(s).update(
                holding_id,
                shares=shares,
                avg_price=avg_price,
                current_price=current_price,
            ),
        )

    async def update_holding_current_price(self, holding_id: str, price: float) -> bool:
        return await self.update_holding(holding_id, current_price=price)

    async def delete_holding(self, holding_id: str) -> bool:
        return await self._write(
            "delete holding",
            lambda s: HoldingRepository(s).delete(holding_id),
        )

    # ========== Trades ==========

    async def record_trade(
        self,
        model_id: str,
        ticker: str,
        market: Market,
        trade_type: TradeType,
        shares: float,
        price: float,
        stock_name: Optional[str] = None,
        reasoning: Optional[str] = None,
        scenario: Optional[str] = None,
    ) -> Optional[TradeDTO]:
        try:
            return await self._run(
                "record trade",
                lambda s: TradeRepository(s).save(
                    model_id=model_id,
                    ticker=ticker,
                    market=market,
                    trade_type=trade_type,
                    shares=shares,
                    price=price,
                    stock_name=stock_name,
                    reasoning=reasoning,
                    scenario=scenario,
                ),
            )
        except LedgerError as e:
            logger.error(f"❌ Failed to record trade: {e}")
            return None

    async def get_all_trades(self) -> List[TradeDTO]:
        return await self._read(
            "fetch trades",
            lambda s: TradeRepository(s).list_all(),
            [],
        )

    async def get_recent_trades_by_model(self, model_id: str, hours: int = 24) -> List[TradeDTO]:
        since = datetime.now(timezone.utc) - timedelta(hours=hours)
        return await self._read(
            "fetch recent trades",
            lambda s: TradeRepository(s).list_by_model_since(model_id, since),
            [],
        )

    async def has_traded_today(self, model_id: str, market: Market) -> bool:
        today = datetime.now(timezone.utc).replace(
            hour=0, minute=0, second=0, microsecond=0)
        return await self._read(
            "check today trades",
            lambda s: TradeRepository(s).exists_since(model_id, market, today),
            False,
        )

    async def record_hold_scenario(self, model_id: str, market: Market, reasoning: str) -> bool:
        return await self._write(
            "record hold scenario",
            lambda s: TradeScenarioRepository(s).save_hold(model_id, market, reasoning),
        )

    # ========== Portfolio History ==========

    async def record_portfolio_value(self, model_id: str, total_value: float) -> bool:
        return await self._write(
            "record portfolio value",
            lambda s: PortfolioHistoryRepository(s).save(model_id, total_value),
        )

    async def record_portfolio_value_at(
        self,
        model_id: str,
        total_value: float,
        recorded_at: datetime,
    ) -> bool:
        return await self._write(
            "record portfolio value",
            lambda s: PortfolioHistoryRepository(s).save(
                model_id, total_value, recorded_at),
        )

    async def get_portfolio_history(self, days: int = 30) -> List[PortfolioHistoryPointDTO]:
        since = datetime.now(timezone.utc) - timedelta(days=days)
        return await self._read(
            "fetch portfolio history",
            lambda s: PortfolioHistoryRepository(s).list_since(since),
            [],
        )

    async def has_portfolio_history_for_date(self, model_id: str, day: date) -> bool:
        return await self._read(
            "check portfolio history",
            lambda s: PortfolioHistoryRepository(s).exists_for_date(model_id, day),
            False,
        )

    async def health_check(self) -> bool:
        return await self.client.health_check()
