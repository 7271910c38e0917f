import asyncio

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError


class LedgerError(Exception):
    """Base error for ledger persistence failures."""
    pass


class TransientStoreError(LedgerError):
    """Retryable failure talking to the database (network, pool, timeout)."""
    pass


_TRANSIENT_TYPES = (
    OperationalError,
    InterfaceError,
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
    OSError,
)


def is_transient_db_error(exc: BaseException) -> bool:
    if isinstance(exc, TransientStoreError):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, _TRANSIENT_TYPES)


def classify_db_error(exc: BaseException) -> LedgerError:
    """Wrap a raw driver/ORM exception into the ledger error taxonomy."""
    if isinstance(exc, LedgerError):
        return exc
    if is_transient_db_error(exc):
        return TransientStoreError(str(exc))
    return LedgerError(str(exc))
