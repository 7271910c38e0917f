import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from src.infrastructure.database.errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    attempts: int = 3,
    delay: float = 1.0,
    name: str = "db operation",
) -> T:
    """
    Run ``operation`` and re-run it on TransientStoreError.

    Backoff is linear (delay * attempt). Any other exception propagates on
    the first occurrence, and the last transient error propagates once the
    attempts are exhausted.
    """
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except TransientStoreError as e:
            if attempt >= attempts:
                logger.error(
                    f"❌ {name} failed after {attempts} attempts: {e}")
                raise
            wait = delay * attempt
            logger.warning(
                f"🔁 {name} transient error (attempt {attempt}/{attempts}), "
                f"retrying in {wait:.1f}s: {e}"
            )
            await asyncio.sleep(wait)

    raise RuntimeError("with_retry called with attempts < 1")
