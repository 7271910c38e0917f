import time
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class TTLCache(Generic[T]):
    """Single-value cache that expires ``ttl`` seconds after the last set()."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self.value: Optional[T] = None
        self.fetched_at: Optional[float] = None

    def is_fresh(self) -> bool:
        if self.value is None or self.fetched_at is None:
            return False
        return self._clock() - self.fetched_at < self.ttl

    def get(self) -> Optional[T]:
        return self.value if self.is_fresh() else None

    def last(self) -> Optional[T]:
        """Last stored value, even when expired."""
        return self.value

    def set(self, value: T) -> None:
        self.value = value
        self.fetched_at = self._clock()

    def invalidate(self) -> None:
        self.fetched_at = None
