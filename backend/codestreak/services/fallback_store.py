from __future__ import annotations
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

V = TypeVar("V")


@dataclass(slots=True)
class CacheRecord(Generic[V]):
    value: V
    expires_at: float


class FallbackStore(Generic[V]):
    """
    Process-local key/value store with per-key TTL.

    Used by the cache manager when Redis is not reachable. Expiry is lazy: a
    stale record is dropped when it is next read, there is no sweeper. Every
    operation is total and never raises. All access happens on the event loop
    thread, so no locking is needed.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._records: dict[str, CacheRecord[V]] = {}

    def set(self, key: str, value: V, ttl_seconds: float) -> None:
        self._records[key] = CacheRecord(value=value, expires_at=self._clock() + ttl_seconds)

    def get(self, key: str) -> V | None:
        record = self._records.get(key)
        if record is None:
            return None
        if self._clock() > record.expires_at:
            del self._records[key]
            return None
        return record.value

    def delete(self, key: str) -> None:
        self._records.pop(key, None)

    def __len__(self) -> int:
        # includes expired-but-unread records
        return len(self._records)
