"""In-process atomic store.

Suitable for single-instance deployments and tests. Every transaction runs
under one asyncio lock, so transactions on the same key are trivially
linearizable. State is kept serialized so no caller can hold a live
reference to it.
"""

import asyncio
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from admission.core.clock import Clock, MonotonicClock
from admission.core.logging import get_logger
from admission.exceptions import StoreUnavailable
from admission.store.base import AtomicStore, T, Transaction, decode_state, encode_state

logger = get_logger(__name__)


@dataclass
class _StoreEntry:
    """Internal store entry with TTL tracking."""

    raw: str
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        if self.expires_at is None:
            return False
        return now >= self.expires_at


class InMemoryAtomicStore(AtomicStore):
    """Atomic store backed by an ordered dictionary.

    Expired entries are dropped when touched, and all of them are swept at
    most once per sweep_interval as part of a write. Uses OrderedDict for
    LRU behavior: once max_entries is exceeded after a sweep, the least
    recently used 20% of entries are evicted.
    """

    name = "memory"

    DEFAULT_MAX_ENTRIES = 10000
    DEFAULT_SWEEP_INTERVAL = 60.0

    def __init__(
        self,
        clock: Optional[Clock] = None,
        max_entries: Optional[int] = DEFAULT_MAX_ENTRIES,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            clock: Time source for TTL expiry (monotonic by default)
            max_entries: Maximum number of keys held (None for no cap)
            sweep_interval: Seconds between full sweeps of expired entries
        """
        self._data: OrderedDict[str, _StoreEntry] = OrderedDict()
        self._lock = asyncio.Lock()
        self._clock = clock or MonotonicClock()
        self._max_entries = max_entries
        self._sweep_interval = sweep_interval
        self._next_sweep = self._clock.now() + sweep_interval
        self._closed = False

    def _ensure_open(self, key: str) -> None:
        if self._closed:
            raise StoreUnavailable(key, reason="closed")

    def _live_entry(self, key: str, now: float) -> _StoreEntry | None:
        entry = self._data.get(key)
        if entry is not None and entry.is_expired(now):
            del self._data[key]
            return None
        return entry

    def _remove_expired(self, now: float) -> int:
        expired_keys = [
            key for key, entry in self._data.items() if entry.is_expired(now)
        ]
        for key in expired_keys:
            del self._data[key]
        if expired_keys:
            logger.debug(f"Removed {len(expired_keys)} expired limiter states")
        return len(expired_keys)

    def _maybe_sweep(self, now: float) -> None:
        over_cap = self._max_entries is not None and len(self._data) > self._max_entries
        if now < self._next_sweep and not over_cap:
            return
        self._remove_expired(now)
        self._next_sweep = now + self._sweep_interval
        if self._max_entries is not None and len(self._data) > self._max_entries:
            remove_count = max(1, int(self._max_entries * 0.2))
            for _ in range(remove_count):
                self._data.popitem(last=False)
            logger.warning(
                f"In-memory store over {self._max_entries} keys, "
                f"evicted {remove_count} least recently used"
            )

    async def execute_atomic(
        self,
        key: str,
        transaction: Transaction[T],
        ttl: Optional[float] = None,
    ) -> T:
        async with self._lock:
            self._ensure_open(key)
            now = self._clock.now()
            entry = self._live_entry(key, now)
            state = decode_state(entry.raw) if entry is not None else None
            # A raising transaction leaves the stored state untouched
            new_state, payload = transaction(state)
            expires_at = now + ttl if ttl is not None and ttl > 0 else None
            self._data[key] = _StoreEntry(raw=encode_state(new_state), expires_at=expires_at)
            self._data.move_to_end(key)
            self._maybe_sweep(now)
            return payload

    async def set_ttl(self, key: str, ttl: float) -> bool:
        async with self._lock:
            self._ensure_open(key)
            now = self._clock.now()
            entry = self._live_entry(key, now)
            if entry is None:
                return False
            entry.expires_at = now + ttl if ttl > 0 else None
            return True

    async def get_state(self, key: str) -> dict | None:
        """Read the current state of a key without modifying it."""
        async with self._lock:
            entry = self._live_entry(key, self._clock.now())
            return decode_state(entry.raw) if entry is not None else None

    async def cleanup_expired(self) -> int:
        """Remove all expired entries from the store.

        Returns:
            Number of entries removed.
        """
        async with self._lock:
            return self._remove_expired(self._clock.now())

    def __len__(self) -> int:
        return len(self._data)

    async def close(self) -> None:
        async with self._lock:
            self._data.clear()
            self._closed = True
