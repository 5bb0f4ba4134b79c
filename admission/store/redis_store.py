"""Redis-backed atomic store for multi-instance deployments.

Transactions run client-side and are committed with a server-side Lua
compare-and-set. A write that lost the race is recomputed from the fresh
state, so the committed sequence for a key is always linearizable.

Redis key format:
- {key_prefix}:{policy_id}:{traffic_key} - JSON limiter state, expiring via PX
"""

import asyncio
import math
from typing import Any, Awaitable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from admission.core.config import settings
from admission.core.logging import get_logger
from admission.exceptions import StoreContention, StoreUnavailable
from admission.store.base import AtomicStore, T, Transaction, decode_state, encode_state
from admission.store.redis_lua import CAS_SCRIPT

logger = get_logger(__name__)


def _ttl_millis(ttl: Optional[float]) -> str:
    if ttl is None or ttl <= 0:
        return ""
    return str(max(1, math.ceil(ttl * 1000)))


class RedisAtomicStore(AtomicStore):
    """Atomic store using Redis Lua compare-and-set.

    Every round trip is bounded by operation_timeout; a timeout or any
    Redis error surfaces as StoreUnavailable. Conflicting writes are
    retried up to max_cas_attempts times before StoreContention is raised.
    """

    name = "redis"

    def __init__(
        self,
        redis_client: Optional[Any] = None,
        redis_url: Optional[str] = None,
        operation_timeout: Optional[float] = None,
        max_cas_attempts: Optional[int] = None,
    ) -> None:
        """Initialize the Redis store.

        Args:
            redis_client: Optional Redis client instance
            redis_url: Redis connection URL
            operation_timeout: Seconds allowed per round trip
            max_cas_attempts: Compare-and-set attempts per transaction
        """
        self._redis = redis_client
        self._redis_url = redis_url or settings.redis_url
        self._timeout = operation_timeout or settings.store_operation_timeout
        self._max_attempts = max_cas_attempts or settings.store_max_cas_attempts

    def _get_redis(self) -> Any:
        """Get or create Redis client."""
        if self._redis is None:
            self._redis = aioredis.from_url(self._redis_url)
        return self._redis

    async def _call(self, key: str, awaitable: Awaitable[Any]) -> Any:
        """Await one Redis round trip, mapping failures to StoreUnavailable."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"Redis timeout after {self._timeout}s on {key}")
            raise StoreUnavailable(key, reason="timeout") from e
        except RedisError as e:
            logger.error(f"Redis error on {key}: {e}")
            raise StoreUnavailable(key, reason=f"error: {e}") from e

    async def execute_atomic(
        self,
        key: str,
        transaction: Transaction[T],
        ttl: Optional[float] = None,
    ) -> T:
        redis = self._get_redis()
        ttl_ms = _ttl_millis(ttl)

        for attempt in range(1, self._max_attempts + 1):
            raw = await self._call(key, redis.get(key))
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")

            new_state, payload = transaction(decode_state(raw))

            written = await self._call(
                key,
                redis.eval(
                    CAS_SCRIPT,
                    1,  # Number of keys
                    key,  # KEYS[1]
                    "0" if raw is None else "1",  # ARGV[1]
                    raw or "",  # ARGV[2]
                    encode_state(new_state),  # ARGV[3]
                    ttl_ms,  # ARGV[4]
                ),
            )
            if int(written) == 1:
                return payload
            logger.debug(f"Compare-and-set conflict on {key} (attempt {attempt})")

        logger.warning(f"Giving up on {key} after {self._max_attempts} conflicting writes")
        raise StoreContention(key, attempts=self._max_attempts)

    async def set_ttl(self, key: str, ttl: float) -> bool:
        redis = self._get_redis()
        ttl_ms = _ttl_millis(ttl)
        if not ttl_ms:
            return bool(await self._call(key, redis.persist(key)))
        return bool(await self._call(key, redis.pexpire(key, int(ttl_ms))))

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            try:
                await self._redis.aclose()
            except RedisError as e:
                logger.warning(f"Error closing Redis connection: {e}")
            self._redis = None
