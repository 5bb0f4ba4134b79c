"""Tests for the Redis atomic store.

A FakeRedis client (see conftest.py) evaluates the compare-and-set script
natively, so these tests cover the optimistic loop without a server. The
Lua script itself is exercised in test_redis_integration.py.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis

from admission.exceptions import StoreContention, StoreUnavailable
from admission.store import CAS_SCRIPT, RedisAtomicStore


def _increment(state):
    n = (state or {"n": 0})["n"] + 1
    return {"n": n}, n


class TestRedisAtomicStore:
    """Tests for execute_atomic against a fake client."""

    @pytest.mark.asyncio
    async def test_creates_state_on_first_use(self, fake_redis):
        store = RedisAtomicStore(redis_client=fake_redis)
        assert await store.execute_atomic("k", _increment) == 1
        assert json.loads(fake_redis.data["k"]) == {"n": 1}

    @pytest.mark.asyncio
    async def test_updates_existing_state(self, fake_redis):
        store = RedisAtomicStore(redis_client=fake_redis)
        await store.execute_atomic("k", _increment)
        assert await store.execute_atomic("k", _increment) == 2

    @pytest.mark.asyncio
    async def test_ttl_is_set_with_write(self, fake_redis, clock):
        store = RedisAtomicStore(redis_client=fake_redis)
        await store.execute_atomic("k", _increment, ttl=1.5)
        assert fake_redis.expires_at["k"] == pytest.approx(1.5)
        clock.advance(1.5)
        assert await fake_redis.get("k") is None

    @pytest.mark.asyncio
    async def test_no_ttl_keeps_key(self, fake_redis):
        store = RedisAtomicStore(redis_client=fake_redis)
        await store.execute_atomic("k", _increment)
        assert "k" not in fake_redis.expires_at

    @pytest.mark.asyncio
    async def test_uses_cas_script(self):
        client = MagicMock()
        client.get = AsyncMock(return_value=None)
        client.eval = AsyncMock(return_value=1)
        store = RedisAtomicStore(redis_client=client)

        await store.execute_atomic("k", lambda state: ({"n": 1}, None), ttl=0.0004)

        args = client.eval.call_args.args
        assert args[0] == CAS_SCRIPT
        assert args[1:4] == (1, "k", "0")
        assert json.loads(args[5]) == {"n": 1}
        assert args[6] == "1"  # rounded up to one millisecond

    @pytest.mark.asyncio
    async def test_conflict_recomputes_from_fresh_state(self, fake_redis):
        """A write that lost the race is recomputed, not blindly applied."""
        store = RedisAtomicStore(redis_client=fake_redis)
        calls = []

        def txn(state):
            calls.append(state)
            if len(calls) == 1:
                # Another instance commits between our read and our write
                fake_redis.data["k"] = json.dumps({"n": 10})
            n = (state or {"n": 0})["n"] + 1
            return {"n": n}, n

        assert await store.execute_atomic("k", txn) == 11
        assert calls == [None, {"n": 10}]

    @pytest.mark.asyncio
    async def test_contention_gives_up(self, fake_redis):
        store = RedisAtomicStore(redis_client=fake_redis, max_cas_attempts=3)
        counter = iter(range(100))

        def txn(state):
            fake_redis.data["k"] = json.dumps({"other": next(counter)})
            return {"n": 1}, None

        with pytest.raises(StoreContention) as exc_info:
            await store.execute_atomic("k", txn)
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value, StoreUnavailable)
        assert fake_redis.eval_calls == 3

    @pytest.mark.asyncio
    async def test_concurrent_increments_are_not_lost(self, fake_redis):
        fake_redis.interleave = True
        store = RedisAtomicStore(redis_client=fake_redis, max_cas_attempts=30)

        results = await asyncio.gather(
            *(store.execute_atomic("k", _increment) for _ in range(20))
        )
        assert sorted(results) == list(range(1, 21))
        assert json.loads(fake_redis.data["k"]) == {"n": 20}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        redis.ConnectionError("connection refused"),
        redis.TimeoutError("read timed out"),
        redis.RedisError("NOSCRIPT"),
    ])
    async def test_redis_errors_become_store_unavailable(self, fake_redis, error):
        fake_redis.fail_with = error
        store = RedisAtomicStore(redis_client=fake_redis)
        with pytest.raises(StoreUnavailable) as exc_info:
            await store.execute_atomic("k", _increment)
        assert exc_info.value.key == "k"
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_timeout_becomes_store_unavailable(self, fake_redis):
        fake_redis.get_delay = 1.0
        store = RedisAtomicStore(redis_client=fake_redis, operation_timeout=0.01)
        with pytest.raises(StoreUnavailable) as exc_info:
            await store.execute_atomic("k", _increment)
        assert exc_info.value.reason == "timeout"
        assert "k" not in fake_redis.data

    @pytest.mark.asyncio
    async def test_set_ttl(self, fake_redis, clock):
        store = RedisAtomicStore(redis_client=fake_redis)
        await store.execute_atomic("k", _increment)
        assert await store.set_ttl("k", 2.0) is True
        assert await store.set_ttl("missing", 2.0) is False
        clock.advance(2.0)
        assert await fake_redis.get("k") is None

    @pytest.mark.asyncio
    async def test_close(self, fake_redis):
        store = RedisAtomicStore(redis_client=fake_redis)
        await store.close()
        assert fake_redis.closed is True
        assert store._redis is None
