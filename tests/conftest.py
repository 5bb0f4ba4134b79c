"""Shared fixtures for admission tests."""

import asyncio
from typing import Optional

import pytest

from admission.core.clock import ManualClock
from admission.exceptions import StoreUnavailable
from admission.store import AtomicStore, InMemoryAtomicStore


class FakeRedis:
    """In-process stand-in for redis.asyncio.Redis.

    Implements just the commands the Redis store uses. The CAS script is
    evaluated natively with the same semantics as the Lua version.

    Attributes:
        data: Raw values by key
        expires_at: Expiry time by key, measured on clock
        interleave: Yield to the event loop between reading and returning a
            GET result so concurrent transactions actually race
        fail_with: Exception raised by every command while set
    """

    def __init__(self, clock: Optional[ManualClock] = None):
        self.clock = clock or ManualClock()
        self.data: dict[str, str] = {}
        self.expires_at: dict[str, float] = {}
        self.interleave = False
        self.fail_with: Optional[Exception] = None
        self.get_delay = 0.0
        self.eval_calls = 0
        self.closed = False

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def _current(self, key: str) -> Optional[str]:
        expires = self.expires_at.get(key)
        if expires is not None and self.clock.now() >= expires:
            self.data.pop(key, None)
            self.expires_at.pop(key, None)
        return self.data.get(key)

    async def get(self, key):
        self._check()
        if self.get_delay:
            await asyncio.sleep(self.get_delay)
        value = self._current(key)
        if self.interleave:
            await asyncio.sleep(0)
        return value.encode() if value is not None else None

    async def eval(self, script, numkeys, *args):
        self._check()
        self.eval_calls += 1
        key = args[0]
        seen_value, expected, new_value, ttl_ms = args[numkeys:numkeys + 4]
        current = self._current(key)
        if seen_value == "0":
            if current is not None:
                return 0
        elif current != expected:
            return 0
        self.data[key] = new_value
        if ttl_ms == "":
            self.expires_at.pop(key, None)
        else:
            self.expires_at[key] = self.clock.now() + int(ttl_ms) / 1000
        return 1

    async def pexpire(self, key, ms):
        self._check()
        if self._current(key) is None:
            return 0
        self.expires_at[key] = self.clock.now() + ms / 1000
        return 1

    async def persist(self, key):
        self._check()
        if self._current(key) is None:
            return 0
        return 1 if self.expires_at.pop(key, None) is not None else 0

    async def aclose(self):
        self.closed = True


class BrokenStore(AtomicStore):
    """Store whose backend is unreachable."""

    name = "broken"

    def __init__(self):
        self.closed = False

    async def execute_atomic(self, key, transaction, ttl=None):
        raise StoreUnavailable(key, reason="connection refused")

    async def set_ttl(self, key, ttl):
        raise StoreUnavailable(key, reason="connection refused")

    async def close(self):
        self.closed = True


@pytest.fixture
def broken_store():
    """Store that fails every operation with StoreUnavailable."""
    return BrokenStore()


@pytest.fixture
def clock():
    """Manual clock starting at t=0."""
    return ManualClock(start=0.0)


@pytest.fixture
def memory_store(clock):
    """In-memory store expiring entries on the test clock."""
    return InMemoryAtomicStore(clock=clock)


@pytest.fixture
def fake_redis(clock):
    """Fake Redis client sharing the test clock."""
    return FakeRedis(clock=clock)
