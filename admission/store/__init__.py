"""Atomic state stores for limiter state.

Provides an in-memory store for single-instance use and a Redis store,
using Lua compare-and-set, for state shared across instances.
"""

from typing import Optional

from admission.core.clock import Clock
from admission.core.config import Settings, settings as default_settings
from admission.store.base import AtomicStore, Transaction, decode_state, encode_state
from admission.store.memory import InMemoryAtomicStore
from admission.store.redis_lua import CAS_SCRIPT
from admission.store.redis_store import RedisAtomicStore

__all__ = [
    "AtomicStore",
    "Transaction",
    "InMemoryAtomicStore",
    "RedisAtomicStore",
    "CAS_SCRIPT",
    "create_store",
    "decode_state",
    "encode_state",
]


def create_store(
    backend: Optional[str] = None,
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> AtomicStore:
    """Create a new store from configuration.

    A new instance is returned on every call; stores are injected into
    limiters rather than shared through a module global.

    Args:
        backend: 'memory' or 'redis' (None reads settings.store_backend)
        settings: Settings to read from (defaults to the global settings)
        clock: Time source for in-memory TTL expiry

    Returns:
        An AtomicStore instance.
    """
    settings = settings or default_settings
    backend = (backend or settings.store_backend).lower()

    if backend == "redis":
        return RedisAtomicStore(
            redis_url=settings.redis_url,
            operation_timeout=settings.store_operation_timeout,
            max_cas_attempts=settings.store_max_cas_attempts,
        )
    if backend == "memory":
        return InMemoryAtomicStore(
            clock=clock,
            max_entries=settings.store_max_entries,
            sweep_interval=settings.store_sweep_interval,
        )
    raise ValueError(f"Unknown store backend: {backend}")
