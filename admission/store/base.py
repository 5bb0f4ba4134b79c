"""Atomic store abstraction.

An AtomicStore runs a read-compute-write transaction against one key as a
single indivisible step: no other transaction on the same key interleaves
with it. State is a JSON document; transactions see the decoded dict (or
None when the key is absent or expired) and return the replacement state
together with a payload handed back to the caller.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Tuple, TypeVar

T = TypeVar("T")

# Receives current state (None if absent), returns (new state, payload).
# Must be a pure function of its input: optimistic stores may run it more
# than once per execute_atomic call.
Transaction = Callable[[Optional[dict]], Tuple[dict, T]]


def encode_state(state: dict) -> str:
    """Serialize limiter state canonically."""
    return json.dumps(state, separators=(",", ":"), sort_keys=True)


def decode_state(raw: Any) -> Optional[dict]:
    """Deserialize limiter state read from a store."""
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return json.loads(raw)


class AtomicStore(ABC):
    """Abstract base class for atomic state stores."""

    name: str = "store"

    @abstractmethod
    async def execute_atomic(
        self,
        key: str,
        transaction: Transaction[T],
        ttl: Optional[float] = None,
    ) -> T:
        """Run a transaction against key as one indivisible operation.

        Args:
            key: Store key
            transaction: Pure function mapping current state to
                (new state, payload)
            ttl: Seconds until the written state expires; None keeps it
                forever

        Returns:
            The payload produced by the transaction

        Raises:
            StoreUnavailable: If the store cannot execute the transaction
        """
        pass

    @abstractmethod
    async def set_ttl(self, key: str, ttl: float) -> bool:
        """Set a time-to-live on an existing key.

        Returns:
            True if the key existed, False otherwise.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release connections held by the store."""
        pass
