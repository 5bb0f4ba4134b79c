"""Shared contract for admission algorithms.

Each algorithm turns (current state, now, cost) into (new state, Decision)
with a pure transition function. The base class handles argument checks,
key layout and running that transition through the atomic store, so no
algorithm ever reads and writes state in separate steps.
"""

import math
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from admission.core.clock import Clock, SystemClock
from admission.core.config import settings
from admission.core.logging import get_log_context, get_logger
from admission.exceptions import InvalidArgument, InvalidPolicy
from admission.models import Algorithm, Decision, Policy
from admission.store.base import AtomicStore

logger = get_logger(__name__)

# Absorbs float error in elapsed * rate before flooring (0.1 * 3 -> 0.3000...04)
_FLOOR_EPSILON = 1e-9


def elapsed_since(now: float, last: float) -> float:
    """Seconds since last, clamped at zero when the clock went backwards."""
    return max(0.0, now - last)


def whole_units(elapsed: float, rate: float) -> int:
    """Number of whole events a rate produces over elapsed seconds."""
    return math.floor(elapsed * rate + _FLOOR_EPSILON)


class AdmissionAlgorithm(ABC):
    """Base class for the four admission algorithms.

    Attributes:
        policy: The validated, read-only policy
        algorithm: Which Algorithm the subclass implements
    """

    algorithm: Algorithm

    def __init__(
        self,
        policy: Policy,
        store: AtomicStore,
        clock: Optional[Clock] = None,
        key_prefix: Optional[str] = None,
    ) -> None:
        if policy.algorithm is not self.algorithm:
            raise InvalidPolicy(
                "algorithm",
                f"{type(self).__name__} cannot enforce a {policy.algorithm.value} policy",
            )
        self.policy = policy
        self._store = store
        self._clock = clock or SystemClock()
        self._key_prefix = key_prefix if key_prefix is not None else settings.key_prefix

    @property
    @abstractmethod
    def ttl(self) -> float:
        """Seconds of idleness after which a key's state is reclaimable."""
        pass

    @abstractmethod
    def transition(self, state: Optional[dict], now: float, cost: int) -> Tuple[dict, Decision]:
        """Compute the next state and the decision for one request.

        Args:
            state: Persisted state, or None on first use / after expiry
            now: Current time in seconds
            cost: Units the request consumes

        Returns:
            Tuple of (state to persist, decision)
        """
        pass

    def state_key(self, key: str) -> str:
        """Store key for a traffic key: one record per (policy, key) pair."""
        if self._key_prefix:
            return f"{self._key_prefix}:{self.policy.identity}:{key}"
        return f"{self.policy.identity}:{key}"

    async def allow(self, key: str, cost: int = 1) -> Decision:
        """Decide whether to admit one event for key.

        Raises:
            InvalidArgument: If key is empty or cost is not a positive integer
            StoreUnavailable: If the store could not run the transaction
        """
        if not isinstance(key, str) or not key:
            raise InvalidArgument("key must be a non-empty string")
        if isinstance(cost, bool) or not isinstance(cost, int) or cost <= 0:
            raise InvalidArgument(f"cost must be a positive integer, got {cost!r}")

        now = self._clock.now()
        decision = await self._store.execute_atomic(
            self.state_key(key),
            lambda state: self.transition(state, now, cost),
            ttl=self.ttl,
        )

        logger.debug(
            f"{'Admitted' if decision.admitted else 'Rejected'} {key} "
            f"(cost={cost}, remaining={decision.remaining})",
            extra=get_log_context(
                policy_id=self.policy.identity,
                traffic_key=key,
                algorithm=self.algorithm.value,
                admitted=decision.admitted,
                remaining=decision.remaining,
                retry_after=decision.retry_after,
                store=self._store.name,
            ),
        )
        return decision
