"""Rate limiter facade.

RateLimiter is the only type callers use: it validates a Policy, picks the
matching algorithm once at construction and forwards allow() to it.
"""

from typing import Optional

from admission.algorithms import ALGORITHM_CLASSES, AdmissionAlgorithm
from admission.core.clock import Clock
from admission.core.config import Settings, settings as default_settings
from admission.core.logging import get_logger
from admission.exceptions import InvalidPolicy
from admission.models import Algorithm, Decision, Policy
from admission.store import AtomicStore, create_store

logger = get_logger(__name__)


def policy_from_settings(settings: Optional[Settings] = None) -> Policy:
    """Build the default Policy from settings.

    Only the parameters the configured algorithm uses are passed on, so an
    unrelated leftover variable cannot make a valid policy fail.
    """
    settings = settings or default_settings
    algorithm = Algorithm(settings.policy_algorithm)
    if algorithm in (Algorithm.FIXED_WINDOW, Algorithm.SLIDING_WINDOW):
        return Policy(
            algorithm=algorithm,
            limit=settings.policy_limit,
            window_size=settings.policy_window_seconds,
            policy_id=settings.policy_id,
        )
    return Policy(
        algorithm=algorithm,
        rate=settings.policy_rate,
        capacity=settings.policy_capacity,
        policy_id=settings.policy_id,
    )


class RateLimiter:
    """Admission control for one policy.

    Example:
        >>> limiter = RateLimiter(Policy(Algorithm.TOKEN_BUCKET, capacity=10, rate=1))
        >>> decision = await limiter.allow("user:123")
        >>> if not decision.admitted:
        ...     raise TooManyRequests(retry_after=decision.retry_after)

    StoreUnavailable propagates from allow(); callers decide whether a
    store outage means admit or reject.
    """

    def __init__(
        self,
        policy: Policy,
        store: Optional[AtomicStore] = None,
        clock: Optional[Clock] = None,
        key_prefix: Optional[str] = None,
    ) -> None:
        """Initialize the limiter.

        Args:
            policy: Validated policy to enforce
            store: Atomic store for limiter state; when omitted one is
                created from settings and closed by close()
            clock: Time source (wall clock by default)
            key_prefix: Prefix of every store key (defaults to settings)

        Raises:
            InvalidPolicy: If policy is not a Policy
        """
        if not isinstance(policy, Policy):
            raise InvalidPolicy(detail=f"Expected a Policy, got {type(policy).__name__}")

        self._owns_store = store is None
        self._store = store if store is not None else create_store()
        algorithm_class = ALGORITHM_CLASSES[policy.algorithm]
        self._algorithm: AdmissionAlgorithm = algorithm_class(
            policy, self._store, clock=clock, key_prefix=key_prefix
        )
        logger.info(
            f"Rate limiter {policy.identity} using {policy.algorithm.value} "
            f"on {self._store.name} store"
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        store: Optional[AtomicStore] = None,
        clock: Optional[Clock] = None,
    ) -> "RateLimiter":
        """Create a limiter for the policy and store configured in settings."""
        settings = settings or default_settings
        policy = policy_from_settings(settings)
        if store is None:
            limiter = cls(policy, store=create_store(settings=settings, clock=clock), clock=clock, key_prefix=settings.key_prefix)
            limiter._owns_store = True
            return limiter
        return cls(policy, store=store, clock=clock, key_prefix=settings.key_prefix)

    @property
    def policy(self) -> Policy:
        return self._algorithm.policy

    async def allow(self, key: str, cost: int = 1) -> Decision:
        """Check whether an event for key is admitted."""
        return await self._algorithm.allow(key, cost)

    async def close(self) -> None:
        """Close the store if this limiter created it."""
        if self._owns_store:
            await self._store.close()

    async def __aenter__(self) -> "RateLimiter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
