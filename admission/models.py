"""Data models for admission control.

This module contains the policy configuration and the per-call decision.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from admission.exceptions import InvalidPolicy


class Algorithm(str, Enum):
    """Admission algorithms."""

    FIXED_WINDOW = "fixed_window"
    SLIDING_WINDOW = "sliding_window"
    TOKEN_BUCKET = "token_bucket"
    LEAKY_BUCKET = "leaky_bucket"


# Parameters each algorithm cannot run without
REQUIRED_FIELDS = {
    Algorithm.FIXED_WINDOW: ("limit", "window_size"),
    Algorithm.SLIDING_WINDOW: ("limit", "window_size"),
    Algorithm.TOKEN_BUCKET: ("capacity", "rate"),
    Algorithm.LEAKY_BUCKET: ("capacity", "rate"),
}


@dataclass(frozen=True)
class Policy:
    """Immutable rate limit policy.

    Attributes:
        algorithm: Which admission algorithm enforces the policy
        limit: Max events per window (window algorithms)
        window_size: Window length in seconds (window algorithms)
        rate: Refill / leak rate in events per second (bucket algorithms)
        capacity: Burst ceiling (bucket algorithms)
        policy_id: Namespace for persisted state; derived from the
            parameters when left empty
    """
    algorithm: Algorithm
    limit: Optional[int] = None
    window_size: Optional[float] = None
    rate: Optional[float] = None
    capacity: Optional[float] = None
    policy_id: str = field(default="")

    def __post_init__(self) -> None:
        try:
            algorithm = Algorithm(self.algorithm)
        except ValueError:
            raise InvalidPolicy("algorithm", f"Unknown algorithm {self.algorithm!r}") from None
        object.__setattr__(self, "algorithm", algorithm)

        for name in ("limit", "window_size", "rate", "capacity"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidPolicy(name, f"{name} must be a number")
            if not math.isfinite(value) or value <= 0:
                raise InvalidPolicy(name, f"{name} must be positive")
        if self.limit is not None and not isinstance(self.limit, int):
            raise InvalidPolicy("limit", "limit must be an integer")

        for name in REQUIRED_FIELDS[algorithm]:
            if getattr(self, name) is None:
                raise InvalidPolicy(name, f"{algorithm.value} requires {name}")

    @property
    def identity(self) -> str:
        """Namespace segment of every store key owned by this policy."""
        if self.policy_id:
            return self.policy_id
        params = [
            f"{name}={getattr(self, name)}"
            for name in REQUIRED_FIELDS[self.algorithm]
        ]
        return f"{self.algorithm.value}[{','.join(params)}]"


@dataclass
class Decision:
    """Result of one allow() call. Never persisted."""
    admitted: bool
    remaining: float
    limit: float
    retry_after: Optional[float] = None

    def to_headers(self) -> Dict[str, str]:
        """Convert to standard rate limit headers."""
        headers = {
            "X-RateLimit-Limit": str(int(self.limit)),
            "X-RateLimit-Remaining": str(max(0, int(self.remaining))),
        }
        if self.retry_after is not None:
            headers["Retry-After"] = str(max(1, math.ceil(self.retry_after)))
        return headers
