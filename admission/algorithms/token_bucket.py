"""Token bucket.

The bucket starts full at capacity and refills by whole tokens at rate per
second. Requests spend tokens, so bursts up to capacity pass before the
flow is throttled to rate.

The refill clock moves on every call, rejections included. Elapsed time
is therefore never counted twice, but the fractional token left over by
flooring is dropped at each call.
"""

import math
from typing import Optional, Tuple

from admission.algorithms.base import AdmissionAlgorithm, elapsed_since, whole_units
from admission.models import Algorithm, Decision


class TokenBucket(AdmissionAlgorithm):
    """Token bucket algorithm. State: {"tokens": float, "last_refill": float}."""

    algorithm = Algorithm.TOKEN_BUCKET

    @property
    def ttl(self) -> float:
        # An empty bucket is full again after this long, so expiry loses nothing
        return math.ceil(self.policy.capacity) / self.policy.rate

    def transition(self, state: Optional[dict], now: float, cost: int) -> Tuple[dict, Decision]:
        capacity = self.policy.capacity
        rate = self.policy.rate

        if state is None:
            tokens, last_refill = float(capacity), now
        else:
            tokens, last_refill = state["tokens"], state["last_refill"]

        refill = whole_units(elapsed_since(now, last_refill), rate)
        tokens = min(capacity, tokens + refill)
        last_refill = max(last_refill, now)

        if tokens >= cost:
            tokens -= cost
            return (
                {"tokens": tokens, "last_refill": last_refill},
                Decision(admitted=True, remaining=tokens, limit=capacity),
            )

        retry_after = None
        if cost <= capacity:
            retry_after = math.ceil(cost - tokens) / rate
        return (
            {"tokens": tokens, "last_refill": last_refill},
            Decision(admitted=False, remaining=tokens, limit=capacity, retry_after=retry_after),
        )
