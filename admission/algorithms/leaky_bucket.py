"""Leaky bucket (non-blocking).

Tracks how much of the bucket is occupied and drains it by whole units at
rate per second. A request is admitted while it still fits under capacity.

Nothing is ever held back and released later: the bucket level only gates
admission. A delaying leaky bucket needs a real queue and a worker draining
it, which this engine does not provide.
"""

import math
from typing import Optional, Tuple

from admission.algorithms.base import AdmissionAlgorithm, elapsed_since, whole_units
from admission.models import Algorithm, Decision


class LeakyBucket(AdmissionAlgorithm):
    """Leaky bucket algorithm. State: {"queued": float, "last_leak": float}."""

    algorithm = Algorithm.LEAKY_BUCKET

    @property
    def ttl(self) -> float:
        # A full bucket has drained completely after this long
        return math.ceil(self.policy.capacity) / self.policy.rate

    def transition(self, state: Optional[dict], now: float, cost: int) -> Tuple[dict, Decision]:
        capacity = self.policy.capacity
        rate = self.policy.rate

        if state is None:
            queued, last_leak = 0.0, now
        else:
            queued, last_leak = state["queued"], state["last_leak"]

        leaked = whole_units(elapsed_since(now, last_leak), rate)
        queued = max(0.0, queued - leaked)
        last_leak = max(last_leak, now)

        if queued + cost <= capacity:
            queued += cost
            return (
                {"queued": queued, "last_leak": last_leak},
                Decision(admitted=True, remaining=capacity - queued, limit=capacity),
            )

        retry_after = None
        if cost <= capacity:
            retry_after = math.ceil(queued + cost - capacity) / rate
        return (
            {"queued": queued, "last_leak": last_leak},
            Decision(admitted=False, remaining=capacity - queued, limit=capacity, retry_after=retry_after),
        )
