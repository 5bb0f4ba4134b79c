"""Fixed window counter.

Time is cut into windows of window_size seconds and each key may spend
limit units per window. The counter resets at every boundary, so up to
2 x limit events can be admitted around a boundary: limit at the end of
one window plus limit at the start of the next. That burst is part of the
algorithm and is kept as is.
"""

import math
from typing import Optional, Tuple

from admission.algorithms.base import AdmissionAlgorithm
from admission.models import Algorithm, Decision


class FixedWindow(AdmissionAlgorithm):
    """Fixed window algorithm. State: {"window_id": int, "count": int}."""

    algorithm = Algorithm.FIXED_WINDOW

    @property
    def ttl(self) -> float:
        return self.policy.window_size

    def transition(self, state: Optional[dict], now: float, cost: int) -> Tuple[dict, Decision]:
        limit = self.policy.limit
        window_size = self.policy.window_size
        window_id = math.floor(now / window_size)

        count = 0
        if state is not None:
            # A clock running behind the last writer keeps counting in the newer window
            if state["window_id"] >= window_id:
                window_id = state["window_id"]
                count = state["count"]

        new_count = count + cost
        if new_count <= limit:
            return (
                {"window_id": window_id, "count": new_count},
                Decision(admitted=True, remaining=limit - new_count, limit=limit),
            )

        retry_after = None
        if cost <= limit:
            retry_after = max(0.0, (window_id + 1) * window_size - now)
        return (
            {"window_id": window_id, "count": count},
            Decision(admitted=False, remaining=limit - count, limit=limit, retry_after=retry_after),
        )
