"""Sliding window log.

Keeps the timestamp of every admitted unit inside the trailing window.
Entries older than now - window_size are evicted lazily, when the key is
next touched; idle keys disappear through the store TTL instead.
"""

import uuid
from typing import Optional, Tuple

from admission.algorithms.base import AdmissionAlgorithm
from admission.models import Algorithm, Decision

# An entry exactly on the cutoff is still inside the window
_RETRY_MARGIN = 1e-6


class SlidingWindow(AdmissionAlgorithm):
    """Sliding window log algorithm.

    State: {"entries": [[timestamp, member_id], ...]} sorted by timestamp.
    member_id breaks ties between requests logged at the same instant.
    """

    algorithm = Algorithm.SLIDING_WINDOW

    @property
    def ttl(self) -> float:
        return 2 * self.policy.window_size

    def transition(self, state: Optional[dict], now: float, cost: int) -> Tuple[dict, Decision]:
        limit = self.policy.limit
        window_size = self.policy.window_size
        cutoff = now - window_size

        entries = state["entries"] if state is not None else []
        kept = [entry for entry in entries if entry[0] >= cutoff]

        added = [[now, uuid.uuid4().hex[:16]] for _ in range(cost)]
        candidate = sorted(kept + added, key=lambda entry: (entry[0], entry[1]))

        if len(candidate) <= limit:
            return (
                {"entries": candidate},
                Decision(admitted=True, remaining=limit - len(candidate), limit=limit),
            )

        # Roll back the insert: a rejected request must not hold a slot
        retry_after = None
        if cost <= limit:
            # The oldest entries that have to age out before cost units fit.
            # Retrying at now + retry_after lands just past their cutoff.
            must_expire = len(kept) + cost - limit
            expires_at = kept[must_expire - 1][0] + window_size
            retry_after = max(0.0, expires_at - now) + _RETRY_MARGIN
        return (
            {"entries": kept},
            Decision(admitted=False, remaining=max(0, limit - len(kept)), limit=limit, retry_after=retry_after),
        )
