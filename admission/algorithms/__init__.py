"""Admission algorithms.

Every algorithm implements allow(key, cost) -> Decision over its own state
shape and mutates state only through AtomicStore.execute_atomic.
"""

from admission.algorithms.base import AdmissionAlgorithm
from admission.algorithms.fixed_window import FixedWindow
from admission.algorithms.leaky_bucket import LeakyBucket
from admission.algorithms.sliding_window import SlidingWindow
from admission.algorithms.token_bucket import TokenBucket
from admission.models import Algorithm

ALGORITHM_CLASSES = {
    Algorithm.FIXED_WINDOW: FixedWindow,
    Algorithm.SLIDING_WINDOW: SlidingWindow,
    Algorithm.TOKEN_BUCKET: TokenBucket,
    Algorithm.LEAKY_BUCKET: LeakyBucket,
}

__all__ = [
    "AdmissionAlgorithm",
    "FixedWindow",
    "SlidingWindow",
    "TokenBucket",
    "LeakyBucket",
    "ALGORITHM_CLASSES",
]
