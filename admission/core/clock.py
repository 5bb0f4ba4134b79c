"""Time sources for the admission algorithms.

Every algorithm reads time through a Clock so tests can drive it
deterministically. All clocks report seconds as floats.
"""

import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Abstract time source."""

    @abstractmethod
    def now(self) -> float:
        """Return the current time in seconds."""
        pass


class SystemClock(Clock):
    """Wall clock time (seconds since the Unix epoch).

    Use this when several processes or machines share one store, since
    their readings must be comparable.
    """

    def now(self) -> float:
        return time.time()


class MonotonicClock(Clock):
    """Monotonic time, only comparable within a single process."""

    def now(self) -> float:
        return time.monotonic()


class ManualClock(Clock):
    """Clock that only moves when told to.

    Example:
        >>> clock = ManualClock(start=0.0)
        >>> clock.advance(1.5)
        >>> clock.now()
        1.5
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds

    def set(self, value: float) -> None:
        # May move backwards; algorithms clamp negative elapsed time.
        self._now = float(value)
