"""Core utilities for the admission engine."""

from admission.core.clock import Clock, ManualClock, MonotonicClock, SystemClock
from admission.core.config import Settings, settings
from admission.core.logging import get_log_context, get_logger, setup_logging

__all__ = [
    "Clock",
    "ManualClock",
    "MonotonicClock",
    "SystemClock",
    "Settings",
    "settings",
    "get_logger",
    "get_log_context",
    "setup_logging",
]
