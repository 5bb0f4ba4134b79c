"""Rate limiting admission control backed by an atomic state store."""

from admission.exceptions import (
    AdmissionError,
    InvalidArgument,
    InvalidPolicy,
    StoreContention,
    StoreUnavailable,
)
from admission.limiter import RateLimiter, policy_from_settings
from admission.models import Algorithm, Decision, Policy
from admission.store import AtomicStore, InMemoryAtomicStore, RedisAtomicStore, create_store

__all__ = [
    "AdmissionError",
    "InvalidArgument",
    "InvalidPolicy",
    "StoreContention",
    "StoreUnavailable",
    "RateLimiter",
    "policy_from_settings",
    "Algorithm",
    "Decision",
    "Policy",
    "AtomicStore",
    "InMemoryAtomicStore",
    "RedisAtomicStore",
    "create_store",
]
