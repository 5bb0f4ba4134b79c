"""HTTP middleware for the admission engine."""

from admission.middleware.rate_limit import RateLimitMiddleware

__all__ = ["RateLimitMiddleware"]
