"""Rate limiting middleware for FastAPI / Starlette applications.

Puts a RateLimiter in front of every request. This is the caller that
chooses how a store outage is handled: fail-open admits the request
without a check, fail-closed answers 503.
"""

import hashlib
from typing import Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from admission.core.config import settings
from admission.core.logging import get_log_context, get_logger
from admission.exceptions import StoreUnavailable
from admission.limiter import RateLimiter

logger = get_logger(__name__)

MAX_API_KEY_LENGTH = 512


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce rate limits on requests.

    Rate limits are applied per API key if available, otherwise per IP.
    """

    def __init__(
        self,
        app,
        limiter: RateLimiter,
        fail_closed: Optional[bool] = None,
    ):
        super().__init__(app)
        self.limiter = limiter
        self.fail_closed = (
            fail_closed if fail_closed is not None else settings.rate_limit_fail_closed
        )

    def _get_client_key(self, request: Request) -> str:
        """Get rate limit key for the request.

        API keys and IP addresses are hashed with SHA-256 so raw credentials
        never end up in the store.
        """
        auth = request.headers.get("Authorization", "")
        if auth.startswith("Bearer "):
            api_key = auth[7:].strip()
            # Truncated to 128 bits
            key_hash = hashlib.sha256(api_key.encode()).hexdigest()[:32]
            return f"apikey:{key_hash}"

        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            client_ip = forwarded.split(",")[0].strip()
        else:
            client_ip = request.client.host if request.client else "unknown"

        ip_hash = hashlib.sha256(client_ip.encode()).hexdigest()[:32]
        return f"ip:{ip_hash}"

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request with rate limiting."""
        auth = request.headers.get("Authorization", "")
        if auth.startswith("Bearer ") and len(auth) - 7 > MAX_API_KEY_LENGTH:
            return JSONResponse(
                status_code=400,
                content={"detail": f"API key too long (max {MAX_API_KEY_LENGTH} characters)"},
            )

        key = self._get_client_key(request)
        try:
            decision = await self.limiter.allow(key)
        except StoreUnavailable as e:
            context = get_log_context(
                policy_id=self.limiter.policy.identity, traffic_key=key
            )
            if self.fail_closed:
                logger.warning(
                    f"Rate limiting fail-closed triggered: {e.message}. Request denied.",
                    extra=context,
                )
                return JSONResponse(
                    status_code=StoreUnavailable.status_code,
                    content={
                        "error": "rate_limiter_unavailable",
                        "message": "Rate limiter unavailable. Please try again later.",
                    },
                )
            logger.warning(
                f"Rate limiting fail-open triggered: {e.message}. "
                "Request allowed without rate limit check.",
                extra=context,
            )
            return await call_next(request)

        if not decision.admitted:
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": "Rate limit exceeded. Please try again later.",
                    "retry_after": decision.retry_after,
                },
                headers=decision.to_headers(),
            )

        response = await call_next(request)
        response.headers.update(decision.to_headers())
        return response
