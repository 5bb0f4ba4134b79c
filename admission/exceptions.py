"""Custom exceptions for the admission control engine."""


class AdmissionError(Exception):
    """Base class for admission exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "Admission error"):
        self.message = message
        super().__init__(message)


class InvalidPolicy(AdmissionError):
    """Raised when a policy fails validation at construction time.

    Maps to HTTP 400 Bad Request.
    """
    status_code = 400

    def __init__(self, field: str | None = None, detail: str | None = None):
        self.field = field
        message = detail or "Invalid rate limit policy"
        if field:
            message = f"{message} (field: {field})"
        super().__init__(message)


class InvalidArgument(AdmissionError):
    """Raised when an allow() call receives a bad key or cost.

    Maps to HTTP 400 Bad Request.
    """
    status_code = 400

    def __init__(self, detail: str = "Invalid argument"):
        self.detail = detail
        super().__init__(detail)


class StoreUnavailable(AdmissionError):
    """Raised when the atomic store cannot execute a transaction.

    Covers transport failures and timeouts. The engine never converts this
    into an admit or a reject; the caller picks fail-open or fail-closed.
    Maps to HTTP 503 Service Unavailable.
    """
    status_code = 503

    def __init__(self, key: str | None = None, reason: str = "unavailable"):
        self.key = key
        self.reason = reason
        message = f"Atomic store {reason}"
        if key:
            message += f" for key {key}"
        super().__init__(message)


class StoreContention(StoreUnavailable):
    """Raised when a compare-and-set write keeps losing to concurrent writers."""

    def __init__(self, key: str | None = None, attempts: int = 0):
        self.attempts = attempts
        super().__init__(key, reason=f"contention after {attempts} attempts")
