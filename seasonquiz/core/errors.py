"""Engine error taxonomy.

Every error carries a stable machine-readable ``code`` plus a human-readable
``message``; ``seasonquiz.main`` renders them as :class:`ErrorResponse`.
"""

from typing import Any


class EngineError(Exception):
    """Base class for errors surfaced to callers of the attempt engine."""

    status_code = 500
    default_code = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details


class NotFoundError(EngineError):
    status_code = 404
    default_code = "not_found"


class ConflictError(EngineError):
    status_code = 409
    default_code = "conflict"


class ForbiddenError(EngineError):
    status_code = 403
    default_code = "forbidden"


class ValidationError(EngineError):
    status_code = 422
    default_code = "validation_error"


class UnavailableError(EngineError):
    status_code = 503
    default_code = "unavailable"


class RateLimitedError(EngineError):
    status_code = 429
    default_code = "rate_limited"
