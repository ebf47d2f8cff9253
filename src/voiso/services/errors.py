"""
Error taxonomy for the generation pipeline.

Every error the service raises on purpose derives from VoisoError, which
carries an HTTP status and serializes to the client-facing JSON body via
to_dict(). The API layer maps all of them through a single exception
handler.

    ValidationError     400  every violated input rule in ``details``
    Unauthenticated     401  missing or invalid bearer token
    Forbidden           403  voice not owned by the caller and not shared
    NotFound            404  voice (or other resource) does not exist
    QuotaExceeded       429  rolling daily limit reached
    ProviderError       500  speech provider failed or timed out
    StorageError        500  audio upload or URL signing failed

PersistenceWarning is never raised to a client; the generation service
logs it when a history insert or counter update fails after audio was
already produced.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional


class ErrorCode:
    """Machine-readable codes, also used as metric status labels."""
    INVALID_INPUT = "invalid"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    QUOTA_EXCEEDED = "quota_exceeded"
    PROVIDER_ERROR = "provider_error"
    STORAGE_ERROR = "storage_error"
    INTERNAL_ERROR = "error"


class VoisoError(Exception):
    """
    Base exception for client-visible failures.

    Attributes:
        message: Human-readable message, returned as ``error``.
        code: Value from ErrorCode.
        status_code: HTTP status for the response.
        details: Optional extra payload merged into to_dict().
    """
    status_code = 500
    default_code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"error": self.message}
        result.update(self.details)
        return result


class ValidationError(VoisoError):
    """
    Raised when request input breaks one or more rules.

    ``errors`` lists every violated rule, not just the first one.
    """
    status_code = 400
    default_code = ErrorCode.INVALID_INPUT

    def __init__(self, errors: List[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors), details={"details": self.errors})


class Unauthenticated(VoisoError):
    status_code = 401
    default_code = ErrorCode.UNAUTHENTICATED

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class Forbidden(VoisoError):
    status_code = 403
    default_code = ErrorCode.FORBIDDEN

    def __init__(self, message: str = "Access denied to this voice"):
        super().__init__(message)


class NotFound(VoisoError):
    status_code = 404
    default_code = ErrorCode.NOT_FOUND

    def __init__(self, message: str = "Voice not found"):
        super().__init__(message)


class QuotaExceeded(VoisoError):
    """Daily limit reached. The body keeps ``error`` fixed so clients can branch on it."""
    status_code = 429
    default_code = ErrorCode.QUOTA_EXCEEDED

    def __init__(self, used: int, limit: int):
        self.used = used
        self.limit = limit
        super().__init__(
            f"Daily generation limit reached ({used}/{limit}). Upgrade your plan or try again later."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": ErrorCode.QUOTA_EXCEEDED,
            "message": self.message,
            "usage": {"used": self.used, "limit": self.limit},
        }


class ProviderError(VoisoError):
    """
    The speech provider returned non-2xx, timed out or was unreachable.

    Attributes:
        status: Upstream HTTP status, None for transport failures.
        body: Upstream response body (truncated), None for transport failures.
    """
    status_code = 500
    default_code = ErrorCode.PROVIDER_ERROR

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        self.status = status
        self.body = body
        super().__init__(message)


class StorageError(VoisoError):
    status_code = 500
    default_code = ErrorCode.STORAGE_ERROR


class PersistenceWarning(Exception):
    """
    A bookkeeping write failed after audio was produced.

    Only ever logged.
    """

    def __init__(self, kind: str, cause: BaseException):
        self.kind = kind
        self.cause = cause
        super().__init__(f"{kind} write failed: {cause}")
