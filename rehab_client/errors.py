"""
Rehab Platform SDK Error Classes

Every failure surfaced by the SDK is a ``RehabError`` tagged with an
``ErrorKind``. Retry and propagation decisions dispatch on the tag; the
subclasses exist so callers can write ``except NotFoundError``.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from .types import ErrorInfo


class ErrorKind(str, Enum):
    """Classification of a failed call."""

    NETWORK = "NetworkError"
    CANCELLED = "Cancelled"
    VALIDATION = "ValidationError"
    AUTHENTICATION = "AuthenticationError"
    AUTHORIZATION = "AuthorizationError"
    NOT_FOUND = "NotFoundError"
    RATE_LIMIT = "RateLimitError"
    SERVER = "ServerError"
    UNKNOWN = "UnknownError"
    CONFIGURATION = "ConfigurationError"


RETRYABLE_KINDS = frozenset({ErrorKind.RATE_LIMIT, ErrorKind.SERVER, ErrorKind.NETWORK})


class RehabError(Exception):
    """Base error class for the Rehab Platform SDK."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    default_code = "UNKNOWN_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: int = 0,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.code = code or self.default_code
        self.message = message
        self.status_code = status_code
        self.details = details
        self.request_id = request_id
        self.retry_after = retry_after
        self.timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @property
    def info(self) -> ErrorInfo:
        """The wire-level error payload for this error."""
        return ErrorInfo(code=self.code, message=self.message, details=self.details)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
            "request_id": self.request_id,
            "retry_after": self.retry_after,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(kind={self.kind.value!r}, "
            f"code={self.code!r}, message={self.message!r})"
        )


class NetworkError(RehabError):
    """Transport failure (connection refused, DNS, timeout)."""

    kind = ErrorKind.NETWORK
    default_code = "NETWORK_ERROR"


class RequestCancelledError(RehabError):
    """The call's cancellation token fired."""

    kind = ErrorKind.CANCELLED
    default_code = "CANCELLED"

    def __init__(self, message: str = "Request was cancelled", **kwargs: Any):
        super().__init__(message, **kwargs)


class ValidationError(RehabError):
    """Invalid input, either rejected by the API (400) or caught locally."""

    kind = ErrorKind.VALIDATION
    default_code = "VALIDATION_ERROR"

    @property
    def field_errors(self) -> Dict[str, List[str]]:
        """Field name to messages, as reported in ``error.details``."""
        return dict(self.details or {})


class AuthenticationError(RehabError):
    """Missing, invalid or expired credentials (401)."""

    kind = ErrorKind.AUTHENTICATION
    default_code = "UNAUTHORIZED"


class TokenRefreshError(AuthenticationError):
    """Refreshing the access token failed; the session has been cleared."""

    default_code = "TOKEN_REFRESH_FAILED"


class AuthorizationError(RehabError):
    """Authenticated but not allowed (403)."""

    kind = ErrorKind.AUTHORIZATION
    default_code = "FORBIDDEN"


class NotFoundError(RehabError):
    """Resource does not exist (404)."""

    kind = ErrorKind.NOT_FOUND
    default_code = "NOT_FOUND"


class RateLimitError(RehabError):
    """Too many requests (429). ``retry_after`` holds the server hint in seconds."""

    kind = ErrorKind.RATE_LIMIT
    default_code = "RATE_LIMITED"


class ServerError(RehabError):
    """Server-side failure (5xx)."""

    kind = ErrorKind.SERVER
    default_code = "SERVER_ERROR"


class UnknownError(RehabError):
    """Any other unexpected status."""

    kind = ErrorKind.UNKNOWN
    default_code = "UNKNOWN_ERROR"


class ConfigurationError(RehabError):
    """Invalid SDK configuration."""

    kind = ErrorKind.CONFIGURATION
    default_code = "CONFIGURATION_ERROR"


_ERROR_CLASSES: Dict[ErrorKind, Type[RehabError]] = {
    ErrorKind.NETWORK: NetworkError,
    ErrorKind.CANCELLED: RequestCancelledError,
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.AUTHENTICATION: AuthenticationError,
    ErrorKind.AUTHORIZATION: AuthorizationError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.RATE_LIMIT: RateLimitError,
    ErrorKind.SERVER: ServerError,
    ErrorKind.UNKNOWN: UnknownError,
    ErrorKind.CONFIGURATION: ConfigurationError,
}


def error_for_kind(kind: ErrorKind, message: str, **kwargs: Any) -> RehabError:
    """Create the error subclass registered for ``kind``."""
    return _ERROR_CLASSES[kind](message, **kwargs)


def is_rehab_error(error: Any) -> bool:
    """Check if error is a RehabError."""
    return isinstance(error, RehabError)


def is_retryable_error(error: Any) -> bool:
    """Check if error is retryable."""
    return isinstance(error, RehabError) and error.kind in RETRYABLE_KINDS
