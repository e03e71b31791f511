"""
Rehab Platform SDK Core Types

Envelope, paging and request types shared by the request pipeline and the
resource facades.
"""

from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    List,
    Mapping,
    Optional,
    Protocol,
    TypeVar,
    Union,
    runtime_checkable,
)

from .cancellation import CancellationToken


T = TypeVar("T")

QueryValue = Union[str, int, float, bool, None]


def pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key; the API speaks camelCase, snake_case is accepted."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@runtime_checkable
class TokenStorage(Protocol):
    """Token storage interface for custom implementations."""

    def get_access_token(self) -> Optional[str]:
        """Get the stored access token."""
        ...

    def get_refresh_token(self) -> Optional[str]:
        """Get the stored refresh token."""
        ...

    def set_tokens(self, access_token: str, refresh_token: str, expires_in: int) -> None:
        """Store tokens with expiration."""
        ...

    def clear_tokens(self) -> None:
        """Clear all stored tokens."""
        ...

    def get_expires_at(self) -> float:
        """Get access token expiration timestamp (0 when unknown)."""
        ...


@dataclass(frozen=True)
class ErrorInfo:
    """Error payload of a failed envelope."""

    code: str
    message: str
    details: Optional[Dict[str, List[str]]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ErrorInfo":
        return cls(
            code=data.get("code", "UNKNOWN_ERROR"),
            message=data.get("message", ""),
            details=data.get("details"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            result["details"] = self.details
        return result


@dataclass(frozen=True)
class PageInfo:
    """Pagination metadata returned by list endpoints."""

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageInfo":
        limit = int(pick(data, "limit", "pageSize", default=0))
        total = int(pick(data, "total", "totalCount", default=0))
        total_pages = pick(data, "totalPages", "total_pages")
        if total_pages is None:
            # ceil(total / limit) when the server leaves it out
            total_pages = -(-total // limit) if limit > 0 else 0
        return cls(
            page=int(pick(data, "page", default=1)),
            limit=limit,
            total=total,
            total_pages=int(total_pages),
        )

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


@dataclass(frozen=True)
class RateLimitInfo:
    """Values of the X-RateLimit-* headers. Informational only."""

    limit: Optional[int] = None
    remaining: Optional[int] = None
    reset: Optional[int] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> Optional["RateLimitInfo"]:
        lowered = {k.lower(): v for k, v in headers.items()}
        values = [
            _to_int(lowered.get("x-ratelimit-limit")),
            _to_int(lowered.get("x-ratelimit-remaining")),
            _to_int(lowered.get("x-ratelimit-reset")),
        ]
        if all(v is None for v in values):
            return None
        return cls(*values)


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


@dataclass
class Envelope(Generic[T]):
    """
    Standard success/error wrapper returned by every call.

    ``success`` is True exactly when ``error`` is None. A successful call whose
    response carried no payload (HTTP 204) has ``data`` set to None.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[ErrorInfo] = None
    meta: Optional[PageInfo] = None
    has_more: bool = False
    status_code: int = 200
    rate_limit: Optional[RateLimitInfo] = None

    def __post_init__(self) -> None:
        if self.success and self.error is not None:
            raise ValueError("successful envelope cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("failed envelope requires an error")

    @classmethod
    def ok(
        cls,
        data: Optional[T],
        meta: Optional[PageInfo] = None,
        has_more: Optional[bool] = None,
        status_code: int = 200,
        rate_limit: Optional[RateLimitInfo] = None,
    ) -> "Envelope[T]":
        if has_more is None:
            has_more = meta.has_next if meta else False
        return cls(
            success=True,
            data=data,
            meta=meta,
            has_more=has_more,
            status_code=status_code,
            rate_limit=rate_limit,
        )

    @classmethod
    def failure(cls, error: ErrorInfo, status_code: int = 0) -> "Envelope[T]":
        return cls(success=False, error=error, status_code=status_code)

    def map(self, parser: Callable[[Any], Any]) -> "Envelope[Any]":
        """Return a copy with ``parser`` applied to ``data``."""
        if not self.success or self.data is None:
            return self
        return Envelope(
            success=True,
            data=parser(self.data),
            meta=self.meta,
            has_more=self.has_more,
            status_code=self.status_code,
            rate_limit=self.rate_limit,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        if self.success:
            result["data"] = self.data
        else:
            result["error"] = self.error.to_dict() if self.error else None
        if self.meta is not None:
            result["meta"] = {
                "page": self.meta.page,
                "limit": self.meta.limit,
                "total": self.meta.total,
                "totalPages": self.meta.total_pages,
            }
        result["hasMore"] = self.has_more
        return result


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of the retry policy for one failed attempt."""

    should_retry: bool
    delay: float = 0.0


@dataclass
class RequestSpec:
    """One logical API call, consumed once by the pipeline."""

    method: str
    path: str
    query: Dict[str, QueryValue] = field(default_factory=dict)
    body: Any = None
    cancellation: Optional[CancellationToken] = None
    # Per-attempt timeout override in seconds
    timeout: Optional[float] = None
    parser: Optional[Callable[[Any], Any]] = None
    skip_auto_refresh: bool = False

    def query_params(self) -> Dict[str, str]:
        """Query parameters with None dropped and booleans lower-cased."""
        params: Dict[str, str] = {}
        for key, value in self.query.items():
            if value is None:
                continue
            if isinstance(value, bool):
                params[key] = "true" if value else "false"
            else:
                params[key] = str(value)
        return params

    def json_body(self) -> Any:
        """Body ready for JSON serialization."""
        if self.body is None:
            return None
        if hasattr(self.body, "to_dict"):
            return self.body.to_dict()
        return self.body


def list_of(parser: Callable[[Dict[str, Any]], T]) -> Callable[[List[Dict[str, Any]]], List[T]]:
    """Lift an item parser to a list parser."""

    def parse(items: List[Dict[str, Any]]) -> List[T]:
        return [parser(item) for item in items]

    return parse
