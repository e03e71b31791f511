"""
Response mapping: raw HTTP status, headers and body to an Envelope or a
classified RehabError. Errors are returned, not raised; the pipeline decides
whether to retry or raise them.
"""

import json
import time
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from .errors import ErrorKind, RehabError, error_for_kind
from .types import Envelope, PageInfo, RateLimitInfo, pick


MapResult = Union[Envelope[Any], RehabError]

_STATUS_KINDS: Dict[int, ErrorKind] = {
    400: ErrorKind.VALIDATION,
    401: ErrorKind.AUTHENTICATION,
    403: ErrorKind.AUTHORIZATION,
    404: ErrorKind.NOT_FOUND,
    429: ErrorKind.RATE_LIMIT,
}


def classify_status(status_code: int) -> Optional[ErrorKind]:
    """Error kind for a status code, None for 2xx."""
    if 200 <= status_code < 300:
        return None
    if status_code in _STATUS_KINDS:
        return _STATUS_KINDS[status_code]
    if 500 <= status_code < 600:
        return ErrorKind.SERVER
    return ErrorKind.UNKNOWN


def _decode(body: Union[bytes, str, None]) -> str:
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


_EMPTY = object()
_NOT_JSON = object()


def _parse_json(text: str) -> Any:
    """Parsed JSON, or a sentinel when the text is empty or not JSON."""
    if not text.strip():
        return _EMPTY
    try:
        return json.loads(text)
    except ValueError:
        return _NOT_JSON


def parse_retry_after(value: Optional[str], now: Optional[float] = None) -> Optional[float]:
    """Seconds to wait from a Retry-After value (delta-seconds or HTTP date)."""
    if value is None:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    current = time.time() if now is None else now
    return max(0.0, when.timestamp() - current)


def _normalize_details(details: Any) -> Optional[Dict[str, List[str]]]:
    if not isinstance(details, dict):
        return None
    normalized: Dict[str, List[str]] = {}
    for field_name, messages in details.items():
        if isinstance(messages, (list, tuple)):
            normalized[str(field_name)] = [str(m) for m in messages]
        else:
            normalized[str(field_name)] = [str(messages)]
    return normalized


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def map_response(
    status_code: int,
    headers: Mapping[str, str],
    body: Union[bytes, str, None],
) -> MapResult:
    """Map one raw HTTP response to an Envelope or a RehabError."""
    text = _decode(body)
    payload = _parse_json(text)
    rate_limit = RateLimitInfo.from_headers(headers)
    kind = classify_status(status_code)

    if kind is None:
        return _map_success(status_code, payload, text, rate_limit)
    return _map_error(kind, status_code, headers, payload, text)


def _map_success(
    status_code: int,
    payload: Any,
    text: str,
    rate_limit: Optional[RateLimitInfo],
) -> MapResult:
    if payload is _EMPTY:
        return Envelope.ok(None, status_code=status_code, rate_limit=rate_limit)
    if payload is _NOT_JSON:
        return Envelope.ok(text, status_code=status_code, rate_limit=rate_limit)
    if not isinstance(payload, dict):
        return Envelope.ok(payload, status_code=status_code, rate_limit=rate_limit)

    if payload.get("success") is False and payload.get("error"):
        # A 2xx that reports failure in its body
        error_obj = payload["error"]
        return _build_error(
            ErrorKind.UNKNOWN,
            status_code,
            error_obj if isinstance(error_obj, dict) else None,
            error_obj if isinstance(error_obj, str) else None,
            None,
        )

    meta = payload.get("meta")
    page_info = PageInfo.from_dict(meta) if isinstance(meta, dict) else None
    has_more = pick(payload, "hasMore", "has_more")

    if "data" in payload:
        data = payload["data"]
    elif status_code == 204 or set(payload) <= {"success", "meta", "hasMore", "has_more"}:
        data = None
    else:
        data = payload

    return Envelope.ok(
        data,
        meta=page_info,
        has_more=bool(has_more) if has_more is not None else None,
        status_code=status_code,
        rate_limit=rate_limit,
    )


def _map_error(
    kind: ErrorKind,
    status_code: int,
    headers: Mapping[str, str],
    payload: Any,
    text: str,
) -> RehabError:
    error_obj: Any = None
    raw_message: Optional[str] = None
    body_retry_after: Any = None

    if isinstance(payload, dict):
        error_obj = payload.get("error")
        if isinstance(error_obj, str):
            raw_message, error_obj = error_obj, None
        elif error_obj is None and "message" in payload:
            error_obj = payload
        body_retry_after = pick(payload, "retryAfter", "retry_after")
    elif isinstance(payload, str):
        raw_message = payload.strip()
    elif payload is not _EMPTY:
        raw_message = text.strip()

    retry_after: Optional[float] = None
    if kind is ErrorKind.RATE_LIMIT:
        retry_after = parse_retry_after(_header(headers, "Retry-After"))
        if retry_after is None and isinstance(error_obj, dict):
            body_retry_after = pick(error_obj, "retryAfter", "retry_after", default=body_retry_after)
        if retry_after is None and body_retry_after is not None:
            retry_after = parse_retry_after(str(body_retry_after))

    return _build_error(
        kind,
        status_code,
        error_obj,
        raw_message,
        _header(headers, "X-Request-Id"),
        retry_after,
    )


def _build_error(
    kind: ErrorKind,
    status_code: int,
    error_obj: Any,
    raw_message: Optional[str],
    request_id: Optional[str],
    retry_after: Optional[float] = None,
) -> RehabError:
    code: Optional[str] = None
    message = raw_message or f"HTTP {status_code}"
    details = None
    if isinstance(error_obj, dict):
        code = error_obj.get("code")
        message = error_obj.get("message") or message
        details = _normalize_details(error_obj.get("details"))
        request_id = pick(error_obj, "requestId", "request_id", default=request_id)
    return error_for_kind(
        kind,
        message,
        code=code,
        status_code=status_code,
        details=details,
        request_id=request_id,
        retry_after=retry_after,
    )
