"""
Tests for Rehab Platform SDK Response Mapping

Status classification, envelope construction and error extraction,
including property tests over the status code space.
"""

import json
from email.utils import format_datetime
from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import given, strategies as st

from rehab_client import Envelope, ErrorKind, RehabError
from rehab_client.errors import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    RateLimitError,
    ServerError,
    UnknownError,
    ValidationError,
)
from rehab_client.mapper import classify_status, map_response, parse_retry_after


def _body(payload) -> bytes:
    return json.dumps(payload).encode("utf-8")


# =============================================================================
# Status Classification
# =============================================================================

class TestClassification:
    """Status code to error kind table."""

    @pytest.mark.parametrize(
        "status,kind",
        [
            (400, ErrorKind.VALIDATION),
            (401, ErrorKind.AUTHENTICATION),
            (403, ErrorKind.AUTHORIZATION),
            (404, ErrorKind.NOT_FOUND),
            (429, ErrorKind.RATE_LIMIT),
            (500, ErrorKind.SERVER),
            (503, ErrorKind.SERVER),
            (409, ErrorKind.UNKNOWN),
            (302, ErrorKind.UNKNOWN),
        ],
    )
    def test_status_table(self, status, kind):
        assert classify_status(status) is kind

    @pytest.mark.parametrize(
        "status,error_class",
        [
            (400, ValidationError),
            (401, AuthenticationError),
            (403, AuthorizationError),
            (404, NotFoundError),
            (429, RateLimitError),
            (502, ServerError),
            (418, UnknownError),
        ],
    )
    def test_error_subclass_per_status(self, status, error_class):
        result = map_response(status, {}, _body({"error": {"code": "X", "message": "nope"}}))
        assert isinstance(result, error_class)
        assert result.status_code == status
        assert result.message == "nope"

    @given(status=st.integers(min_value=200, max_value=299), value=st.integers())
    def test_any_2xx_with_data_is_success(self, status, value):
        result = map_response(status, {}, _body({"success": True, "data": {"value": value}}))
        assert isinstance(result, Envelope)
        assert result.success is True
        assert result.error is None
        assert result.status_code == status

    @given(status=st.integers(min_value=500, max_value=599))
    def test_any_5xx_is_server_error(self, status):
        result = map_response(status, {}, b"")
        assert isinstance(result, RehabError)
        assert result.kind is ErrorKind.SERVER
        assert result.retryable

    @given(status=st.integers(min_value=300, max_value=499).filter(
        lambda s: s not in (400, 401, 403, 404, 429)
    ))
    def test_unlisted_non_2xx_is_unknown(self, status):
        result = map_response(status, {}, b"{}")
        assert isinstance(result, RehabError)
        assert result.kind is ErrorKind.UNKNOWN
        assert not result.retryable


# =============================================================================
# Success Envelopes
# =============================================================================

class TestSuccessMapping:
    """2xx bodies."""

    def test_paged_list_has_more(self):
        body = _body({
            "success": True,
            "data": [{"id": "u1"}],
            "meta": {"page": 1, "limit": 20, "total": 42},
        })
        result = map_response(200, {}, body)

        assert result.data == [{"id": "u1"}]
        assert result.meta.total_pages == 3
        assert result.has_more is True

    def test_last_page_has_no_more(self):
        body = _body({"data": [], "meta": {"page": 3, "limit": 20, "total": 42, "totalPages": 3}})
        assert map_response(200, {}, body).has_more is False

    def test_explicit_has_more_wins(self):
        body = _body({"data": [], "meta": {"page": 1, "limit": 20, "total": 42}, "hasMore": False})
        assert map_response(200, {}, body).has_more is False

    def test_no_content(self):
        result = map_response(204, {}, b"")
        assert result.success is True
        assert result.data is None
        assert result.has_more is False

    def test_body_without_data_key_is_data(self):
        result = map_response(200, {}, _body({"id": "p1", "name": "Knee"}))
        assert result.data == {"id": "p1", "name": "Knee"}

    def test_success_flag_only_is_unit(self):
        assert map_response(200, {}, _body({"success": True})).data is None

    def test_plain_text_body(self):
        result = map_response(200, {}, b"pong")
        assert result.success is True
        assert result.data == "pong"

    def test_json_array_body(self):
        assert map_response(200, {}, b"[1, 2]").data == [1, 2]

    def test_rate_limit_headers_are_informational(self):
        headers = {
            "X-RateLimit-Limit": "100",
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": "1700000000",
        }
        result = map_response(200, headers, _body({"data": None}))

        assert result.success is True
        assert result.rate_limit.limit == 100
        assert result.rate_limit.remaining == 0
        assert result.rate_limit.reset == 1700000000

    def test_no_rate_limit_headers(self):
        assert map_response(200, {}, _body({"data": 1})).rate_limit is None

    def test_2xx_reporting_failure(self):
        body = _body({"success": False, "error": {"code": "PARTIAL", "message": "Half done"}})
        result = map_response(200, {}, body)

        assert isinstance(result, UnknownError)
        assert result.code == "PARTIAL"
        assert result.message == "Half done"


# =============================================================================
# Error Extraction
# =============================================================================

class TestErrorMapping:
    """Error bodies and headers."""

    def test_validation_details_normalized(self):
        body = _body({
            "success": False,
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid input",
                "details": {"email": "Invalid email", "password": ["Too short", "No digit"]},
            },
        })
        result = map_response(400, {}, body)

        assert isinstance(result, ValidationError)
        assert result.field_errors == {
            "email": ["Invalid email"],
            "password": ["Too short", "No digit"],
        }
        assert result.info.details == result.details

    def test_request_id_header(self):
        result = map_response(500, {"X-Request-Id": "req_42"}, _body({"error": {"message": "boom"}}))
        assert result.request_id == "req_42"

    def test_string_error(self):
        result = map_response(403, {}, _body({"error": "Forbidden for role"}))
        assert isinstance(result, AuthorizationError)
        assert result.message == "Forbidden for role"
        assert result.code == "FORBIDDEN"

    def test_top_level_message(self):
        result = map_response(404, {}, _body({"message": "Client not found", "code": "CLIENT_NOT_FOUND"}))
        assert result.message == "Client not found"
        assert result.code == "CLIENT_NOT_FOUND"

    def test_non_json_body(self):
        result = map_response(502, {}, b"<html>Bad Gateway</html>")
        assert isinstance(result, ServerError)
        assert result.message == "<html>Bad Gateway</html>"

    def test_json_string_error_body(self):
        result = map_response(503, {}, _body("upstream down"))
        assert isinstance(result, ServerError)
        assert result.message == "upstream down"

    def test_json_array_error_body(self):
        result = map_response(400, {}, _body(["name is required"]))
        assert isinstance(result, ValidationError)
        assert result.message == '["name is required"]'

    def test_empty_error_body(self):
        result = map_response(503, {}, b"")
        assert result.message == "HTTP 503"
        assert result.code == "SERVER_ERROR"

    def test_retry_after_header(self):
        result = map_response(429, {"Retry-After": "2"}, _body({"error": {"message": "slow down"}}))
        assert isinstance(result, RateLimitError)
        assert result.retry_after == 2.0

    def test_retry_after_from_body(self):
        body = _body({"error": {"code": "RATE_LIMITED", "message": "slow", "retryAfter": 7}})
        assert map_response(429, {}, body).retry_after == 7.0

    def test_retry_after_only_for_rate_limit(self):
        result = map_response(503, {"Retry-After": "5"}, b"")
        assert result.retry_after is None


class TestRetryAfterParsing:
    """Retry-After header values."""

    def test_seconds(self):
        assert parse_retry_after("120") == 120.0

    def test_negative_clamped(self):
        assert parse_retry_after("-3") == 0.0

    def test_missing(self):
        assert parse_retry_after(None) is None

    def test_garbage(self):
        assert parse_retry_after("soon") is None

    def test_http_date(self):
        now = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        value = format_datetime(now + timedelta(seconds=30), usegmt=True)
        assert parse_retry_after(value, now=now.timestamp()) == pytest.approx(30.0)

    def test_http_date_in_past(self):
        now = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        value = format_datetime(now - timedelta(seconds=30), usegmt=True)
        assert parse_retry_after(value, now=now.timestamp()) == 0.0
