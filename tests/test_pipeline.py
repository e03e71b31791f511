"""
Tests for the Rehab Platform SDK Request Pipeline

Drives the sync and async pipelines against mocked HTTP responses and checks
attempt counts, backoff delays, cancellation and request construction.
"""

import asyncio
import threading
import time
from typing import List

import httpx
import pytest
import respx

from rehab_client import (
    AsyncRequestPipeline,
    CancellationToken,
    RequestPipeline,
    RequestSpec,
    User,
    create_config,
)
from rehab_client.errors import (
    NetworkError,
    NotFoundError,
    RateLimitError,
    RequestCancelledError,
    ServerError,
    UnknownError,
)
from rehab_client.types import list_of


BASE_URL = "https://api.rehabplatform.io/v1"

USERS_PAGE = {
    "success": True,
    "data": [
        {"id": "u1", "email": "ana@clinic.example", "firstName": "Ana", "lastName": "Lopez"},
        {"id": "u2", "email": "ben@clinic.example", "firstName": "Ben", "lastName": "Ode"},
    ],
    "meta": {"page": 1, "limit": 20, "total": 42},
}


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def config():
    """Configuration with deterministic backoff (1s, 2s, 4s)."""
    return create_config("key_test_123", retry_jitter=0)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def pipeline(config, sleeps):
    """Sync pipeline recording backoff delays instead of sleeping."""
    http = httpx.Client()
    yield RequestPipeline(config, http, sleep=sleeps.append)
    http.close()


def _responses(*statuses: int) -> List[httpx.Response]:
    return [
        httpx.Response(s, json={"data": {"ok": True}} if s < 300 else {"error": {"message": "down"}})
        for s in statuses
    ]


# =============================================================================
# Sync Pipeline
# =============================================================================

class TestSyncPipeline:
    """Tests for RequestPipeline."""

    @respx.mock
    def test_users_page(self, pipeline: RequestPipeline):
        """GET /users page 1 of 42 reports more pages."""
        route = respx.get(f"{BASE_URL}/users").mock(return_value=httpx.Response(200, json=USERS_PAGE))

        envelope = pipeline.execute(RequestSpec(
            "GET", "/users", query={"page": 1, "limit": 20}, parser=list_of(User.from_dict),
        ))

        assert envelope.success is True
        assert envelope.has_more is True
        assert [u.full_name for u in envelope.data] == ["Ana Lopez", "Ben Ode"]
        params = route.calls.last.request.url.params
        assert params["page"] == "1"
        assert params["limit"] == "20"

    @respx.mock
    def test_request_headers(self, pipeline: RequestPipeline):
        route = respx.get(f"{BASE_URL}/auth/me").mock(return_value=httpx.Response(200, json={"data": {}}))

        pipeline.execute(RequestSpec("GET", "/auth/me"))

        headers = route.calls.last.request.headers
        assert headers["Authorization"] == "Bearer key_test_123"
        assert headers["X-API-Key"] == "key_test_123"
        assert headers["Accept"] == "application/json"
        assert headers["User-Agent"].startswith("rehab-client-python/")

    @respx.mock
    def test_bearer_from_token_provider(self, config):
        route = respx.get(f"{BASE_URL}/auth/me").mock(return_value=httpx.Response(200, json={"data": {}}))
        with httpx.Client() as http:
            RequestPipeline(config, http, token_provider=lambda: "session_abc").execute(
                RequestSpec("GET", "/auth/me")
            )

        assert route.calls.last.request.headers["Authorization"] == "Bearer session_abc"

    @respx.mock
    def test_query_drops_none_and_lowercases_bools(self, pipeline: RequestPipeline):
        route = respx.get(f"{BASE_URL}/clients").mock(return_value=httpx.Response(200, json={"data": []}))

        pipeline.execute(RequestSpec(
            "GET", "/clients", query={"page": 1, "search": None, "archived": False},
        ))

        params = route.calls.last.request.url.params
        assert "search" not in params
        assert params["archived"] == "false"

    @respx.mock
    def test_not_found_single_request(self, pipeline: RequestPipeline, sleeps):
        route = respx.get(f"{BASE_URL}/clients/missing").mock(
            return_value=httpx.Response(404, json={"error": {"code": "NOT_FOUND", "message": "No client"}})
        )

        with pytest.raises(NotFoundError) as exc_info:
            pipeline.execute(RequestSpec("GET", "/clients/missing"))

        assert exc_info.value.message == "No client"
        assert route.call_count == 1
        assert sleeps == []

    @pytest.mark.parametrize("failures", [0, 1, 2, 3, 4, 6])
    @respx.mock
    def test_server_errors_retry_until_success(self, pipeline: RequestPipeline, failures):
        """Exactly min(max_attempts, failures + 1) requests are sent."""
        route = respx.get(f"{BASE_URL}/programs").mock(
            side_effect=_responses(*([503] * failures + [200]))
        )
        spec = RequestSpec("GET", "/programs")

        if failures >= 4:
            with pytest.raises(ServerError):
                pipeline.execute(spec)
        else:
            assert pipeline.execute(spec).data == {"ok": True}

        assert route.call_count == min(4, failures + 1)

    @respx.mock
    def test_backoff_delays(self, pipeline: RequestPipeline, sleeps):
        respx.get(f"{BASE_URL}/programs").mock(side_effect=_responses(500, 500, 500, 500))

        with pytest.raises(ServerError):
            pipeline.execute(RequestSpec("GET", "/programs"))

        assert sleeps == [1.0, 2.0, 4.0]

    @respx.mock
    def test_rate_limit_retry_after(self, pipeline: RequestPipeline, sleeps):
        """429 with Retry-After: 2 waits 2 seconds and tries again."""
        route = respx.get(f"{BASE_URL}/users").mock(side_effect=[
            httpx.Response(429, headers={"Retry-After": "2"}, json={"error": {"message": "Too many"}}),
            httpx.Response(200, json=USERS_PAGE),
        ])

        envelope = pipeline.execute(RequestSpec("GET", "/users"))

        assert envelope.success
        assert sleeps == [2.0]
        assert route.call_count == 2

    @respx.mock
    def test_rate_limit_exhausted(self, config, sleeps):
        respx.get(f"{BASE_URL}/users").mock(
            return_value=httpx.Response(429, headers={"Retry-After": "1"})
        )
        with httpx.Client() as http:
            pipe = RequestPipeline(config.with_options(max_retry_attempts=1), http, sleep=sleeps.append)
            with pytest.raises(RateLimitError) as exc_info:
                pipe.execute(RequestSpec("GET", "/users"))

        assert exc_info.value.retry_after == 1.0
        assert sleeps == [1.0]

    @respx.mock
    def test_network_error_retried(self, pipeline: RequestPipeline):
        route = respx.post(f"{BASE_URL}/programs").mock(side_effect=[
            httpx.ConnectError("connection refused"),
            httpx.Response(201, json={"data": {"id": "p1"}}),
        ])

        envelope = pipeline.execute(RequestSpec("POST", "/programs", body={"name": "Knee"}))

        assert envelope.status_code == 201
        assert envelope.data == {"id": "p1"}
        assert route.call_count == 2

    @respx.mock
    def test_timeout_is_network_error(self, pipeline: RequestPipeline):
        route = respx.get(f"{BASE_URL}/users").mock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(NetworkError) as exc_info:
            pipeline.execute(RequestSpec("GET", "/users"))

        assert exc_info.value.code == "TIMEOUT"
        assert isinstance(exc_info.value.__cause__, httpx.TimeoutException)
        assert route.call_count == 4

    @respx.mock
    def test_cancelled_before_call(self, pipeline: RequestPipeline):
        token = CancellationToken()
        token.cancel("user navigated away")

        with pytest.raises(RequestCancelledError) as exc_info:
            pipeline.execute(RequestSpec("GET", "/users", cancellation=token))

        assert "user navigated away" in exc_info.value.message
        assert respx.calls.call_count == 0

    @respx.mock
    def test_cancelled_during_backoff(self, config):
        """A token fired while waiting stops the retry loop."""
        route = respx.get(f"{BASE_URL}/users").mock(return_value=httpx.Response(503))
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel)

        with httpx.Client() as http:
            pipe = RequestPipeline(config.with_options(retry_base_delay=10.0), http)
            timer.start()
            try:
                with pytest.raises(RequestCancelledError):
                    pipe.execute(RequestSpec("GET", "/users", cancellation=token))
            finally:
                timer.cancel()

        assert route.call_count == 1

    @respx.mock
    def test_cancelled_during_call(self, pipeline: RequestPipeline, sleeps):
        """A token fired while the request is out discards a retryable response."""
        token = CancellationToken()

        def cancel_mid_call(request: httpx.Request) -> httpx.Response:
            token.cancel("closed by caller")
            return httpx.Response(503)

        route = respx.get(f"{BASE_URL}/users").mock(side_effect=cancel_mid_call)

        with pytest.raises(RequestCancelledError) as exc_info:
            pipeline.execute(RequestSpec("GET", "/users", cancellation=token))

        assert "closed by caller" in exc_info.value.message
        assert route.call_count == 1
        assert sleeps == []

    @respx.mock
    def test_malformed_payload(self, pipeline: RequestPipeline):
        respx.get(f"{BASE_URL}/users/u1").mock(return_value=httpx.Response(200, json={"data": {"id": "u1"}}))

        with pytest.raises(UnknownError) as exc_info:
            pipeline.execute(RequestSpec("GET", "/users/u1", parser=User.from_dict))

        assert exc_info.value.code == "INVALID_RESPONSE"

    @respx.mock
    def test_no_content(self, pipeline: RequestPipeline):
        respx.delete(f"{BASE_URL}/users/u1").mock(return_value=httpx.Response(204))

        envelope = pipeline.execute(RequestSpec("DELETE", "/users/u1", parser=User.from_dict))

        assert envelope.success
        assert envelope.data is None


# =============================================================================
# Async Pipeline
# =============================================================================

class TestAsyncPipeline:
    """Tests for AsyncRequestPipeline."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_retry_then_success(self, config):
        route = respx.get(f"{BASE_URL}/programs/p1").mock(side_effect=_responses(502, 500, 200))
        sleeps: List[float] = []

        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)

        async with httpx.AsyncClient() as http:
            pipe = AsyncRequestPipeline(config, http, sleep=fake_sleep)
            envelope = await pipe.execute(RequestSpec("GET", "/programs/p1"))

        assert envelope.data == {"ok": True}
        assert route.call_count == 3
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    @respx.mock
    async def test_not_found(self, config):
        route = respx.get(f"{BASE_URL}/programs/nope").mock(return_value=httpx.Response(404))

        async with httpx.AsyncClient() as http:
            with pytest.raises(NotFoundError):
                await AsyncRequestPipeline(config, http).execute(RequestSpec("GET", "/programs/nope"))

        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_cancelled_before_call(self, config):
        token = CancellationToken()
        token.cancel()

        async with httpx.AsyncClient() as http:
            with pytest.raises(RequestCancelledError):
                await AsyncRequestPipeline(config, http).execute(
                    RequestSpec("GET", "/users", cancellation=token)
                )

        assert respx.calls.call_count == 0

    @pytest.mark.asyncio
    @respx.mock
    async def test_cancelled_during_backoff(self, config):
        route = respx.get(f"{BASE_URL}/users").mock(return_value=httpx.Response(503))
        token = CancellationToken()

        async with httpx.AsyncClient() as http:
            pipe = AsyncRequestPipeline(config.with_options(retry_base_delay=10.0), http)
            asyncio.get_running_loop().call_later(0.05, token.cancel, "shutdown")
            with pytest.raises(RequestCancelledError) as exc_info:
                await asyncio.wait_for(
                    pipe.execute(RequestSpec("GET", "/users", cancellation=token)), timeout=5
                )

        assert "shutdown" in exc_info.value.message
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_cancelled_during_call(self, config):
        """A token fired mid-request abandons the in-flight call without retrying."""
        attempts = []

        async def slow_users(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            await asyncio.sleep(5)
            return httpx.Response(200, json=USERS_PAGE)

        respx.get(f"{BASE_URL}/users").mock(side_effect=slow_users)
        token = CancellationToken()

        async with httpx.AsyncClient() as http:
            pipe = AsyncRequestPipeline(config, http)
            asyncio.get_running_loop().call_later(0.05, token.cancel, "navigated away")
            started = time.monotonic()
            with pytest.raises(RequestCancelledError) as exc_info:
                await asyncio.wait_for(
                    pipe.execute(RequestSpec("GET", "/users", cancellation=token)), timeout=5
                )
            elapsed = time.monotonic() - started

        assert "navigated away" in exc_info.value.message
        assert elapsed < 1.0
        assert len(attempts) == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_rate_limit_hint(self, config):
        route = respx.get(f"{BASE_URL}/users").mock(side_effect=[
            httpx.Response(429, headers={"Retry-After": "2"}),
            httpx.Response(200, json=USERS_PAGE),
        ])
        sleeps: List[float] = []

        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)

        async with httpx.AsyncClient() as http:
            envelope = await AsyncRequestPipeline(config, http, sleep=fake_sleep).execute(
                RequestSpec("GET", "/users")
            )

        assert envelope.has_more is True
        assert sleeps == [2.0]
        assert route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_task_cancellation_propagates(self, config):
        """Cancelling the awaiting task raises CancelledError, not a RehabError."""
        respx.get(f"{BASE_URL}/users").mock(return_value=httpx.Response(503))

        async with httpx.AsyncClient() as http:
            pipe = AsyncRequestPipeline(config.with_options(retry_base_delay=10.0), http)
            task = asyncio.ensure_future(pipe.execute(RequestSpec("GET", "/users")))
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

    @pytest.mark.asyncio
    @respx.mock
    async def test_network_error_exhausted(self, config):
        route = respx.get(f"{BASE_URL}/users").mock(side_effect=httpx.ConnectError("refused"))

        async def no_sleep(delay: float) -> None:
            return None

        async with httpx.AsyncClient() as http:
            with pytest.raises(NetworkError):
                await AsyncRequestPipeline(config, http, sleep=no_sleep).execute(
                    RequestSpec("GET", "/users")
                )

        assert route.call_count == 4
