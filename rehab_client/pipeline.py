"""
Rehab Platform SDK Request Pipeline

Runs one logical API call: build the request, send it, map the response, and
retry retryable failures per the RetryPolicy. ``RequestPipeline`` drives an
``httpx.Client``; ``AsyncRequestPipeline`` drives an ``httpx.AsyncClient`` and
honours cancellation while waiting on I/O or backoff.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from ._version import __version__
from .cancellation import CancellationToken
from .config import RehabConfig
from .errors import NetworkError, RehabError, RequestCancelledError, UnknownError
from .mapper import map_response
from .retry import RetryPolicy
from .types import Envelope, RequestSpec, RetryDecision


logger = logging.getLogger("rehab_client")

USER_AGENT = f"rehab-client-python/{__version__}"

TokenProvider = Callable[[], Optional[str]]


class _PipelineBase:
    """Request building and outcome handling shared by both pipelines."""

    def __init__(
        self,
        config: RehabConfig,
        token_provider: Optional[TokenProvider] = None,
        policy: Optional[RetryPolicy] = None,
    ) -> None:
        self._config = config
        self._base_url = config.resolved_base_url
        self._token_provider = token_provider
        self.policy = policy or RetryPolicy.from_config(config)

    def _log(self, message: str, *args: Any) -> None:
        if self._config.enable_logging:
            logger.debug(f"[Rehab] {message}", *args)

    def build_headers(self) -> Dict[str, str]:
        """Standard headers for every attempt; the bearer token is read fresh."""
        headers: Dict[str, str] = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "X-API-Key": self._config.api_key,
        }
        headers.update(self._config.headers or {})
        token = self._token_provider() if self._token_provider else None
        headers["Authorization"] = f"Bearer {token or self._config.api_key}"
        return headers

    def _url(self, spec: RequestSpec) -> str:
        path = spec.path if spec.path.startswith("/") else f"/{spec.path}"
        return f"{self._base_url}{path}"

    def _timeout(self, spec: RequestSpec) -> float:
        return spec.timeout if spec.timeout is not None else self._config.timeout

    def _request_kwargs(self, spec: RequestSpec) -> Dict[str, Any]:
        return {
            "method": spec.method.upper(),
            "url": self._url(spec),
            "params": spec.query_params(),
            "headers": self.build_headers(),
            "json": spec.json_body(),
            "timeout": self._timeout(spec),
        }

    def _transport_error(self, exc: Exception, spec: RequestSpec) -> NetworkError:
        if isinstance(exc, httpx.TimeoutException):
            error = NetworkError(
                "Request timeout", code="TIMEOUT", details={"timeout": self._timeout(spec)}
            )
        else:
            error = NetworkError(str(exc) or exc.__class__.__name__)
        error.__cause__ = exc
        return error

    def _cancelled(self, spec: RequestSpec) -> RequestCancelledError:
        token = spec.cancellation
        reason = token.reason if token is not None else None
        return RequestCancelledError(
            f"{spec.method.upper()} {spec.path} was cancelled" + (f": {reason}" if reason else "")
        )

    def _check_cancelled(self, spec: RequestSpec) -> None:
        if spec.cancellation is not None and spec.cancellation.cancelled:
            raise self._cancelled(spec)

    def _decide(self, error: RehabError, attempt: int, spec: RequestSpec) -> RetryDecision:
        decision = self.policy.decide(attempt, error.kind, error.retry_after)
        if decision.should_retry:
            self._log(
                f"{spec.method.upper()} {spec.path} failed with {error.kind.value} "
                f"(attempt {attempt + 1}/{self.policy.max_attempts}), retrying in {decision.delay:.2f}s"
            )
        else:
            self._log(
                f"{spec.method.upper()} {spec.path} failed with {error.kind.value} "
                f"after {attempt + 1} attempt(s)"
            )
        return decision

    def _finish(self, envelope: Envelope[Any], spec: RequestSpec) -> Envelope[Any]:
        if spec.parser is None:
            return envelope
        try:
            return envelope.map(spec.parser)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise UnknownError(
                f"Malformed response payload: {e}",
                code="INVALID_RESPONSE",
                status_code=envelope.status_code,
            ) from e


class RequestPipeline(_PipelineBase):
    """Synchronous pipeline over ``httpx.Client``."""

    def __init__(
        self,
        config: RehabConfig,
        http_client: httpx.Client,
        token_provider: Optional[TokenProvider] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        super().__init__(config, token_provider, policy)
        self._http = http_client
        self._sleep = sleep

    def execute(self, spec: RequestSpec) -> Envelope[Any]:
        """Run ``spec`` to a successful Envelope or raise a RehabError."""
        attempt = 0
        while True:
            self._check_cancelled(spec)
            self._log(f"{spec.method.upper()} {spec.path} (attempt {attempt + 1})")

            result: Any
            try:
                response = self._http.request(**self._request_kwargs(spec))
            except httpx.RequestError as e:
                result = self._transport_error(e, spec)
            else:
                # The call cannot be interrupted mid-flight; honour the token on return
                self._check_cancelled(spec)
                result = map_response(response.status_code, response.headers, response.content)

            if isinstance(result, Envelope):
                return self._finish(result, spec)

            decision = self._decide(result, attempt, spec)
            if not decision.should_retry:
                raise result
            self._wait(decision.delay, spec.cancellation, spec)
            attempt += 1

    def _wait(self, delay: float, token: Optional[CancellationToken], spec: RequestSpec) -> None:
        if self._sleep is not None:
            self._sleep(delay)
        elif token is not None:
            if token.wait(delay):
                raise self._cancelled(spec)
        else:
            time.sleep(delay)
        self._check_cancelled(spec)


class AsyncRequestPipeline(_PipelineBase):
    """Asynchronous pipeline over ``httpx.AsyncClient``."""

    def __init__(
        self,
        config: RehabConfig,
        http_client: httpx.AsyncClient,
        token_provider: Optional[TokenProvider] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        super().__init__(config, token_provider, policy)
        self._http = http_client
        self._sleep = sleep or asyncio.sleep

    async def execute(self, spec: RequestSpec) -> Envelope[Any]:
        """Run ``spec`` to a successful Envelope or raise a RehabError."""
        attempt = 0
        while True:
            self._check_cancelled(spec)
            self._log(f"{spec.method.upper()} {spec.path} (attempt {attempt + 1})")

            result: Any
            kwargs = self._request_kwargs(spec)
            try:
                response = await self._race(lambda: self._http.request(**kwargs), spec)
            except httpx.RequestError as e:
                result = self._transport_error(e, spec)
            else:
                result = map_response(response.status_code, response.headers, response.content)

            if isinstance(result, Envelope):
                return self._finish(result, spec)

            decision = self._decide(result, attempt, spec)
            if not decision.should_retry:
                raise result
            await self._race(lambda: self._sleep(decision.delay), spec)
            attempt += 1

    async def _race(self, start: Callable[[], Awaitable[Any]], spec: RequestSpec) -> Any:
        """Await ``start()`` unless the call's cancellation token fires first."""
        token = spec.cancellation
        if token is None:
            return await start()
        self._check_cancelled(spec)

        task = asyncio.ensure_future(start())
        waiter = asyncio.ensure_future(token.wait_async())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()

        if task in done:
            return task.result()
        await asyncio.wait({task})
        raise self._cancelled(spec)
