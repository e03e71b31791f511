"""
Rehab Platform SDK Client

Main client classes for the Rehab Platform API. Provides synchronous and
asynchronous clients with retrying request pipelines, session token storage
and single-flight token refresh.
"""

import asyncio
import logging
import threading
import time
from typing import Any, Callable, Optional

import httpx

from .config import RehabConfig, create_config, validate_config
from .errors import RehabError, TokenRefreshError
from .models import AuthResult, TokenResult
from .monitor import Poller
from .pipeline import AsyncRequestPipeline, RequestPipeline
from .resources import (
    AsyncAuthResource,
    AsyncClientsResource,
    AsyncProgramsResource,
    AsyncUsersResource,
    AuthResource,
    ClientsResource,
    ProgramsResource,
    UsersResource,
)
from .retry import RetryPolicy
from .storage import MemoryStorage
from .types import Envelope, RequestSpec, TokenStorage


logger = logging.getLogger("rehab_client")


class _ClientBase:
    """Configuration and session state shared by both clients."""

    def __init__(self, config: RehabConfig) -> None:
        validate_config(config)
        self._config = config
        self._storage: TokenStorage = config.storage if config.storage else MemoryStorage()

    @property
    def config(self) -> RehabConfig:
        return self._config

    @property
    def base_url(self) -> str:
        return self._config.resolved_base_url

    def _log(self, message: str, *args: Any) -> None:
        """Log debug message."""
        if self._config.enable_logging:
            logger.debug(f"[Rehab] {message}", *args)

    def _bearer_token(self) -> Optional[str]:
        return self._storage.get_access_token()

    def _store_tokens(self, tokens: TokenResult) -> None:
        self._storage.set_tokens(tokens.access_token, tokens.refresh_token, tokens.expires_in)

    def _clear_session(self) -> None:
        self._storage.clear_tokens()

    def _should_refresh(self, spec: RequestSpec) -> bool:
        """True when the stored token is about to expire and can be refreshed."""
        if not self._config.auto_refresh or spec.skip_auto_refresh:
            return False
        expires_at = self._storage.get_expires_at()
        if not expires_at or not self._storage.get_refresh_token():
            return False
        return time.time() >= expires_at - self._config.refresh_threshold

    def _refresh_failed(self, error: RehabError) -> TokenRefreshError:
        self._clear_session()
        refresh_error = TokenRefreshError(
            error.message,
            status_code=error.status_code,
            details={"original_error": error.code},
            request_id=error.request_id,
        )
        refresh_error.__cause__ = error
        return refresh_error

    def is_authenticated(self) -> bool:
        """Check if a non-expired access token is stored."""
        return self._storage.get_access_token() is not None


class RehabClient(_ClientBase):
    """
    Rehab Platform Client - Synchronous SDK entry point.

    Example:
        with RehabClient(create_config("key_123")) as client:
            page = client.clients.list(page=1, limit=20)
            for record in page.data:
                print(record.full_name)
    """

    def __init__(
        self,
        config: RehabConfig,
        http_client: Optional[httpx.Client] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: SDK configuration
            http_client: Shared ``httpx.Client``; the caller keeps ownership
            retry_policy: Overrides the policy derived from ``config``
            sleep: Backoff sleep function (tests)
        """
        super().__init__(config)
        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.Client(timeout=config.timeout)
        self._pipeline = RequestPipeline(
            config,
            self._http_client,
            token_provider=self._bearer_token,
            policy=retry_policy,
            sleep=sleep,
        )

        self._refresh_lock = threading.Lock()
        self._refresh_generation = 0
        self._last_refresh: Optional[Envelope[AuthResult]] = None

        self.auth = AuthResource(self)
        self.users = UsersResource(self)
        self.clients = ClientsResource(self)
        self.programs = ProgramsResource(self)

        self._log(f"RehabClient initialized (base_url={self.base_url})")

    def execute(self, spec: RequestSpec) -> Envelope[Any]:
        """Run an arbitrary request through the pipeline."""
        return self._send(spec)

    def _send(self, spec: RequestSpec) -> Envelope[Any]:
        # Read before the expiry check so a refresh finishing in between is seen
        generation = self._refresh_generation
        if self._should_refresh(spec):
            self._refresh_once(generation)
        return self._pipeline.execute(spec)

    def refresh_token(self) -> Envelope[AuthResult]:
        """
        Exchange the stored refresh token for a new session.

        Threads that arrive while a refresh is running wait for it and reuse
        its result instead of issuing their own.
        """
        return self._refresh_once(self._refresh_generation)

    def _refresh_once(self, generation: int) -> Envelope[AuthResult]:
        """Refresh unless another refresh completed after ``generation`` was read."""
        with self._refresh_lock:
            if self._refresh_generation != generation and self._last_refresh is not None:
                return self._last_refresh
            envelope = self._do_refresh_token()
            self._last_refresh = envelope
            self._refresh_generation += 1
            return envelope

    def _do_refresh_token(self) -> Envelope[AuthResult]:
        refresh_token = self._storage.get_refresh_token()
        if not refresh_token:
            raise TokenRefreshError("No refresh token available")
        self._log("Refreshing access token")
        try:
            envelope = self._pipeline.execute(self.auth._refresh_spec(refresh_token))
        except RehabError as e:
            raise self._refresh_failed(e)
        self._store_tokens(envelope.data.tokens)
        return envelope

    def close(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._owns_http_client:
            self._http_client.close()

    def __enter__(self) -> "RehabClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class RehabAsyncClient(_ClientBase):
    """
    Rehab Platform Async Client - Asynchronous SDK entry point.

    Many calls may be in flight at once; each keeps its own attempt counter
    and only token refresh is coordinated between them.
    """

    def __init__(
        self,
        config: RehabConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Optional[Callable[[float], Any]] = None,
    ) -> None:
        super().__init__(config)
        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=config.timeout)
        self._pipeline = AsyncRequestPipeline(
            config,
            self._http_client,
            token_provider=self._bearer_token,
            policy=retry_policy,
            sleep=sleep,
        )
        self._refresh_task: Optional["asyncio.Future[Envelope[AuthResult]]"] = None

        self.auth = AsyncAuthResource(self)
        self.users = AsyncUsersResource(self)
        self.clients = AsyncClientsResource(self)
        self.programs = AsyncProgramsResource(self)

        self._log(f"RehabAsyncClient initialized (base_url={self.base_url})")

    async def execute(self, spec: RequestSpec) -> Envelope[Any]:
        """Run an arbitrary request through the pipeline."""
        return await self._send(spec)

    async def _send(self, spec: RequestSpec) -> Envelope[Any]:
        if self._should_refresh(spec):
            await self.refresh_token()
        return await self._pipeline.execute(spec)

    async def refresh_token(self) -> Envelope[AuthResult]:
        """
        Exchange the stored refresh token for a new session.

        Concurrent callers share one in-flight refresh. A caller being
        cancelled does not cancel the shared refresh.
        """
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.ensure_future(self._do_refresh_token())
        return await asyncio.shield(self._refresh_task)

    async def _do_refresh_token(self) -> Envelope[AuthResult]:
        refresh_token = self._storage.get_refresh_token()
        if not refresh_token:
            raise TokenRefreshError("No refresh token available")
        self._log("Refreshing access token")
        try:
            envelope = await self._pipeline.execute(self.auth._refresh_spec(refresh_token))
        except RehabError as e:
            raise self._refresh_failed(e)
        self._store_tokens(envelope.data.tokens)
        return envelope

    def watch_program(
        self,
        program_id: str,
        interval: float,
        on_update: Callable[[Envelope[Any]], Any],
        on_error: Optional[Callable[[RehabError], Any]] = None,
    ) -> Poller:
        """
        Poll a program every ``interval`` seconds and report each snapshot.

        Must be called from a running event loop. Stop with ``await poller.stop()``.
        """
        poller = Poller(
            lambda token: self.programs.get(program_id, cancellation=token),
            interval,
            on_update,
            on_error,
        )
        poller.start()
        return poller

    async def close(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._owns_http_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "RehabAsyncClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


# =============================================================================
# Factory Functions
# =============================================================================

def create_rehab_client(config: Optional[RehabConfig] = None, **options: Any) -> RehabClient:
    """Create a synchronous client from a config or from named config fields."""
    return RehabClient(config if config is not None else create_config(**options))


def create_async_rehab_client(
    config: Optional[RehabConfig] = None, **options: Any
) -> RehabAsyncClient:
    """Create an asynchronous client from a config or from named config fields."""
    return RehabAsyncClient(config if config is not None else create_config(**options))
