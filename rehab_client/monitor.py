"""
Periodic polling on top of the async client.

A Poller issues one call per tick and owns a CancellationToken that is
independent of any individual caller's token.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional

from .cancellation import CancellationToken
from .errors import RehabError, RequestCancelledError
from .types import Envelope


logger = logging.getLogger("rehab_client")

FetchFn = Callable[[CancellationToken], Awaitable[Envelope[Any]]]


async def _maybe_await(value: Any) -> None:
    if inspect.isawaitable(value):
        await value


class Poller:
    """
    Call ``fetch`` every ``interval`` seconds until stopped.

    Args:
        fetch: Coroutine function receiving the poller's cancellation token
        interval: Seconds between the end of one call and the start of the next
        on_result: Called (or awaited) with every successful envelope
        on_error: Called with RehabErrors; without it the first error stops
            the poller and is raised from ``run``
        max_ticks: Stop after this many calls
    """

    def __init__(
        self,
        fetch: FetchFn,
        interval: float,
        on_result: Callable[[Envelope[Any]], Any],
        on_error: Optional[Callable[[RehabError], Any]] = None,
        max_ticks: Optional[int] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._fetch = fetch
        self._interval = interval
        self._on_result = on_result
        self._on_error = on_error
        self._max_ticks = max_ticks
        self._task: Optional["asyncio.Task[None]"] = None
        self.token = CancellationToken()
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "asyncio.Task[None]":
        """Schedule ``run`` on the running loop (idempotent)."""
        if self._task is None:
            self._task = asyncio.ensure_future(self.run())
        return self._task

    async def run(self) -> None:
        while not self.token.cancelled:
            try:
                envelope = await self._fetch(self.token)
            except RequestCancelledError:
                break
            except RehabError as e:
                self.ticks += 1
                if self._on_error is None:
                    raise
                logger.debug(f"[Rehab] poll tick {self.ticks} failed: {e.kind.value}")
                await _maybe_await(self._on_error(e))
            else:
                self.ticks += 1
                await _maybe_await(self._on_result(envelope))

            if self._max_ticks is not None and self.ticks >= self._max_ticks:
                break
            try:
                await asyncio.wait_for(self.token.wait_async(), timeout=self._interval)
            except asyncio.TimeoutError:
                continue

    async def stop(self) -> None:
        """Cancel the poller's token and wait for the loop to finish."""
        self.token.cancel("poller stopped")
        if self._task is not None:
            await self._task
