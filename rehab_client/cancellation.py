"""
Cancellation tokens shared between a caller and an in-flight request.

A token can be fired from any thread. Sync code blocks on ``wait``; async
code awaits ``wait_async`` which resolves on the running loop.
"""

import asyncio
import threading
from typing import Callable, List, Optional


class CancellationToken:
    """One-shot cancellation signal."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: Optional[str] = None) -> None:
        """Fire the token. Subsequent calls are no-ops."""
        with self._lock:
            if self._event.is_set():
                return
            self.reason = reason
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Run ``callback`` when the token fires (immediately if it already has).

        Returns a function that unregisters the callback.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._remove_callback(callback)
        callback()
        return lambda: None

    def _remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or ``timeout`` elapses. True if cancelled."""
        return self._event.wait(timeout)

    async def wait_async(self) -> None:
        """Suspend until the token fires."""
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def _resolve() -> None:
            if not future.done():
                future.set_result(None)

        remove = self.add_callback(lambda: loop.call_soon_threadsafe(_resolve))
        try:
            await future
        finally:
            remove()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
