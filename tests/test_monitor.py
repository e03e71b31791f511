"""
Tests for periodic polling (Poller and RehabAsyncClient.watch_program).
"""

import asyncio

import httpx
import pytest
import respx

from rehab_client import CancellationToken, Envelope, Poller, RehabAsyncClient, create_config
from rehab_client.errors import NotFoundError, RequestCancelledError, ServerError


BASE_URL = "https://api.rehabplatform.io/v1"


class TestPoller:
    """Tests for the Poller loop."""

    def test_interval_must_be_positive(self):
        async def fetch(token):
            return Envelope.ok(None)

        with pytest.raises(ValueError):
            Poller(fetch, 0, lambda e: None)

    @pytest.mark.asyncio
    async def test_max_ticks(self):
        calls = []

        async def fetch(token: CancellationToken):
            calls.append(token)
            return Envelope.ok(len(calls))

        results = []
        poller = Poller(fetch, 0.01, lambda e: results.append(e.data), max_ticks=3)
        await poller.run()

        assert results == [1, 2, 3]
        assert poller.ticks == 3
        assert all(t is poller.token for t in calls)

    @pytest.mark.asyncio
    async def test_stop(self):
        results = []

        async def fetch(token):
            return Envelope.ok("snapshot")

        poller = Poller(fetch, 0.01, results.append)
        poller.start()
        await asyncio.sleep(0.05)
        await poller.stop()

        assert not poller.running
        assert poller.token.cancelled
        assert len(results) >= 1

    @pytest.mark.asyncio
    async def test_async_callbacks_awaited(self):
        seen = []

        async def fetch(token):
            return Envelope.ok("x")

        async def on_result(envelope):
            await asyncio.sleep(0)
            seen.append(envelope.data)

        await Poller(fetch, 0.01, on_result, max_ticks=2).run()

        assert seen == ["x", "x"]

    @pytest.mark.asyncio
    async def test_error_without_handler_stops(self):
        async def fetch(token):
            raise NotFoundError("gone", status_code=404)

        poller = Poller(fetch, 0.01, lambda e: None)
        with pytest.raises(NotFoundError):
            await poller.run()

        assert poller.ticks == 1

    @pytest.mark.asyncio
    async def test_error_handler_keeps_polling(self):
        outcomes = iter([ServerError("down"), Envelope.ok("up")])

        async def fetch(token):
            outcome = next(outcomes)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        errors, results = [], []
        await Poller(fetch, 0.01, results.append, on_error=errors.append, max_ticks=2).run()

        assert [e.kind.value for e in errors] == ["ServerError"]
        assert [r.data for r in results] == ["up"]

    @pytest.mark.asyncio
    async def test_cancelled_fetch_ends_loop(self):
        async def fetch(token):
            raise RequestCancelledError()

        poller = Poller(fetch, 0.01, lambda e: None)
        await poller.run()

        assert poller.ticks == 0


class TestWatchProgram:
    """Tests for RehabAsyncClient.watch_program."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_watch_program(self):
        snapshots = iter([0.25, 0.5, 0.75, 1.0, 1.0, 1.0, 1.0, 1.0])

        def program_snapshot(request: httpx.Request) -> httpx.Response:
            data = {"id": "prog_1", "name": "Knee", "progress": next(snapshots, 1.0)}
            return httpx.Response(200, json={"data": data})

        route = respx.get(f"{BASE_URL}/programs/prog_1").mock(side_effect=program_snapshot)
        updates = []
        done = asyncio.Event()

        def on_update(envelope):
            updates.append(envelope.data.progress)
            if len(updates) == 2:
                done.set()

        async with RehabAsyncClient(create_config("key_123")) as client:
            poller = client.watch_program("prog_1", 0.01, on_update)
            await asyncio.wait_for(done.wait(), timeout=5)
            await poller.stop()

        assert updates[:2] == [0.25, 0.5]
        assert route.call_count >= 2
