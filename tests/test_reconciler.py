"""
Tests for the reconciliation loop's job lifecycle.
"""

import asyncio

import pytest
import pytest_asyncio

from stream_session.config import ControllerConfig
from stream_session.context import StreamSessionContext
from stream_session.models import RemoteHealth
from stream_session.reconciler import INITIAL_POLL_JOB_ID, POLL_JOB_ID, TICK_JOB_ID, ReconciliationLoop


async def wait_for(condition, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest_asyncio.fixture
async def reconciler(orchestrator, fake_api):
    loop = ReconciliationLoop(orchestrator)
    yield loop
    if loop.running:
        # Let the one-off startup poll finish before the scheduler goes away.
        await wait_for(
            lambda: loop.scheduler.get_job(INITIAL_POLL_JOB_ID) is None and fake_api.status_calls >= 1
        )
        await asyncio.sleep(0.01)
    loop.dispose()


@pytest.mark.asyncio
class TestReconciliationLoop:
    """Test cases for scheduling and cancelling the session timers."""

    async def test_registers_with_orchestrator(self, orchestrator, reconciler):
        assert orchestrator.timers is reconciler

    async def test_initial_poll_runs_when_idle(self, reconciler, fake_api):
        reconciler.start()

        await wait_for(lambda: fake_api.status_calls == 1)

        assert reconciler.is_scheduled() is False

    async def test_jobs_follow_session_lifecycle(self, orchestrator, reconciler):
        reconciler.start()

        await orchestrator.start_playlist_session(7)
        assert reconciler.scheduler.get_job(TICK_JOB_ID) is not None
        assert reconciler.scheduler.get_job(POLL_JOB_ID) is not None

        await orchestrator.stop_stream()
        assert reconciler.is_scheduled() is False
        assert reconciler.armed is False
        assert orchestrator.snapshot.start_time is None

    async def test_poll_reporting_not_live_cancels_jobs(self, orchestrator, reconciler, fake_api):
        reconciler.start()
        await wait_for(lambda: fake_api.status_calls == 1)
        await orchestrator.start_playlist_session(7)
        assert reconciler.is_scheduled() is True

        await reconciler._poll()

        assert orchestrator.snapshot.is_live is False
        assert reconciler.is_scheduled() is False

    async def test_stop_during_poll_keeps_timers_cancelled(self, orchestrator, reconciler, fake_api):
        reconciler.start()
        await wait_for(lambda: fake_api.status_calls == 1)
        await orchestrator.start_playlist_session(7)
        fake_api.status_gate = asyncio.Event()
        fake_api.status_result = {
            "success": True,
            "is_live": True,
            "transmission": {"stats": {"viewers": 1, "bitrate": 2500, "uptime": "00:00:10"}},
        }
        poll = asyncio.create_task(reconciler._poll())
        await asyncio.sleep(0)

        await orchestrator.stop_stream()
        fake_api.status_gate.set()
        await poll

        assert orchestrator.snapshot.is_live is False
        assert reconciler.armed is False
        assert reconciler.is_scheduled() is False

    async def test_live_before_start_schedules_on_start(self, orchestrator, reconciler):
        await orchestrator.start_playlist_session(7)
        assert reconciler.armed is True
        assert reconciler.is_scheduled() is False

        reconciler.start()

        assert reconciler.is_scheduled() is True

    async def test_tick_updates_uptime(self, orchestrator, reconciler, clock):
        await orchestrator.start_playlist_session(7)
        clock.advance(42)

        await reconciler._tick()

        assert orchestrator.snapshot.uptime == "00:00:42"
        assert orchestrator.snapshot.duration_seconds == 42

    async def test_no_effect_after_cancel(self, orchestrator, reconciler, fake_api, clock):
        await orchestrator.start_playlist_session(7)
        reconciler.cancel()
        clock.advance(30)
        calls = fake_api.status_calls

        await reconciler._tick()
        await reconciler._poll()

        assert orchestrator.snapshot.uptime == "00:00:00"
        assert fake_api.status_calls == calls

    async def test_poll_error_is_absorbed(self, orchestrator, reconciler, fake_api):
        await orchestrator.start_playlist_session(7)
        fake_api.status_result = ConnectionError("down")

        await reconciler._poll()

        assert orchestrator.snapshot.remote_health is RemoteHealth.ERROR
        assert orchestrator.snapshot.is_live is True

    async def test_dispose_stops_scheduler(self, orchestrator, reconciler):
        reconciler.start()
        await orchestrator.start_playlist_session(7)

        reconciler.dispose()

        assert reconciler.running is False
        assert reconciler.armed is False
        assert reconciler.is_scheduled() is False


@pytest.mark.asyncio
async def test_context_start_and_dispose(fake_api, integration):
    context = StreamSessionContext(config=ControllerConfig(), api=fake_api, integration=integration)

    await context.start()
    await wait_for(lambda: fake_api.status_calls == 1)
    context.dispose()

    assert context.reconciler.running is False
    assert fake_api.closed is True
