"""Recurring jobs that keep the session snapshot in step with the server."""

from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from dateutil.tz import tzutc

from .session_manager import SessionOrchestrator

logger = logging.getLogger(__name__)

# Only show apscheduler warnings and errors
logging.getLogger("apscheduler").setLevel(logging.WARNING)

TICK_JOB_ID = "session_elapsed_ticker"
POLL_JOB_ID = "session_status_poller"
INITIAL_POLL_JOB_ID = "session_initial_status_poll"


class ReconciliationLoop:
    """Runs the 1 s elapsed-time ticker and the 10 s status poller.

    Both jobs exist only while the session is live. The orchestrator calls
    :meth:`schedule` and :meth:`cancel` from its merge when ``is_live``
    flips; each job also checks ``armed`` when it fires, so nothing runs
    after :meth:`cancel` returns.
    """

    def __init__(self, orchestrator: SessionOrchestrator, scheduler: Optional[AsyncIOScheduler] = None):
        self.orchestrator = orchestrator
        self.scheduler = scheduler or AsyncIOScheduler(timezone=tzutc())
        self.settings = orchestrator.config.session
        self.armed = False
        self.running = False
        orchestrator.timers = self

    def start(self) -> None:
        """Start the scheduler and poll once right away, live or not."""
        if self.running:
            logger.warning("Reconciliation loop already started")
            return
        self.scheduler.start()
        self.running = True
        self.scheduler.add_job(
            self.orchestrator.refresh_stream_status,
            id=INITIAL_POLL_JOB_ID,
            name="Initial stream status poll",
            replace_existing=True,
        )
        if self.orchestrator.snapshot.is_live:
            self.schedule()
        logger.info("Reconciliation loop started")

    def schedule(self) -> None:
        self.armed = True
        if not self.running:
            # Jobs get added by start().
            return
        self.scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=self.settings.tick_interval),
            id=TICK_JOB_ID,
            name="Update session uptime",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self.scheduler.add_job(
            self._poll,
            trigger=IntervalTrigger(seconds=self.settings.poll_interval),
            id=POLL_JOB_ID,
            name="Poll stream status",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        logger.debug("Session timers scheduled")

    def cancel(self) -> None:
        self.armed = False
        if not self.running:
            return
        for job_id in (TICK_JOB_ID, POLL_JOB_ID):
            if self.scheduler.get_job(job_id) is not None:
                self.scheduler.remove_job(job_id)
        logger.debug("Session timers cancelled")

    def is_scheduled(self) -> bool:
        return self.running and any(
            self.scheduler.get_job(job_id) is not None for job_id in (TICK_JOB_ID, POLL_JOB_ID)
        )

    async def _tick(self) -> None:
        # A coroutine so the executor runs it on the event loop, not a thread.
        if self.armed:
            self.orchestrator.tick_elapsed()

    async def _poll(self) -> None:
        if self.armed:
            await self.orchestrator.refresh_stream_status()

    def dispose(self) -> None:
        self.cancel()
        if self.running:
            self.scheduler.shutdown(wait=False)
            self.running = False
            logger.info("Reconciliation loop stopped")
