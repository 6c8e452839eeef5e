"""Scheduling boundary for periodic and one-shot syncs.

Sync code only needs the :class:`Scheduler` protocol. The production
implementation hands jobs to APScheduler's ``AsyncIOScheduler`` on the
running event loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, Protocol

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from pytrout.sync import SyncEngine

_logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[Any]]

LATEST_JOB = "sync-latest"
HISTORICAL_JOB = "sync-historical"


class Scheduler(Protocol):
    def schedule_repeating(self, name: str, interval: float, fn: Job) -> None: ...

    def schedule_once(self, name: str, fn: Job) -> None: ...


async def _run_job(name: str, fn: Job) -> None:
    try:
        result = await fn()
    except Exception:
        _logger.exception("Job %s failed", name)
        return
    _logger.debug("Job %s finished: %r", name, result)


class AsyncioScheduler:
    """APScheduler-backed :class:`Scheduler`.

    Repeating jobs fire immediately and then every ``interval`` seconds;
    one-shot jobs fire as soon as the scheduler runs. A job that raises is
    logged and a repeating job keeps its schedule. Overlapping runs of the
    same job are skipped, and scheduling a name that is already registered
    is ignored.
    """

    def __init__(self, scheduler: AsyncIOScheduler | None = None) -> None:
        self._scheduler = scheduler or AsyncIOScheduler(timezone="UTC")

    @property
    def job_names(self) -> list[str]:
        return sorted(job.id for job in self._scheduler.get_jobs())

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def schedule_repeating(self, name: str, interval: float, fn: Job) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if self._is_registered(name):
            return
        self._scheduler.add_job(
            _run_job,
            "interval",
            seconds=interval,
            args=(name, fn),
            id=name,
            next_run_time=datetime.now(UTC),
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
        )

    def schedule_once(self, name: str, fn: Job) -> None:
        if self._is_registered(name):
            return
        self._scheduler.add_job(
            _run_job,
            "date",
            run_date=datetime.now(UTC),
            args=(name, fn),
            id=name,
            misfire_grace_time=None,
        )

    def _is_registered(self, name: str) -> bool:
        if self._scheduler.get_job(name) is None:
            return False
        _logger.debug("Job %s already scheduled", name)
        return True

    def start(self) -> None:
        """Start dispatching jobs. Must be called from the running event loop."""
        if not self._scheduler.running:
            self._scheduler.start()

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    async def run_forever(self) -> None:
        """Run the scheduler until this coroutine is cancelled."""
        self.start()
        try:
            await asyncio.Event().wait()
        finally:
            self.shutdown()


def schedule_sync(engine: SyncEngine, scheduler: Scheduler, interval: float) -> None:
    """Register the periodic latest-sync and the one-shot historical backfill."""
    scheduler.schedule_repeating(LATEST_JOB, interval, engine.sync_latest)
    scheduler.schedule_once(HISTORICAL_JOB, engine.sync_historical)
