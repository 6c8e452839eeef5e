from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from pytrout.scheduler import HISTORICAL_JOB, LATEST_JOB, AsyncioScheduler, Job, schedule_sync


@dataclass
class RecordingScheduler:
    repeating: dict[str, float] = field(default_factory=dict)
    once: list[str] = field(default_factory=list)

    def schedule_repeating(self, name: str, interval: float, fn: Job) -> None:
        self.repeating[name] = interval

    def schedule_once(self, name: str, fn: Job) -> None:
        self.once.append(name)


class _Engine:
    async def sync_latest(self) -> Any:
        return None

    async def sync_historical(self) -> Any:
        return None


async def _until(predicate: Any) -> None:
    for _ in range(300):
        if predicate():
            return
        await asyncio.sleep(0.01)


def test_schedule_sync_registers_periodic_and_one_shot_jobs() -> None:
    scheduler = RecordingScheduler()

    schedule_sync(_Engine(), scheduler, 3600)  # type: ignore[arg-type]

    assert scheduler.repeating == {LATEST_JOB: 3600}
    assert scheduler.once == [HISTORICAL_JOB]


def test_jobs_registered_before_start_are_listed() -> None:
    scheduler = AsyncioScheduler()

    schedule_sync(_Engine(), scheduler, 3600)  # type: ignore[arg-type]
    schedule_sync(_Engine(), scheduler, 60)  # type: ignore[arg-type]

    assert scheduler.job_names == [HISTORICAL_JOB, LATEST_JOB]
    assert not scheduler.running


@pytest.mark.asyncio
async def test_one_shot_job_runs_once() -> None:
    scheduler = AsyncioScheduler()
    runs: list[int] = []

    async def job() -> None:
        runs.append(1)

    scheduler.schedule_once("job", job)
    scheduler.schedule_once("job", job)
    scheduler.start()
    try:
        await _until(lambda: runs)
        await asyncio.sleep(0.05)
    finally:
        scheduler.shutdown()

    assert runs == [1]
    assert scheduler.job_names == []


@pytest.mark.asyncio
async def test_repeating_job_survives_failures() -> None:
    scheduler = AsyncioScheduler()
    calls: list[int] = []

    async def flaky() -> None:
        calls.append(1)
        raise RuntimeError("transient")

    scheduler.start()
    try:
        scheduler.schedule_repeating("flaky", 0.05, flaky)
        await _until(lambda: len(calls) >= 3)
        assert scheduler.job_names == ["flaky"]
    finally:
        scheduler.shutdown()

    assert len(calls) >= 3
    assert not scheduler.running


@pytest.mark.asyncio
async def test_run_forever_stops_scheduler_when_cancelled() -> None:
    scheduler = AsyncioScheduler()
    runs: list[int] = []

    async def job() -> None:
        runs.append(1)

    scheduler.schedule_once("job", job)
    runner = asyncio.create_task(scheduler.run_forever())
    await _until(lambda: runs)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert runs == [1]
    assert not scheduler.running


def test_repeating_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        AsyncioScheduler().schedule_repeating("bad", 0, _Engine().sync_latest)
