"""Fetch-and-merge orchestration.

:class:`SyncEngine` decides which date range to pull from the remote
source, merges the result into :class:`~pytrout.store.StockingStore` and
hands newly inserted records to the subscription matcher.

The store's own ``MAX(date)`` / ``MIN(date)`` act as the sync cursor; no
separate cursor is persisted.
"""

from __future__ import annotations

import asyncio
import calendar
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import date, timedelta

from pytrout.config import TroutConfig
from pytrout.exceptions import TroutTransportError
from pytrout.matcher import SubscriptionMatcher
from pytrout.models.results import SyncKind, SyncResult, SyncStatus
from pytrout.models.stocking import StockingRecord
from pytrout.notify import NotificationDispatcher
from pytrout.preferences import PreferenceStore
from pytrout.source import RemoteSource
from pytrout.store import StockingStore

_logger = logging.getLogger(__name__)

#: Days re-fetched before the latest known date to pick up late corrections.
LATEST_OVERLAP = timedelta(days=1)


def minus_months(day: date, months: int) -> date:
    """Calendar month subtraction, clamping to the last day of the target month."""
    total = day.year * 12 + (day.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


class SyncEngine:
    """Incremental and historical sync against one remote source.

    Each sync kind is single-flight: a call made while the same kind is
    already running awaits and returns the in-flight result instead of
    starting a second fetch. Different kinds may fetch concurrently but
    their merge-then-notify steps are serialized.

    Parameters
    ----------
    store : StockingStore
        Destination of merged records.
    source : RemoteSource
        Remote fetch collaborator.
    preferences : PreferenceStore
        Holds the historical-backfill flag and subscriptions.
    config : TroutConfig or None
        Supplies the lookback window and historical start date.
    matcher : SubscriptionMatcher or None
        Defaults to a plain :class:`SubscriptionMatcher`.
    dispatcher : NotificationDispatcher or None
        Receives matches for newly inserted records. ``None`` skips
        notification entirely.
    today : callable
        Clock returning the current local date.
    """

    def __init__(
        self,
        store: StockingStore,
        source: RemoteSource,
        preferences: PreferenceStore,
        *,
        config: TroutConfig | None = None,
        matcher: SubscriptionMatcher | None = None,
        dispatcher: NotificationDispatcher | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._store = store
        self._source = source
        self._preferences = preferences
        self._config = config or TroutConfig()
        self._matcher = matcher or SubscriptionMatcher()
        self._dispatcher = dispatcher
        self._today = today
        self._inflight: dict[SyncKind, asyncio.Task[SyncResult]] = {}
        self._merge_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def sync_latest(self) -> SyncResult:
        """Fetch everything since the latest stored date and merge it.

        Starts one day before the newest stored record so late corrections
        to that day are picked up; duplicates are absorbed by the store.
        An empty store starts ``default_lookback_months`` before today.
        """
        return await self._single_flight(SyncKind.LATEST, self._run_latest)

    async def sync_historical(self) -> SyncResult:
        """One-time backfill from the historical start date to the earliest stored date.

        A no-op once the completion flag is set. The flag is written only
        after a successful merge, so a failed or interrupted backfill is
        retried on the next call.
        """
        return await self._single_flight(SyncKind.HISTORICAL, self._run_historical)

    def is_running(self, kind: SyncKind) -> bool:
        task = self._inflight.get(kind)
        return task is not None and not task.done()

    # ------------------------------------------------------------------
    # Bounds
    # ------------------------------------------------------------------

    async def latest_bounds(self) -> tuple[date, date | None]:
        """Start and end of the next latest-sync. ``None`` end is open-ended."""
        latest = await self._store.latest_date()
        if latest is not None:
            return latest - LATEST_OVERLAP, None
        return minus_months(self._today(), self._config.default_lookback_months), None

    async def historical_bounds(self) -> tuple[date, date]:
        earliest = await self._store.earliest_date()
        end = earliest if earliest is not None else self._today()
        return self._config.historical_start_date, end

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _single_flight(self, kind: SyncKind, fn: Callable[[], Awaitable[SyncResult]]) -> SyncResult:
        task = self._inflight.get(kind)
        if task is None or task.done():
            task = asyncio.ensure_future(fn())
            self._inflight[kind] = task
            task.add_done_callback(lambda done, kind=kind: self._forget(kind, done))
        else:
            _logger.debug("%s sync already running; joining it", kind.value)
        return await asyncio.shield(task)

    def _forget(self, kind: SyncKind, task: asyncio.Task[SyncResult]) -> None:
        if self._inflight.get(kind) is task:
            del self._inflight[kind]

    async def _fetch(
        self,
        kind: SyncKind,
        start: date,
        end: date | None,
    ) -> list[StockingRecord] | SyncResult:
        _logger.debug("%s sync fetching %s..%s", kind.value, start, end or "latest")
        try:
            return await self._source.fetch(start, end)
        except TroutTransportError as exc:
            _logger.warning("%s sync failed for %s..%s: %s", kind.value, start, end or "latest", exc)
            return SyncResult(kind=kind, status=SyncStatus.FAILURE, start=start, end=end, error=exc)

    async def _notify(self, inserted: Sequence[StockingRecord]) -> None:
        if self._dispatcher is None or not inserted:
            return
        subscriptions = await self._preferences.enabled_subscriptions()
        matches = self._matcher.match(inserted, subscriptions)
        if not matches:
            return
        try:
            await self._dispatcher.dispatch(matches)
        except Exception:
            _logger.warning("Notification dispatch failed for %d matches", len(matches), exc_info=True)

    async def _run_latest(self) -> SyncResult:
        start, end = await self.latest_bounds()
        fetched = await self._fetch(SyncKind.LATEST, start, end)
        if isinstance(fetched, SyncResult):
            return fetched

        async with self._merge_lock:
            inserted = await self._store.insert_ignoring_duplicates(fetched)
            await self._notify(inserted)

        _logger.info("Latest sync from %s: %d fetched, %d new", start, len(fetched), len(inserted))
        return SyncResult(
            kind=SyncKind.LATEST,
            status=SyncStatus.SUCCESS,
            start=start,
            end=end,
            inserted=tuple(inserted),
        )

    async def _run_historical(self) -> SyncResult:
        if await self._preferences.historical_backfill_complete():
            _logger.debug("Historical backfill already complete")
            return SyncResult(kind=SyncKind.HISTORICAL, status=SyncStatus.NOOP)

        start, end = await self.historical_bounds()
        fetched = await self._fetch(SyncKind.HISTORICAL, start, end)
        if isinstance(fetched, SyncResult):
            return fetched

        async with self._merge_lock:
            inserted = await self._store.insert_ignoring_duplicates(fetched)
        await self._preferences.mark_historical_backfill_complete()

        _logger.info("Historical sync %s..%s: %d fetched, %d new", start, end, len(fetched), len(inserted))
        return SyncResult(
            kind=SyncKind.HISTORICAL,
            status=SyncStatus.SUCCESS,
            start=start,
            end=end,
            inserted=tuple(inserted),
        )
