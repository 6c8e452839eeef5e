"""Typed outcomes for sync operations and subscription matching."""

from __future__ import annotations

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from pytrout.models.stocking import StockingRecord
from pytrout.models.subscription import Subscription


class SyncKind(StrEnum):
    LATEST = "latest"
    HISTORICAL = "historical"


class SyncStatus(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"
    NOOP = "noop"


class SyncResult(BaseModel):
    """Outcome of one sync cycle.

    ``inserted`` holds only records that were newly persisted, each with
    its store-assigned id. On failure ``error`` carries the original
    exception raised by the remote source.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: SyncKind
    status: SyncStatus
    start: date | None = None
    end: date | None = None
    inserted: tuple[StockingRecord, ...] = ()
    error: BaseException | None = None

    @property
    def is_success(self) -> bool:
        """``True`` for success and no-op results."""
        return self.status != SyncStatus.FAILURE

    @property
    def inserted_count(self) -> int:
        return len(self.inserted)


class StockingMatch(BaseModel):
    """A newly inserted record and the subscriptions it matched."""

    model_config = ConfigDict(frozen=True)

    record: StockingRecord
    subscriptions: tuple[Subscription, ...]
