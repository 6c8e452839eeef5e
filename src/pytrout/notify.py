"""Notification dispatch boundary."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from pytrout.models.results import StockingMatch

_logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    """Emits user-visible alerts for matched stockings."""

    async def dispatch(self, matches: Sequence[StockingMatch]) -> None:
        ...


def format_match(match: StockingMatch) -> str:
    record = match.record
    reasons = ", ".join(f"{sub.kind.value} {sub.value}" for sub in match.subscriptions)
    species = ", ".join(record.species) or "trout"
    return f"{record.waterbody} ({record.county}) stocked {record.date:%b %d, %Y} with {species} [{reasons}]"


class LoggingDispatcher:
    """Dispatcher that writes each alert to the log.

    Used by the command-line runner when no other channel is configured.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _logger

    async def dispatch(self, matches: Sequence[StockingMatch]) -> None:
        for match in matches:
            self._logger.info("New stocking: %s", format_match(match))
