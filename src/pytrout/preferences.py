"""Durable flags and subscription sets.

Preferences live in one small JSON document. Every mutation is a locked
read-modify-write followed by an atomic file replace.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pytrout.exceptions import TroutStorageError
from pytrout.models.subscription import Subscription, SubscriptionKind

_logger = logging.getLogger(__name__)


class Preferences(BaseModel):
    model_config = ConfigDict(extra="ignore")

    historical_backfill_complete: bool = False
    subscriptions: list[Subscription] = Field(default_factory=list)


def _sorted(subscriptions: list[Subscription]) -> list[Subscription]:
    return sorted(subscriptions, key=lambda sub: (sub.kind.value, sub.value))


class PreferenceStore:
    """Key/value flags plus county and waterbody subscriptions.

    ``path=None`` keeps everything in memory, which is what tests use.
    """

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        self._path = Path(path) if path is not None else None
        self._lock = asyncio.Lock()
        self._cache: Preferences | None = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _read_file(self) -> Preferences:
        if self._path is None or not self._path.exists():
            return Preferences()
        try:
            return Preferences.model_validate_json(self._path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise TroutStorageError(f"Could not read preferences {self._path}: {exc}") from exc
        except ValidationError as exc:
            raise TroutStorageError(f"Corrupt preferences file {self._path}: {exc}") from exc

    def _write_file(self, prefs: Preferences) -> None:
        if self._path is None:
            return
        payload = prefs.model_dump_json(indent=2)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".prefs-", suffix=".json")
        except OSError as exc:
            raise TroutStorageError(f"Could not write preferences {self._path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise TroutStorageError(f"Could not write preferences {self._path}: {exc}") from exc

    async def _load(self) -> Preferences:
        if self._cache is None:
            self._cache = await asyncio.to_thread(self._read_file)
        return self._cache

    async def _update(self, mutate: Callable[[Preferences], Preferences]) -> Preferences:
        async with self._lock:
            current = await self._load()
            updated = mutate(current.model_copy(deep=True))
            await asyncio.to_thread(self._write_file, updated)
            self._cache = updated
            return updated

    # ------------------------------------------------------------------
    # Historical backfill flag
    # ------------------------------------------------------------------

    async def historical_backfill_complete(self) -> bool:
        async with self._lock:
            return (await self._load()).historical_backfill_complete

    async def mark_historical_backfill_complete(self) -> None:
        def _mark(prefs: Preferences) -> Preferences:
            prefs.historical_backfill_complete = True
            return prefs

        await self._update(_mark)
        _logger.info("Historical backfill marked complete")

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    async def set_subscription(self, kind: SubscriptionKind, value: str, enabled: bool) -> Subscription:
        """Enable or disable a subscription, creating it on first use.

        Disabled subscriptions stay in the set with ``enabled=False``.
        """
        target = Subscription(kind=kind, value=value, enabled=enabled)

        def _toggle(prefs: Preferences) -> Preferences:
            others = [sub for sub in prefs.subscriptions if sub.key != target.key]
            prefs.subscriptions = _sorted([*others, target])
            return prefs

        await self._update(_toggle)
        _logger.debug("Subscription %s=%s enabled=%s", kind.value, target.value, enabled)
        return target

    async def set_county_subscription(self, county: str, enabled: bool) -> Subscription:
        return await self.set_subscription(SubscriptionKind.COUNTY, county, enabled)

    async def set_waterbody_subscription(self, waterbody: str, enabled: bool) -> Subscription:
        return await self.set_subscription(SubscriptionKind.WATERBODY, waterbody, enabled)

    async def subscriptions(self) -> list[Subscription]:
        """All subscriptions, enabled or not, sorted by ``(kind, value)``."""
        async with self._lock:
            return list((await self._load()).subscriptions)

    async def enabled_subscriptions(self) -> list[Subscription]:
        return [sub for sub in await self.subscriptions() if sub.enabled]

    async def subscribed_counties(self) -> list[str]:
        return [sub.value for sub in await self.enabled_subscriptions() if sub.kind == SubscriptionKind.COUNTY]

    async def subscribed_waterbodies(self) -> list[str]:
        return [sub.value for sub in await self.enabled_subscriptions() if sub.kind == SubscriptionKind.WATERBODY]
