"""Command-line entry point.

Usage
-----
::

    pytrout sync                      # fetch the latest stockings
    pytrout backfill                  # one-time historical pull
    pytrout list --county Augusta --nsf
    pytrout subscribe waterbody "Back Creek"
    pytrout run                       # scheduler loop

Configuration comes from ``TROUT_*`` environment variables; ``--db`` and
``--prefs`` override the storage paths.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from pytrout.config import TroutConfig
from pytrout.exceptions import TroutError
from pytrout.models.filters import StockingFilters
from pytrout.models.results import SyncResult, SyncStatus
from pytrout.models.stocking import StockingRecord
from pytrout.models.subscription import SubscriptionKind
from pytrout.notify import LoggingDispatcher
from pytrout.preferences import PreferenceStore
from pytrout.query import QueryService
from pytrout.scheduler import AsyncioScheduler, schedule_sync
from pytrout.source import DwrStockingSource
from pytrout.store import StockingStore
from pytrout.sync import SyncEngine

_logger = logging.getLogger(__name__)

_FLAG_LABELS = (
    ("is_national_forest", "NF"),
    ("is_heritage_day_water", "HD"),
    ("is_nsf", "NSF"),
    ("is_delayed_harvest", "DH"),
)


@dataclass
class _App:
    config: TroutConfig
    store: StockingStore
    preferences: PreferenceStore
    engine: SyncEngine
    queries: QueryService


@contextlib.asynccontextmanager
async def _open_app(config: TroutConfig) -> AsyncIterator[_App]:
    async with StockingStore(config.db_path) as store, DwrStockingSource(config) as source:
        preferences = PreferenceStore(config.preferences_path)
        engine = SyncEngine(store, source, preferences, config=config, dispatcher=LoggingDispatcher())
        yield _App(
            config=config,
            store=store,
            preferences=preferences,
            engine=engine,
            queries=QueryService(store, page_size=config.page_size),
        )


def format_record(record: StockingRecord) -> str:
    flags = " ".join(label for field, label in _FLAG_LABELS if getattr(record, field))
    species = ", ".join(record.species)
    line = f"{record.date.isoformat()}  {record.county:<20} {record.waterbody:<32} {record.category:<4} {species}"
    return f"{line}  [{flags}]" if flags else line


def _filters_from_args(args: argparse.Namespace) -> StockingFilters:
    return StockingFilters(
        counties=args.county or None,
        is_national_forest=True if args.national_forest else None,
        is_heritage_day_water=True if args.heritage_day else None,
        is_nsf=True if args.nsf else None,
        is_delayed_harvest=True if args.delayed_harvest else None,
    )


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def _report(result: SyncResult) -> int:
    if not result.is_success:
        print(f"{result.kind.value} sync failed: {result.error}", file=sys.stderr)
        return 1
    if result.status == SyncStatus.NOOP:
        print(f"{result.kind.value} sync: nothing to do")
    else:
        print(f"{result.kind.value} sync: {result.inserted_count} new stockings")
    return 0


async def _run(args: argparse.Namespace) -> int:
    overrides: dict[str, Any] = {}
    if args.db:
        overrides["db_path"] = args.db
    if args.prefs:
        overrides["preferences_path"] = args.prefs
    config = TroutConfig.from_env(**overrides)

    async with _open_app(config) as app:
        if args.command == "sync":
            return _report(await app.engine.sync_latest())

        if args.command == "backfill":
            return _report(await app.engine.sync_historical())

        if args.command == "list":
            filters = _filters_from_args(args)
            if args.all:
                async for record in app.queries.iterate(filters, args.page_size):
                    print(format_record(record))
            else:
                for record in await app.queries.first_page(filters, args.page_size):
                    print(format_record(record))
            return 0

        if args.command == "counties":
            for county in await app.queries.counties():
                print(county)
            return 0

        if args.command == "categories":
            for category in await app.queries.categories():
                print(category)
            return 0

        if args.command in ("subscribe", "unsubscribe"):
            kind = SubscriptionKind(args.kind)
            sub = await app.preferences.set_subscription(kind, args.value, args.command == "subscribe")
            state = "on" if sub.enabled else "off"
            print(f"{sub.kind.value} {sub.value}: notifications {state}")
            return 0

        if args.command == "subscriptions":
            for sub in await app.preferences.subscriptions():
                marker = "*" if sub.enabled else " "
                print(f"{marker} {sub.kind.value:<10} {sub.value}")
            return 0

        if args.command == "run":
            scheduler = AsyncioScheduler()
            schedule_sync(app.engine, scheduler, config.sync_interval)
            await scheduler.run_forever()
            return 0

    raise AssertionError(f"unhandled command {args.command!r}")  # pragma: no cover


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pytrout", description="Track trout stocking events.")
    parser.add_argument("--db", help="SQLite database path (default: $TROUT_DB_PATH or pytrout.db)")
    parser.add_argument("--prefs", help="Preferences JSON path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("sync", help="Fetch stockings since the latest stored date")
    sub.add_parser("backfill", help="Fetch historical stockings (runs once)")

    list_parser = sub.add_parser("list", help="List stored stockings, newest first")
    list_parser.add_argument("--county", action="append", help="Only this county (repeatable)")
    list_parser.add_argument("--national-forest", action="store_true")
    list_parser.add_argument("--heritage-day", action="store_true")
    list_parser.add_argument("--nsf", action="store_true")
    list_parser.add_argument("--delayed-harvest", action="store_true")
    list_parser.add_argument("--page-size", type=_positive_int, default=None)
    list_parser.add_argument("--all", action="store_true", help="Walk every page")

    sub.add_parser("counties", help="List known counties")
    sub.add_parser("categories", help="List known categories")

    for name in ("subscribe", "unsubscribe"):
        toggle = sub.add_parser(name, help=f"{name.capitalize()} to new stockings")
        toggle.add_argument("kind", choices=[kind.value for kind in SubscriptionKind])
        toggle.add_argument("value")

    sub.add_parser("subscriptions", help="Show subscriptions (* = enabled)")
    sub.add_parser("run", help="Run periodic sync until interrupted")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except TroutError as exc:
        _logger.error("%s", exc)
        return 2
    except KeyboardInterrupt:
        return 130
