"""SQLite-backed stocking store.

This is the only component allowed to write stocking records. It owns the
``(waterbody, date)`` uniqueness invariant and the id sequence.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from datetime import UTC, date, datetime
from typing import Any

import aiosqlite

from pytrout.exceptions import TroutStorageError
from pytrout.models.filters import PageCursor, StockingFilters
from pytrout.models.stocking import StockingRecord

_logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS stockings (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      date TEXT NOT NULL,
      county TEXT NOT NULL,
      waterbody TEXT NOT NULL,
      category TEXT NOT NULL,
      species TEXT NOT NULL,
      is_national_forest INTEGER NOT NULL DEFAULT 0,
      is_heritage_day_water INTEGER NOT NULL DEFAULT 0,
      is_nsf INTEGER NOT NULL DEFAULT 0,
      is_delayed_harvest INTEGER NOT NULL DEFAULT 0,
      last_updated TEXT NOT NULL,
      UNIQUE (waterbody, date)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_stockings_order ON stockings(date DESC, waterbody, id)",
    "CREATE INDEX IF NOT EXISTS idx_stockings_county ON stockings(county)",
)

_INSERT = """
    INSERT OR IGNORE INTO stockings (
      date, county, waterbody, category, species,
      is_national_forest, is_heritage_day_water, is_nsf, is_delayed_harvest,
      last_updated
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

# Canonical order; total because id is unique.
_ORDER_BY = "ORDER BY date DESC, waterbody ASC, id ASC"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _row_to_record(row: aiosqlite.Row) -> StockingRecord:
    return StockingRecord(
        id=row["id"],
        date=date.fromisoformat(row["date"]),
        county=row["county"],
        waterbody=row["waterbody"],
        category=row["category"],
        species=json.loads(row["species"]),
        is_national_forest=bool(row["is_national_forest"]),
        is_heritage_day_water=bool(row["is_heritage_day_water"]),
        is_nsf=bool(row["is_nsf"]),
        is_delayed_harvest=bool(row["is_delayed_harvest"]),
        last_updated=datetime.fromisoformat(row["last_updated"]),
    )


def _record_params(record: StockingRecord, merged_at: datetime) -> tuple[Any, ...]:
    return (
        record.date.isoformat(),
        record.county,
        record.waterbody,
        record.category,
        json.dumps(list(record.species)),
        int(record.is_national_forest),
        int(record.is_heritage_day_water),
        int(record.is_nsf),
        int(record.is_delayed_harvest),
        merged_at.isoformat(),
    )


def build_filter_clause(
    filters: StockingFilters | None,
    cursor: PageCursor | None = None,
) -> tuple[str, list[Any]]:
    """Build a ``WHERE`` clause (possibly empty) and its parameters.

    The cursor predicate selects rows strictly after the cursor in
    canonical order.
    """
    clauses: list[str] = []
    params: list[Any] = []

    if filters is not None:
        if filters.counties is not None:
            if not filters.counties:
                clauses.append("0")
            else:
                counties = sorted(filters.counties)
                clauses.append(f"county IN ({', '.join('?' * len(counties))})")
                params.extend(counties)
        for column, value in filters.flag_criteria().items():
            clauses.append(f"{column} = ?")
            params.append(int(value))

    if cursor is not None:
        last_date = cursor.last_date.isoformat()
        clauses.append(
            "(date < ?"
            " OR (date = ? AND waterbody > ?)"
            " OR (date = ? AND waterbody = ? AND id > ?))"
        )
        params.extend(
            [
                last_date,
                last_date,
                cursor.last_waterbody,
                last_date,
                cursor.last_waterbody,
                cursor.last_id,
            ]
        )

    if not clauses:
        return "", params
    return "WHERE " + " AND ".join(clauses), params

class StockingStore:
    """Persistent, deduplicated set of stocking records.

    Backed by a single ``aiosqlite`` connection opened on first use. Every
    operation holds the store lock for its whole duration, so readers never
    observe a half-written batch.

    Usage::

        async with StockingStore("stockings.db") as store:
            inserted = await store.insert_ignoring_duplicates(records)
            page = await store.query_page(StockingFilters(), None, 20)
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._path = path
        self._clock = clock
        self._lock = asyncio.Lock()
        self._db: aiosqlite.Connection | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> StockingStore:
        """Open the connection and create the schema. Safe to call twice."""
        async with self._lock:
            await self._connection()
        return self

    async def close(self) -> None:
        async with self._lock:
            self._closed = True
            if self._db is not None:
                await self._db.close()
                self._db = None
                _logger.debug("Closed stocking store at %s", self._path)

    async def __aenter__(self) -> StockingStore:
        return await self.open()

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _connection(self) -> aiosqlite.Connection:
        if self._closed:
            raise TroutStorageError(f"Stocking store {self._path!r} is closed")
        if self._db is not None:
            return self._db
        try:
            db = await aiosqlite.connect(self._path, isolation_level=None)
        except aiosqlite.Error as exc:
            raise TroutStorageError(f"Could not open stocking database {self._path!r}: {exc}") from exc
        try:
            db.row_factory = aiosqlite.Row
            for statement in _SCHEMA:
                await db.execute(statement)
        except aiosqlite.Error as exc:
            await db.close()
            raise TroutStorageError(f"Could not create stocking schema in {self._path!r}: {exc}") from exc
        self._db = db
        _logger.debug("Opened stocking store at %s", self._path)
        return db

    @contextlib.asynccontextmanager
    async def _session(self) -> AsyncIterator[aiosqlite.Connection]:
        async with self._lock:
            db = await self._connection()
            try:
                yield db
            except aiosqlite.Error as exc:
                raise TroutStorageError(f"Stocking store operation failed: {exc}") from exc

    @staticmethod
    async def _fetch_records(db: aiosqlite.Connection, sql: str, params: Sequence[Any]) -> list[StockingRecord]:
        async with db.execute(sql, params) as cursor:
            return [_row_to_record(row) for row in await cursor.fetchall()]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert_ignoring_duplicates(self, records: Sequence[StockingRecord]) -> list[StockingRecord]:
        """Insert records, silently skipping any ``(waterbody, date)`` already stored.

        Insert and lookup of the new rows happen in one transaction; a
        failure anywhere in the batch rolls all of it back. Returns exactly
        the newly persisted records, with ids, in input order.
        """
        if not records:
            return []
        merged_at = self._clock()

        async with self._session() as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                ids: list[int] = []
                for record in records:
                    async with db.execute(_INSERT, _record_params(record, merged_at)) as cursor:
                        if cursor.rowcount == 1 and cursor.lastrowid is not None:
                            ids.append(cursor.lastrowid)
                inserted: list[StockingRecord] = []
                if ids:
                    placeholders = ", ".join("?" * len(ids))
                    inserted = await self._fetch_records(
                        db,
                        f"SELECT * FROM stockings WHERE id IN ({placeholders}) ORDER BY id",
                        ids,
                    )
                await db.execute("COMMIT")
            except BaseException:
                await db.execute("ROLLBACK")
                raise

        _logger.debug(
            "Merged %d records: %d inserted, %d duplicates ignored",
            len(records),
            len(inserted),
            len(records) - len(inserted),
        )
        return inserted

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    async def latest_date(self) -> date | None:
        """Most recent stocking date, or ``None`` when the store is empty."""
        return await self._aggregate_date("MAX")

    async def earliest_date(self) -> date | None:
        """Oldest stocking date, or ``None`` when the store is empty."""
        return await self._aggregate_date("MIN")

    async def _aggregate_date(self, func: str) -> date | None:
        async with self._session() as db, db.execute(f"SELECT {func}(date) FROM stockings") as cursor:
            row = await cursor.fetchone()
        value = row[0] if row is not None else None
        return date.fromisoformat(value) if value else None

    async def count(self, filters: StockingFilters | None = None) -> int:
        where, params = build_filter_clause(filters)
        async with self._session() as db, db.execute(f"SELECT COUNT(*) FROM stockings {where}", params) as cursor:
            row = await cursor.fetchone()
        return int(row[0]) if row is not None else 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def query_page(
        self,
        filters: StockingFilters | None,
        cursor: PageCursor | None,
        page_size: int,
    ) -> list[StockingRecord]:
        """Return up to ``page_size`` matching records strictly after ``cursor``.

        Records come in canonical order (``date DESC, waterbody ASC,
        id ASC``). ``cursor=None`` returns the first page.
        """
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        where, params = build_filter_clause(filters, cursor)
        sql = f"SELECT * FROM stockings {where} {_ORDER_BY} LIMIT ?"
        async with self._session() as db:
            return await self._fetch_records(db, sql, [*params, page_size])

    async def recent_for_waterbody(self, waterbody: str, limit: int) -> list[StockingRecord]:
        """Most recent stockings of one waterbody, newest first."""
        sql = f"SELECT * FROM stockings WHERE waterbody = ? {_ORDER_BY} LIMIT ?"
        async with self._session() as db:
            return await self._fetch_records(db, sql, [waterbody, limit])

    async def distinct_counties(self) -> list[str]:
        return await self._distinct("county")

    async def distinct_categories(self) -> list[str]:
        return await self._distinct("category")

    async def _distinct(self, column: str) -> list[str]:
        sql = f"SELECT DISTINCT {column} FROM stockings ORDER BY {column}"
        async with self._session() as db, db.execute(sql) as cursor:
            return [row[0] for row in await cursor.fetchall()]
