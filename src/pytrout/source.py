"""Remote stocking schedule source.

:class:`RemoteSource` is the contract the sync engine depends on.
:class:`DwrStockingSource` implements it by scraping the published HTML
stocking schedule.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from typing import Any, Protocol

import aiohttp
from bs4 import BeautifulSoup, Tag

from pytrout._constants import REMOTE_DATE_FORMAT
from pytrout._normalize import clean_text, extract_flags, parse_stocking_date, split_species
from pytrout._transport import HttpTransport, Transport
from pytrout.config import TroutConfig
from pytrout.exceptions import TroutError, TroutParseError
from pytrout.models.stocking import StockingRecord

_logger = logging.getLogger(__name__)

_REQUIRED_COLUMNS = ("date", "county", "waterbody")


class RemoteSource(Protocol):
    """Supplies stocking records for a date range.

    Implementations raise :class:`~pytrout.exceptions.TroutTransportError`
    (or a subclass) when the fetch fails. ``end=None`` means "through the
    most recent data available".
    """

    async def fetch(self, start: date, end: date | None = None) -> list[StockingRecord]:
        ...


def _header_index(headers: Sequence[str]) -> dict[str, int]:
    """Map canonical column names to their position in the table."""
    index: dict[str, int] = {}
    for position, header in enumerate(headers):
        label = header.lower()
        if "date" in label:
            index.setdefault("date", position)
        elif "county" in label:
            index.setdefault("county", position)
        elif "water" in label:
            index.setdefault("waterbody", position)
        elif "category" in label:
            index.setdefault("category", position)
        elif "species" in label:
            index.setdefault("species", position)
    return index


def _find_schedule_table(soup: BeautifulSoup) -> Tag | None:
    for table in soup.find_all("table"):
        header_text = " ".join(th.get_text(" ", strip=True) for th in table.find_all("th")).lower()
        if "waterbody" in header_text or "water body" in header_text:
            return table
    return None


def parse_schedule(html: str) -> list[StockingRecord]:
    """Parse a stocking schedule HTML page into records.

    Rows with an unparseable date or missing county/waterbody are
    skipped. A page without a schedule table yields an empty list.

    Raises
    ------
    TroutParseError
        If a schedule table exists but lacks a required column.
    """
    soup = BeautifulSoup(html, "html.parser")
    table = _find_schedule_table(soup)
    if table is None:
        _logger.debug("No stocking table found in schedule page")
        return []

    header_row = table.find("tr")
    headers = [clean_text(th.get_text(" ")) for th in header_row.find_all(["th", "td"])] if header_row else []
    columns = _header_index(headers)
    missing = [name for name in _REQUIRED_COLUMNS if name not in columns]
    if missing:
        raise TroutParseError(f"Stocking table is missing columns: {', '.join(missing)}")

    records: list[StockingRecord] = []
    for row in table.find_all("tr"):
        cells = row.find_all("td")
        if not cells:
            continue

        def _cell(name: str, cells: list[Any] = cells) -> str:
            position = columns.get(name)
            if position is None or position >= len(cells):
                return ""
            return clean_text(cells[position].get_text(" "))

        stocked_on = parse_stocking_date(_cell("date"))
        if stocked_on is None:
            _logger.debug("Skipping row with unparseable date: %r", _cell("date"))
            continue
        waterbody, flags = extract_flags(_cell("waterbody"))
        county = _cell("county")
        if not waterbody or not county:
            _logger.debug("Skipping incomplete row for %s", stocked_on)
            continue

        records.append(
            StockingRecord(
                date=stocked_on,
                county=county,
                waterbody=waterbody,
                category=_cell("category"),
                species=split_species(_cell("species")),
                **flags,
            )
        )
    return records


class DwrStockingSource:
    """Fetches the published trout stocking schedule.

    Usage::

        async with DwrStockingSource(config) as source:
            records = await source.fetch(date(2025, 3, 1))
    """

    def __init__(
        self,
        config: TroutConfig | None = None,
        *,
        transport: Transport | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config or TroutConfig()
        self._transport = transport
        self._http_session = session
        self._owns_session = False

    async def __aenter__(self) -> DwrStockingSource:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
                self._owns_session = True
            self._transport = HttpTransport(self._http_session, timeout=self._config.request_timeout)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._owns_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None
            self._owns_session = False

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise TroutError("Source not initialized. Use 'async with DwrStockingSource(...) as source:'")
        return self._transport

    async def fetch(self, start: date, end: date | None = None) -> list[StockingRecord]:
        transport = self._require_transport()
        params = {"start_date": start.strftime(REMOTE_DATE_FORMAT)}
        if end is not None:
            params["end_date"] = end.strftime(REMOTE_DATE_FORMAT)

        html = await transport.get_text(self._config.base_url, params)
        records = parse_schedule(html)
        _logger.debug("Fetched %d stocking records for %s..%s", len(records), start, end or "latest")
        return records
