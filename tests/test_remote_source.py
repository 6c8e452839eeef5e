from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date

import pytest

from pytrout._normalize import extract_flags, parse_stocking_date, split_species
from pytrout.config import TroutConfig
from pytrout.exceptions import TroutError, TroutParseError, TroutTransportError
from pytrout.source import DwrStockingSource, parse_schedule

SCHEDULE_HTML = """
<html><body>
<h1>Trout Stocking Schedule</h1>
<table class="stocking">
  <thead>
    <tr><th>Date</th><th>County</th><th>Waterbody</th><th>Category</th><th>Species</th></tr>
  </thead>
  <tbody>
    <tr>
      <td>03/04/2025</td><td>Augusta</td>
      <td>Back Creek <span>[National Forest Water]</span></td>
      <td>A</td><td>Rainbow, Brook</td>
    </tr>
    <tr>
      <td>March 3, 2025</td><td>Bath</td>
      <td>Jackson River (Delayed Harvest Water) [NSF]</td>
      <td>DH</td><td>Rainbow, Brown, Rainbow</td>
    </tr>
    <tr><td>TBD</td><td>Smyth</td><td>Hungry Mother Lake</td><td>A</td><td>Rainbow</td></tr>
    <tr><td>03/02/2025</td><td></td><td>Nowhere Creek</td><td>A</td><td>Rainbow</td></tr>
    <tr>
      <td>03/01/2025</td><td>Washington</td><td>Big Tumbling Creek Heritage Day Water</td>
      <td>B</td><td></td>
    </tr>
  </tbody>
</table>
</body></html>
"""


@dataclass
class FakeTransport:
    html: str = SCHEDULE_HTML
    error: Exception | None = None
    calls: list[tuple[str, dict[str, str]]] = field(default_factory=list)

    async def get_text(self, url: str, params: Mapping[str, str]) -> str:
        self.calls.append((url, dict(params)))
        if self.error is not None:
            raise self.error
        return self.html


def test_parse_schedule_rows_and_flags() -> None:
    records = parse_schedule(SCHEDULE_HTML)

    assert [(r.date, r.waterbody) for r in records] == [
        (date(2025, 3, 4), "Back Creek"),
        (date(2025, 3, 3), "Jackson River"),
        (date(2025, 3, 1), "Big Tumbling Creek"),
    ]
    back, jackson, tumbling = records
    assert back.is_national_forest and not back.is_nsf
    assert back.species == ("Rainbow", "Brook")
    assert jackson.is_delayed_harvest and jackson.is_nsf and not jackson.is_national_forest
    assert jackson.species == ("Rainbow", "Brown")
    assert jackson.category == "DH"
    assert tumbling.is_heritage_day_water
    assert tumbling.species == ()
    assert all(r.id is None for r in records)


def test_page_without_table_is_empty() -> None:
    assert parse_schedule("<html><body><p>No stockings scheduled.</p></body></html>") == []


def test_table_missing_required_column_raises_parse_error() -> None:
    html = "<table><tr><th>Date</th><th>Waterbody</th></tr><tr><td>03/04/2025</td><td>X</td></tr></table>"
    with pytest.raises(TroutParseError):
        parse_schedule(html)


def test_normalize_helpers() -> None:
    assert parse_stocking_date("10/02/2018") == date(2018, 10, 2)
    assert parse_stocking_date("Oct 2, 2018") == date(2018, 10, 2)
    assert parse_stocking_date("soon") is None
    assert split_species(" Rainbow ,Brook; Rainbow ") == ["Rainbow", "Brook"]
    name, flags = extract_flags("Smith River   (NSF)")
    assert name == "Smith River"
    assert flags == {
        "is_national_forest": False,
        "is_heritage_day_water": False,
        "is_nsf": True,
        "is_delayed_harvest": False,
    }


@pytest.mark.asyncio
async def test_fetch_sends_date_range_params() -> None:
    transport = FakeTransport()
    config = TroutConfig(base_url="https://example.test/schedule", preferences_path=None)

    async with DwrStockingSource(config, transport=transport) as source:
        records = await source.fetch(date(2018, 10, 1), date(2025, 3, 4))
        await source.fetch(date(2025, 3, 3))

    assert len(records) == 3
    assert transport.calls == [
        ("https://example.test/schedule", {"start_date": "10/01/2018", "end_date": "03/04/2025"}),
        ("https://example.test/schedule", {"start_date": "03/03/2025"}),
    ]


@pytest.mark.asyncio
async def test_fetch_propagates_transport_error() -> None:
    transport = FakeTransport(error=TroutTransportError("HTTP 503", status_code=503))

    async with DwrStockingSource(transport=transport) as source:
        with pytest.raises(TroutTransportError) as excinfo:
            await source.fetch(date(2025, 3, 3))

    assert excinfo.value.status_code == 503


@pytest.mark.asyncio
async def test_fetch_outside_context_manager_raises() -> None:
    source = DwrStockingSource()
    with pytest.raises(TroutError):
        await source.fetch(date(2025, 3, 3))
