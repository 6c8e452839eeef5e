"""Query filter and keyset cursor models."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from pytrout.models.stocking import StockingRecord


class StockingFilters(BaseModel):
    """Filter criteria for stocking queries.

    Every field is optional; ``None`` means the dimension is ignored.
    Set fields are combined with AND. ``counties`` matches a record whose
    county is any member of the set.
    """

    model_config = ConfigDict(frozen=True)

    counties: frozenset[str] | None = None
    is_national_forest: bool | None = None
    is_heritage_day_water: bool | None = None
    is_nsf: bool | None = None
    is_delayed_harvest: bool | None = None

    @field_validator("counties", mode="before")
    @classmethod
    def _normalize_counties(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            return frozenset({value.strip()})
        if isinstance(value, Iterable):
            return frozenset(str(item).strip() for item in value)
        return value

    def flag_criteria(self) -> dict[str, bool]:
        """Set boolean criteria keyed by record field name."""
        flags = {
            "is_national_forest": self.is_national_forest,
            "is_heritage_day_water": self.is_heritage_day_water,
            "is_nsf": self.is_nsf,
            "is_delayed_harvest": self.is_delayed_harvest,
        }
        return {name: value for name, value in flags.items() if value is not None}

    def matches(self, record: StockingRecord) -> bool:
        if self.counties is not None and record.county not in self.counties:
            return False
        return all(getattr(record, name) == value for name, value in self.flag_criteria().items())


class PageCursor(BaseModel):
    """Keyset position: the canonical sort key of the last record seen.

    Canonical order is ``date DESC, waterbody ASC, id ASC``.
    """

    model_config = ConfigDict(frozen=True)

    last_date: date
    last_waterbody: str
    last_id: int

    @classmethod
    def from_record(cls, record: StockingRecord) -> PageCursor:
        if record.id is None:
            raise ValueError("cursor requires a stored record (id is None)")
        return cls(last_date=record.date, last_waterbody=record.waterbody, last_id=record.id)
