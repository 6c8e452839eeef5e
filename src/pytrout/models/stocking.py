"""Stocking record model."""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class StockingRecord(BaseModel):
    """A single stocking event: one waterbody stocked on one date.

    ``id`` is assigned by :class:`~pytrout.store.StockingStore` on
    insertion and is ``None`` for records that have not been stored yet.
    ``(waterbody, date)`` identifies the event; the store keeps at most
    one record per pair.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        str_strip_whitespace=True,
    )

    id: int | None = None
    date: dt.date
    county: str
    waterbody: str
    category: str = ""
    species: tuple[str, ...] = ()
    """Stocked species, in the order the source lists them."""
    is_national_forest: bool = False
    is_heritage_day_water: bool = False
    is_nsf: bool = False
    is_delayed_harvest: bool = False
    last_updated: dt.datetime = Field(default_factory=_utcnow)
    """When the record was merged, not when the event happened."""

    @field_validator("waterbody", "county")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value:
            raise ValueError("must be non-empty")
        return value

    @field_validator("species", mode="before")
    @classmethod
    def _dedupe_species(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            return value
        seen: dict[str, None] = {}
        for item in value:
            name = str(item).strip()
            if name:
                seen.setdefault(name, None)
        return tuple(seen)

    @field_validator("last_updated")
    @classmethod
    def _ensure_tz_aware(cls, value: dt.datetime) -> dt.datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value

    @property
    def key(self) -> tuple[str, dt.date]:
        """Uniqueness key ``(waterbody, date)``."""
        return (self.waterbody, self.date)
