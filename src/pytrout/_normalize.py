"""Normalization helpers.

Centralizes defensive parsing of remote schedule cells so the source and
store layers only ever see clean values.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from pytrout._constants import FLAG_MARKERS

_WHITESPACE = re.compile(r"\s+")
_DATE_FORMATS = ("%m/%d/%Y", "%B %d, %Y", "%b %d, %Y", "%Y-%m-%d", "%a, %b %d, %Y", "%A, %B %d, %Y")


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    return _WHITESPACE.sub(" ", str(value)).strip()


def parse_stocking_date(value: Any) -> date | None:
    """Parse a schedule date cell; ``None`` when it matches no known format."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = clean_text(value)
    if not text:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def split_species(value: Any) -> list[str]:
    """Split a species cell (``"Rainbow, Brook"``) into ordered unique names."""
    text = clean_text(value)
    if not text:
        return []
    names: dict[str, None] = {}
    for part in re.split(r"[,;/]", text):
        name = part.strip()
        if name:
            names.setdefault(name, None)
    return list(names)


def extract_flags(text: str) -> tuple[str, dict[str, bool]]:
    """Strip flag markers from a waterbody cell.

    Returns the bare waterbody name and a dict with every record flag
    (``is_nsf`` etc.) set according to which markers were present.
    Markers may appear bracketed (``[NSF]``), parenthesized, or as trailing
    labels such as ``"National Forest Water"``.
    """
    flags = {field: False for field in FLAG_MARKERS.values()}
    name = clean_text(text)
    for marker, field in FLAG_MARKERS.items():
        pattern = re.compile(
            rf"[\[(]?\s*\b{re.escape(marker)}\b(?:\s+waters?)?\s*[\])]?",
            re.IGNORECASE,
        )
        if pattern.search(name):
            flags[field] = True
            name = pattern.sub(" ", name)
    name = clean_text(name).strip(" -,")
    return name, flags
