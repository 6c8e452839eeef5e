"""Shared fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import UTC, datetime

import pytest_asyncio

from pytrout.store import StockingStore


def fixed_clock() -> datetime:
    return datetime(2025, 3, 4, 12, 0, tzinfo=UTC)


@pytest_asyncio.fixture
async def store() -> AsyncGenerator[StockingStore, None]:
    """In-memory store with a fixed merge clock, closed after the test."""
    async with StockingStore(clock=fixed_clock) as opened:
        yield opened
