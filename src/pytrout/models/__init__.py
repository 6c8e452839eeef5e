"""Data models for pytrout."""

from pytrout.models.filters import PageCursor, StockingFilters
from pytrout.models.results import StockingMatch, SyncKind, SyncResult, SyncStatus
from pytrout.models.stocking import StockingRecord
from pytrout.models.subscription import Subscription, SubscriptionKind

__all__ = [
    "PageCursor",
    "StockingFilters",
    "StockingMatch",
    "StockingRecord",
    "Subscription",
    "SubscriptionKind",
    "SyncKind",
    "SyncResult",
    "SyncStatus",
]
