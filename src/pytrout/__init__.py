"""pytrout - Async sync engine and local store for trout stocking schedules."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pytrout")
except PackageNotFoundError:
    __version__ = "0+local"
from pytrout.config import TroutConfig
from pytrout.exceptions import (
    TroutConfigError,
    TroutError,
    TroutParseError,
    TroutStorageError,
    TroutTransportError,
)
from pytrout.matcher import SubscriptionMatcher
from pytrout.models import (
    PageCursor,
    StockingFilters,
    StockingMatch,
    StockingRecord,
    Subscription,
    SubscriptionKind,
    SyncKind,
    SyncResult,
    SyncStatus,
)
from pytrout.notify import LoggingDispatcher, NotificationDispatcher
from pytrout.preferences import PreferenceStore
from pytrout.query import QueryService
from pytrout.scheduler import AsyncioScheduler, Scheduler, schedule_sync
from pytrout.source import DwrStockingSource, RemoteSource
from pytrout.store import StockingStore
from pytrout.sync import SyncEngine

__all__ = [
    "__version__",
    "AsyncioScheduler",
    "DwrStockingSource",
    "LoggingDispatcher",
    "NotificationDispatcher",
    "PageCursor",
    "PreferenceStore",
    "QueryService",
    "RemoteSource",
    "Scheduler",
    "StockingFilters",
    "StockingMatch",
    "StockingRecord",
    "StockingStore",
    "Subscription",
    "SubscriptionKind",
    "SubscriptionMatcher",
    "SyncEngine",
    "SyncKind",
    "SyncResult",
    "SyncStatus",
    "TroutConfig",
    "TroutConfigError",
    "TroutError",
    "TroutParseError",
    "TroutStorageError",
    "TroutTransportError",
    "schedule_sync",
]
