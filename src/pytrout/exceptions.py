"""Custom exception hierarchy for pytrout."""

from __future__ import annotations


class TroutError(Exception):
    """Base exception for all pytrout errors."""


class TroutConfigError(TroutError):
    """Invalid or missing configuration."""


class TroutTransportError(TroutError):
    """Remote fetch failed (network, non-200, timeout).

    This is the transient failure class: sync operations report it as a
    failed :class:`~pytrout.models.SyncResult` and leave retrying to the
    scheduler.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class TroutParseError(TroutTransportError):
    """Remote payload could not be interpreted as a stocking schedule."""


class TroutStorageError(TroutError):
    """Local storage failed (database or preference file).

    Never absorbed by sync or query operations; callers see it.
    """
