"""Client configuration for pytrout."""

from __future__ import annotations

import dataclasses
import os
from datetime import date
from typing import Any

from pytrout._constants import (
    BASE_URL,
    DEFAULT_LOOKBACK_MONTHS,
    DEFAULT_PAGE_SIZE,
    DEFAULT_SYNC_INTERVAL,
    HISTORICAL_START_DATE,
)
from pytrout.exceptions import TroutConfigError


def _env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise TroutConfigError(f"{name} must be an integer, got {value!r}") from exc


def _env_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise TroutConfigError(f"{name} must be a number, got {value!r}") from exc


def _env_date(name: str, value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise TroutConfigError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class TroutConfig:
    """Library configuration.

    Parameters
    ----------
    db_path : str
        SQLite database file holding stocking records. ``":memory:"``
        keeps everything in process.
    preferences_path : str or None
        JSON file for flags and subscriptions. ``None`` keeps
        preferences in memory only.
    base_url : str
        Stocking schedule URL.
    request_timeout : float
        Total timeout for one remote fetch, in seconds.
    default_lookback_months : int
        How many months a latest-sync reaches back when the store is empty.
    historical_start_date : date
        Earliest date the remote source has data for; the lower bound of
        the historical backfill.
    sync_interval : float
        Seconds between scheduled latest-syncs.
    page_size : int
        Default number of records per query page.
    """

    db_path: str = "pytrout.db"
    preferences_path: str | None = "pytrout-preferences.json"
    base_url: str = BASE_URL
    request_timeout: float = 30.0
    default_lookback_months: int = DEFAULT_LOOKBACK_MONTHS
    historical_start_date: date = HISTORICAL_START_DATE
    sync_interval: float = DEFAULT_SYNC_INTERVAL
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.default_lookback_months < 0:
            raise TroutConfigError("default_lookback_months must be >= 0")
        if self.page_size <= 0:
            raise TroutConfigError("page_size must be positive")
        if self.sync_interval <= 0:
            raise TroutConfigError("sync_interval must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> TroutConfig:
        """Create configuration from ``TROUT_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        TroutConfigError
            If a numeric or date variable cannot be parsed.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "TROUT_DB_PATH": "db_path",
            "TROUT_PREFERENCES_PATH": "preferences_path",
            "TROUT_BASE_URL": "base_url",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        timeout_env = env.get("TROUT_REQUEST_TIMEOUT")
        if timeout_env is not None:
            config_kwargs["request_timeout"] = _env_float("TROUT_REQUEST_TIMEOUT", timeout_env)

        interval_env = env.get("TROUT_SYNC_INTERVAL")
        if interval_env is not None:
            config_kwargs["sync_interval"] = _env_float("TROUT_SYNC_INTERVAL", interval_env)

        lookback_env = env.get("TROUT_LOOKBACK_MONTHS")
        if lookback_env is not None:
            config_kwargs["default_lookback_months"] = _env_int("TROUT_LOOKBACK_MONTHS", lookback_env)

        page_env = env.get("TROUT_PAGE_SIZE")
        if page_env is not None:
            config_kwargs["page_size"] = _env_int("TROUT_PAGE_SIZE", page_env)

        start_env = env.get("TROUT_HISTORICAL_START")
        if start_env is not None:
            config_kwargs["historical_start_date"] = _env_date("TROUT_HISTORICAL_START", start_env)

        config_kwargs.update(overrides)
        return cls(**config_kwargs)
