"""Internal constants shared across the library."""

from datetime import date

BASE_URL = "https://dwr.virginia.gov/fishing/trout-stocking-schedule/"
USER_AGENT = "pytrout/1.0 (+https://github.com/pytrout/pytrout)"

#: Date format the stocking schedule uses for query parameters.
REMOTE_DATE_FORMAT = "%m/%d/%Y"

# ------------------------------------------------------------------
# Sync bounds
# ------------------------------------------------------------------

#: How far back the first latest-sync reaches on an empty store.
DEFAULT_LOOKBACK_MONTHS = 6

#: Earliest date the remote schedule is known to carry data for.
HISTORICAL_START_DATE = date(2018, 10, 1)

DEFAULT_PAGE_SIZE = 20
DEFAULT_SYNC_INTERVAL = 6 * 3600

# ------------------------------------------------------------------
# Waterbody markers  (label text → record flag)
# ------------------------------------------------------------------

FLAG_MARKERS: dict[str, str] = {
    "national forest": "is_national_forest",
    "heritage day": "is_heritage_day_water",
    "nsf": "is_nsf",
    "delayed harvest": "is_delayed_harvest",
}
