"""Display time for rendered messages.

Signals carry a unix timestamp; messages show it in the operator's zone.
"""

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger("signalrelay")

DEFAULT_TIMEZONE = "Asia/Jakarta"

# Used when the zone database is unavailable on the host.
FALLBACK_TZ = timezone(timedelta(hours=7), "WIB")

DISPLAY_FORMAT = "%H:%M:%S %Z"


@lru_cache(maxsize=8)
def resolve_timezone(name: str = DEFAULT_TIMEZONE) -> tzinfo:
    """Return the named zone, or the fixed UTC+07:00 fallback."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Time zone %s unavailable, using UTC+07:00", name)
        return FALLBACK_TZ


def format_signal_time(unix_ts: int, tz_name: str = DEFAULT_TIMEZONE) -> str:
    """Format *unix_ts* for display, e.g. ``"14:05:00 WIB"``."""
    dt = datetime.fromtimestamp(unix_ts, tz=resolve_timezone(tz_name))
    return dt.strftime(DISPLAY_FORMAT)
