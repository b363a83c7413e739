"""
Wall-clock encoding helpers.

Time ranges are stored as "these digits, in that zone": the epoch seconds of a
range boundary are computed as if its wall-clock fields were UTC, and the zone
name is stored next to them. Decoding reads the seconds back as UTC and then
relabels the result with the stored zone without shifting the clock. Only a
later move into a *different* zone is a real conversion.

Plain dates are different: they are stored as local-calendar midnight of the
host, so they are read back with :func:`local_date_from_seconds`.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from functools import lru_cache

import structlog
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

LOGGER = structlog.get_logger(__name__)

UTC = ZoneInfo("UTC")


@lru_cache(maxsize=128)
def _load_zone(timezone_name: str) -> ZoneInfo:
    return ZoneInfo(timezone_name)


def get_zone(timezone_name: str | None) -> ZoneInfo:
    """Return a ZoneInfo instance, defaulting to UTC on failure."""
    if not timezone_name:
        return UTC
    try:
        return _load_zone(timezone_name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        LOGGER.warning("timezones.unknown_zone", timezone=timezone_name, fallback="UTC")
        return UTC


def now_in_timezone(timezone_name: str | None) -> datetime:
    """Current datetime in the given timezone."""
    return datetime.now(tz=get_zone(timezone_name))


def encode_wall_clock(value: datetime) -> int:
    """
    Encode the wall-clock fields of ``value`` as epoch seconds, as if they were UTC.

    Any ``tzinfo`` on ``value`` is ignored; only the digits matter.
    """
    return calendar.timegm(value.timetuple()[:6])


def decode_wall_clock(seconds: int, timezone_name: str | None) -> datetime:
    """
    Decode seconds written by :func:`encode_wall_clock` into ``timezone_name``.

    The hour and minute are preserved, only the zone annotation changes.
    """
    utc_reading = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return utc_reading.replace(tzinfo=get_zone(timezone_name))


def convert_zone(value: datetime, timezone_name: str | None) -> datetime:
    """Genuine timezone conversion of an aware datetime."""
    return value.astimezone(get_zone(timezone_name))


def local_midnight_seconds(value: date) -> int:
    """Epoch seconds of midnight of ``value`` in the host's local calendar."""
    return int(datetime(value.year, value.month, value.day).timestamp())


def local_date_from_seconds(seconds: int) -> date:
    """Calendar date of ``seconds`` in the host's local calendar."""
    return datetime.fromtimestamp(seconds).date()


def date_key(value: date) -> str:
    """``YYYY-MM-DD`` key built from the calendar fields, never from UTC."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"

