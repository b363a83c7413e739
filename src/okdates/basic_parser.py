"""
Regex-based date parsing used when the language model is unavailable.

Input is split into segments on commas, semicolons and newlines. Each segment
is matched against a fixed list of grammars, first match wins:

* date mode: ``6/15``, ``6-15-2025``, ``June 15``, ``Dec 25 2025``. Segments
  that match nothing are dropped.
* meeting mode: ``6/15 from 9:00 to 12:00``, ``Monday from 9 - 17``. Segments
  that match nothing are kept as ``needs_llm_parsing`` placeholders.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Union

import structlog
from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta

from .lexicon import day_of_week_index, month_index
from .models import PointInterval, RangeInterval, Timestamp
from .timezones import encode_wall_clock, local_midnight_seconds, now_in_timezone

LOGGER = structlog.get_logger(__name__)

# Indexed like lexicon.WEEKDAY_NAMES (Sunday first).
RELATIVE_WEEKDAYS = (SU, MO, TU, WE, TH, FR, SA)

SEGMENT_DELIMITER = re.compile(r"[,;\n]+")

_TIME_RANGE = r"(\d{1,2})(?::(\d{2}))?\s*(?:to|-)\s*(\d{1,2})(?::(\d{2}))?"

NUMERIC_DATE_RANGE = re.compile(
    r"(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?\s+from\s+" + _TIME_RANGE,
    re.IGNORECASE,
)
WEEKDAY_RANGE = re.compile(r"([a-z]+)\s+from\s+" + _TIME_RANGE, re.IGNORECASE)
NUMERIC_DATE = re.compile(r"(\d{1,2})[/\-](\d{1,2})(?:[/\-](\d{2,4}))?")
NAMED_MONTH_DATE = re.compile(r"([a-z]+)\s+(\d{1,2})(?:[,\s]+(\d{2,4}))?", re.IGNORECASE)

Interval = Union[PointInterval, RangeInterval]


@dataclass(frozen=True)
class TimeRange:
    """Wall-clock start and end, already wrapped past midnight when needed."""

    start: datetime
    end: datetime

    @property
    def is_overnight(self) -> bool:
        return self.end.date() > self.start.date()


def split_segments(raw_input: str) -> List[str]:
    """Split free text into trimmed, non-empty segments."""
    return [part.strip() for part in SEGMENT_DELIMITER.split(raw_input) if part.strip()]


def resolve_year(year_text: Optional[str], today: date) -> int:
    """Absent -> current year, two digits -> 2000 + value, otherwise literal."""
    if not year_text:
        return today.year
    if len(year_text) == 2:
        return 2000 + int(year_text)
    return int(year_text)


def build_time_range(
    day: date,
    start_hour: int,
    start_minute: int,
    end_hour: int,
    end_minute: int,
) -> TimeRange:
    """
    Combine a date with start and end clock times.

    An end earlier than the start moves to the following day (22:00 -> 02:00).
    Raises ``ValueError`` for impossible clock values.
    """
    start = datetime.combine(day, time(start_hour, start_minute))
    end = datetime.combine(day, time(end_hour, end_minute))
    if end < start:
        end += timedelta(days=1)
    return TimeRange(start=start, end=end)


def range_interval(original_text: str, time_range: TimeRange, timezone: str) -> RangeInterval:
    """Encode a wall-clock range for storage, tagged with the zone it was typed in."""
    return RangeInterval(
        original_text=original_text,
        start_timestamp=Timestamp(seconds=encode_wall_clock(time_range.start)),
        end_timestamp=Timestamp(seconds=encode_wall_clock(time_range.end)),
        timezone=timezone,
    )


def date_interval(original_text: str, day: date, timezone: Optional[str]) -> PointInterval:
    """Plain date stored as local-calendar midnight."""
    return PointInterval(
        original_text=original_text,
        timestamp=Timestamp(seconds=local_midnight_seconds(day)),
        timezone=timezone,
    )


def next_weekday(today: date, weekday: int) -> date:
    """Next occurrence of ``weekday`` (Sunday = 0), today included."""
    return today + relativedelta(weekday=RELATIVE_WEEKDAYS[weekday])


def basic_date_parsing(
    raw_input: str,
    is_meeting: bool = False,
    timezone: str = "UTC",
    *,
    today: Optional[date] = None,
) -> List[Interval]:
    """
    Parse ``raw_input`` into intervals without any external calls.

    ``today`` anchors missing years and weekday names; it defaults to the current
    date in ``timezone``.
    """
    today = today or now_in_timezone(timezone).date()
    intervals: List[Interval] = []

    for segment in split_segments(raw_input):
        if is_meeting:
            interval = _parse_meeting_segment(segment, timezone, today)
            if interval is None:
                LOGGER.debug("basic_parser.needs_llm", segment=segment)
                interval = PointInterval(
                    original_text=segment,
                    timestamp=Timestamp.now(),
                    timezone=timezone,
                    needs_llm_parsing=True,
                )
        else:
            interval = _parse_date_segment(segment, timezone, today)
            if interval is None:
                LOGGER.debug("basic_parser.segment_unparsed", segment=segment)
                continue
        intervals.append(interval)

    return intervals


def _parse_meeting_segment(segment: str, timezone: str, today: date) -> Optional[RangeInterval]:
    match = NUMERIC_DATE_RANGE.search(segment)
    if match:
        month, day, year_text, start_hour, start_minute, end_hour, end_minute = match.groups()
        try:
            day_value = date(resolve_year(year_text, today), int(month), int(day))
            time_range = build_time_range(
                day_value,
                int(start_hour),
                int(start_minute or 0),
                int(end_hour),
                int(end_minute or 0),
            )
        except ValueError:
            return None
        return range_interval(segment, time_range, timezone)

    match = WEEKDAY_RANGE.search(segment)
    if match:
        day_name, start_hour, start_minute, end_hour, end_minute = match.groups()
        weekday = day_of_week_index(day_name)
        if weekday < 0:
            return None
        try:
            time_range = build_time_range(
                next_weekday(today, weekday),
                int(start_hour),
                int(start_minute or 0),
                int(end_hour),
                int(end_minute or 0),
            )
        except ValueError:
            return None
        return range_interval(segment, time_range, timezone)

    return None


def _parse_date_segment(segment: str, timezone: str, today: date) -> Optional[PointInterval]:
    match = NUMERIC_DATE.search(segment)
    if match:
        month, day, year_text = match.groups()
        try:
            value = date(resolve_year(year_text, today), int(month), int(day))
        except ValueError:
            return None
        return date_interval(segment, value, timezone)

    match = NAMED_MONTH_DATE.search(segment)
    if match:
        month_name, day, year_text = match.groups()
        month = month_index(month_name)
        if month < 0:
            return None
        try:
            value = date(resolve_year(year_text, today), month + 1, int(day))
        except ValueError:
            return None
        return date_interval(segment, value, timezone)

    return None
