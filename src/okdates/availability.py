"""
Availability aggregation across participants.

Two modes, chosen by ``Event.is_meeting``:

* date events: one column per distinct calendar date any participant named.
* meetings: one column per fixed-length slot. The daily slot window is derived
  from the union of all submitted ranges, and every slot is laid out in the
  viewer's timezone.

Each pass is a pure function of its inputs; nothing is cached between calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Literal, Optional, Sequence, Set, Tuple

import structlog

from .models import Event, Participant, PointInterval, RangeInterval
from .timezones import convert_zone, date_key, decode_wall_clock, get_zone, local_date_from_seconds

LOGGER = structlog.get_logger(__name__)

AVAILABLE = "available"
UNAVAILABLE = "unavailable"
Availability = Literal["available", "unavailable"]

MINUTES_PER_DAY = 24 * 60
DEFAULT_DAY_START_MINUTE = 7 * 60
DEFAULT_DAY_END_MINUTE = 19 * 60
MINIMUM_WINDOW_MINUTES = 2 * 60
WINDOW_PADDING_MINUTES = 60
WINDOW_ROUNDING_MINUTES = 15


@dataclass
class DateInfo:
    """One column of the availability grid: a date, or a meeting slot."""

    date: date
    date_string: str
    formatted_date: str
    slot_start: Optional[datetime] = None
    slot_end: Optional[datetime] = None
    timezone: Optional[str] = None

    @property
    def is_slot(self) -> bool:
        return self.slot_start is not None and self.slot_end is not None


@dataclass
class AvailabilityResult:
    """Grid columns, per-participant rows, and per-column tallies."""

    slots: List[DateInfo] = field(default_factory=list)
    availability_by_participant: Dict[str, List[Availability]] = field(default_factory=dict)
    available_counts: Dict[str, int] = field(default_factory=dict)
    common_slots: Set[str] = field(default_factory=set)
    participant_count: int = 0
    is_meeting: bool = False

    def slot_index(self, slot_key: str) -> int:
        for index, slot in enumerate(self.slots):
            if slot.date_string == slot_key:
                return index
        return -1

    def is_available(self, participant_key: str, slot_key: str) -> bool:
        index = self.slot_index(slot_key)
        row = self.availability_by_participant.get(participant_key)
        if index == -1 or row is None:
            return False
        return row[index] == AVAILABLE

    def available_count(self, slot_key: str) -> int:
        return self.available_counts.get(slot_key, 0)

    def is_common(self, slot_key: str) -> bool:
        return slot_key in self.common_slots

    def participation_percentage(self, slot_key: str) -> float:
        if self.participant_count == 0:
            return 0.0
        return self.available_count(slot_key) / self.participant_count * 100

    def participation_level(self, slot_key: str) -> Optional[str]:
        """``low`` up to 50 %, ``medium`` up to 75 %, ``high`` above."""
        if self.participant_count == 0:
            return None
        percentage = self.participation_percentage(slot_key)
        if percentage <= 50:
            return "low"
        if percentage <= 75:
            return "medium"
        return "high"

    def is_first_slot_of_day(self, slot_key: str) -> bool:
        """First meeting slot of its calendar date; always false for date events."""
        if not self.is_meeting:
            return False
        index = self.slot_index(slot_key)
        if index <= 0:
            return index == 0
        return self.slots[index].date != self.slots[index - 1].date

    def common_slot_infos(self) -> List[DateInfo]:
        """Common slots in grid order."""
        return [slot for slot in self.slots if slot.date_string in self.common_slots]


@dataclass(frozen=True)
class _DecodedRange:
    """A participant range read back in its own zone and in the viewer's zone."""

    local_start: datetime
    local_end: datetime
    viewer_start: datetime
    viewer_end: datetime


def aggregate_availability(
    event: Event,
    participants: Sequence[Participant],
    viewer_timezone: str,
    *,
    fallback_timezone: str = "UTC",
    default_meeting_duration: int = 60,
) -> AvailabilityResult:
    """
    Build the availability grid for ``event`` as seen from ``viewer_timezone``.

    ``fallback_timezone`` applies to records that carry no zone of their own and
    belong to a participant who did not submit one either.
    """
    if event is None:
        raise ValueError("event is required for availability aggregation")

    if event.is_meeting:
        duration = event.meeting_duration or default_meeting_duration
        if duration <= 0:
            duration = default_meeting_duration
        result = _aggregate_meeting(participants, viewer_timezone, fallback_timezone, duration)
    else:
        result = _aggregate_dates(participants, fallback_timezone)

    result.is_meeting = event.is_meeting
    result.participant_count = len(participants)
    result.available_counts = _count_available(result.slots, result.availability_by_participant, participants)
    result.common_slots = _common_slots(result.slots, result.available_counts, len(participants))

    LOGGER.debug(
        "availability.computed",
        is_meeting=event.is_meeting,
        participants=len(participants),
        slots=len(result.slots),
        common=len(result.common_slots),
    )
    return result


def format_day(value: date) -> str:
    """``Sun, Jun 15``."""
    return f"{value:%a, %b} {value.day}"


def _record_zone(interval: PointInterval | RangeInterval, participant: Participant, fallback: str) -> str:
    return interval.timezone or participant.timezone or fallback


def _aggregate_dates(participants: Sequence[Participant], fallback_timezone: str) -> AvailabilityResult:
    days_by_participant: List[Set[date]] = []
    all_days: Set[date] = set()
    for participant in participants:
        days = set(_participant_days(participant, fallback_timezone))
        days_by_participant.append(days)
        all_days.update(days)

    sorted_days = sorted(all_days)
    slots = [DateInfo(date=day, date_string=date_key(day), formatted_date=format_day(day)) for day in sorted_days]

    availability: Dict[str, List[Availability]] = {}
    for participant, days in zip(participants, days_by_participant):
        availability[participant.key] = [AVAILABLE if day in days else UNAVAILABLE for day in sorted_days]

    return AvailabilityResult(slots=slots, availability_by_participant=availability)


def _participant_days(participant: Participant, fallback_timezone: str) -> Iterable[date]:
    """Calendar dates a participant named; ranges count for their start date."""
    for interval in participant.parsed_dates:
        if isinstance(interval, PointInterval):
            if interval.needs_llm_parsing:
                continue
            day = _safe_local_date(interval, participant)
        else:
            decoded = _safe_decode(interval, participant, _record_zone(interval, participant, fallback_timezone))
            day = decoded[0].date() if decoded else None
        if day is not None:
            yield day


def _aggregate_meeting(
    participants: Sequence[Participant],
    viewer_timezone: str,
    fallback_timezone: str,
    duration: int,
) -> AvailabilityResult:
    viewer_zone = get_zone(viewer_timezone)
    ranges_by_participant: List[List[_DecodedRange]] = []
    all_days: Set[date] = set()

    for participant in participants:
        ranges: List[_DecodedRange] = []
        for interval in participant.parsed_dates:
            if isinstance(interval, PointInterval):
                if not interval.needs_llm_parsing:
                    day = _safe_local_date(interval, participant)
                    if day is not None:
                        all_days.add(day)
                continue
            decoded = _safe_decode(interval, participant, _record_zone(interval, participant, fallback_timezone))
            if decoded is None:
                continue
            local_start, local_end = decoded
            all_days.add(local_start.date())
            all_days.add(local_end.date())
            ranges.append(
                _DecodedRange(
                    local_start=local_start,
                    local_end=local_end,
                    viewer_start=convert_zone(local_start, viewer_timezone),
                    viewer_end=convert_zone(local_end, viewer_timezone),
                )
            )
        ranges_by_participant.append(ranges)

    earliest, latest = _slot_window(item for ranges in ranges_by_participant for item in ranges)

    slots: List[DateInfo] = []
    for day in sorted(all_days):
        midnight = datetime.combine(day, time(0, 0), tzinfo=viewer_zone)
        minute = earliest
        while minute + duration <= latest:
            end_minute = minute + duration
            slots.append(
                DateInfo(
                    date=day,
                    date_string=f"{date_key(day)}-{minute // 60:02d}-{minute % 60:02d}",
                    formatted_date=(
                        f"{format_day(day)} "
                        f"{minute // 60:02d}:{minute % 60:02d}-{end_minute // 60:02d}:{end_minute % 60:02d}"
                    ),
                    slot_start=midnight + timedelta(minutes=minute),
                    slot_end=midnight + timedelta(minutes=end_minute),
                    timezone=viewer_timezone,
                )
            )
            minute += duration

    availability: Dict[str, List[Availability]] = {}
    for participant, ranges in zip(participants, ranges_by_participant):
        row: List[Availability] = [UNAVAILABLE] * len(slots)
        for index, slot in enumerate(slots):
            if any(_slot_within(slot, item) for item in ranges):
                row[index] = AVAILABLE
        availability[participant.key] = row

    return AvailabilityResult(slots=slots, availability_by_participant=availability)


def _slot_window(ranges: Iterable[_DecodedRange]) -> Tuple[int, int]:
    """
    Daily slot window in minutes, from each range's wall clock in its own zone.

    A range that runs past midnight opens the window to the end of the day, and
    to the start of the day too unless it stops exactly at midnight.
    """
    earliest = MINUTES_PER_DAY
    latest = 0
    seen_any = False
    for item in ranges:
        seen_any = True
        start_minutes = item.local_start.hour * 60 + item.local_start.minute
        end_minutes = item.local_end.hour * 60 + item.local_end.minute
        earliest = min(earliest, start_minutes)
        days_spanned = (item.local_end.date() - item.local_start.date()).days
        if days_spanned > 0:
            latest = MINUTES_PER_DAY
            if end_minutes > 0 or days_spanned > 1:
                earliest = 0
        else:
            latest = max(latest, end_minutes)

    if not seen_any:
        return DEFAULT_DAY_START_MINUTE, DEFAULT_DAY_END_MINUTE

    if latest - earliest < MINIMUM_WINDOW_MINUTES:
        earliest = max(0, earliest - WINDOW_PADDING_MINUTES)
        latest = min(MINUTES_PER_DAY, latest + WINDOW_PADDING_MINUTES)

    earliest = (earliest // WINDOW_ROUNDING_MINUTES) * WINDOW_ROUNDING_MINUTES
    latest = -(-latest // WINDOW_ROUNDING_MINUTES) * WINDOW_ROUNDING_MINUTES
    return earliest, latest


def _slot_within(slot: DateInfo, item: _DecodedRange) -> bool:
    """Whether ``slot`` lies entirely inside the range, both read in the viewer's zone."""
    slot_start = slot.slot_start.timestamp()
    slot_end = slot.slot_end.timestamp()
    range_start = item.viewer_start.timestamp()
    range_end = item.viewer_end.timestamp()
    start_day = item.viewer_start.date()
    end_day = item.viewer_end.date()

    if start_day == end_day:
        return slot.date == start_day and slot_start >= range_start and slot_end <= range_end
    if slot.date == start_day:
        return slot_start >= range_start
    if slot.date == end_day:
        return slot_end <= range_end
    return start_day < slot.date < end_day


def _count_available(
    slots: Sequence[DateInfo],
    availability: Dict[str, List[Availability]],
    participants: Sequence[Participant],
) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for index, slot in enumerate(slots):
        count = 0
        for participant in participants:
            row = availability.get(participant.key)
            if row and row[index] == AVAILABLE:
                count += 1
        counts[slot.date_string] = count
    return counts


def _common_slots(slots: Sequence[DateInfo], counts: Dict[str, int], participant_count: int) -> Set[str]:
    if participant_count == 0:
        return set()
    return {slot.date_string for slot in slots if counts.get(slot.date_string, 0) == participant_count}


def _safe_local_date(interval: PointInterval, participant: Participant) -> Optional[date]:
    try:
        return local_date_from_seconds(interval.timestamp.seconds)
    except (OverflowError, OSError, ValueError) as exc:
        LOGGER.warning(
            "availability.interval_malformed",
            participant=participant.key,
            original_text=interval.original_text,
            error=str(exc),
        )
        return None


def _safe_decode(
    interval: RangeInterval,
    participant: Participant,
    zone_name: str,
) -> Optional[Tuple[datetime, datetime]]:
    try:
        start = decode_wall_clock(interval.start_timestamp.seconds, zone_name)
        end = decode_wall_clock(interval.end_timestamp.seconds, zone_name)
    except (OverflowError, OSError, ValueError) as exc:
        LOGGER.warning(
            "availability.interval_malformed",
            participant=participant.key,
            original_text=interval.original_text,
            error=str(exc),
        )
        return None
    return start, end
