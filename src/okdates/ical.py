"""iCalendar export for a chosen date or meeting slot."""

from __future__ import annotations

import re
from datetime import datetime, time, timedelta, timezone as dt_timezone
from typing import Optional

import structlog
from icalendar import Calendar, Event as ICalEvent, Timezone
from zoneinfo import ZoneInfo

from .availability import DateInfo
from .models import Event
from .timezones import UTC, get_zone

LOGGER = structlog.get_logger(__name__)

PRODUCT_ID = "OkDates"
UID_DOMAIN = "okdates.web.app"

CLOCK_TIME = re.compile(r"^(\d{1,2}):(\d{2})$")


def generate_icalendar(
    event: Event,
    slot: DateInfo,
    *,
    timezone: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Build a VCALENDAR document for ``event`` on ``slot``.

    Meeting slots use their own start and end. Events with ``start_time`` and
    ``end_time`` use those on the slot's date. Anything else becomes an all-day
    entry. With a ``timezone`` (or a slot carrying one), times are written as
    wall clock with a ``TZID`` and a matching VTIMEZONE; otherwise they are
    written in UTC.
    """
    now = now or datetime.now(tz=dt_timezone.utc)
    zone_name = timezone or slot.timezone
    zone = get_zone(zone_name)
    start, end = _event_bounds(event, slot, zone)

    calendar = Calendar()
    calendar.add("prodid", PRODUCT_ID)
    calendar.add("version", "2.0")
    calendar.add("calscale", "GREGORIAN")
    calendar.add("method", "PUBLISH")
    if zone.key != UTC.key:
        calendar.add_component(Timezone.from_tzinfo(zone))

    stamp = now.astimezone(dt_timezone.utc)
    vevent = ICalEvent()
    vevent.add("uid", f"{stamp:%Y%m%dT%H%M%SZ}-{event.id or 'event'}@{UID_DOMAIN}")
    vevent.add("dtstamp", stamp)
    vevent.add("dtstart", start.astimezone(zone))
    vevent.add("dtend", end.astimezone(zone))
    vevent.add("summary", event.title or "Untitled Event")

    description = event.description or ""
    if event.is_meeting and event.meeting_duration:
        description = f"{description}\nMeeting Duration: {event.meeting_duration} minutes"
    if description:
        vevent.add("description", description)
    if event.location:
        vevent.add("location", event.location)
    calendar.add_component(vevent)

    LOGGER.debug("ical.generated", event_id=event.id, slot=slot.date_string, timezone=zone.key)
    return calendar.to_ical().decode("utf-8")


def icalendar_filename(event: Event, slot: DateInfo) -> str:
    """Download name such as ``team-sync-2025-06-15-09-00.ics``."""
    title = re.sub(r"[^a-z0-9]+", "-", (event.title or "event").lower()).strip("-") or "event"
    return f"{title}-{slot.date_string}.ics"


def _event_bounds(event: Event, slot: DateInfo, zone: ZoneInfo) -> tuple[datetime, datetime]:
    if event.is_meeting and slot.slot_start is not None and slot.slot_end is not None:
        return slot.slot_start, slot.slot_end

    start_clock = _parse_clock(event.start_time)
    end_clock = _parse_clock(event.end_time)
    if start_clock is not None and end_clock is not None:
        start = datetime.combine(slot.date, start_clock, tzinfo=zone)
        end = datetime.combine(slot.date, end_clock, tzinfo=zone)
        if end < start:
            end += timedelta(days=1)
        return start, end

    start = datetime.combine(slot.date, time(0, 0), tzinfo=zone)
    end = datetime.combine(slot.date, time(23, 59, 59), tzinfo=zone)
    return start, end


def _parse_clock(value: Optional[str]) -> Optional[time]:
    if not value:
        return None
    match = CLOCK_TIME.match(value.strip())
    if not match:
        LOGGER.warning("ical.invalid_time", value=value)
        return None
    try:
        return time(int(match.group(1)), int(match.group(2)))
    except ValueError:
        LOGGER.warning("ical.invalid_time", value=value)
        return None
