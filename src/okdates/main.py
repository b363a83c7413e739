"""Command-line entry point for the OkDates engine."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, TextIO

import structlog
from pydantic import ValidationError

from .availability import AvailabilityResult, aggregate_availability
from .config import Settings
from .ical import generate_icalendar
from .llm_client import LlmDateParser
from .models import Event, Participant, ParseRequest
from .parsing import parse_dates


def configure_logging(level: int = logging.INFO, stream: Optional[TextIO] = None) -> None:
    """Configure structlog + stdlib logging; logs go to stderr so stdout stays JSON."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=stream or sys.stderr,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


LOGGER = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """CLI argument parsing."""
    parser = argparse.ArgumentParser(prog="okdates", description="Parse availability text and aggregate it.")
    subcommands = parser.add_subparsers(dest="command", required=True)

    parse_cmd = subcommands.add_parser("parse", help="Parse free-text availability into intervals.")
    parse_cmd.add_argument("text", help="Raw availability text, e.g. '6/15, 6/16' or '6/15 from 9 to 12'.")
    parse_cmd.add_argument("--meeting", action="store_true", help="Expect time ranges instead of whole dates.")
    parse_cmd.add_argument("--timezone", help="IANA zone the times were typed in.")
    parse_cmd.add_argument("--no-llm", action="store_true", help="Skip the language model and use basic parsing.")

    availability_cmd = subcommands.add_parser("availability", help="Aggregate participants' availability.")
    availability_cmd.add_argument("file", type=Path, help="JSON file with 'event' and 'participants'.")
    availability_cmd.add_argument("--timezone", help="Viewer timezone for meeting slots.")

    ics_cmd = subcommands.add_parser("ics", help="Export one date or slot as an iCalendar file.")
    ics_cmd.add_argument("file", type=Path, help="JSON file with 'event' and 'participants'.")
    ics_cmd.add_argument("slot", help="Slot key, e.g. 2025-06-15 or 2025-06-15-09-00.")
    ics_cmd.add_argument("--timezone", help="Viewer timezone for meeting slots.")

    return parser


def cli(argv: Optional[list[str]] = None) -> int:
    """Console script entrypoint."""
    args = build_parser().parse_args(argv)

    try:
        settings = Settings()
    except ValidationError as exc:  # pragma: no cover - startup validation
        configure_logging()
        LOGGER.exception("settings.error", error=str(exc))
        return 2

    configure_logging(getattr(logging, settings.log_level.upper(), logging.INFO))

    try:
        if args.command == "parse":
            output = run_parse(settings, args.text, args.meeting, args.timezone, use_llm=not args.no_llm)
        else:
            event, participants = load_event_file(args.file)
            viewer_timezone = args.timezone or settings.default_timezone
            result = aggregate_availability(
                event,
                participants,
                viewer_timezone,
                fallback_timezone=settings.fallback_timezone,
                default_meeting_duration=settings.default_meeting_duration,
            )
            if args.command == "availability":
                output = json.dumps(describe_availability(result), indent=2)
            else:
                output = export_slot(event, result, args.slot, viewer_timezone if event.is_meeting else None)
    except (ValidationError, ValueError, OSError) as exc:
        LOGGER.error("cli.invalid_input", command=args.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except Exception as exc:  # pragma: no cover - top level
        LOGGER.exception("cli.failed", command=args.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(output)
    return 0


def run_parse(
    settings: Settings,
    text: str,
    is_meeting: bool,
    timezone: Optional[str],
    *,
    use_llm: bool = True,
) -> str:
    """Parse ``text`` and return the result document as JSON."""
    request = ParseRequest(raw_text=text, is_meeting=is_meeting, timezone=timezone or settings.default_timezone)
    llm = LlmDateParser(settings) if use_llm and settings.llm_enabled else None
    result = asyncio.run(parse_dates(request, llm))
    return json.dumps(result.to_document(), indent=2)


def load_event_file(path: Path) -> tuple[Event, list[Participant]]:
    """Read an ``{"event": ..., "participants": [...]}`` document."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or "event" not in data:
        raise ValueError(f"{path} must contain an 'event' object")
    event = Event.model_validate(data["event"])
    participants = [Participant.model_validate(item) for item in data.get("participants") or []]
    return event, participants


def describe_availability(result: AvailabilityResult) -> dict[str, Any]:
    """JSON-friendly view of an aggregation result."""
    return {
        "slots": [
            {
                "key": slot.date_string,
                "label": slot.formatted_date,
                "available": result.available_count(slot.date_string),
                "percentage": round(result.participation_percentage(slot.date_string), 1),
                "level": result.participation_level(slot.date_string),
                "common": result.is_common(slot.date_string),
            }
            for slot in result.slots
        ],
        "participants": result.availability_by_participant,
        "commonSlots": [slot.date_string for slot in result.common_slot_infos()],
    }


def export_slot(event: Event, result: AvailabilityResult, slot_key: str, timezone: Optional[str]) -> str:
    index = result.slot_index(slot_key)
    if index == -1:
        raise ValueError(f"Unknown slot {slot_key!r}")
    return generate_icalendar(event, result.slots[index], timezone=timezone)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(cli())
