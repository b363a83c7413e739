"""Pydantic models shared by the parsers and the availability aggregator."""

from __future__ import annotations

import math
import time
from typing import Annotated, Any, Literal, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

LOGGER = structlog.get_logger(__name__)

MAX_RAW_INPUT_LENGTH = 2000
MAX_TIMEZONE_LENGTH = 100


class _DocumentModel(BaseModel):
    """Base for models that load from camelCase (Firestore-shaped) documents."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Timestamp(_DocumentModel):
    """Whole epoch seconds; sub-second precision is not modelled."""

    seconds: int
    nanoseconds: int = 0

    @classmethod
    def now(cls) -> "Timestamp":
        return cls(seconds=int(time.time()))


class PointInterval(_DocumentModel):
    """A single date ("this date")."""

    kind: Literal["point"] = "point"
    original_text: str
    timestamp: Timestamp
    timezone: Optional[str] = None
    is_confirmed: bool = False
    needs_llm_parsing: bool = False

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            "originalText": self.original_text,
            "timestamp": self.timestamp.model_dump(),
            "isConfirmed": self.is_confirmed,
        }
        if self.timezone is not None:
            document["timezone"] = self.timezone
        if self.needs_llm_parsing:
            document["needsLlmParsing"] = True
        return document


class RangeInterval(_DocumentModel):
    """A time range on a date ("this date from T1 to T2")."""

    kind: Literal["range"] = "range"
    original_text: str
    start_timestamp: Timestamp
    end_timestamp: Timestamp
    timezone: Optional[str] = None
    is_confirmed: bool = False

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            "originalText": self.original_text,
            "startTimestamp": self.start_timestamp.model_dump(),
            "endTimestamp": self.end_timestamp.model_dump(),
            "isConfirmed": self.is_confirmed,
        }
        if self.timezone is not None:
            document["timezone"] = self.timezone
        return document


ParsedInterval = Annotated[Union[PointInterval, RangeInterval], Field(discriminator="kind")]


def interval_from_document(document: Any) -> Union[PointInterval, RangeInterval]:
    """
    Build an interval from a stored document, inferring its kind from the fields present.

    Accepts the current ``timestamp`` / ``startTimestamp`` + ``endTimestamp`` shapes
    and the legacy bare ``{seconds, nanoseconds}`` shape. Raises ``ValueError`` for
    anything else.
    """
    if isinstance(document, (PointInterval, RangeInterval)):
        return document
    if not isinstance(document, dict):
        raise ValueError(f"Interval document must be a mapping, got {type(document).__name__}")

    common = {
        "original_text": str(document.get("originalText") or document.get("original_text") or ""),
        "timezone": document.get("timezone") or None,
        "is_confirmed": bool(document.get("isConfirmed", document.get("is_confirmed", False))),
    }

    start = document.get("startTimestamp") or document.get("start_timestamp")
    end = document.get("endTimestamp") or document.get("end_timestamp")
    if start and end:
        return RangeInterval(
            start_timestamp=_coerce_timestamp(start),
            end_timestamp=_coerce_timestamp(end),
            **common,
        )

    point = document.get("timestamp")
    if point is None and "seconds" in document:
        point = {"seconds": document["seconds"], "nanoseconds": document.get("nanoseconds", 0)}
    if point:
        return PointInterval(
            timestamp=_coerce_timestamp(point),
            needs_llm_parsing=bool(document.get("needsLlmParsing", document.get("needs_llm_parsing", False))),
            **common,
        )

    raise ValueError("Interval document has neither a timestamp nor a start/end pair")


def _coerce_timestamp(value: Any) -> Timestamp:
    if isinstance(value, Timestamp):
        return value
    if not isinstance(value, dict):
        raise ValueError(f"Timestamp must be a mapping, got {type(value).__name__}")
    seconds = value.get("seconds", value.get("_seconds"))
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        raise ValueError(f"Timestamp seconds must be numeric, got {seconds!r}")
    if not math.isfinite(seconds):
        raise ValueError(f"Timestamp seconds must be finite, got {seconds!r}")
    return Timestamp(seconds=int(seconds), nanoseconds=int(value.get("nanoseconds", 0) or 0))


class Event(_DocumentModel):
    """The parts of an event that shape aggregation and calendar export."""

    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    is_meeting: bool = False
    meeting_duration: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class Participant(_DocumentModel):
    """A participant's submitted availability."""

    id: Optional[str] = None
    name: str
    raw_date_input: str = ""
    parsed_dates: list[ParsedInterval] = Field(default_factory=list)
    timezone: Optional[str] = None

    @property
    def key(self) -> str:
        return self.id or self.name

    @field_validator("parsed_dates", mode="before")
    @classmethod
    def load_documents(cls, value: Any) -> list[Union[PointInterval, RangeInterval]]:
        """Accept stored documents, dropping the ones that cannot be read."""
        if value is None:
            return []
        intervals: list[Union[PointInterval, RangeInterval]] = []
        for item in value:
            try:
                intervals.append(interval_from_document(item))
            except ValueError as exc:
                LOGGER.warning("availability.interval_malformed", error=str(exc), document=repr(item)[:200])
        return intervals


class ParseRequest(_DocumentModel):
    """Input of a parse call."""

    raw_text: str = Field(min_length=1, max_length=MAX_RAW_INPUT_LENGTH, alias="rawDateInput")
    is_meeting: bool = False
    timezone: str = Field(default="UTC", min_length=1, max_length=MAX_TIMEZONE_LENGTH)

    @field_validator("raw_text")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Raw date input is required")
        return value


class ParseResult(_DocumentModel):
    """Output of a parse call."""

    parsed_intervals: list[ParsedInterval] = Field(default_factory=list, alias="parsedDates")
    title: Optional[str] = None
    is_meeting: bool = False
    timezone: str = "UTC"
    source: Literal["llm", "basic"] = "basic"

    @property
    def pending_segments(self) -> list[str]:
        """Segments the basic parser recognised as input but could not interpret."""
        return [
            interval.original_text
            for interval in self.parsed_intervals
            if isinstance(interval, PointInterval) and interval.needs_llm_parsing
        ]

    def to_document(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "isMeeting": self.is_meeting,
            "timezone": self.timezone,
            "source": self.source,
            "parsedDates": [interval.to_document() for interval in self.parsed_intervals],
        }
