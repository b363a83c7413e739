"""Wrapper around an Ollama-compatible chat API used for free-text date parsing."""

from __future__ import annotations

import json
import re
import textwrap
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional, Union

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError
from tenacity import AsyncRetrying, RetryError, stop_after_attempt, wait_exponential

from .basic_parser import build_time_range, date_interval, range_interval
from .config import Settings
from .models import PointInterval, RangeInterval
from .timezones import now_in_timezone

LOGGER = structlog.get_logger(__name__)

DEFAULT_TITLE = "Available Dates"

CLOCK_TIME = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


class LlmParseError(RuntimeError):
    """The model call failed or returned something other than the agreed JSON."""


class _StrictPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class DatesPayload(_StrictPayload):
    """Response schema in date mode."""

    title: StrictStr
    available_dates: List[StrictStr]


class RangePayload(_StrictPayload):
    date: StrictStr
    start: StrictStr
    end: StrictStr


class MeetingPayload(_StrictPayload):
    """Response schema in meeting mode: whole dates plus time ranges."""

    title: StrictStr
    available_dates: List[StrictStr] = Field(default_factory=list)
    available_ranges: List[RangePayload]


@dataclass
class LlmParseOutput:
    """Title and intervals extracted by the model."""

    title: str
    dates: List[Union[PointInterval, RangeInterval]] = field(default_factory=list)
    model_used: str = ""
    model_raw_response: str = ""


class LlmDateParser:
    """Helper for asking a language model to interpret availability text."""

    def __init__(self, settings: Settings, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = settings
        self._transport = transport

    async def parse_dates(self, raw_input: str, is_meeting: bool = False, timezone: str = "UTC") -> LlmParseOutput:
        """
        Ask the model for the dates (and, for meetings, time ranges) in ``raw_input``.

        Raises :class:`LlmParseError` on any failure so callers can fall back.
        """
        schema_model = MeetingPayload if is_meeting else DatesPayload
        today = now_in_timezone(timezone).date()
        payload = {
            "model": self._settings.llm_model,
            "messages": [
                {
                    "role": "system",
                    "content": "You are a helpful executive assistant that knows all about schedules and dates.",
                },
                {"role": "user", "content": self._build_prompt(raw_input, is_meeting, timezone, today)},
            ],
            "format": schema_model.model_json_schema(),
            "stream": False,
            "options": {
                "temperature": self._settings.llm_temperature,
            },
        }

        LOGGER.info(
            "llm.request.start",
            model=self._settings.llm_model,
            is_meeting=is_meeting,
            timezone=timezone,
        )

        try:
            response_json = await self._invoke_chat(payload)
        except RetryError as exc:
            raise LlmParseError("Failed communicating with the language model after retries") from exc
        except httpx.HTTPError as exc:
            raise LlmParseError(f"Language model request failed: {exc}") from exc
        except ValueError as exc:
            raise LlmParseError("Language model returned a non-JSON body") from exc

        message = response_json.get("message") if isinstance(response_json, dict) else None
        if not isinstance(message, dict):
            raise LlmParseError("Language model response has no message object")
        raw_text = str(message.get("content") or "").strip()
        LOGGER.debug(
            "llm.response",
            preview=raw_text[:200],
            total_length=len(raw_text),
        )

        parsed = self._parse_response(raw_text)
        try:
            content = schema_model.model_validate(parsed)
        except ValidationError as exc:
            LOGGER.warning("llm.schema_invalid", errors=exc.error_count())
            raise LlmParseError("Invalid response format from LLM") from exc

        intervals: List[Union[PointInterval, RangeInterval]] = []
        for value in content.available_dates:
            point = self._date_to_interval(value, timezone if is_meeting else None)
            if point is not None:
                intervals.append(point)
        if isinstance(content, MeetingPayload):
            for item in content.available_ranges:
                ranged = self._range_to_interval(item, timezone)
                if ranged is not None:
                    intervals.append(ranged)

        title = content.title.strip() or DEFAULT_TITLE
        return LlmParseOutput(
            title=title,
            dates=intervals,
            model_used=f"ollama:{self._settings.llm_model}",
            model_raw_response=raw_text,
        )

    async def _invoke_chat(self, payload: dict[str, Any]) -> Any:
        """Execute the chat call under the configured attempt limit."""
        async for attempt in AsyncRetrying(
            wait=wait_exponential(multiplier=1, min=1, max=8),
            stop=stop_after_attempt(self._settings.llm_max_attempts),
            reraise=True,
        ):
            with attempt:
                async with httpx.AsyncClient(
                    base_url=str(self._settings.llm_base_url),
                    timeout=self._settings.llm_timeout_seconds,
                    headers=self._settings.llm_headers,
                    transport=self._transport,
                ) as client:
                    response = await client.post("/api/chat", json=payload)
                    response.raise_for_status()
                    return response.json()
        raise LlmParseError("Language model chat invocation failed")  # safety net

    @staticmethod
    def _build_prompt(raw_input: str, is_meeting: bool, timezone: str, today: date) -> str:
        """Construct the user prompt sent to the model."""
        if is_meeting:
            shape = """
            {
              "title": "Available Times for User",
              "available_dates": ["YYYY-MM-DD", ...],
              "available_ranges": [{"date": "YYYY-MM-DD", "start": "HH:MM", "end": "HH:MM"}, ...]
            }"""
            rules = """
            - Put every time window in "available_ranges" using 24-hour clock times.
            - Only use "available_dates" for days mentioned without any time.
            - A window that ends after midnight keeps the start date, e.g. 22:00 to 02:00."""
        else:
            shape = """
            {
              "title": "Available Dates for User",
              "available_dates": ["YYYY-MM-DD", "YYYY-MM-DD", "YYYY-MM-DD"]
            }"""
            rules = """
            - Handle ranges like "June 2-4" as individual dates (June 2, June 3, June 4)."""

        prompt = f"""
            Interpret the raw input from the user and determine which dates are relevant.
            Your response MUST be in valid JSON format with this exact structure:
            {shape}

            Important: Format all dates in ISO format (YYYY-MM-DD).
            Be flexible with date interpretations. For example, "next Monday" should resolve to the actual date.
            If a year is not specified, assume the current year.{rules}

            Context:
            - Today: {today.isoformat()} ({today:%A})
            - Timezone of the user: {timezone}
            """
        return f"{textwrap.dedent(prompt).strip()}\n\nHere is the raw input:\n{raw_input}"

    @staticmethod
    def _parse_response(raw_text: str) -> Any:
        """Extract JSON from the model response."""
        candidate = raw_text.strip()
        if not candidate:
            raise LlmParseError("Language model returned an empty response")

        if "```" in candidate:
            parts = candidate.split("```")
            if len(parts) >= 3:
                candidate = parts[1]
            else:
                candidate = parts[-1]
        candidate = candidate.strip()

        if candidate.lower().startswith("json"):
            candidate = candidate[4:].strip()

        try:
            return json.loads(candidate)
        except json.JSONDecodeError as exc:
            LOGGER.warning("llm.json_decode_failed")
            raise LlmParseError("Invalid response format from LLM") from exc

    @staticmethod
    def _date_to_interval(value: str, timezone: Optional[str]) -> Optional[PointInterval]:
        try:
            day = date.fromisoformat(value.strip())
        except ValueError:
            LOGGER.info("llm.entry_dropped", value=value)
            return None
        return date_interval(value, day, timezone)

    @staticmethod
    def _range_to_interval(item: RangePayload, timezone: str) -> Optional[RangeInterval]:
        start = CLOCK_TIME.match(item.start)
        end = CLOCK_TIME.match(item.end)
        if not start or not end:
            LOGGER.info("llm.entry_dropped", value=item.model_dump())
            return None
        try:
            day = date.fromisoformat(item.date.strip())
            time_range = build_time_range(
                day,
                int(start.group(1)),
                int(start.group(2)),
                int(end.group(1)),
                int(end.group(2)),
            )
        except ValueError:
            LOGGER.info("llm.entry_dropped", value=item.model_dump())
            return None
        original_text = f"{item.date} {item.start}-{item.end}"
        return range_interval(original_text, time_range, timezone)
