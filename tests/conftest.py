"""
Shared fixtures for the OkDates test suite.

Interval factories build records the same way the parsers do, so tests can
describe availability in wall-clock terms.
"""

import json
from datetime import date
from typing import Callable, Optional

import httpx
import pytest

from okdates.basic_parser import build_time_range, date_interval, range_interval
from okdates.config import Settings
from okdates.models import Participant, PointInterval, RangeInterval


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        OKDATES_LLM_ENABLED=True,
        OKDATES_LLM_BASE_URL="http://llm.test",
        OKDATES_LLM_MODEL="test-model",
        OKDATES_LLM_TIMEOUT_SECONDS=5.0,
    )


@pytest.fixture
def make_range() -> Callable[..., RangeInterval]:
    """``make_range(date(2025, 6, 16), "09:00", "12:00", "UTC")``."""

    def factory(day: date, start: str, end: str, timezone: Optional[str] = "UTC") -> RangeInterval:
        start_hour, start_minute = (int(part) for part in start.split(":"))
        end_hour, end_minute = (int(part) for part in end.split(":"))
        time_range = build_time_range(day, start_hour, start_minute, end_hour, end_minute)
        interval = range_interval(f"{day:%m/%d} from {start} to {end}", time_range, timezone or "UTC")
        if timezone is None:
            interval = interval.model_copy(update={"timezone": None})
        return interval

    return factory


@pytest.fixture
def make_date() -> Callable[..., PointInterval]:
    def factory(day: date, timezone: Optional[str] = None) -> PointInterval:
        return date_interval(f"{day:%m/%d}", day, timezone)

    return factory


@pytest.fixture
def make_participant() -> Callable[..., Participant]:
    def factory(name: str, *intervals, timezone: Optional[str] = None) -> Participant:
        return Participant(name=name, raw_date_input="", parsed_dates=list(intervals), timezone=timezone)

    return factory


@pytest.fixture
def chat_transport() -> Callable[..., httpx.MockTransport]:
    """
    Build a mock Ollama transport answering with ``content``.

    The returned transport records the requests it served in ``.requests``.
    """

    def factory(content: object = "", status_code: int = 200) -> httpx.MockTransport:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            body = content if isinstance(content, str) else json.dumps(content)
            return httpx.Response(
                status_code,
                json={"model": "test-model", "message": {"role": "assistant", "content": body}, "done": True},
            )

        transport = httpx.MockTransport(handler)
        transport.requests = requests  # type: ignore[attr-defined]
        return transport

    return factory
