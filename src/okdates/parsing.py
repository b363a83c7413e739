"""Parse requests: language model first, regex parser as the fallback."""

from __future__ import annotations

from typing import Optional

import structlog

from .basic_parser import basic_date_parsing
from .llm_client import LlmDateParser, LlmParseError
from .models import ParseRequest, ParseResult

LOGGER = structlog.get_logger(__name__)

BASIC_DATES_TITLE = "Available Dates (Basic Parsing)"
BASIC_TIMES_TITLE = "Available Times (Basic Parsing)"


async def parse_dates(request: ParseRequest, llm: Optional[LlmDateParser] = None) -> ParseResult:
    """
    Turn free text into intervals.

    The model gets exactly one call. Any failure falls through to
    :func:`basic_date_parsing`; results of the two parsers are never merged.
    Without an ``llm`` the basic parser is used directly.
    """
    if llm is not None:
        try:
            output = await llm.parse_dates(request.raw_text, request.is_meeting, request.timezone)
        except LlmParseError as exc:
            LOGGER.warning("parsing.llm_failed", error=str(exc), is_meeting=request.is_meeting)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("parsing.llm_crashed", error=str(exc), is_meeting=request.is_meeting)
        else:
            LOGGER.info("parsing.complete", source="llm", intervals=len(output.dates))
            return ParseResult(
                parsed_intervals=output.dates,
                title=output.title,
                is_meeting=request.is_meeting,
                timezone=request.timezone,
                source="llm",
            )

    LOGGER.info("parsing.fallback", is_meeting=request.is_meeting, timezone=request.timezone)
    return parse_dates_basic(request)


def parse_dates_basic(request: ParseRequest) -> ParseResult:
    """Deterministic parse of a request; never raises for unparseable text."""
    intervals = basic_date_parsing(request.raw_text, request.is_meeting, request.timezone)
    LOGGER.info("parsing.complete", source="basic", intervals=len(intervals))
    return ParseResult(
        parsed_intervals=intervals,
        title=BASIC_TIMES_TITLE if request.is_meeting else BASIC_DATES_TITLE,
        is_meeting=request.is_meeting,
        timezone=request.timezone,
        source="basic",
    )
