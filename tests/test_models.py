"""Tests for the document models."""

import pytest
from pydantic import ValidationError

from okdates.models import (
    Participant,
    ParseRequest,
    ParseResult,
    PointInterval,
    RangeInterval,
    Timestamp,
    interval_from_document,
)


class TestIntervalFromDocument:
    def test_point_document(self):
        interval = interval_from_document(
            {"originalText": "6/15", "timestamp": {"seconds": 1750000000, "nanoseconds": 0}, "timezone": "UTC"}
        )
        assert isinstance(interval, PointInterval)
        assert interval.timestamp.seconds == 1750000000
        assert interval.original_text == "6/15"
        assert interval.timezone == "UTC"

    def test_range_document(self):
        interval = interval_from_document(
            {
                "originalText": "6/15 from 9 to 12",
                "startTimestamp": {"seconds": 100},
                "endTimestamp": {"seconds": 200},
                "isConfirmed": True,
            }
        )
        assert isinstance(interval, RangeInterval)
        assert (interval.start_timestamp.seconds, interval.end_timestamp.seconds) == (100, 200)
        assert interval.timezone is None
        assert interval.is_confirmed is True

    def test_snake_case_document(self):
        interval = interval_from_document(
            {"original_text": "x", "start_timestamp": {"seconds": 1}, "end_timestamp": {"seconds": 2}}
        )
        assert isinstance(interval, RangeInterval)

    def test_legacy_bare_seconds(self):
        interval = interval_from_document({"seconds": 1750000000, "nanoseconds": 5})
        assert isinstance(interval, PointInterval)
        assert interval.timestamp == Timestamp(seconds=1750000000, nanoseconds=5)
        assert interval.original_text == ""

    def test_admin_sdk_seconds_key(self):
        interval = interval_from_document({"timestamp": {"_seconds": 42}})
        assert interval.timestamp.seconds == 42

    def test_needs_llm_flag(self):
        interval = interval_from_document({"timestamp": {"seconds": 1}, "needsLlmParsing": True})
        assert interval.needs_llm_parsing is True

    def test_instances_pass_through(self):
        interval = PointInterval(original_text="6/15", timestamp=Timestamp(seconds=1))
        assert interval_from_document(interval) is interval

    @pytest.mark.parametrize(
        "document",
        [
            "6/15",
            {},
            {"originalText": "6/15"},
            {"timestamp": {"seconds": "soon"}},
            {"timestamp": {"seconds": True}},
            {"timestamp": {"seconds": float("nan")}},
            {"timestamp": 12},
        ],
    )
    def test_malformed(self, document):
        with pytest.raises(ValueError):
            interval_from_document(document)


class TestParticipant:
    def test_loads_camel_case_documents(self):
        participant = Participant.model_validate(
            {
                "id": "p1",
                "name": "Ada",
                "rawDateInput": "6/15",
                "timezone": "Europe/London",
                "parsedDates": [{"originalText": "6/15", "timestamp": {"seconds": 1}}],
            }
        )
        assert participant.key == "p1"
        assert participant.raw_date_input == "6/15"
        assert isinstance(participant.parsed_dates[0], PointInterval)

    def test_key_falls_back_to_name(self):
        assert Participant(name="Ada").key == "Ada"

    def test_malformed_intervals_are_dropped(self):
        participant = Participant.model_validate(
            {
                "name": "Ada",
                "parsedDates": [
                    {"timestamp": {"seconds": "later"}},
                    {"startTimestamp": {"seconds": 1}, "endTimestamp": {"seconds": 2}},
                ],
            }
        )
        assert len(participant.parsed_dates) == 1
        assert isinstance(participant.parsed_dates[0], RangeInterval)

    def test_missing_parsed_dates(self):
        assert Participant.model_validate({"name": "Ada", "parsedDates": None}).parsed_dates == []


class TestParseRequest:
    def test_alias_and_defaults(self):
        request = ParseRequest.model_validate({"rawDateInput": "6/15"})
        assert request.raw_text == "6/15"
        assert request.is_meeting is False
        assert request.timezone == "UTC"

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_blank_input_rejected(self, text):
        with pytest.raises(ValidationError):
            ParseRequest(raw_text=text)

    def test_input_length_limit(self):
        ParseRequest(raw_text="x" * 2000)
        with pytest.raises(ValidationError):
            ParseRequest(raw_text="x" * 2001)

    def test_timezone_length_limit(self):
        with pytest.raises(ValidationError):
            ParseRequest(raw_text="6/15", timezone="x" * 101)
        with pytest.raises(ValidationError):
            ParseRequest(raw_text="6/15", timezone="")


class TestParseResult:
    def test_document_shape(self):
        result = ParseResult(
            parsed_intervals=[
                RangeInterval(
                    original_text="6/15 from 9 to 12",
                    start_timestamp=Timestamp(seconds=100),
                    end_timestamp=Timestamp(seconds=200),
                    timezone="UTC",
                ),
                PointInterval(original_text="later", timestamp=Timestamp(seconds=1), needs_llm_parsing=True),
            ],
            title="Available Times (Basic Parsing)",
            is_meeting=True,
        )
        document = result.to_document()
        assert document["isMeeting"] is True
        assert document["source"] == "basic"
        assert document["parsedDates"][0] == {
            "originalText": "6/15 from 9 to 12",
            "startTimestamp": {"seconds": 100, "nanoseconds": 0},
            "endTimestamp": {"seconds": 200, "nanoseconds": 0},
            "isConfirmed": False,
            "timezone": "UTC",
        }
        assert document["parsedDates"][1]["needsLlmParsing"] is True
        assert "timezone" not in document["parsedDates"][1]
        assert result.pending_segments == ["later"]

    def test_parsed_dates_alias(self):
        result = ParseResult.model_validate(
            {"parsedDates": [{"kind": "point", "originalText": "6/15", "timestamp": {"seconds": 1}}]}
        )
        assert isinstance(result.parsed_intervals[0], PointInterval)
