"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from okdates.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("OKDATES_LLM_MODEL", "OKDATES_LLM_MAX_ATTEMPTS", "OKDATES_DEFAULT_TIMEZONE"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert settings.llm_model == "llama3.1:8b"
        assert settings.llm_max_attempts == 1
        assert settings.default_timezone == "UTC"
        assert settings.default_meeting_duration == 60

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("OKDATES_LLM_MODEL", "mistral")
        monkeypatch.setenv("okdates_default_timezone", "Europe/Madrid")
        monkeypatch.setenv("OKDATES_LLM_ENABLED", "false")
        settings = Settings(_env_file=None)
        assert settings.llm_model == "mistral"
        assert settings.default_timezone == "Europe/Madrid"
        assert settings.llm_enabled is False

    @pytest.mark.parametrize(
        "overrides",
        [
            {"OKDATES_LLM_MAX_ATTEMPTS": 0},
            {"OKDATES_DEFAULT_MEETING_DURATION": 0},
            {"OKDATES_LLM_BASE_URL": "not a url"},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)

    def test_headers(self, settings):
        assert settings.llm_headers == {"X-Title": "OkDates"}
        keyed = Settings(_env_file=None, OKDATES_LLM_API_KEY="abc")
        assert keyed.llm_headers["Authorization"] == "Bearer abc"
