"""Tests for month and weekday name matching."""

import pytest

from okdates.lexicon import MONTH_NAMES, WEEKDAY_NAMES, day_of_week_index, month_index


class TestMonthIndex:
    @pytest.mark.parametrize("index,name", list(enumerate(MONTH_NAMES)))
    def test_full_names(self, index, name):
        assert month_index(name) == index

    @pytest.mark.parametrize(
        "name,expected",
        [("jan", 0), ("feb", 1), ("mar", 2), ("apr", 3), ("jun", 5), ("jul", 6),
         ("aug", 7), ("sep", 8), ("oct", 9), ("nov", 10), ("dec", 11)],
    )
    def test_abbreviations(self, name, expected):
        assert month_index(name) == expected

    def test_case_insensitive(self):
        assert month_index("January") == 0
        assert month_index("JUNE") == 5
        assert month_index("Dec") == 11

    def test_prefix_match_picks_first_candidate(self):
        assert month_index("sept") == 8
        assert month_index("ju") == 5
        assert month_index("ma") == 2

    def test_unknown_names(self):
        assert month_index("xyz") == -1
        assert month_index("notamonth") == -1

    def test_empty_string_matches_first_month(self):
        assert month_index("") == 0


class TestDayOfWeekIndex:
    @pytest.mark.parametrize("index,name", list(enumerate(WEEKDAY_NAMES)))
    def test_full_names_sunday_first(self, index, name):
        assert day_of_week_index(name) == index

    @pytest.mark.parametrize(
        "name,expected",
        [("sun", 0), ("mon", 1), ("tue", 2), ("wed", 3), ("thu", 4), ("fri", 5), ("sat", 6)],
    )
    def test_abbreviations(self, name, expected):
        assert day_of_week_index(name) == expected

    def test_case_insensitive(self):
        assert day_of_week_index("Monday") == 1
        assert day_of_week_index("FRIDAY") == 5
        assert day_of_week_index("Wed") == 3

    def test_prefix_match(self):
        assert day_of_week_index("t") == 2
        assert day_of_week_index("thur") == 4

    def test_unknown_names(self):
        assert day_of_week_index("xyz") == -1
        assert day_of_week_index("notaday") == -1

    def test_empty_string_matches_sunday(self):
        assert day_of_week_index("") == 0
