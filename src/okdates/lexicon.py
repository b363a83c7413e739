"""Month and weekday name matching used by the text parsers."""

from __future__ import annotations

from typing import Sequence

MONTH_NAMES = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)
MONTH_ABBREVIATIONS = tuple(name[:3] for name in MONTH_NAMES)

# Sunday first, matching the weekday numbering of the stored records.
WEEKDAY_NAMES = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)
WEEKDAY_ABBREVIATIONS = tuple(name[:3] for name in WEEKDAY_NAMES)


def month_index(name: str) -> int:
    """Return the 0-based month for ``name`` (``"Jun"`` -> 5), or -1."""
    return _match_name(name, MONTH_NAMES, MONTH_ABBREVIATIONS)


def day_of_week_index(name: str) -> int:
    """Return the weekday for ``name`` with Sunday as 0, or -1."""
    return _match_name(name, WEEKDAY_NAMES, WEEKDAY_ABBREVIATIONS)


def _match_name(name: str, full: Sequence[str], short: Sequence[str]) -> int:
    """
    Exact full name, then exact abbreviation, then the first candidate that
    starts with ``name``.

    An empty string is a prefix of every candidate and therefore resolves to 0.
    """
    needle = name.lower()
    if needle in full:
        return full.index(needle)
    if needle in short:
        return short.index(needle)
    for index, (long_name, short_name) in enumerate(zip(full, short)):
        if long_name.startswith(needle) or short_name.startswith(needle):
            return index
    return -1
