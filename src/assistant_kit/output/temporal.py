"""Natural-language resolution of temporal expressions.

This is the first of the two parsing stages for dates and times: free text
such as "fifteen minutes shy of midnight on July 4th, 1968" becomes canonical
text ("1968-07-04T23:45:00") which the strict stage parses with a fixed
format. Resolution is heuristic by nature, so it sits behind the
`TemporalResolver` protocol and can be swapped without touching the parser.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date, timedelta
from typing import Protocol

from assistant_kit.output.shapes import ValueKind

_MINUTES_PER_DAY = 24 * 60

_MONTHS = {
    "january": 1, "jan": 1, "february": 2, "feb": 2, "march": 3, "mar": 3,
    "april": 4, "apr": 4, "may": 5, "june": 6, "jun": 6, "july": 7, "jul": 7,
    "august": 8, "aug": 8, "september": 9, "sept": 9, "sep": 9,
    "october": 10, "oct": 10, "november": 11, "nov": 11, "december": 12, "dec": 12,
}

_NUMBER_WORDS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
    "thirteen": 13, "fourteen": 14, "fifteen": 15, "sixteen": 16,
    "seventeen": 17, "eighteen": 18, "nineteen": 19, "twenty": 20,
    "thirty": 30, "forty": 40, "fifty": 50,
}

_MONTH_ALT = "|".join(sorted(_MONTHS, key=len, reverse=True))
_WORD_ALT = "|".join(sorted(_NUMBER_WORDS, key=len, reverse=True))
_NUMBER = rf"\d{{1,2}}|(?:{_WORD_ALT})(?:[- ](?:{_WORD_ALT}))?"
_MERIDIEM = r"[ap]\.?m\.?"

_ISO_DATETIME = re.compile(
    r"\b(?P<year>\d{4})-(?P<month>\d{1,2})-(?P<day>\d{1,2})[T ]"
    r"(?P<hour>\d{1,2}):(?P<minute>\d{2})(?::(?P<second>\d{2}))?"
)
_ISO_DATE = re.compile(r"\b(?P<year>\d{4})-(?P<month>\d{1,2})-(?P<day>\d{1,2})\b")
_MONTH_FIRST = re.compile(
    rf"\b(?P<month>{_MONTH_ALT})\b\.?\s+(?P<day>\d{{1,2}})(?:st|nd|rd|th)?\b"
    r"(?:,?\s+(?P<year>\d{4})\b)?",
    re.IGNORECASE,
)
_DAY_FIRST = re.compile(
    rf"\b(?P<day>\d{{1,2}})(?:st|nd|rd|th)?\s+(?:of\s+)?(?P<month>{_MONTH_ALT})\b\.?"
    r"(?:,?\s+(?P<year>\d{4})\b)?",
    re.IGNORECASE,
)
_YEAR = re.compile(r"\b(1[6-9]\d{2}|2\d{3})\b")
_RELATIVE_DAY = re.compile(r"\b(today|tonight|tomorrow|yesterday)\b", re.IGNORECASE)

_CLOCK = re.compile(
    r"\b(?P<hour>[01]?\d|2[0-3]):(?P<minute>[0-5]\d)(?::(?P<second>[0-5]\d))?"
    rf"(?:\s*(?P<meridiem>{_MERIDIEM}))?(?!\w)",
    re.IGNORECASE,
)
_OFFSET = re.compile(
    rf"\b(?:(?P<amount>{_NUMBER})\s+minutes?|(?:a\s+)?(?P<fraction>quarter|half))\s+"
    r"(?P<direction>before|to|shy of|short of|until|till|past|after)\s+"
    rf"(?:(?P<named>midnight|noon|midday)|(?P<hour>{_NUMBER})(?:\s*o'clock)?"
    rf"(?:\s*(?P<meridiem>{_MERIDIEM}))?)(?!\w)",
    re.IGNORECASE,
)
_HOUR_MERIDIEM = re.compile(
    rf"\b(?P<hour>1[0-2]|0?[1-9])\s*(?P<meridiem>{_MERIDIEM})(?!\w)", re.IGNORECASE
)
_OCLOCK = re.compile(
    rf"\b(?P<hour>{_NUMBER})\s*o'clock(?:\s*(?P<meridiem>{_MERIDIEM}))?",
    re.IGNORECASE,
)
_NAMED_TIME = re.compile(r"\b(midnight|noon|midday)\b", re.IGNORECASE)


class TemporalResolver(Protocol):
    """Turns free text into canonical temporal text for one kind."""

    def resolve(self, text: str, kind: ValueKind) -> str | None:
        """Return canonical text for `kind`, or None if nothing matches."""


class HeuristicTemporalResolver:
    """Pattern-based resolver for common English date and time phrases.

    Canonical forms are ``YYYY-MM-DD``, ``HH:MM:SS`` and
    ``YYYY-MM-DDTHH:MM:SS``. A date without a year takes the first four-digit
    year mentioned elsewhere in the text, falling back to the reference year.
    Relative days ("tomorrow") are resolved against `today()`.
    """

    def __init__(self, today: Callable[[], date] = date.today) -> None:
        self._today = today

    def resolve(self, text: str, kind: ValueKind) -> str | None:
        if kind is ValueKind.DATE:
            resolved = self._resolve_date(text)
            return resolved.isoformat() if resolved else None
        if kind is ValueKind.TIME:
            seconds = self._resolve_time(text)
            return _format_seconds(seconds) if seconds is not None else None
        if kind is ValueKind.DATETIME:
            for iso in _ISO_DATETIME.finditer(text):
                resolved = _iso_datetime(iso)
                if resolved:
                    return resolved
            day = self._resolve_date(text)
            seconds = self._resolve_time(text)
            if day is None or seconds is None:
                return None
            return f"{day.isoformat()}T{_format_seconds(seconds)}"
        raise ValueError(f"Not a temporal kind: {kind.value}")

    def _resolve_date(self, text: str) -> date | None:
        for pattern in (_ISO_DATETIME, _ISO_DATE):
            for match in pattern.finditer(text):
                found = _safe_date(
                    int(match["year"]), int(match["month"]), int(match["day"])
                )
                if found:
                    return found

        for pattern in (_MONTH_FIRST, _DAY_FIRST):
            for match in pattern.finditer(text):
                year = match["year"] or self._infer_year(text)
                found = _safe_date(
                    int(year), _MONTHS[match["month"].lower()], int(match["day"])
                )
                if found:
                    return found

        relative = _RELATIVE_DAY.search(text)
        if relative:
            offset = {"yesterday": -1, "tomorrow": 1}.get(relative.group(1).lower(), 0)
            return self._today() + timedelta(days=offset)
        return None

    def _infer_year(self, text: str) -> int:
        mentioned = _YEAR.search(text)
        if mentioned:
            return int(mentioned.group(1))
        return self._today().year

    @staticmethod
    def _resolve_time(text: str) -> int | None:
        """Resolve a time of day as seconds since midnight."""

        iso = _ISO_DATETIME.search(text)
        if iso and int(iso["hour"]) <= 23:
            return (int(iso["hour"]) * 60 + int(iso["minute"])) * 60 + int(
                iso["second"] or 0
            )

        clock = _CLOCK.search(text)
        if clock:
            hour = _apply_meridiem(int(clock["hour"]), clock["meridiem"])
            return (hour * 60 + int(clock["minute"])) * 60 + int(clock["second"] or 0)

        for offset in _OFFSET.finditer(text):
            anchor = _anchor_minutes(offset)
            if anchor is None:
                continue
            if offset["fraction"]:
                amount = 15 if offset["fraction"].lower() == "quarter" else 30
            else:
                amount = _to_int(offset["amount"])
            if amount is None or amount >= 60 * 12:
                continue
            if offset["direction"].lower() in ("past", "after"):
                return ((anchor + amount) % _MINUTES_PER_DAY) * 60
            return ((anchor - amount) % _MINUTES_PER_DAY) * 60

        hour_only = _HOUR_MERIDIEM.search(text)
        if hour_only:
            return _apply_meridiem(int(hour_only["hour"]), hour_only["meridiem"]) * 3600

        for oclock in _OCLOCK.finditer(text):
            hour = _to_int(oclock["hour"])
            if hour is not None and hour <= 23:
                return _apply_meridiem(hour, oclock["meridiem"]) * 3600

        named = _NAMED_TIME.search(text)
        if named:
            return 0 if named.group(1).lower() == "midnight" else 12 * 3600
        return None


def _anchor_minutes(match: re.Match[str]) -> int | None:
    if match["named"]:
        return 0 if match["named"].lower() == "midnight" else 12 * 60
    hour = _to_int(match["hour"])
    if hour is None or hour > 23:
        return None
    return _apply_meridiem(hour, match["meridiem"]) * 60


def _to_int(token: str | None) -> int | None:
    if not token:
        return None
    if token.isdigit():
        return int(token)
    total = 0
    for part in re.split(r"[- ]", token.lower()):
        if part not in _NUMBER_WORDS:
            return None
        total += _NUMBER_WORDS[part]
    return total


def _apply_meridiem(hour: int, meridiem: str | None) -> int:
    if not meridiem or hour > 12:
        return hour
    is_pm = meridiem.lower().startswith("p")
    if hour == 12:
        return 12 if is_pm else 0
    return hour + 12 if is_pm else hour


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _iso_datetime(match: re.Match[str]) -> str | None:
    day = _safe_date(int(match["year"]), int(match["month"]), int(match["day"]))
    hour, minute = int(match["hour"]), int(match["minute"])
    second = int(match["second"] or 0)
    if day is None or hour > 23 or minute > 59 or second > 59:
        return None
    return f"{day.isoformat()}T{hour:02d}:{minute:02d}:{second:02d}"


def _format_seconds(seconds: int) -> str:
    return f"{seconds // 3600:02d}:{seconds // 60 % 60:02d}:{seconds % 60:02d}"
