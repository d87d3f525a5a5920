# slashAI - Discord Bot and MCP Server
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""
Time Parser Module

Parses free-text reminder messages into a fire instant plus the note text
left over once the time phrase is cut out. Supports:

- Relative durations: "через 5 сек пойти гулять", "in 2 hours call mom"
- Clock times: "в 17:00", "в 10 часов", "at 9:30"
- Relative days: "завтра", "послезавтра", "5 числа", "on the 5th",
  optionally with a clock time ("завтра в 10:00")
- Calendar dates: "10 мая в 14:00 аптека", "10 May at 14:00 pharmacy"

Each pattern family is an independent matcher; the order in which they are
tried is passed in by the caller.
"""

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence

import dateparser

from .errors import TimeAlreadyPassed, UnrecognizedTimeExpression

logger = logging.getLogger("remindbot.reminders.time_parser")

# Unit roots; any inflection sharing the prefix matches ("минуты", "seconds")
UNIT_ROOTS = (
    ("сек", 1),
    ("sec", 1),
    ("мин", 60),
    ("min", 60),
    ("час", 3600),
    ("hour", 3600),
    ("hr", 3600),
)

# Single-letter abbreviations only match exactly
UNIT_ABBREVIATIONS = {
    "с": 1,
    "s": 1,
    "м": 60,
    "m": 60,
    "ч": 3600,
    "h": 3600,
}

# Without a lead word ("через", "in") a unit must be a regular form, so
# "купить 2 минералки" is not read as two minutes
_PLAIN_UNIT_RE = re.compile(
    r"сек(?:унд(?:а|у|ы|ами)?)?|мин(?:ут(?:а|у|ы|ами)?)?|час(?:а|ов|ами)?"
    r"|secs?|seconds?|mins?|minutes?|hours?|hrs?",
    re.IGNORECASE,
)

# Month words are resolved by dateparser; the year is chosen by roll-forward
DATE_LANGUAGES = ["ru", "en"]

DATEPARSER_SETTINGS = {
    "PARSERS": ["absolute-time"],
    "REQUIRE_PARTS": ["day", "month"],
}

_AT = r"(?:в|во|at)"

_DURATION_RE = re.compile(
    r"(?<![\w:])(?:(?P<lead>через|in|through)\s+)?(?P<value>\d+)\s*(?P<unit>[^\W\d_]+)",
    re.IGNORECASE,
)

_CLOCK_HM_RE = re.compile(
    rf"(?<!\w){_AT}\s+(?P<hour>\d{{1,2}}):(?P<minute>\d{{2}})(?!\d)",
    re.IGNORECASE,
)

_CLOCK_HOURS_RE = re.compile(
    rf"(?<!\w){_AT}\s+(?P<hour>\d{{1,2}})\s*(?:час(?:а|ов)?|ч|h|hours?|o'clock)(?!\w)",
    re.IGNORECASE,
)

_DAY_RE = re.compile(
    r"(?<!\w)(?:"
    r"(?P<after_tomorrow>послезавтра|(?:the\s+)?day\s+after\s+tomorrow)"
    r"|(?P<tomorrow>завтра|tomorrow)"
    r"|(?P<today>сегодня|today)"
    r"|(?P<mday>\d{1,2})(?:-?го)?\s*числа"
    r"|(?P<mday_go>\d{1,2})-го"
    r"|(?:on\s+)?(?:the\s+)?(?P<mday_en>\d{1,2})(?:st|nd|rd|th)"
    r")(?!\w)",
    re.IGNORECASE,
)

_CALENDAR_RE = re.compile(
    r"(?<!\w)(?P<day>\d{1,2})(?:-?го)?\s+(?P<month>[^\W\d_]+)\.?",
    re.IGNORECASE,
)

_PREVIOUS_WORD_RE = re.compile(r"([^\W\d_]+)\s*$")

_FILLER_RE = re.compile(
    r"^(?:напомни(?:ть)?(?:\s+мне)?|remind\s+me(?:\s+to)?)(?!\w)[\s,:]*",
    re.IGNORECASE,
)

_NOTE_EDGE_CHARS = " \t\n,.;:-–—"


@dataclass
class ParsedTime:
    """Result of parsing a time expression."""

    fire_at: datetime
    note: str  # residual text with the time phrase removed
    pattern: str  # name of the matcher that resolved it
    original_input: str


# =============================================================================
# Helpers
# =============================================================================


def _to_int(value: Optional[str]) -> Optional[int]:
    """Convert a regex capture to int, treating a failed conversion as no match."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _combine(now: datetime, day: date, hour: int, minute: int) -> datetime:
    """Build a datetime on `day` at hour:minute in the same zone as `now`."""
    naive = datetime(day.year, day.month, day.day, hour, minute)
    tz = now.tzinfo
    if tz is None:
        return naive

    # pytz zones need localize() to pick the right DST offset
    localize = getattr(tz, "localize", None)
    if localize is not None:
        return localize(naive)
    return naive.replace(tzinfo=tz)


def _shift(now: datetime, delta: timedelta) -> datetime:
    """Add a duration to `now`, normalizing pytz offsets across DST."""
    result = now + delta
    normalize = getattr(now.tzinfo, "normalize", None)
    if normalize is not None:
        return normalize(result)
    return result


def _unit_seconds(token: str) -> Optional[int]:
    """Map a unit token to its length in seconds by root prefix."""
    token = token.lower()
    if token in UNIT_ABBREVIATIONS:
        return UNIT_ABBREVIATIONS[token]
    for root, seconds in UNIT_ROOTS:
        if token.startswith(root):
            return seconds
    return None


def _leap_year_from(year: int) -> int:
    while not calendar.isleap(year):
        year += 1
    return year


def _month_day(day: int, month_word: str, now: datetime) -> Optional[tuple[int, int]]:
    """
    Resolve "10 мая" / "3 march" to (month, day) with dateparser.

    Returns:
        Tuple of (month, day) or None if the word is not a month or the
        day does not exist in it
    """
    # Parse against a leap year so "29 февраля" is always a valid date
    base = datetime(_leap_year_from(now.year), 1, 1)
    settings = dict(DATEPARSER_SETTINGS, RELATIVE_BASE=base)
    try:
        parsed = dateparser.parse(
            f"{day} {month_word.rstrip('.')}", languages=DATE_LANGUAGES, settings=settings
        )
    except ValueError:
        return None
    if parsed is None:
        return None
    return parsed.month, parsed.day


def _valid_clock(hour: Optional[int], minute: Optional[int]) -> bool:
    return hour is not None and minute is not None and 0 <= hour <= 23 and 0 <= minute <= 59


def find_clock(text: str) -> Optional[tuple[int, int, tuple[int, int]]]:
    """
    Find the first "в HH:MM" / "в H часов" phrase in text.

    Returns:
        Tuple of (hour, minute, span) or None if no valid clock phrase found
    """
    candidates = []
    for m in _CLOCK_HM_RE.finditer(text):
        candidates.append((m.start(), _to_int(m.group("hour")), _to_int(m.group("minute")), m.span()))
    for m in _CLOCK_HOURS_RE.finditer(text):
        candidates.append((m.start(), _to_int(m.group("hour")), 0, m.span()))

    for _, hour, minute, span in sorted(candidates):
        if _valid_clock(hour, minute):
            return hour, minute, span
    return None


def residual_note(text: str, spans: Iterable[tuple[int, int]]) -> str:
    """Cut the matched time phrases out of text and tidy what is left."""
    parts = []
    cursor = 0
    for start, end in sorted(spans):
        if start < cursor:
            start = cursor
        parts.append(text[cursor:start])
        cursor = max(cursor, end)
    parts.append(text[cursor:])

    note = " ".join(" ".join(parts).split())
    note = note.strip(_NOTE_EDGE_CHARS)
    note = _FILLER_RE.sub("", note)
    return note.strip(_NOTE_EDGE_CHARS)


# =============================================================================
# Matchers
# =============================================================================


class TimeMatcher:
    """One pattern family. Returns None when the text does not match."""

    name = "base"

    def try_parse(self, text: str, now: datetime) -> Optional[ParsedTime]:
        raise NotImplementedError

    def _result(self, text: str, fire_at: datetime, spans: Sequence[tuple[int, int]]) -> ParsedTime:
        return ParsedTime(
            fire_at=fire_at,
            note=residual_note(text, spans),
            pattern=self.name,
            original_input=text,
        )


class RelativeDurationMatcher(TimeMatcher):
    """"через 5 минут", "in 2 hours", "10 sec"."""

    name = "relative_duration"

    def try_parse(self, text: str, now: datetime) -> Optional[ParsedTime]:
        for m in _DURATION_RE.finditer(text):
            seconds = _unit_seconds(m.group("unit"))
            value = _to_int(m.group("value"))
            if seconds is None or value is None or value <= 0:
                continue

            if not m.group("lead"):
                unit = m.group("unit").lower()
                if unit not in UNIT_ABBREVIATIONS and not _PLAIN_UNIT_RE.fullmatch(unit):
                    continue
                # "в 10 часов" is a clock time, not a duration
                prev = _PREVIOUS_WORD_RE.search(text[: m.start()])
                if prev and re.fullmatch(_AT, prev.group(1), re.IGNORECASE):
                    continue

            try:
                fire_at = _shift(now, timedelta(seconds=value * seconds))
            except OverflowError:
                logger.debug(f"Duration out of range: {m.group(0)!r}")
                continue
            return self._result(text, fire_at, [m.span()])
        return None


class ClockTimeMatcher(TimeMatcher):
    """"в 17:00" / "at 9 hours": today if still ahead, otherwise tomorrow."""

    name = "clock_time"

    def try_parse(self, text: str, now: datetime) -> Optional[ParsedTime]:
        found = find_clock(text)
        if found is None:
            return None

        hour, minute, span = found
        fire_at = _combine(now, now.date(), hour, minute)
        if fire_at <= now:
            fire_at = _combine(now, now.date() + timedelta(days=1), hour, minute)
        return self._result(text, fire_at, [span])


class RelativeDayMatcher(TimeMatcher):
    """"завтра", "послезавтра", "5 числа", optionally with "в HH:MM"."""

    name = "relative_day"

    def __init__(self, default_hour: int = 9):
        self.default_hour = default_hour

    def try_parse(self, text: str, now: datetime) -> Optional[ParsedTime]:
        m = _DAY_RE.search(text)
        if m is None:
            return None

        spans = [m.span()]
        hour, minute = self.default_hour, 0
        clock = find_clock(text)
        if clock is not None:
            hour, minute, clock_span = clock
            spans.append(clock_span)

        if m.group("tomorrow"):
            fire_at = _combine(now, now.date() + timedelta(days=1), hour, minute)
        elif m.group("after_tomorrow"):
            fire_at = _combine(now, now.date() + timedelta(days=2), hour, minute)
        elif m.group("today"):
            fire_at = _combine(now, now.date(), hour, minute)
        else:
            mday = _to_int(m.group("mday") or m.group("mday_go") or m.group("mday_en"))
            fire_at = self._resolve_month_day(now, mday, hour, minute)
            if fire_at is None:
                return None

        return self._result(text, fire_at, spans)

    @staticmethod
    def _resolve_month_day(
        now: datetime, mday: Optional[int], hour: int, minute: int
    ) -> Optional[datetime]:
        """This month if the day is still ahead, else the next month that has it."""
        if mday is None or not 1 <= mday <= 31:
            return None

        year, month = now.year, now.month
        for _ in range(13):
            try:
                candidate = _combine(now, date(year, month, mday), hour, minute)
            except (ValueError, OverflowError):
                candidate = None  # e.g. the 31st in a 30-day month
            if candidate is not None and candidate > now:
                return candidate
            month += 1
            if month > 12:
                month = 1
                year += 1
        return None


class CalendarDateMatcher(TimeMatcher):
    """"10 мая в 14:00": this year unless already passed, then next year."""

    name = "calendar_date"

    def __init__(self, default_hour: int = 9):
        self.default_hour = default_hour

    def try_parse(self, text: str, now: datetime) -> Optional[ParsedTime]:
        for m in _CALENDAR_RE.finditer(text):
            day = _to_int(m.group("day"))
            if day is None or not 1 <= day <= 31:
                continue
            resolved = _month_day(day, m.group("month"), now)
            if resolved is None:
                continue
            month, day = resolved

            spans = [m.span()]
            hour, minute = self.default_hour, 0
            clock = find_clock(text)
            if clock is not None:
                hour, minute, clock_span = clock
                spans.append(clock_span)

            fire_at = self._resolve_year(now, month, day, hour, minute)
            if fire_at is None:
                continue
            return self._result(text, fire_at, spans)
        return None

    @staticmethod
    def _resolve_year(
        now: datetime, month: int, day: int, hour: int, minute: int
    ) -> Optional[datetime]:
        # Feb 29 may need several years to come around again
        for offset in range(9):
            try:
                candidate = _combine(now, date(now.year + offset, month, day), hour, minute)
            except (ValueError, OverflowError):
                continue
            if candidate > now:
                return candidate
        return None


# =============================================================================
# Parser
# =============================================================================

# Full message with note and time: dated patterns first so "завтра в 10:00"
# is not read as a bare clock time
MESSAGE_ORDER = ("calendar_date", "relative_day", "relative_duration", "clock_time")

# Reply to "через сколько напомнить?": durations are the common answer
REPLY_ORDER = ("relative_duration", "calendar_date", "relative_day", "clock_time")


def build_matchers(order: Sequence[str], default_hour: int = 9) -> list[TimeMatcher]:
    """Instantiate matchers by name in priority order."""
    factories = {
        RelativeDurationMatcher.name: RelativeDurationMatcher,
        ClockTimeMatcher.name: ClockTimeMatcher,
        RelativeDayMatcher.name: lambda: RelativeDayMatcher(default_hour),
        CalendarDateMatcher.name: lambda: CalendarDateMatcher(default_hour),
    }
    try:
        return [factories[name]() for name in order]
    except KeyError as e:
        raise ValueError(f"Unknown time matcher: {e.args[0]}") from None


class TimeExpressionParser:
    """Tries each matcher in order; the first match wins."""

    def __init__(self, order: Sequence[str] = MESSAGE_ORDER, default_hour: int = 9):
        self.order = tuple(order)
        self.matchers = build_matchers(self.order, default_hour)

    def parse(self, text: str, now: datetime) -> ParsedTime:
        """
        Parse text into a fire instant and residual note.

        Args:
            text: Free text (note and time phrase in any order)
            now: Current instant; naive means server local time

        Returns:
            ParsedTime with the resolved instant

        Raises:
            UnrecognizedTimeExpression: If no pattern matched
            TimeAlreadyPassed: If the resolved instant is not after now
        """
        text = text.strip()
        if text:
            for matcher in self.matchers:
                parsed = matcher.try_parse(text, now)
                if parsed is None:
                    continue
                if parsed.fire_at <= now:
                    raise TimeAlreadyPassed(parsed.fire_at, now)
                logger.debug(
                    f"Parsed '{text}' with {parsed.pattern}: fire_at={parsed.fire_at}, note='{parsed.note}'"
                )
                return parsed

        raise UnrecognizedTimeExpression(text)


def parse_time_expression(
    text: str,
    now: Optional[datetime] = None,
    order: Sequence[str] = MESSAGE_ORDER,
    default_hour: int = 9,
) -> ParsedTime:
    """Convenience wrapper around TimeExpressionParser.parse."""
    if now is None:
        now = datetime.now()
    return TimeExpressionParser(order, default_hour).parse(text, now)
