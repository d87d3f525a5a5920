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

"""Tests for free-text time expression parsing."""

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
import pytz

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reminders.errors import TimeAlreadyPassed, TimeParseError, UnrecognizedTimeExpression
from reminders.time_parser import (
    MESSAGE_ORDER,
    REPLY_ORDER,
    CalendarDateMatcher,
    ClockTimeMatcher,
    RelativeDayMatcher,
    RelativeDurationMatcher,
    TimeExpressionParser,
    _to_int,
    build_matchers,
    find_clock,
    parse_time_expression,
    residual_note,
)

NOW = datetime(2024, 3, 1, 20, 0)  # Friday evening


class TestScenarios:
    """End-to-end examples users actually type."""

    def test_through_seconds_go_for_a_walk(self):
        parsed = parse_time_expression("through 5 sec go for a walk", NOW)
        assert parsed.fire_at == NOW + timedelta(seconds=5)
        assert parsed.note == "go for a walk"
        assert parsed.pattern == "relative_duration"

    def test_russian_through_seconds(self):
        parsed = parse_time_expression("через 5 сек пойти гулять", NOW)
        assert parsed.fire_at == NOW + timedelta(seconds=5)
        assert parsed.note == "пойти гулять"

    def test_tomorrow_at_nine_buy_milk(self):
        parsed = parse_time_expression("tomorrow at 9:00 buy milk", NOW)
        assert parsed.fire_at == datetime(2024, 3, 2, 9, 0)
        assert parsed.note == "buy milk"

    def test_russian_tomorrow_with_clock(self):
        parsed = parse_time_expression("завтра в 9:00 купить молоко", NOW)
        assert parsed.fire_at == datetime(2024, 3, 2, 9, 0)
        assert parsed.note == "купить молоко"

    def test_calendar_date_rolls_to_next_year(self):
        now = datetime(2024, 6, 1, 12, 0)
        parsed = parse_time_expression("10 May at 14:00 pharmacy", now)
        assert parsed.fire_at == datetime(2025, 5, 10, 14, 0)
        assert parsed.note == "pharmacy"
        assert parsed.pattern == "calendar_date"

    def test_calendar_date_this_year(self):
        parsed = parse_time_expression("10 мая в 14:00 аптека", NOW)
        assert parsed.fire_at == datetime(2024, 5, 10, 14, 0)
        assert parsed.note == "аптека"

    def test_original_input_kept(self):
        parsed = parse_time_expression("  через 1 мин чай ", NOW)
        assert parsed.original_input == "через 1 мин чай"


UNITS = [
    ("сек", 1), ("секунд", 1), ("секунды", 1), ("с", 1),
    ("sec", 1), ("seconds", 1), ("s", 1),
    ("мин", 60), ("минут", 60), ("минуты", 60), ("м", 60),
    ("min", 60), ("minutes", 60), ("m", 60),
    ("час", 3600), ("часа", 3600), ("часов", 3600), ("ч", 3600),
    ("hour", 3600), ("hours", 3600), ("hr", 3600), ("h", 3600),
]


class TestRelativeDuration:
    """Any inflection of a unit resolves to now + value * unit length."""

    @pytest.mark.parametrize("unit,seconds", UNITS)
    @pytest.mark.parametrize("value", [1, 7, 59])
    def test_exact_offset(self, value, unit, seconds):
        parsed = parse_time_expression(f"через {value} {unit} тест", NOW)
        assert parsed.fire_at == NOW + timedelta(seconds=value * seconds)
        assert parsed.note == "тест"

    def test_lead_word_is_optional(self):
        parsed = parse_time_expression("5 s ping", NOW)
        assert parsed.fire_at == NOW + timedelta(seconds=5)
        assert parsed.note == "ping"

    def test_note_before_duration(self):
        parsed = parse_time_expression("позвонить маме через 10 минут", NOW)
        assert parsed.fire_at == NOW + timedelta(minutes=10)
        assert parsed.note == "позвонить маме"

    def test_zero_is_not_a_duration(self):
        with pytest.raises(UnrecognizedTimeExpression):
            parse_time_expression("через 0 минут", NOW)

    def test_unknown_unit_is_skipped(self):
        assert RelativeDurationMatcher().try_parse("купить 3 яблока", NOW) is None

    @pytest.mark.parametrize("text", ["купить 2 минералки", "взять 3 мина", "3 minions"])
    def test_quantity_without_lead_is_not_a_duration(self, text):
        assert RelativeDurationMatcher().try_parse(text, NOW) is None

    def test_unit_without_lead_word(self):
        parsed = parse_time_expression("10 minutes stretch", NOW)
        assert parsed.fire_at == NOW + timedelta(minutes=10)
        assert parsed.note == "stretch"

    @pytest.mark.parametrize("value", ["99999999999", "9" * 40])
    def test_out_of_range_value(self, value):
        with pytest.raises(UnrecognizedTimeExpression):
            parse_time_expression(f"через {value} часов тест", NOW)

    def test_out_of_range_value_falls_through(self):
        parsed = parse_time_expression("через 99999999999 часов или через 2 часа", NOW)
        assert parsed.fire_at == NOW + timedelta(hours=2)

    def test_hours_after_at_are_a_clock_time(self):
        assert RelativeDurationMatcher().try_parse("в 10 часов зарядка", NOW) is None

    def test_filler_stripped(self):
        parsed = parse_time_expression("напомни мне через 5 минут выпить воды", NOW)
        assert parsed.note == "выпить воды"

    def test_english_filler_stripped(self):
        parsed = parse_time_expression("remind me to call mom in 10 minutes", NOW)
        assert parsed.fire_at == NOW + timedelta(minutes=10)
        assert parsed.note == "call mom"


class TestClockTime:
    def test_later_today(self):
        parsed = parse_time_expression("в 21:30 созвон", NOW)
        assert parsed.fire_at == datetime(2024, 3, 1, 21, 30)
        assert parsed.note == "созвон"
        assert parsed.pattern == "clock_time"

    def test_rolls_to_tomorrow(self):
        parsed = parse_time_expression("в 19:00 созвон", NOW)
        assert parsed.fire_at == datetime(2024, 3, 2, 19, 0)

    def test_same_minute_rolls_to_tomorrow(self):
        parsed = parse_time_expression("at 20:00 stretch", NOW)
        assert parsed.fire_at == datetime(2024, 3, 2, 20, 0)

    def test_hours_form(self):
        parsed = parse_time_expression("в 10 часов зарядка", NOW)
        assert parsed.fire_at == datetime(2024, 3, 2, 10, 0)
        assert parsed.note == "зарядка"

    def test_invalid_hour_is_not_a_clock(self):
        with pytest.raises(UnrecognizedTimeExpression):
            parse_time_expression("в 25:00 что-то", NOW)

    def test_find_clock_prefers_first_phrase(self):
        hour, minute, span = find_clock("в 7:15 или в 9 часов")
        assert (hour, minute) == (7, 15)
        assert span == (0, 6)

    def test_matcher_ignores_plain_numbers(self):
        assert ClockTimeMatcher().try_parse("купить 2 батона", NOW) is None


class TestRelativeDay:
    def test_tomorrow_defaults_to_nine(self):
        parsed = parse_time_expression("завтра купить хлеб", NOW)
        assert parsed.fire_at == datetime(2024, 3, 2, 9, 0)
        assert parsed.note == "купить хлеб"
        assert parsed.pattern == "relative_day"

    def test_day_after_tomorrow_with_clock(self):
        parsed = parse_time_expression("послезавтра в 18:30 кино", NOW)
        assert parsed.fire_at == datetime(2024, 3, 3, 18, 30)
        assert parsed.note == "кино"

    def test_english_day_after_tomorrow(self):
        parsed = parse_time_expression("the day after tomorrow dentist", NOW)
        assert parsed.fire_at == datetime(2024, 3, 3, 9, 0)
        assert parsed.note == "dentist"

    def test_day_of_month_ahead(self):
        parsed = parse_time_expression("5 числа оплатить аренду", NOW)
        assert parsed.fire_at == datetime(2024, 3, 5, 9, 0)
        assert parsed.note == "оплатить аренду"

    def test_day_of_month_passed_rolls_to_next_month(self):
        parsed = parse_time_expression("1 числа оплатить аренду", NOW)
        assert parsed.fire_at == datetime(2024, 4, 1, 9, 0)

    def test_december_rolls_into_january(self):
        now = datetime(2024, 12, 20, 12, 0)
        parsed = parse_time_expression("10 числа налоги", now)
        assert parsed.fire_at == datetime(2025, 1, 10, 9, 0)

    def test_missing_day_skips_short_month(self):
        now = datetime(2024, 4, 5, 12, 0)
        parsed = parse_time_expression("on the 31st pay rent", now)
        assert parsed.fire_at == datetime(2024, 5, 31, 9, 0)
        assert parsed.note == "pay rent"

    def test_custom_default_hour(self):
        parsed = parse_time_expression("завтра зарядка", NOW, default_hour=7)
        assert parsed.fire_at == datetime(2024, 3, 2, 7, 0)

    def test_today_in_the_past_is_rejected(self):
        with pytest.raises(TimeAlreadyPassed) as exc_info:
            parse_time_expression("сегодня в 10:00 встреча", NOW)
        assert exc_info.value.fire_at == datetime(2024, 3, 1, 10, 0)

    def test_out_of_range_day(self):
        assert RelativeDayMatcher().try_parse("42 числа", NOW) is None


class TestCalendarDate:
    def test_default_hour_without_clock(self):
        parsed = parse_time_expression("15 апреля день рождения", NOW)
        assert parsed.fire_at == datetime(2024, 4, 15, 9, 0)
        assert parsed.note == "день рождения"

    def test_feb_29_waits_for_leap_year(self):
        now = datetime(2024, 3, 1, 12, 0)
        parsed = parse_time_expression("29 февраля праздник", now)
        assert parsed.fire_at == datetime(2028, 2, 29, 9, 0)

    def test_non_month_word_is_skipped(self):
        assert CalendarDateMatcher().try_parse("купить 3 яблока", NOW) is None

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("3 march dentist", datetime(2024, 3, 3, 9, 0)),
            ("10-го мая аптека", datetime(2024, 5, 10, 9, 0)),
            ("1 янв. отчёт", datetime(2025, 1, 1, 9, 0)),
        ],
    )
    def test_month_forms(self, text, expected):
        parsed = CalendarDateMatcher().try_parse(text, NOW)
        assert parsed.fire_at == expected

    def test_day_missing_from_month_is_skipped(self):
        assert CalendarDateMatcher().try_parse("31 апреля отчёт", NOW) is None

    def test_duration_is_not_a_date(self):
        assert CalendarDateMatcher().try_parse("через 5 минут чай", NOW) is None


class TestTimezones:
    def test_aware_now_keeps_zone(self):
        tz = pytz.timezone("Europe/Moscow")
        now = tz.localize(datetime(2024, 3, 1, 20, 0))
        parsed = parse_time_expression("завтра в 9:00 зарядка", now)
        assert parsed.fire_at.hour == 9
        assert parsed.fire_at.utcoffset() == timedelta(hours=3)

    def test_dst_offset_on_target_day(self):
        tz = pytz.timezone("America/New_York")
        now = tz.localize(datetime(2024, 3, 9, 20, 0))
        parsed = parse_time_expression("завтра в 9:00 x", now)
        assert parsed.fire_at.utcoffset() == timedelta(hours=-4)

    def test_duration_across_dst_gap(self):
        tz = pytz.timezone("America/New_York")
        now = tz.localize(datetime(2024, 3, 10, 1, 30))
        parsed = parse_time_expression("через 1 час x", now)
        assert (parsed.fire_at.hour, parsed.fire_at.minute) == (3, 30)
        assert parsed.fire_at - now == timedelta(hours=1)


class TestParser:
    def test_no_pattern(self):
        with pytest.raises(UnrecognizedTimeExpression):
            parse_time_expression("купить молоко", NOW)

    def test_empty_text(self):
        with pytest.raises(UnrecognizedTimeExpression):
            parse_time_expression("   ", NOW)

    def test_errors_share_base(self):
        with pytest.raises(TimeParseError):
            parse_time_expression("ничего", NOW)

    def test_reply_order_prefers_durations(self):
        parser = TimeExpressionParser(REPLY_ORDER)
        parsed = parser.parse("5 мин", NOW)
        assert parsed.pattern == "relative_duration"
        assert parsed.note == ""

    def test_message_order_names(self):
        matchers = build_matchers(MESSAGE_ORDER)
        assert [m.name for m in matchers] == list(MESSAGE_ORDER)

    def test_unknown_matcher_name(self):
        with pytest.raises(ValueError):
            build_matchers(["relative_duration", "lunar_phase"])

    def test_failed_number_conversion_is_no_match(self):
        assert _to_int("x") is None
        assert _to_int(None) is None
        assert _to_int("12") == 12

    def test_residual_note_tidies_edges(self):
        assert residual_note("через 5 мин, купить хлеб.", [(0, 12)]) == "купить хлеб"
