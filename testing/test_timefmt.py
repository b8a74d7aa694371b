"""
Tests for moment-style time formatting.

Tests cover:
- Format tokens and localized long formats
- Humanized durations and suffixes
- Timestamp parsing
- Fixed UTC offsets
"""

from datetime import datetime, timedelta, timezone

import pytest
from persona_macros.macros.timefmt import (
    at_utc_offset,
    format_moment,
    humanize_duration,
    ordinal,
    parse_timestamp,
)


MORNING = datetime(2024, 3, 5, 9, 4, 7, 250000, tzinfo=timezone.utc)


class TestFormatMoment:
    """Test suite for format_moment."""

    def test_long_formats(self):
        assert format_moment(MORNING, "LT") == "9:04 AM"
        assert format_moment(MORNING, "LTS") == "9:04:07 AM"
        assert format_moment(MORNING, "L") == "03/05/2024"
        assert format_moment(MORNING, "LL") == "March 5, 2024"
        assert format_moment(MORNING, "LLLL") == "Tuesday, March 5, 2024 9:04 AM"
        assert format_moment(MORNING, "ll") == "Mar 5, 2024"

    def test_date_tokens(self):
        assert format_moment(MORNING, "YYYY-MM-DD") == "2024-03-05"
        assert format_moment(MORNING, "YY M D") == "24 3 5"
        assert format_moment(MORNING, "MMMM MMM Mo Do") == "March Mar 3rd 5th"
        assert format_moment(MORNING, "dddd ddd dd d E") == "Tuesday Tue Tu 2 2"
        assert format_moment(MORNING, "DDD Q") == "65 1"

    def test_time_tokens(self):
        assert format_moment(MORNING, "HH:mm:ss") == "09:04:07"
        assert format_moment(MORNING, "h hh A a") == "9 09 AM am"
        assert format_moment(MORNING, "SSS") == "250"
        assert format_moment(MORNING, "Z ZZ") == "+00:00 +0000"

    def test_afternoon_and_midnight(self):
        assert format_moment(datetime(2024, 1, 1, 15, 30), "h:mm A") == "3:30 PM"
        assert format_moment(datetime(2024, 1, 1, 0, 5), "h:mm a k") == "12:05 am 24"

    def test_bracket_literals(self):
        assert format_moment(MORNING, "[Today is] dddd") == "Today is Tuesday"

    def test_unknown_characters_pass_through(self):
        assert format_moment(MORNING, "YYYY/MM/DD @ HH:mm!") == "2024/03/05 @ 09:04!"

    @pytest.mark.parametrize("n,expected", [(1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"),
                                            (11, "11th"), (12, "12th"), (13, "13th"),
                                            (21, "21st"), (22, "22nd"), (111, "111th")])
    def test_ordinal(self, n, expected):
        assert ordinal(n) == expected


class TestHumanizeDuration:
    """Test suite for humanize_duration thresholds."""

    @pytest.mark.parametrize("seconds,expected", [
        (0, "a few seconds"),
        (10, "a few seconds"),
        (60, "a minute"),
        (5 * 60, "5 minutes"),
        (50 * 60, "an hour"),
        (3 * 3600, "3 hours"),
        (30 * 3600, "a day"),
        (3 * 86400, "3 days"),
        (40 * 86400, "a month"),
        (100 * 86400, "3 months"),
        (400 * 86400, "a year"),
        (1000 * 86400, "3 years"),
    ])
    def test_thresholds(self, seconds, expected):
        assert humanize_duration(seconds) == expected

    def test_suffixes(self):
        assert humanize_duration(120, with_suffix=True) == "in 2 minutes"
        assert humanize_duration(-120, with_suffix=True) == "2 minutes ago"

    def test_sign_ignored_without_suffix(self):
        assert humanize_duration(-3 * 3600) == "3 hours"


class TestParseTimestamp:
    """Test suite for parse_timestamp."""

    def test_datetime_passthrough(self):
        assert parse_timestamp(MORNING) == MORNING

    def test_naive_datetime_becomes_aware(self):
        parsed = parse_timestamp(datetime(2024, 1, 1, 12, 0))
        assert parsed.tzinfo is not None

    def test_epoch_milliseconds(self):
        assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert parse_timestamp("1000") == datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)

    def test_humanized_stamp(self):
        parsed = parse_timestamp("2024-6-1@15h45m30s")
        assert (parsed.year, parsed.month, parsed.day) == (2024, 6, 1)
        assert (parsed.hour, parsed.minute, parsed.second) == (15, 45, 30)

    def test_humanized_stamp_with_millis(self):
        parsed = parse_timestamp("2024-6-1 @15h 45m 30s 120ms")
        assert parsed.microsecond == 120000

    def test_free_form(self):
        parsed = parse_timestamp("June 1, 2024 3:45pm")
        assert (parsed.month, parsed.day, parsed.hour, parsed.minute) == (6, 1, 15, 45)

    def test_iso_with_offset(self):
        parsed = parse_timestamp("2024-01-01T10:00:00+02:00")
        assert parsed.utcoffset() == timedelta(hours=2)

    @pytest.mark.parametrize("value", [None, "", "not a date", True, object()])
    def test_unparseable(self, value):
        assert parse_timestamp(value) is None

    @pytest.mark.parametrize("value", [
        10 ** 20,
        10 ** 400,
        float("nan"),
        "99999999999999999999",
        253402300800000,
        "2020-01-01T00:00:00+25:00",
    ])
    def test_out_of_range(self, value):
        """Test values datetime cannot represent are rejected rather than raised."""
        assert parse_timestamp(value) is None


class TestUtcOffset:
    """Test suite for at_utc_offset."""

    def test_hours(self):
        shifted = at_utc_offset(MORNING, 3)
        assert shifted.hour == 12
        assert shifted.utcoffset() == timedelta(hours=3)

    def test_negative_hours(self):
        assert at_utc_offset(MORNING, -10).hour == 23

    def test_large_values_are_minutes(self):
        assert at_utc_offset(MORNING, 90).utcoffset() == timedelta(minutes=90)

    def test_a_day_or_more(self):
        assert at_utc_offset(MORNING, 1500) is None
        assert at_utc_offset(MORNING, -1440) is None
        assert at_utc_offset(MORNING, 1439).utcoffset() == timedelta(minutes=1439)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
