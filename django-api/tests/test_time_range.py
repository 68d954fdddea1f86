"""Unit tests for time range parsing.

Run with: pytest tests/test_time_range.py -v
"""

from datetime import date, datetime

import pytest

from events.domain import TimeRange
from events.domain.time_range import anchor, parse_clock_time, parse_time_range


class TestParseClockTime:
    """Tests for single "H[:MM] AM|PM" values."""

    @pytest.mark.parametrize(
        ("raw", "minutes"),
        [
            ("12:00 AM", 0),
            ("12:30 AM", 30),
            ("1:05 AM", 65),
            ("11:59 AM", 719),
            ("12:00 PM", 720),
            ("1:00 PM", 780),
            ("11:59 PM", 1439),
            ("9 AM", 540),
            ("9 pm", 1260),
        ],
    )
    def test_converts_to_minutes_since_midnight(self, raw, minutes):
        assert parse_clock_time(raw) == minutes

    @pytest.mark.parametrize(
        "raw",
        ["", "9:00", "9:00 XM", "nine AM", "9:7 AM", "0:30 AM", "13:00 PM", "9:60 AM", "9:00AM", None],
    )
    def test_malformed_values_yield_none(self, raw):
        assert parse_clock_time(raw) is None


class TestParseTimeRange:
    """Tests for "<time> - <time>" ranges."""

    def test_parses_start_and_end(self):
        assert parse_time_range("9:00 AM - 5:30 PM") == TimeRange(540, 1050)

    @pytest.mark.parametrize(
        "raw",
        ["9:00 AM - 5:30 PM", "  9:00 am   -   5:30 pm  ", "9:00 Am-5:30 pM", "\t9:00 AM -\n5:30 PM"],
    )
    def test_ignores_whitespace_and_marker_case(self, raw):
        assert parse_time_range(raw) == TimeRange(540, 1050)

    def test_missing_minutes_default_to_zero(self):
        assert parse_time_range("9 AM - 5 PM") == TimeRange(540, 1020)

    def test_does_not_check_ordering(self):
        """An end before the start is returned as-is; callers decide what it means."""
        assert parse_time_range("10:00 PM - 2:00 AM") == TimeRange(1320, 120)

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "9:00 AM",
            "9:00 AM - ",
            "9:00 - 5:00 PM",
            "9:00 AM - 5:00 PM - 6:00 PM",
            "9:00 AM to 5:00 PM",
            "morning - evening",
            None,
        ],
    )
    def test_malformed_ranges_yield_none(self, raw):
        assert parse_time_range(raw) is None


class TestAnchor:
    """Tests for pinning a range to calendar dates."""

    def test_single_day_range(self):
        starts_at, ends_at = anchor(TimeRange(540, 1020), date(2025, 3, 1))

        assert starts_at == datetime(2025, 3, 1, 9, 0)
        assert ends_at == datetime(2025, 3, 1, 17, 0)

    def test_end_not_after_start_rolls_to_next_day(self):
        starts_at, ends_at = anchor(TimeRange(1320, 120), date(2025, 3, 1))

        assert starts_at == datetime(2025, 3, 1, 22, 0)
        assert ends_at == datetime(2025, 3, 2, 2, 0)

    def test_equal_start_and_end_rolls_to_next_day(self):
        starts_at, ends_at = anchor(TimeRange(600, 600), date(2025, 3, 1))

        assert ends_at - starts_at == datetime(2025, 3, 2) - datetime(2025, 3, 1)

    def test_end_minutes_anchor_to_end_date(self):
        starts_at, ends_at = anchor(TimeRange(1320, 120), date(2025, 3, 1), date(2025, 3, 2))

        assert starts_at == datetime(2025, 3, 1, 22, 0)
        assert ends_at == datetime(2025, 3, 2, 2, 0)

    def test_multi_day_daytime_range(self):
        starts_at, ends_at = anchor(TimeRange(540, 1020), date(2025, 3, 1), date(2025, 3, 3))

        assert starts_at == datetime(2025, 3, 1, 9, 0)
        assert ends_at == datetime(2025, 3, 3, 17, 0)
