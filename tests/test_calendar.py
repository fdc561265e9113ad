"""
Unit tests for the fixed-offset calendar helpers.

Tests verify:
- Zone resolution for known names, offset strings and unknown names.
- Local calendar dates and hours across the UTC date line.
- Day and multi-day window boundaries (inclusive, millisecond precision).
- Window date keys are chronological and complete.

CHANGELOG:
- 2026-10-05: Add window_boundaries/local_dates tests (STORY-008)
- 2026-10-03: Initial creation (STORY-007)

TODO:
- None
"""

from datetime import UTC, datetime, timedelta

import pytest

from plug_monitor.services.calendar import (
    calendar_date_string,
    day_boundaries,
    fixed_offset,
    hour_of_day,
    local_dates,
    offset_label,
    resolve_timezone,
    window_boundaries,
)

DHAKA = fixed_offset(6)


class TestResolveTimezone:
    """Zone names and offsets resolve to fixed-offset zones."""

    def test_dhaka_is_plus_six(self) -> None:
        assert resolve_timezone("Asia/Dhaka").utcoffset(None) == timedelta(hours=6)

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("+06:00", timedelta(hours=6)),
            ("UTC+6", timedelta(hours=6)),
            ("GMT-3:30", timedelta(hours=-3, minutes=-30)),
            ("+0530", timedelta(hours=5, minutes=30)),
        ],
    )
    def test_offset_strings(self, name: str, expected: timedelta) -> None:
        assert resolve_timezone(name).utcoffset(None) == expected

    @pytest.mark.parametrize("name", [None, "", "Europe/Nowhere", "+99:00"])
    def test_unknown_falls_back_to_utc(self, name: str | None) -> None:
        assert resolve_timezone(name).utcoffset(None) == timedelta(0)

    def test_offset_label(self) -> None:
        assert offset_label(DHAKA) == "+06:00"
        assert offset_label(resolve_timezone("GMT-3:30")) == "-03:30"


class TestLocalDates:
    """Local calendar date and hour of an instant."""

    def test_evening_utc_is_next_day_in_dhaka(self) -> None:
        instant = datetime(2024, 1, 1, 19, 0, tzinfo=UTC)
        assert calendar_date_string(instant, DHAKA) == "2024-01-02"

    def test_same_day_before_offset_rollover(self) -> None:
        instant = datetime(2024, 1, 1, 17, 59, 59, tzinfo=UTC)
        assert calendar_date_string(instant, DHAKA) == "2024-01-01"

    def test_hour_of_day(self) -> None:
        instant = datetime(2024, 1, 1, 19, 30, tzinfo=UTC)
        assert hour_of_day(instant, DHAKA) == 1
        assert hour_of_day(instant, UTC) == 19


class TestDayBoundaries:
    """UTC instants of local midnight and the last millisecond of today."""

    def test_dhaka_boundaries(self) -> None:
        now = datetime(2024, 1, 1, 19, 0, tzinfo=UTC)
        start, end = day_boundaries(now, DHAKA)
        assert start == datetime(2024, 1, 1, 18, 0, tzinfo=UTC)
        assert end == datetime(2024, 1, 2, 17, 59, 59, 999000, tzinfo=UTC)

    def test_utc_boundaries(self) -> None:
        now = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)
        start, end = day_boundaries(now, UTC)
        assert start == datetime(2024, 3, 10, tzinfo=UTC)
        assert end == datetime(2024, 3, 10, 23, 59, 59, 999000, tzinfo=UTC)

    def test_boundaries_are_utc(self) -> None:
        start, end = day_boundaries(datetime(2024, 1, 1, tzinfo=UTC), DHAKA)
        assert start.utcoffset() == timedelta(0)
        assert end.utcoffset() == timedelta(0)


class TestWindow:
    """Multi-day windows end today and start at local midnight."""

    def test_week_window(self) -> None:
        now = datetime(2024, 1, 10, 12, 0, tzinfo=UTC)
        start, end = window_boundaries(now, DHAKA, 7)
        assert start == datetime(2024, 1, 3, 18, 0, tzinfo=UTC)
        assert end == datetime(2024, 1, 10, 17, 59, 59, 999000, tzinfo=UTC)

    def test_one_day_window_equals_day_boundaries(self) -> None:
        now = datetime(2024, 5, 5, 5, 5, tzinfo=UTC)
        assert window_boundaries(now, DHAKA, 1) == day_boundaries(now, DHAKA)

    def test_zero_days_rejected(self) -> None:
        with pytest.raises(ValueError):
            window_boundaries(datetime(2024, 1, 1, tzinfo=UTC), UTC, 0)

    def test_local_dates_cross_month(self) -> None:
        now = datetime(2024, 3, 2, 20, 0, tzinfo=UTC)  # 2024-03-03 02:00 in Dhaka
        dates = local_dates(now, DHAKA, 7)
        assert dates == [
            "2024-02-26",
            "2024-02-27",
            "2024-02-28",
            "2024-02-29",
            "2024-03-01",
            "2024-03-02",
            "2024-03-03",
        ]

    def test_month_has_thirty_keys(self) -> None:
        dates = local_dates(datetime(2024, 1, 31, tzinfo=UTC), UTC, 30)
        assert len(dates) == 30
        assert dates[0] == "2024-01-02"
        assert dates[-1] == "2024-01-31"
