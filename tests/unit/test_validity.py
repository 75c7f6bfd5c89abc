from datetime import datetime, timedelta, timezone

import pytest

from azuread_grants.core.validity import (
    add_calendar_years,
    format_timestamp,
    resolve_validity_window,
)

UTC = timezone.utc


class TestAddCalendarYears:
    def test_regular_date(self):
        start = datetime(2025, 3, 14, 9, 26, 53, tzinfo=UTC)
        assert add_calendar_years(start, 2) == datetime(2027, 3, 14, 9, 26, 53, tzinfo=UTC)

    def test_leap_day_lands_on_february_28(self):
        start = datetime(2024, 2, 29, 23, 59, 59, tzinfo=UTC)
        assert add_calendar_years(start, 2) == datetime(2026, 2, 28, 23, 59, 59, tzinfo=UTC)

    def test_leap_day_to_leap_year_is_kept(self):
        start = datetime(2024, 2, 29, tzinfo=UTC)
        assert add_calendar_years(start, 4) == datetime(2028, 2, 29, tzinfo=UTC)

    def test_calendar_years_not_fixed_duration(self):
        # 2027 -> 2029 spans 2028-02-29, so two calendar years are 731 days here
        start = datetime(2027, 6, 1, tzinfo=UTC)
        assert add_calendar_years(start, 2) - start == timedelta(days=731)

    def test_preserves_offset(self):
        tz = timezone(timedelta(hours=-5))
        start = datetime(2025, 1, 1, 8, 0, tzinfo=tz)
        assert add_calendar_years(start, 2).tzinfo is tz


class TestFormatTimestamp:
    def test_utc_uses_z(self):
        assert format_timestamp(datetime(2025, 1, 2, 3, 4, 5, tzinfo=UTC)) == "2025-01-02T03:04:05Z"

    def test_naive_treated_as_utc(self):
        assert format_timestamp(datetime(2025, 1, 2, 3, 4, 5)) == "2025-01-02T03:04:05Z"

    def test_other_offsets_kept(self):
        tz = timezone(timedelta(hours=2))
        assert format_timestamp(datetime(2025, 1, 2, tzinfo=tz)) == "2025-01-02T00:00:00+02:00"


class TestResolveValidityWindow:
    def test_defaults_from_clock(self):
        now = datetime(2025, 3, 14, 9, 26, 53, tzinfo=UTC)
        start, expiry = resolve_validity_window(None, None, clock=lambda: now)
        assert start == "2025-03-14T09:26:53Z"
        assert expiry == "2027-03-14T09:26:53Z"

    def test_provided_start_passes_through_and_drives_expiry(self):
        start, expiry = resolve_validity_window("2024-02-29T00:00:00Z", None)
        assert start == "2024-02-29T00:00:00Z"
        assert expiry == "2026-02-28T00:00:00Z"

    def test_provided_values_are_verbatim(self):
        start, expiry = resolve_validity_window("2024-01-01T00:00:00+01:00", "2024-06-01T00:00:00+01:00")
        assert (start, expiry) == ("2024-01-01T00:00:00+01:00", "2024-06-01T00:00:00+01:00")

    def test_clock_not_consulted_when_start_given(self):
        def clock():
            raise AssertionError("clock should not be called")

        start, _ = resolve_validity_window("2025-01-01T00:00:00Z", None, clock=clock)
        assert start == "2025-01-01T00:00:00Z"

    @pytest.mark.parametrize("years, expected", [(1, "2026-03-14T00:00:00Z"), (5, "2030-03-14T00:00:00Z")])
    def test_configurable_years(self, years, expected):
        _, expiry = resolve_validity_window("2025-03-14T00:00:00Z", None, years=years)
        assert expiry == expected
