"""Tests for perftrack.core.periods - report period calculation."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from perftrack.core.periods import (
    PeriodError,
    ReportPeriod,
    ReportType,
    compute_period,
    default_anchor,
    monthly_range,
    parse_date,
    quarter_of,
    quarterly_range,
    weekly_range,
)


class TestWeekly:
    """Monday-Sunday weeks."""

    def test_midweek_anchor(self):
        period = weekly_range(date(2024, 3, 13))  # Wednesday
        assert period.start_str == "2024-03-11"
        assert period.end_str == "2024-03-17"

    def test_sunday_belongs_to_preceding_monday(self):
        period = weekly_range(date(2024, 3, 17))
        assert period.start == date(2024, 3, 11)

    def test_monday_starts_its_own_week(self):
        period = weekly_range(date(2024, 3, 11))
        assert period.start == date(2024, 3, 11)
        assert period.end == date(2024, 3, 17)

    def test_week_spanning_year_boundary(self):
        period = weekly_range(date(2025, 1, 1))
        assert period.start_str == "2024-12-30"
        assert period.end_str == "2025-01-05"

    def test_every_day_of_a_year_lands_in_a_seven_day_monday_week(self):
        day = date(2023, 1, 1)
        while day.year == 2023:
            period = weekly_range(day)
            assert period.start.weekday() == 0
            assert period.days == 7
            assert period.contains(day)
            day += timedelta(days=1)


class TestMonthly:
    def test_leap_february(self):
        period = monthly_range(2024, 2)
        assert (period.start_str, period.end_str) == ("2024-02-01", "2024-02-29")

    def test_common_february(self):
        assert monthly_range(2023, 2).end_str == "2023-02-28"

    def test_thirty_day_month(self):
        assert monthly_range(2024, 4).end_str == "2024-04-30"

    @pytest.mark.parametrize("month", [0, 13])
    def test_month_out_of_range(self, month):
        with pytest.raises(PeriodError):
            monthly_range(2024, month)


class TestQuarterly:
    @pytest.mark.parametrize(
        "quarter, start, end",
        [
            (1, "2024-01-01", "2024-03-31"),
            (2, "2024-04-01", "2024-06-30"),
            (3, "2024-07-01", "2024-09-30"),
            (4, "2024-10-01", "2024-12-31"),
        ],
    )
    def test_quarter_bounds(self, quarter, start, end):
        period = quarterly_range(2024, quarter)
        assert (period.start_str, period.end_str) == (start, end)

    @pytest.mark.parametrize("quarter", [0, 5])
    def test_quarter_out_of_range(self, quarter):
        with pytest.raises(PeriodError):
            quarterly_range(2024, quarter)

    def test_quarter_of(self):
        assert [quarter_of(date(2024, m, 1)) for m in range(1, 13)] == [
            1, 1, 1, 2, 2, 2, 3, 3, 3, 4, 4, 4,
        ]


class TestComputePeriod:
    """Single entry point dispatching on report type and anchor form."""

    def test_quarterly_tuple_anchor(self):
        period = compute_period(ReportType.QUARTERLY, (2024, 1))
        assert str(period) == "2024-01-01 to 2024-03-31"

    def test_quarterly_string_anchor(self):
        assert compute_period("Quarterly", "2024-Q3").start_str == "2024-07-01"

    def test_monthly_string_anchor(self):
        assert compute_period("monthly", "2024-02").end_str == "2024-02-29"

    def test_weekly_string_anchor(self):
        assert compute_period("Weekly", "2024-03-13").start_str == "2024-03-11"

    def test_date_anchor_works_for_every_type(self):
        anchor = date(2024, 5, 20)
        assert compute_period("Weekly", anchor).start_str == "2024-05-20"
        assert compute_period("Monthly", anchor).start_str == "2024-05-01"
        assert compute_period("Quarterly", anchor).start_str == "2024-04-01"

    def test_same_anchor_same_result(self):
        assert compute_period("Monthly", "2024-02") == compute_period("Monthly", (2024, 2))

    @pytest.mark.parametrize(
        "report_type, anchor",
        [
            ("Monthly", "2024/02"),
            ("Monthly", "2024-13"),
            ("Quarterly", "2024-Q5"),
            ("Quarterly", (2024, 0)),
            ("Weekly", "not a date"),
        ],
    )
    def test_malformed_anchor_raises(self, report_type, anchor):
        with pytest.raises(PeriodError):
            compute_period(report_type, anchor)

    def test_unknown_report_type(self):
        with pytest.raises(PeriodError, match="Unknown report type"):
            compute_period("Yearly", "2024-01-01")

    def test_period_error_is_value_error(self):
        with pytest.raises(ValueError):
            compute_period("Quarterly", (2024, 9))


class TestDefaults:
    def test_default_anchors_from_today(self):
        today = date(2024, 8, 15)
        assert default_anchor("Weekly", today) == today
        assert default_anchor("Monthly", today) == (2024, 8)
        assert default_anchor("Quarterly", today) == (2024, 3)


class TestHelpers:
    def test_parse_date_accepts_timestamp(self):
        assert parse_date("2024-02-29T23:59:59.000Z") == date(2024, 2, 29)

    def test_parse_date_rejects_garbage(self):
        with pytest.raises(PeriodError):
            parse_date("yesterday")

    def test_period_rejects_reversed_bounds(self):
        with pytest.raises(ValueError):
            ReportPeriod(start=date(2024, 2, 2), end=date(2024, 2, 1))

    def test_contains_is_inclusive(self):
        period = monthly_range(2024, 2)
        assert period.contains(date(2024, 2, 1))
        assert period.contains(date(2024, 2, 29))
        assert not period.contains(date(2024, 3, 1))
