"""Report period calculation.

Maps a report type and an anchor (the single date, month or quarter a user
picks) to a concrete, inclusive start/end date range.

- Weekly: the Monday-Sunday (ISO) week containing the anchor date.
- Monthly: first through last calendar day of the anchor month.
- Quarterly: first day of the quarter's first month through the last day of
  its third month.

Every function here is pure; the same anchor always yields the same range.

Example:
    >>> from perftrack.core.periods import ReportType, compute_period
    >>> period = compute_period(ReportType.QUARTERLY, (2024, 1))
    >>> period.start_str, period.end_str
    ('2024-01-01', '2024-03-31')
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, computed_field, model_validator

from perftrack.exceptions import PerftrackError


class PeriodError(PerftrackError, ValueError):
    """Raised for anchors that cannot be turned into a report period."""


class ReportType(str, Enum):
    """Granularity of a performance report."""

    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"

    @classmethod
    def parse(cls, value: Union[str, "ReportType"]) -> "ReportType":
        if isinstance(value, cls):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise PeriodError(f"Unknown report type: {value!r}")


class ReportPeriod(BaseModel):
    """Inclusive date range covered by a report.

    Attributes:
        start: First day of the period (inclusive).
        end: Last day of the period (inclusive).
    """

    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self) -> "ReportPeriod":
        if self.end < self.start:
            raise ValueError("period end must not precede its start")
        return self

    @computed_field
    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def start_str(self) -> str:
        return self.start.isoformat()

    @property
    def end_str(self) -> str:
        return self.end.isoformat()

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    def __str__(self) -> str:
        return f"{self.start_str} to {self.end_str}"


# Anchors: a date (weekly), (year, month) (monthly), (year, quarter) (quarterly)
Anchor = Union[date, tuple[int, int], str]

_MONTH_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})\s*$")
_QUARTER_RE = re.compile(r"^\s*(\d{4})\s*-?\s*[Qq]([1-4])\s*$")


# =============================================================================
# Range functions
# =============================================================================


def weekly_range(anchor: date) -> ReportPeriod:
    """Monday-Sunday week containing ``anchor``."""
    # date.weekday() is Monday=0, the same offset as (js_day + 6) % 7
    monday = anchor - timedelta(days=anchor.weekday())
    return ReportPeriod(start=monday, end=monday + timedelta(days=6))


def monthly_range(year: int, month: int) -> ReportPeriod:
    """First through last calendar day of ``year-month``."""
    if not 1 <= month <= 12:
        raise PeriodError(f"Month must be between 1 and 12, got {month}")
    last_day = calendar.monthrange(year, month)[1]
    return ReportPeriod(start=date(year, month, 1), end=date(year, month, last_day))


def quarterly_range(year: int, quarter: int) -> ReportPeriod:
    """First day of the quarter's first month through the last day of its third."""
    if not 1 <= quarter <= 4:
        raise PeriodError(f"Quarter must be between 1 and 4, got {quarter}")
    first_month = (quarter - 1) * 3 + 1
    last_month = first_month + 2
    last_day = calendar.monthrange(year, last_month)[1]
    return ReportPeriod(start=date(year, first_month, 1), end=date(year, last_month, last_day))


# =============================================================================
# Anchor handling
# =============================================================================


def parse_date(value: Any) -> date:
    """Parse a ``YYYY-MM-DD`` string (or full ISO timestamp) into a date.

    Raises:
        PeriodError: If the value is not a recognizable date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
    raise PeriodError(f"Invalid date: {value!r}")


def _parse_year_month(anchor: Anchor) -> tuple[int, int]:
    if isinstance(anchor, tuple) and len(anchor) == 2:
        return int(anchor[0]), int(anchor[1])
    if isinstance(anchor, date):
        return anchor.year, anchor.month
    if isinstance(anchor, str):
        match = _MONTH_RE.match(anchor)
        if match:
            return int(match.group(1)), int(match.group(2))
    raise PeriodError(f"Invalid month anchor: {anchor!r} (expected YYYY-MM)")


def _parse_year_quarter(anchor: Anchor) -> tuple[int, int]:
    if isinstance(anchor, tuple) and len(anchor) == 2:
        return int(anchor[0]), int(anchor[1])
    if isinstance(anchor, date):
        return anchor.year, quarter_of(anchor)
    if isinstance(anchor, str):
        match = _QUARTER_RE.match(anchor)
        if match:
            return int(match.group(1)), int(match.group(2))
    raise PeriodError(f"Invalid quarter anchor: {anchor!r} (expected YYYY-Qn)")


def quarter_of(d: date) -> int:
    """Quarter number (1-4) a date falls in."""
    return (d.month + 2) // 3


def compute_period(report_type: ReportType | str, anchor: Anchor) -> ReportPeriod:
    """Derive the inclusive report period for ``report_type`` at ``anchor``.

    Args:
        report_type: Weekly, Monthly or Quarterly.
        anchor: A date or ``YYYY-MM-DD`` string for Weekly; ``(year, month)``
            or ``YYYY-MM`` for Monthly; ``(year, quarter)`` or ``YYYY-Qn``
            for Quarterly. A plain date is accepted for every type and
            selects the period containing it.

    Returns:
        ReportPeriod with inclusive start and end dates.

    Raises:
        PeriodError: If the anchor is malformed or out of range.
    """
    report_type = ReportType.parse(report_type)

    if report_type == ReportType.WEEKLY:
        return weekly_range(parse_date(anchor))
    if report_type == ReportType.MONTHLY:
        return monthly_range(*_parse_year_month(anchor))
    return quarterly_range(*_parse_year_quarter(anchor))


def default_anchor(report_type: ReportType | str, today: date | None = None) -> Anchor:
    """Anchor preselected for a report type: today, this month, or this quarter."""
    report_type = ReportType.parse(report_type)
    today = today or date.today()

    if report_type == ReportType.WEEKLY:
        return today
    if report_type == ReportType.MONTHLY:
        return (today.year, today.month)
    return (today.year, quarter_of(today))
