"""Performance report assembly.

Turns a report period plus the user's goals, achievements and tasks into a
single generation request, and the response into a :class:`GeneratedReport`.

Flow:
1. Filter achievements whose date lies in the period, and completed tasks
   whose completion date lies in the period (both bounds inclusive).
2. Render the ``performance_report_v1`` prompt.
3. Call the generator exactly once. Empty text and failures become fixed
   fallback strings; report generation never raises.

Example:
    >>> service = ReportService(store, get_client())
    >>> report = await service.generate(session, ReportType.MONTHLY, "2024-02")
    >>> print(report.text)
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Iterable

from perftrack.ai.client import AIClient, Failure
from perftrack.ai.prompts import get_prompt
from perftrack.core.models import Achievement, GeneratedReport, Goal, Session, Task
from perftrack.core.periods import (
    Anchor,
    PeriodError,
    ReportPeriod,
    ReportType,
    compute_period,
    default_anchor,
    parse_date,
)
from perftrack.core.store import DataStore
from perftrack.utils.logging import log_timing

logger = logging.getLogger(__name__)

EMPTY_REPORT_FALLBACK = "Could not generate report."
ERROR_REPORT_FALLBACK = "Error generating report. Please check your connection."
DEFAULT_TONE = "Manager-ready"


# =============================================================================
# Filtering
# =============================================================================


def _date_part(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return parse_date(value)
    except PeriodError:
        return None


def filter_achievements(achievements: Iterable[Achievement], period: ReportPeriod) -> list[Achievement]:
    """Achievements dated within ``period`` (inclusive)."""
    kept = []
    for achievement in achievements:
        day = _date_part(achievement.date)
        if day is None:
            logger.debug(f"Skipping achievement {achievement.id} with unparseable date")
            continue
        if period.contains(day):
            kept.append(achievement)
    return kept


def filter_completed_tasks(tasks: Iterable[Task], period: ReportPeriod) -> list[Task]:
    """Completed tasks whose completion date lies within ``period`` (inclusive).

    Only the date part of ``completed_at`` is compared, so a task finished
    late on the period's last day is included.
    """
    kept = []
    for task in tasks:
        if not task.is_completed:
            continue
        day = _date_part(task.completed_at)
        if day is None:
            logger.debug(f"Skipping task {task.id} with unparseable completion date")
            continue
        if period.contains(day):
            kept.append(task)
    return kept


# =============================================================================
# Prompt
# =============================================================================


def build_report_prompt(
    report_type: ReportType | str,
    period: ReportPeriod,
    goals: Iterable[Goal],
    achievements: Iterable[Achievement],
    tasks: Iterable[Task],
    tone: str,
) -> str:
    """Render the report prompt from already-filtered records."""
    return get_prompt("performance_report_v1").render(
        report_type=ReportType.parse(report_type).value,
        start_date=period.start_str,
        end_date=period.end_str,
        tone=tone,
        goals="; ".join(g.summary_line() for g in goals),
        achievements="\n".join(a.summary_line() for a in achievements),
        tasks="\n".join(f"- [Completed Task] {t.title}" for t in tasks),
    )


# =============================================================================
# Generation
# =============================================================================


async def generate_report(
    client: AIClient,
    report_type: ReportType | str,
    period: ReportPeriod,
    goals: Iterable[Goal],
    achievements: Iterable[Achievement],
    tasks: Iterable[Task],
    tone: str = DEFAULT_TONE,
) -> GeneratedReport:
    """Filter, prompt and generate a report for ``period``.

    Returns:
        GeneratedReport whose ``text`` is the model output verbatim, or one
        of the fallback strings with ``is_fallback`` set.
    """
    report_type = ReportType.parse(report_type)
    relevant_achievements = filter_achievements(achievements, period)
    relevant_tasks = filter_completed_tasks(tasks, period)
    logger.debug(
        f"{report_type.value} report {period}: {len(relevant_achievements)} achievements, "
        f"{len(relevant_tasks)} completed tasks"
    )

    prompt = build_report_prompt(
        report_type, period, goals, relevant_achievements, relevant_tasks, tone
    )
    result = await client.try_generate(prompt)

    if isinstance(result, Failure):
        text, is_fallback = ERROR_REPORT_FALLBACK, True
    elif not result.value:
        text, is_fallback = EMPTY_REPORT_FALLBACK, True
    else:
        text, is_fallback = result.value, False

    return GeneratedReport(
        report_type=report_type.value,
        tone=tone,
        start_date=period.start_str,
        end_date=period.end_str,
        text=text,
        is_fallback=is_fallback,
    )


class ReportService:
    """Fetches a user's records and generates a report for one period."""

    def __init__(self, store: DataStore, client: AIClient, default_tone: str = DEFAULT_TONE) -> None:
        self.store = store
        self.client = client
        self.default_tone = default_tone

    async def generate(
        self,
        session: Session,
        report_type: ReportType | str,
        anchor: Anchor | None = None,
        tone: str | None = None,
    ) -> GeneratedReport:
        """Generate a report for the period at ``anchor`` (default: today's period).

        Raises:
            PeriodError: If the anchor is malformed.
        """
        report_type = ReportType.parse(report_type)
        if anchor is None:
            anchor = default_anchor(report_type)
        period = compute_period(report_type, anchor)

        with log_timing(logger, f"Generating {report_type.value} report for {period}"):
            goals, achievements, tasks = await asyncio.gather(
                self.store.get_goals(session),
                self.store.get_achievements(session),
                self.store.get_tasks(session),
            )
            return await generate_report(
                self.client,
                report_type,
                period,
                goals,
                achievements,
                tasks,
                tone or self.default_tone,
            )
