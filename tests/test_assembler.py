"""Tests for perftrack.reports - report assembly and export."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest
import requests

from perftrack.ai.client import AIClient, ProxyTransport, ServerConfigError, UpstreamError
from perftrack.core.periods import PeriodError, ReportType, compute_period
from perftrack.reports.assembler import (
    EMPTY_REPORT_FALLBACK,
    ERROR_REPORT_FALLBACK,
    ReportService,
    build_report_prompt,
    filter_achievements,
    filter_completed_tasks,
    generate_report,
)
from perftrack.reports.export import ExportFormat, ReportExporter

FEBRUARY = compute_period(ReportType.MONTHLY, "2024-02")

REPORT_HEADERS = [
    "## Executive Summary",
    "## Key Achievements",
    "## Operational Execution (Tasks & Milestones)",
    "## Progress on Goals",
    "## Focus for Next Period",
]


class TestFiltering:
    def test_achievement_bounds_are_inclusive(self, sample_achievements):
        kept = filter_achievements(sample_achievements, FEBRUARY)
        assert [a.title for a in kept] == ["Led incident review", "Leap day talk"]

    def test_completed_tasks_compared_by_date_part(self, sample_tasks):
        kept = filter_completed_tasks(sample_tasks, FEBRUARY)
        # 22:30 on the last day is inside; pending tasks never are
        assert [t.title for t in kept] == ["Write RFC", "Late-night deploy"]

    def test_unparseable_dates_excluded(self, sample_achievements, task_factory):
        broken = sample_achievements[1].model_copy(update={"date": "sometime"})
        assert filter_achievements([broken], FEBRUARY) == []

        task = task_factory("bad", completed_at="2024-02-10T00:00:00Z").model_copy(
            update={"completed_at": "garbage"}
        )
        assert filter_completed_tasks([task], FEBRUARY) == []


class TestPrompt:
    def test_prompt_lines(self, sample_goals, sample_achievements, sample_tasks):
        prompt = build_report_prompt(
            ReportType.MONTHLY,
            FEBRUARY,
            sample_goals,
            filter_achievements(sample_achievements, FEBRUARY),
            filter_completed_tasks(sample_tasks, FEBRUARY),
            "Manager-ready",
        )

        assert prompt.startswith("Write a Monthly Professional Performance Report.")
        assert "Date Range: 2024-02-01 to 2024-02-29" in prompt
        assert "Tone: Manager-ready" in prompt
        assert "Ship v2 (40% complete); Mentor two juniors (100% complete)" in prompt
        assert "- Led incident review (Leadership): Ran the postmortem for the outage." in prompt
        assert "- [Completed Task] Late-night deploy" in prompt
        assert "Launched billing" not in prompt
        assert "Still open" not in prompt
        for header in REPORT_HEADERS:
            assert header in prompt
        assert prompt.endswith("Keep it professional and actionable.")


class TestGenerateReport:
    def test_success_returns_text_verbatim(self, ai_client, fake_transport, sample_goals):
        fake_transport.queue("## Executive Summary\nAll good.")
        report = asyncio.run(
            generate_report(ai_client, "Monthly", FEBRUARY, sample_goals, [], [], "Concise")
        )
        assert report.text == "## Executive Summary\nAll good."
        assert not report.is_fallback
        assert report.period_label == "2024-02-01 to 2024-02-29"
        assert report.tone == "Concise"

    def test_exactly_one_request(self, ai_client, fake_transport):
        asyncio.run(generate_report(ai_client, "Weekly", FEBRUARY, [], [], []))
        assert len(fake_transport.requests) == 1

    def test_empty_text_fallback(self, ai_client, fake_transport):
        fake_transport.queue("")
        report = asyncio.run(generate_report(ai_client, "Monthly", FEBRUARY, [], [], []))
        assert report.text == EMPTY_REPORT_FALLBACK
        assert report.is_fallback

    @pytest.mark.parametrize(
        "error", [UpstreamError("Server error: Bad Gateway", status_code=502), ServerConfigError()]
    )
    def test_failure_fallback(self, ai_client, fake_transport, error):
        fake_transport.queue(error)
        report = asyncio.run(generate_report(ai_client, "Monthly", FEBRUARY, [], [], []))
        assert report.text == ERROR_REPORT_FALLBACK
        assert report.is_fallback

    @pytest.mark.parametrize(
        "status, body, reason",
        [(200, {"text": 123}, "OK"), (500, {"error": 500}, "Internal Server Error")],
    )
    def test_malformed_proxy_body_falls_back(self, status, body, reason):
        response = MagicMock()
        response.status_code = status
        response.ok = status < 300
        response.reason = reason
        response.json.return_value = body
        http = MagicMock(spec=requests.Session)
        http.post.return_value = response
        client = AIClient(ProxyTransport("https://perf.example.com", http=http))

        report = asyncio.run(generate_report(client, "Monthly", FEBRUARY, [], [], []))

        assert report.text == ERROR_REPORT_FALLBACK
        assert report.is_fallback


class TestReportService:
    def test_fetches_and_filters_from_store(
        self, memory_store, session, ai_client, fake_transport, sample_goals, sample_achievements, sample_tasks
    ):
        async def seed():
            for goal in sample_goals:
                await memory_store.save_goal(session, goal)
            for achievement in sample_achievements:
                await memory_store.save_achievement(session, achievement)
            for task in sample_tasks:
                await memory_store.save_task(session, task)

        asyncio.run(seed())
        service = ReportService(memory_store, ai_client)
        report = asyncio.run(service.generate(session, "Quarterly", "2024-Q1"))

        assert report.start_date == "2024-01-01"
        assert report.end_date == "2024-03-31"
        assert report.tone == "Manager-ready"
        assert "March planning" in fake_transport.last_contents
        assert "Still open" not in fake_transport.last_contents

    def test_bad_anchor_raises_period_error(self, memory_store, session, ai_client):
        with pytest.raises(PeriodError):
            asyncio.run(ReportService(memory_store, ai_client).generate(session, "Monthly", "Feb"))


class TestExport:
    @pytest.fixture
    def report(self, ai_client, fake_transport):
        fake_transport.queue("## Executive Summary\nShipped <b>billing</b>.")
        return asyncio.run(generate_report(ai_client, "Monthly", FEBRUARY, [], [], []))

    def test_markdown_export(self, report, tmp_path):
        path = ReportExporter().export(report, tmp_path, ExportFormat.MARKDOWN)
        assert path.name == "monthly-report-2024-02-01-to-2024-02-29.md"
        content = path.read_text()
        assert content.startswith("# Monthly Report")
        assert "2024-02-01 to 2024-02-29" in content
        assert "## Executive Summary" in content

    def test_text_export_strips_hashes(self, report):
        content = ReportExporter().render(report, "txt")
        assert content.startswith("Monthly Report\nGenerated on ")
        assert "Period: 2024-02-01 to 2024-02-29" in content
        assert "#" not in content

    def test_html_export_escapes_report_text(self, report):
        content = ReportExporter().render(report, "html")
        assert "&lt;b&gt;billing&lt;/b&gt;" in content
        assert "<title>Monthly Report</title>" in content
