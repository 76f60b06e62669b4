"""Report generation and export.

Exports:
    - ReportService: Fetches records and generates a report for a period
    - generate_report: Filter, prompt and generate from in-memory records
    - filter_achievements / filter_completed_tasks: Period filters
    - ReportExporter: Write reports as Markdown, text or HTML
"""

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

__all__ = [
    "EMPTY_REPORT_FALLBACK",
    "ERROR_REPORT_FALLBACK",
    "ReportService",
    "build_report_prompt",
    "filter_achievements",
    "filter_completed_tasks",
    "generate_report",
    "ExportFormat",
    "ReportExporter",
]
