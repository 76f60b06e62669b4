"""Write generated reports to disk.

Supported formats:

- ``md``: the report Markdown under a title, generation date and period line
- ``txt``: same layout as plain text, with ``#`` characters stripped
- ``html``: a minimal self-contained page with the report text escaped

Example:
    >>> exporter = ReportExporter()
    >>> path = exporter.export(report, Path("./reports"), fmt="md")
    >>> path.name
    'monthly-report-2024-02-01-to-2024-02-29.md'
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from jinja2 import DictLoader, Environment, select_autoescape

from perftrack.core.models import GeneratedReport

logger = logging.getLogger(__name__)


class ExportFormat(str, Enum):
    MARKDOWN = "md"
    TEXT = "txt"
    HTML = "html"


_TEMPLATES = {
    "report.md": (
        "# {{ report.report_type }} Report\n"
        "\n"
        "_Generated on {{ generated_on }}_\n"
        "\n"
        "**Period:** {{ report.start_date }} to {{ report.end_date }}  \n"
        "**Tone:** {{ report.tone }}\n"
        "\n"
        "{{ report.text }}\n"
    ),
    "report.txt": (
        "{{ report.report_type }} Report\n"
        "Generated on {{ generated_on }}\n"
        "Period: {{ report.start_date }} to {{ report.end_date }}\n"
        "\n"
        "{{ body }}\n"
    ),
    "report.html": (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '  <meta charset="utf-8">\n'
        "  <title>{{ report.report_type }} Report</title>\n"
        "  <style>body{font-family:sans-serif;max-width:48rem;margin:2rem auto;}"
        "pre{white-space:pre-wrap;font-family:inherit;line-height:1.5;}"
        ".meta{color:#666;font-size:.85rem;}</style>\n"
        "</head>\n"
        "<body>\n"
        "  <h1>{{ report.report_type }} Report</h1>\n"
        '  <p class="meta">Generated on {{ generated_on }}</p>\n'
        '  <p class="meta">Period: {{ report.start_date }} to {{ report.end_date }}</p>\n'
        "  <pre>{{ report.text }}</pre>\n"
        "</body>\n"
        "</html>\n"
    ),
}


class ReportExporter:
    """Renders :class:`GeneratedReport` values through jinja2 templates."""

    def __init__(self) -> None:
        self._env = Environment(
            loader=DictLoader(_TEMPLATES),
            autoescape=select_autoescape(["html"]),
            keep_trailing_newline=True,
        )

    def render(self, report: GeneratedReport, fmt: ExportFormat | str = ExportFormat.MARKDOWN) -> str:
        fmt = ExportFormat(fmt)
        template = self._env.get_template(f"report.{fmt.value}")
        return template.render(
            report=report,
            body=report.text.replace("#", ""),
            generated_on=report.generated_at.astimezone().strftime("%Y-%m-%d"),
        )

    @staticmethod
    def filename_for(report: GeneratedReport, fmt: ExportFormat | str) -> str:
        fmt = ExportFormat(fmt)
        return (
            f"{report.report_type.lower()}-report-{report.start_date}-to-{report.end_date}"
            f".{fmt.value}"
        )

    def export(
        self,
        report: GeneratedReport,
        output_dir: Path,
        fmt: ExportFormat | str = ExportFormat.MARKDOWN,
    ) -> Path:
        """Render ``report`` and write it under ``output_dir``.

        Returns:
            Path of the written file.
        """
        output_path = Path(output_dir) / self.filename_for(report, fmt)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.render(report, fmt), encoding="utf-8")
        logger.info(f"Report written to {output_path}")
        return output_path
