"""Report assembly: wraps aggregated rows into the canonical ProgressReport.

Exporters consume only ``ProgressReport`` (via ``report_table``) and never
re-derive or re-round numbers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime

from app.models.enums import GroupingDimension
from app.modules.progress_reports.aggregation import ReportRow

DIMENSION_LABELS: dict[GroupingDimension, str] = {
    GroupingDimension.AREA: "Area",
    GroupingDimension.SYSTEM: "System",
    GroupingDimension.TEST_PACKAGE: "Test Package",
}

# Label column header is the dimension label
REPORT_COLUMNS = ("Budget", "Received", "Installed", "Punch", "Tested", "Restored", "% Complete")

_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\?%*:|"<>]')


@dataclass(frozen=True)
class ProgressReport:
    title: str
    project_name: str
    generated_at: datetime
    grouping_dimension: GroupingDimension
    rows: tuple[ReportRow, ...]
    grand_total: ReportRow
    skipped_count: int = 0
    metadata: dict = field(default_factory=dict)

    @property
    def dimension_label(self) -> str:
        return DIMENSION_LABELS[self.grouping_dimension]

    @property
    def is_empty(self) -> bool:
        return self.grand_total.budget == 0

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "project_name": self.project_name,
            "generated_at": self.generated_at.isoformat(),
            "grouping_dimension": self.grouping_dimension.value,
            "rows": [row.to_dict() for row in self.rows],
            "grand_total": self.grand_total.to_dict(),
            "skipped_count": self.skipped_count,
        }


def assemble(
    rows: list[ReportRow],
    grand_total: ReportRow,
    dimension: GroupingDimension,
    project_name: str,
    generated_at: datetime,
    skipped_count: int = 0,
) -> ProgressReport:
    """Attach descriptive metadata to aggregation output.

    ``generated_at`` is supplied by the caller; nothing here reads a clock.
    """
    dimension = GroupingDimension(dimension)
    return ProgressReport(
        title=f"{project_name} - Progress by {DIMENSION_LABELS[dimension]}",
        project_name=project_name,
        generated_at=generated_at,
        grouping_dimension=dimension,
        rows=tuple(rows),
        grand_total=grand_total,
        skipped_count=skipped_count,
    )


# ── Formatting ──────────────────────────────────────────────────────────────


def format_budget(value: int) -> str:
    return f"{value:,}"


def format_percent(value: int) -> str:
    return f"{value}%"


def _row_cells(row: ReportRow) -> list[str]:
    return [
        row.group_name,
        format_budget(row.budget),
        format_percent(row.pct_received),
        format_percent(row.pct_installed),
        format_percent(row.pct_punch),
        format_percent(row.pct_tested),
        format_percent(row.pct_restored),
        format_percent(row.pct_total),
    ]


def report_table(report: ProgressReport) -> tuple[list[str], list[list[str]], list[str]]:
    """Headers, body rows and grand-total row as display strings (8 columns each)."""
    headers = [report.dimension_label, *REPORT_COLUMNS]
    body = [_row_cells(row) for row in report.rows]
    return headers, body, _row_cells(report.grand_total)


def sanitize_filename(value: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", value)


def build_export_filename(
    prefix: str,
    project_name: str,
    dimension: GroupingDimension,
    generated_at: datetime,
    extension: str,
) -> str:
    """``<Prefix>_<Project>_<Dimension>_<YYYY-MM-DD>.<ext>``"""
    dimension = GroupingDimension(dimension)
    parts = [
        sanitize_filename(prefix),
        sanitize_filename(project_name),
        DIMENSION_LABELS[dimension].replace(" ", "_"),
        generated_at.strftime("%Y-%m-%d"),
    ]
    return f"{'_'.join(parts)}.{extension.lstrip('.')}"
