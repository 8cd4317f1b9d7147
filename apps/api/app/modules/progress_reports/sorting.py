"""Column sorting for report rows (grand total is never part of the sorted list)."""

import dataclasses
import enum

from app.modules.progress_reports.aggregation import ReportRow
from app.modules.progress_reports.assembly import ProgressReport


class SortColumn(str, enum.Enum):
    NAME = "name"
    BUDGET = "budget"
    PCT_RECEIVED = "pct_received"
    PCT_INSTALLED = "pct_installed"
    PCT_PUNCH = "pct_punch"
    PCT_TESTED = "pct_tested"
    PCT_RESTORED = "pct_restored"
    PCT_TOTAL = "pct_total"


class SortDirection(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


def sort_rows(
    rows: list[ReportRow],
    column: SortColumn = SortColumn.NAME,
    direction: SortDirection = SortDirection.ASC,
) -> list[ReportRow]:
    """Return a new sorted list; the input is left untouched.

    Names compare case-insensitively, every other column numerically. Ties
    keep their incoming order.
    """
    column = SortColumn(column)
    reverse = SortDirection(direction) is SortDirection.DESC
    if column is SortColumn.NAME:
        return sorted(rows, key=lambda r: r.group_name.casefold(), reverse=reverse)
    return sorted(rows, key=lambda r: getattr(r, column.value), reverse=reverse)


def sort_report(
    report: ProgressReport,
    column: SortColumn | None = None,
    direction: SortDirection = SortDirection.ASC,
) -> ProgressReport:
    """Copy of ``report`` with its group rows re-sorted; None keeps the default order."""
    if column is None:
        return report
    return dataclasses.replace(report, rows=tuple(sort_rows(list(report.rows), column, direction)))
