"""XLSX progress report exporter using openpyxl."""

import io

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from app.modules.progress_reports.assembly import ProgressReport
from app.modules.progress_reports.generators.base import BaseProgressExporter

SHEET_TITLE = "Progress Report"


class XLSXExporter(BaseProgressExporter):
    """Generate a single-sheet workbook: header row, group rows, bold grand total."""

    CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    EXTENSION = "xlsx"

    brand_color = "1E3A5F"

    def generate(self, report: ProgressReport) -> tuple[bytes, str]:
        wb = Workbook()
        ws = wb.active
        ws.title = SHEET_TITLE

        headers, rows, grand_total = self._table(report)
        header_fill = PatternFill(
            start_color=self.brand_color,
            end_color=self.brand_color,
            fill_type="solid",
        )
        header_font = Font(color="FFFFFF", bold=True)

        for col_idx, header in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center")

        for row_idx, row in enumerate(rows, 2):
            for col_idx, value in enumerate(row, 1):
                ws.cell(row=row_idx, column=col_idx, value=value)

        total_row = len(rows) + 2
        total_font = Font(bold=True)
        total_fill = PatternFill(start_color="EEF2F7", end_color="EEF2F7", fill_type="solid")
        for col_idx, value in enumerate(grand_total, 1):
            cell = ws.cell(row=total_row, column=col_idx, value=value)
            cell.font = total_font
            cell.fill = total_fill

        for row in ws.iter_rows(min_row=2, max_row=total_row, min_col=2, max_col=len(headers)):
            for cell in row:
                cell.alignment = Alignment(horizontal="right")

        # Auto-width
        for col_idx in range(1, len(headers) + 1):
            max_len = max(
                len(str(ws.cell(row=r, column=col_idx).value or ""))
                for r in range(1, total_row + 1)
            )
            ws.column_dimensions[get_column_letter(col_idx)].width = min(max_len + 4, 50)
        ws.freeze_panes = "A2"

        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue(), self.CONTENT_TYPE
