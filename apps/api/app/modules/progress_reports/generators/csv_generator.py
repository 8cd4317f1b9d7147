"""CSV progress report exporter."""

import csv
import io

from app.modules.progress_reports.assembly import ProgressReport
from app.modules.progress_reports.generators.base import BaseProgressExporter


class CSVExporter(BaseProgressExporter):
    CONTENT_TYPE = "text/csv"
    EXTENSION = "csv"

    def generate(self, report: ProgressReport) -> tuple[bytes, str]:
        headers, rows, grand_total = self._table(report)
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(headers)
        writer.writerows(rows)
        writer.writerow(grand_total)
        return buf.getvalue().encode("utf-8"), self.CONTENT_TYPE
