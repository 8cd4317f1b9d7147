"""Progress report exporters: PDF (HTML), XLSX, CSV."""

from app.modules.progress_reports.generators.base import BaseProgressExporter
from app.modules.progress_reports.generators.csv_generator import CSVExporter
from app.modules.progress_reports.generators.pdf_generator import PDFExporter
from app.modules.progress_reports.generators.xlsx_generator import XLSXExporter
from app.modules.progress_reports.schemas import ExportFormat

_EXPORTERS: dict[ExportFormat, type[BaseProgressExporter]] = {
    ExportFormat.PDF: PDFExporter,
    ExportFormat.XLSX: XLSXExporter,
    ExportFormat.CSV: CSVExporter,
}


def get_exporter(output_format: ExportFormat | str, filename_prefix: str | None = None) -> BaseProgressExporter:
    try:
        exporter_cls = _EXPORTERS[ExportFormat(output_format)]
    except ValueError:
        raise ValueError(f"Unsupported export format: {output_format}") from None
    return exporter_cls(filename_prefix=filename_prefix)


__all__ = ["BaseProgressExporter", "PDFExporter", "XLSXExporter", "CSVExporter", "get_exporter"]
