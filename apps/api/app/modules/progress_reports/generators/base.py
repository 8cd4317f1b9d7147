"""Abstract base class for progress report exporters."""

from abc import ABC, abstractmethod
from datetime import timezone

from app.core.config import settings
from app.modules.progress_reports.assembly import (
    ProgressReport,
    build_export_filename,
    report_table,
)


class BaseProgressExporter(ABC):
    """Base class providing the shared table layout and file naming."""

    CONTENT_TYPE: str = "application/octet-stream"
    EXTENSION: str = "bin"

    def __init__(self, filename_prefix: str | None = None) -> None:
        self.filename_prefix = filename_prefix or settings.REPORT_FILENAME_PREFIX

    @abstractmethod
    def generate(self, report: ProgressReport) -> tuple[bytes, str]:
        """Render the report.

        Returns:
            Tuple of (file_bytes, content_type).
        """

    def filename(self, report: ProgressReport) -> str:
        return build_export_filename(
            self.filename_prefix,
            report.project_name,
            report.grouping_dimension,
            report.generated_at,
            self.EXTENSION,
        )

    def _table(self, report: ProgressReport) -> tuple[list[str], list[list[str]], list[str]]:
        return report_table(report)

    def _format_generated_at(self, report: ProgressReport) -> str:
        generated_at = report.generated_at
        # Naive timestamps are taken as UTC
        if generated_at.tzinfo is None:
            generated_at = generated_at.replace(tzinfo=timezone.utc)
        return generated_at.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
