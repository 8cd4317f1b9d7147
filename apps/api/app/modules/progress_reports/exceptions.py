"""Progress reporting errors.

Both error types propagate out of the calculation core untouched; the
report orchestration in ``service`` decides whether a ValidationError skips
one component or aborts the whole report.
"""


class ProgressReportError(Exception):
    """Base class for all progress-report calculation errors."""

    def __init__(self, message: str, **context) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class ConfigurationError(ProgressReportError):
    """Component data does not match the weight catalog.

    Raised for unknown component types and for milestone names that the
    component's type does not define.
    """


class ValidationError(ProgressReportError):
    """A milestone value or component field is out of its valid domain."""
