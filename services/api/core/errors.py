"""
Error types raised by the grading core.

Routers translate these into HTTP responses; the core itself never
imports FastAPI.
"""
from typing import Any, Optional, Sequence


class MarkSchemeError(ValueError):
    """Base class for mark-scheme input malformation. Fatal to the upload."""


class ColumnMappingError(MarkSchemeError):
    """The column mapping is incomplete or names a column that is not in the data."""

    def __init__(self, message: str, missing: Sequence[str] = (), available: Sequence[str] = ()):
        super().__init__(message)
        self.missing = list(missing)
        self.available = list(available)


class RowValidationError(MarkSchemeError):
    """
    A row could not be coerced into a valid mark-scheme entry.

    Attributes:
        row_number: 1-based row number within the uploaded data
        field: mark-scheme field that failed (question_number / expected_answer / points)
        raw_value: value as it appeared in the spreadsheet
        reason: short human readable explanation
    """

    def __init__(self, row_number: int, field: str, raw_value: Any, reason: str):
        self.row_number = row_number
        self.field = field
        self.raw_value = raw_value
        self.reason = reason
        super().__init__(f"Row {row_number} has invalid {field} ({raw_value!r}): {reason}")

    def to_detail(self) -> dict:
        return {
            "message": str(self),
            "row": self.row_number,
            "field": self.field,
            "value": None if self.raw_value is None else str(self.raw_value),
        }


class SpreadsheetError(MarkSchemeError):
    """The uploaded file could not be read as a spreadsheet."""


class ExtractionError(RuntimeError):
    """The vision model call failed or returned something unusable."""

    def __init__(self, message: str, page_id: Optional[int] = None):
        super().__init__(message)
        self.page_id = page_id


class PageAlreadyProcessedError(RuntimeError):
    """Extraction already succeeded for this page; processed flips only once."""

    def __init__(self, page_id: int):
        super().__init__(f"Page {page_id} has already been processed")
        self.page_id = page_id


class VisionNotConfiguredError(RuntimeError):
    """No API key for the vision model; extraction cannot run at all."""
