"""
Pydantic schemas for mark-scheme upload and preview.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.mark_scheme import ColumnMapping
from models import MarkSchemeEntry, Test


class ColumnMappingIn(BaseModel):
    """
    Which spreadsheet column holds which field.

    Blank values are allowed here; the normalizer rejects an incomplete
    mapping with a 400.
    """
    question_number_col: str = Field("", description="Header of the question number column")
    expected_answer_col: str = Field("", description="Header of the expected answer column")
    points_col: str = Field("", description="Header of the points column")

    def to_mapping(self) -> ColumnMapping:
        return ColumnMapping(
            question_number_col=self.question_number_col.strip(),
            expected_answer_col=self.expected_answer_col.strip(),
            points_col=self.points_col.strip(),
        )


class MarkSchemeRowsUpload(BaseModel):
    """Already-parsed rows (e.g. parsed client-side) plus the chosen mapping."""
    test_id: int = Field(..., ge=1)
    mapping: ColumnMappingIn
    rows: List[Dict[str, Any]] = Field(default_factory=list, max_length=5000)
    headers: Optional[List[str]] = Field(
        None,
        description="Header row of the sheet; defaults to the keys seen in rows",
    )


class MarkSchemePreviewOut(BaseModel):
    """First rows of an uploaded sheet, for choosing the column mapping."""
    columns: List[str]
    rows: List[Dict[str, str]]
    total_rows: int
    suggested_mapping: ColumnMappingIn


class MarkSchemeUploadOut(BaseModel):
    """Stored entries and the test with recomputed totals."""
    test: Test
    entries: List[MarkSchemeEntry]
