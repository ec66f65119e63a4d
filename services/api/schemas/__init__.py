"""
Pydantic schemas for API request/response validation.
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from models import Result, ResultItem
from .mark_scheme import (
    ColumnMappingIn,
    MarkSchemePreviewOut,
    MarkSchemeRowsUpload,
    MarkSchemeUploadOut,
)
from .page import PageCreate, PageProcessOut
from .result import ResultCreate
from .settings import RecognitionSettingsUpdate

# ============ Test Schemas ============


class TestCreate(BaseModel):
    """Request to start a new grading session."""
    name: str = Field(..., min_length=1, max_length=200, description="Display name of the test")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class GradeOut(BaseModel):
    """Result of grading a test from its processed pages."""
    result: Result
    detailed_results: List[ResultItem]


# ============ Health Check ============


class HealthCheck(BaseModel):
    """Health check response."""
    status: str = "healthy"
    backend: Optional[str] = None
    version: str = "1.0"


# Re-export all
__all__ = [
    "TestCreate",
    "GradeOut",
    "ColumnMappingIn",
    "MarkSchemePreviewOut",
    "MarkSchemeRowsUpload",
    "MarkSchemeUploadOut",
    "PageCreate",
    "PageProcessOut",
    "ResultCreate",
    "RecognitionSettingsUpdate",
    "HealthCheck",
]
