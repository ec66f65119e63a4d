# services/api/schemas/page.py
from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field

from models import Page


class PageCreate(BaseModel):
    """A captured answer-sheet photo as data URL or bare base64."""
    test_id: int = Field(..., ge=1)
    image_data: str = Field(..., min_length=1, description="data:image/...;base64,... or raw base64")
    page_number: Optional[int] = Field(
        None,
        ge=1,
        description="Position in the test; defaults to after the last captured page",
    )


class PageProcessOut(BaseModel):
    """Outcome of running answer extraction on one page."""
    page: Page
    extracted_answers: Dict[str, str]
    confidence: float
    low_confidence: bool = False
