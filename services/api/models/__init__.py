from __future__ import annotations

from typing import Dict, Optional
from pydantic import BaseModel, Field


class Test(BaseModel):
    """
    Domain model for a grading session.

    total_questions / total_points are derived from the mark scheme and
    are only ever written by the storage adapter when entries are replaced.
    """
    id: int
    name: str
    total_questions: int = 0
    total_points: int = 0


class MarkSchemeEntry(BaseModel):
    """One row of a test's answer key."""
    id: int
    test_id: int
    question_number: int
    expected_answer: str = ""
    points: int = 1


class Page(BaseModel):
    """
    A captured answer-sheet photo.

    extracted_answers is keyed by question number as a string, exactly as
    the vision model reports it.
    """
    id: int
    test_id: int
    page_number: int
    image_data: str
    processed: bool = False
    extracted_answers: Dict[str, str] = Field(default_factory=dict)
    confidence: Optional[float] = None


class Result(BaseModel):
    """Stored score summary; the current one per test supersedes older ones."""
    id: int
    test_id: int
    student_answers: Dict[str, str] = Field(default_factory=dict)
    points_earned: int = 0
    total_points: int = 0
    score_percentage: int = 0


class ResultItem(BaseModel):
    """
    Per-question comparison. Always derived from the current mark scheme,
    never stored.
    """
    question_number: int
    student_answer: str
    expected_answer: str
    points: int
    earned_points: int
    correct: bool


class RecognitionSettings(BaseModel):
    """Options passed to the vision model when extracting answers."""
    answer_recognition_instructions: str = ""
    enhanced_recognition: bool = True
    confidence_threshold: int = Field(80, ge=0, le=100)
    temperature: float = Field(0.0, ge=0.0, le=2.0)
    top_p: float = Field(1.0, gt=0.0, le=1.0)
