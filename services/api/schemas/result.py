from typing import Any, Dict

from pydantic import BaseModel, Field


class ResultCreate(BaseModel):
    """
    Student answers to score against the test's current mark scheme.

    Keys are question numbers; values are stringified on the way in.
    """
    test_id: int = Field(..., ge=1)
    student_answers: Dict[str, Any] = Field(default_factory=dict)
