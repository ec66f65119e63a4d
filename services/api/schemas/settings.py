from typing import Optional

from pydantic import BaseModel, Field


class RecognitionSettingsUpdate(BaseModel):
    """Partial update; only fields that are sent are changed."""
    answer_recognition_instructions: Optional[str] = Field(None, max_length=4000)
    enhanced_recognition: Optional[bool] = None
    confidence_threshold: Optional[int] = Field(None, ge=0, le=100)
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    top_p: Optional[float] = Field(None, gt=0.0, le=1.0)
