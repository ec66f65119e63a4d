from __future__ import annotations

import json
from typing import Any, Dict, Mapping

from . import MarkSchemeEntry, Page, RecognitionSettings, Result, Test


def _bool_from_db(v: Any) -> bool:
    """
    Convert stored boolean cells to Python bool.
    Accepts: TRUE/FALSE, 1/0, yes/no, y/n (case-insensitive).
    """
    if v is None:
        return False
    if isinstance(v, bool):
        return v
    s = str(v).strip().upper()
    return s in ("TRUE", "1", "YES", "Y")


def _answers_from_db(raw: Any) -> Dict[str, str]:
    """JSON column may come back as dict or (older rows) as a JSON string."""
    if not raw:
        return {}
    data = raw
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except ValueError:
            return {}
    if not isinstance(data, dict):
        return {}
    return {str(k): "" if v is None else str(v) for k, v in data.items()}


def row_to_test(row: Mapping[str, Any]) -> Test:
    return Test(
        id=int(row["id"]),
        name=row.get("name") or "",
        total_questions=int(row.get("total_questions") or 0),
        total_points=int(row.get("total_points") or 0),
    )


def row_to_entry(row: Mapping[str, Any]) -> MarkSchemeEntry:
    return MarkSchemeEntry(
        id=int(row["id"]),
        test_id=int(row["test_id"]),
        question_number=int(row["question_number"]),
        expected_answer=row.get("expected_answer") or "",
        points=int(row.get("points") or 0),
    )


def row_to_page(row: Mapping[str, Any]) -> Page:
    confidence = row.get("confidence")
    return Page(
        id=int(row["id"]),
        test_id=int(row["test_id"]),
        page_number=int(row["page_number"]),
        image_data=row.get("image_data") or "",
        processed=_bool_from_db(row.get("processed")),
        extracted_answers=_answers_from_db(row.get("extracted_answers")),
        confidence=float(confidence) if confidence is not None else None,
    )


def row_to_result(row: Mapping[str, Any]) -> Result:
    return Result(
        id=int(row["id"]),
        test_id=int(row["test_id"]),
        student_answers=_answers_from_db(row.get("student_answers")),
        points_earned=int(row.get("points_earned") or 0),
        total_points=int(row.get("total_points") or 0),
        score_percentage=int(row.get("score_percentage") or 0),
    )


def row_to_settings(row: Mapping[str, Any]) -> RecognitionSettings:
    defaults = RecognitionSettings()
    return RecognitionSettings(
        answer_recognition_instructions=row.get("answer_recognition_instructions") or "",
        enhanced_recognition=_bool_from_db(row.get("enhanced_recognition")),
        confidence_threshold=int(
            row.get("confidence_threshold")
            if row.get("confidence_threshold") is not None
            else defaults.confidence_threshold
        ),
        temperature=float(
            row.get("temperature") if row.get("temperature") is not None else defaults.temperature
        ),
        top_p=float(row.get("top_p") if row.get("top_p") is not None else defaults.top_p),
    )
