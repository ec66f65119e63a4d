# services/api/core/column_hints.py
"""
Column mapping suggestions for the upload screen.

Guesses which spreadsheet header holds the question number, the answer
and the points. This is a UI convenience only: the suggestion is shown to
the user, who confirms or changes it, and normalization only ever runs on
the explicit mapping that comes back.
"""
from __future__ import annotations

import re
from typing import Dict, Optional, Sequence

# Exact names first (after normalization), then substrings.
HEADER_ALIASES: Dict[str, tuple] = {
    "question_number_col": (
        "questionnumber", "questionno", "question", "qnumber", "qno", "q#", "question#", "q", "number", "no",
    ),
    "expected_answer_col": (
        "expectedanswer", "answer", "answers", "correctanswer", "answerkey", "key", "solution",
    ),
    "points_col": (
        "points", "point", "marks", "mark", "score", "scores", "value", "worth", "pts",
    ),
}

HEADER_CONTAINS: Dict[str, tuple] = {
    "question_number_col": ("question",),
    "expected_answer_col": ("answer",),
    "points_col": ("point", "mark"),
}


def _normalize_header(label: str) -> str:
    """Lowercase, drop whitespace, underscores and dots."""
    return re.sub(r"[\s_.\-]", "", (label or "").strip().lower())


def _match(headers: Sequence[str], field: str, taken: set) -> Optional[str]:
    for alias in HEADER_ALIASES[field]:
        for h in headers:
            if h not in taken and _normalize_header(h) == alias:
                return h
    for needle in HEADER_CONTAINS[field]:
        for h in headers:
            if h not in taken and needle in _normalize_header(h):
                return h
    return None


def suggest_column_mapping(headers: Sequence[str]) -> Dict[str, str]:
    """
    Suggest a column for each mark-scheme field.

    Returns:
        {"question_number_col": ..., "expected_answer_col": ..., "points_col": ...}
        with "" for fields where nothing matched. A header is never
        suggested for two fields.
    """
    taken: set = set()
    suggestion: Dict[str, str] = {}
    # answer first so "Question Answer" doesn't end up as the question column
    for field in ("expected_answer_col", "points_col", "question_number_col"):
        found = _match(headers, field, taken)
        if found:
            taken.add(found)
        suggestion[field] = found or ""
    return {
        "question_number_col": suggestion["question_number_col"],
        "expected_answer_col": suggestion["expected_answer_col"],
        "points_col": suggestion["points_col"],
    }
