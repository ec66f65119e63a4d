# services/api/core/mark_scheme.py
"""
Mark-scheme normalization.

Turns spreadsheet rows of unknown shape into a canonical, validated list
of (question_number, expected_answer, points) entries.

Coercion is tolerant (spreadsheets contain "Q7", "10 pts", blank cells and
the occasional literal "undefined"), but validation after coercion is
strict: one bad row fails the whole batch.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from core.errors import ColumnMappingError, MarkSchemeError, RowValidationError

logger = logging.getLogger(__name__)

DEFAULT_POINTS = 1
# largest question number or points value a row may carry (SQLite INTEGER safe)
MAX_FIELD_VALUE = 2**31 - 1

_NON_DIGITS = re.compile(r"\D")
_SINGLE_LETTER = re.compile(r"[A-Za-z]")


@dataclass(frozen=True)
class ColumnMapping:
    """Explicit assignment of spreadsheet headers to mark-scheme fields."""
    question_number_col: str
    expected_answer_col: str
    points_col: str

    def columns(self) -> Dict[str, str]:
        return {
            "question_number": self.question_number_col,
            "expected_answer": self.expected_answer_col,
            "points": self.points_col,
        }


@dataclass(frozen=True)
class NormalizedEntry:
    question_number: int
    expected_answer: str
    points: int


# ---------- field coercion ----------

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _digits_to_int(value: Any) -> Optional[int]:
    digits = _NON_DIGITS.sub("", str(value))
    if not digits:
        return None
    if len(digits.lstrip("0")) > len(str(MAX_FIELD_VALUE)):
        # anything this long is out of range; skip int() on huge digit runs
        return MAX_FIELD_VALUE + 1
    return int(digits)


def _coerce_number(value: Any) -> Any:
    """
    Best-effort numeric coercion for a non-blank cell.

    Returns:
        - ints unchanged (negative ones fail validation later)
        - integral floats as int (spreadsheets store 3 as 3.0)
        - fractional floats unchanged so validation can reject them
        - for anything else, the digits of its text parsed as int,
          or None when the text has no digits at all
    """
    if isinstance(value, bool):
        return _digits_to_int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return value
    return _digits_to_int(value)


def coerce_question_number(value: Any, row_index: int) -> Any:
    """
    Coerce a raw question-number cell.

    Falls back to row_index + 1 when the cell is blank or has no digits.
    """
    fallback = row_index + 1
    if _is_blank(value):
        logger.warning(f"Row {row_index + 1} has missing question number, using {fallback}")
        return fallback

    coerced = _coerce_number(value)
    if coerced is None:
        logger.warning(
            f"Row {row_index + 1} question number {value!r} has no digits, using {fallback}"
        )
        return fallback
    return coerced


def coerce_expected_answer(value: Any) -> str:
    """
    Coerce a raw expected-answer cell to its canonical string form.

    Rules:
    - None -> "" (no correct answer recorded)
    - literal "undefined" in any case -> ""
    - otherwise trimmed text; a single letter is uppercased, anything
      longer is kept verbatim
    """
    if value is None:
        return ""

    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        text = str(int(value))
    else:
        text = str(value)
    text = text.strip()

    if text.lower() == "undefined":
        logger.warning('Found literal "undefined" expected answer, using empty string')
        return ""

    if _SINGLE_LETTER.fullmatch(text):
        return text.upper()
    return text


def coerce_points(value: Any, row_index: int) -> Any:
    """Coerce a raw points cell, defaulting to 1 when blank or without digits."""
    if _is_blank(value):
        logger.warning(f"Row {row_index + 1} has no points, using default {DEFAULT_POINTS}")
        return DEFAULT_POINTS

    coerced = _coerce_number(value)
    if coerced is None:
        logger.warning(
            f"Row {row_index + 1} points {value!r} has no digits, using default {DEFAULT_POINTS}"
        )
        return DEFAULT_POINTS
    return coerced


# ---------- mapping checks ----------

def observed_headers(rows: Iterable[Mapping[str, Any]]) -> List[str]:
    """Union of row keys in first-seen order."""
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row.keys():
            seen.setdefault(key, None)
    return list(seen)


def require_complete_mapping(mapping: ColumnMapping) -> None:
    """Raise ColumnMappingError if any of the three columns is unset."""
    unset = [field for field, col in mapping.columns().items() if not (col or "").strip()]
    if unset:
        raise ColumnMappingError(
            "Column mapping is incomplete. Please select all required columns "
            f"(missing: {', '.join(unset)})",
            missing=unset,
        )


def require_columns_present(mapping: ColumnMapping, headers: Sequence[str]) -> None:
    """Raise ColumnMappingError if a mapped column is not among the observed headers."""
    absent = [col for col in mapping.columns().values() if col not in headers]
    if absent:
        raise ColumnMappingError(
            f"Column(s) {', '.join(repr(c) for c in absent)} don't exist in the data. "
            f"Available columns: {', '.join(headers)}",
            missing=absent,
            available=headers,
        )


# ---------- whole batch ----------

def _validate_entry(
    row_number: int,
    raw: Tuple[Any, Any, Any],
    question_number: Any,
    expected_answer: Any,
    points: Any,
) -> NormalizedEntry:
    raw_q, raw_a, raw_p = raw
    if not isinstance(question_number, int) or isinstance(question_number, bool) or question_number < 1:
        raise RowValidationError(row_number, "question_number", raw_q, "must be a positive integer")
    if question_number > MAX_FIELD_VALUE:
        raise RowValidationError(row_number, "question_number", raw_q, f"too large (max {MAX_FIELD_VALUE})")
    if not isinstance(expected_answer, str):
        raise RowValidationError(row_number, "expected_answer", raw_a, "must be text")
    if not isinstance(points, int) or isinstance(points, bool) or points < 0:
        raise RowValidationError(row_number, "points", raw_p, "must be a non-negative integer")
    if points > MAX_FIELD_VALUE:
        raise RowValidationError(row_number, "points", raw_p, f"too large (max {MAX_FIELD_VALUE})")
    return NormalizedEntry(
        question_number=question_number,
        expected_answer=expected_answer,
        points=points,
    )


def normalize_mark_scheme(
    rows: Sequence[Mapping[str, Any]],
    mapping: ColumnMapping,
    headers: Optional[Sequence[str]] = None,
) -> List[NormalizedEntry]:
    """
    Normalize raw spreadsheet rows into canonical mark-scheme entries.

    Args:
        rows: rows as produced by the spreadsheet reader (header -> cell value)
        mapping: which header holds which field
        headers: observed headers; defaults to the union of row keys

    Returns:
        Entries sorted by question number.

    Raises:
        ColumnMappingError: mapping incomplete or naming unknown columns
        MarkSchemeError: no rows at all
        RowValidationError: first row that cannot be coerced into a valid entry,
            including a question number already used by an earlier row
    """
    require_complete_mapping(mapping)
    if not rows:
        raise MarkSchemeError("No data found in the mark scheme")

    header_list = list(headers) if headers is not None else observed_headers(rows)
    require_columns_present(mapping, header_list)

    entries: List[NormalizedEntry] = []
    first_row_for_question: Dict[int, int] = {}

    for row_index, row in enumerate(rows):
        row_number = row_index + 1
        raw_q = row.get(mapping.question_number_col)
        raw_a = row.get(mapping.expected_answer_col)
        raw_p = row.get(mapping.points_col)

        entry = _validate_entry(
            row_number,
            (raw_q, raw_a, raw_p),
            coerce_question_number(raw_q, row_index),
            coerce_expected_answer(raw_a),
            coerce_points(raw_p, row_index),
        )

        earlier = first_row_for_question.get(entry.question_number)
        if earlier is not None:
            raise RowValidationError(
                row_number,
                "question_number",
                raw_q,
                f"question {entry.question_number} already defined on row {earlier}",
            )
        first_row_for_question[entry.question_number] = row_number
        entries.append(entry)

    entries.sort(key=lambda e: e.question_number)
    logger.info(
        f"Normalized mark scheme: {len(entries)} questions, "
        f"{sum(e.points for e in entries)} points"
    )
    return entries


def mark_scheme_totals(entries: Iterable[Any]) -> Tuple[int, int]:
    """(total_questions, total_points) for any entries with a `points` attribute."""
    entry_list = list(entries)
    return len(entry_list), sum(int(e.points) for e in entry_list)
