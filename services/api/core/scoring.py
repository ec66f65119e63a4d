# services/api/core/scoring.py
"""
Score a student's answers against a mark scheme.

Every function here is total: an empty mark scheme, zero total points or
missing answers produce zero-valued but well-formed results, never an
exception.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional

from models import ResultItem

logger = logging.getLogger(__name__)


class EmptyAnswerPolicy(str, Enum):
    """
    How an empty student answer is scored against an empty expected answer.

    MATCH keeps the long-standing behaviour (both blank reconcile as
    correct, full points). NO_CREDIT awards nothing for it.
    """
    MATCH = "match"
    NO_CREDIT = "no_credit"

    @classmethod
    def parse(cls, value: Optional[str]) -> "EmptyAnswerPolicy":
        if not value:
            return cls.MATCH
        try:
            return cls(value.strip().lower())
        except ValueError:
            logger.warning(f"Unknown empty answer policy {value!r}, using 'match'")
            return cls.MATCH


@dataclass
class ScoreReport:
    items: List[ResultItem] = field(default_factory=list)
    points_earned: int = 0
    total_points: int = 0
    score_percentage: int = 0


def score_percentage(points_earned: int, total_points: int) -> int:
    """
    round(100 * earned / total), halves rounded up; 0 when total is 0.
    """
    if total_points <= 0:
        return 0
    pct = (Decimal(100) * Decimal(points_earned) / Decimal(total_points)).quantize(
        Decimal(1), rounding=ROUND_HALF_UP
    )
    return max(0, min(100, int(pct)))


def answers_match(
    expected: str,
    given: str,
    policy: EmptyAnswerPolicy = EmptyAnswerPolicy.MATCH,
) -> bool:
    """Case-insensitive exact comparison."""
    if not expected and not given:
        return policy is EmptyAnswerPolicy.MATCH
    return expected.upper() == given.upper()


def score_entry(
    entry: Any,
    student_answers: Mapping[str, Any],
    policy: EmptyAnswerPolicy = EmptyAnswerPolicy.MATCH,
) -> ResultItem:
    """Compare one mark-scheme entry with the student's answer for it."""
    raw = student_answers.get(str(entry.question_number))
    student_answer = "" if raw is None else str(raw)
    expected_answer = entry.expected_answer or ""

    correct = answers_match(expected_answer, student_answer, policy)
    return ResultItem(
        question_number=entry.question_number,
        student_answer=student_answer,
        expected_answer=expected_answer,
        points=entry.points,
        earned_points=entry.points if correct else 0,
        correct=correct,
    )


def score_answers(
    entries: Iterable[Any],
    student_answers: Optional[Mapping[str, Any]],
    policy: EmptyAnswerPolicy = EmptyAnswerPolicy.MATCH,
) -> ScoreReport:
    """
    Score aggregated student answers against a mark scheme.

    Args:
        entries: mark-scheme entries (question_number, expected_answer, points)
        student_answers: question number (as string) -> answer
        policy: scoring of blank-vs-blank questions

    Returns:
        ScoreReport with one item per entry in ascending question order.
    """
    answers = student_answers or {}
    ordered = sorted(entries, key=lambda e: e.question_number)

    items = [score_entry(entry, answers, policy) for entry in ordered]
    total_points = sum(item.points for item in items)
    points_earned = sum(item.earned_points for item in items)

    return ScoreReport(
        items=items,
        points_earned=points_earned,
        total_points=total_points,
        score_percentage=score_percentage(points_earned, total_points),
    )
