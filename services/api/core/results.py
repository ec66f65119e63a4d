# services/api/core/results.py
"""
Result materialization.

Stores the score summary as the test's current Result and recomputes the
per-question breakdown on every read, from the *current* mark scheme and
the answers of the current Result. Correcting a mark scheme after grading
is therefore reflected without re-running extraction.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List, Mapping, Optional, Tuple

from adapters.base import StorageAdapter
from core.aggregation import aggregate_answers_with_sources
from core.scoring import EmptyAnswerPolicy, ScoreReport, score_answers
from models import Result, ResultItem

logger = logging.getLogger(__name__)


class ResultService:
    """
    Business rules around a test's Result.

    Works against any StorageAdapter; the scoring itself stays in pure
    functions (core.scoring / core.aggregation).
    """

    def __init__(
        self,
        storage: StorageAdapter,
        policy: EmptyAnswerPolicy = EmptyAnswerPolicy.MATCH,
    ) -> None:
        self.storage = storage
        self.policy = policy

    def score(self, test_id: int, student_answers: Mapping[str, str]) -> ScoreReport:
        """Score answers against the test's current mark scheme (no storage writes)."""
        entries = self.storage.get_mark_scheme(test_id)
        return score_answers(entries, student_answers, self.policy)

    def record_result(self, test_id: int, student_answers: Mapping[str, str]) -> Result:
        """
        Score and store a new Result, superseding any earlier one.

        Raises:
            ValueError: test does not exist (from the storage adapter)
        """
        answers: Dict[str, str] = {
            str(k).strip(): "" if v is None else str(v) for k, v in student_answers.items()
        }
        report = self.score(test_id, answers)

        result = self.storage.save_result(
            test_id=test_id,
            student_answers=answers,
            points_earned=report.points_earned,
            total_points=report.total_points,
            score_percentage=report.score_percentage,
        )
        logger.info(
            f"Recorded result {result.id} for test {test_id}: "
            f"{result.points_earned}/{result.total_points} ({result.score_percentage}%)"
        )
        return result

    def get_current_result(self, test_id: int) -> Optional[Result]:
        return self.storage.get_result(test_id)

    def get_detailed_results(self, test_id: int) -> List[ResultItem]:
        """Fresh per-question breakdown; empty when no result was recorded."""
        result = self.storage.get_result(test_id)
        if result is None:
            return []
        return self.score(test_id, result.student_answers).items

    def grade_test(self, test_id: int) -> Tuple[Result, List[ResultItem]]:
        """
        Aggregate the answers of all processed pages of a test, record the
        result and return it with its breakdown.
        """
        pages = self.storage.list_pages(test_id)
        processed = [p for p in pages if p.processed]
        if len(processed) < len(pages):
            logger.warning(
                f"Grading test {test_id} with {len(pages) - len(processed)} "
                f"unprocessed page(s) out of {len(pages)}"
            )

        answers, sources = aggregate_answers_with_sources(processed)
        reported = Counter(
            str(q).strip() for p in processed for q in (p.extracted_answers or {})
        )
        overridden = [q for q, n in reported.items() if n > 1]
        if overridden:
            kept = {q: sources[q] for q in sorted(overridden, key=_question_sort_key)}
            logger.info(
                f"Test {test_id}: questions reported on several pages, "
                f"kept answers from pages {kept}"
            )

        result = self.record_result(test_id, answers)
        return result, self.score(test_id, result.student_answers).items


def _question_sort_key(question: str) -> Tuple[int, str]:
    # only plain decimal keys sort numerically
    if question.isdecimal() and len(question) < 10:
        return int(question), question
    return 10**9, question
