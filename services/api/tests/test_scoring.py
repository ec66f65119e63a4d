"""
Tests for scoring answers against a mark scheme.

Run with: pytest tests/test_scoring.py -v
"""
import itertools

import pytest

from core.mark_scheme import NormalizedEntry
from core.scoring import (
    EmptyAnswerPolicy,
    answers_match,
    score_answers,
    score_percentage,
)


def _scheme(*rows):
    return [NormalizedEntry(question_number=q, expected_answer=a, points=p) for q, a, p in rows]


class TestAnswersMatch:
    """Tests for the per-question comparison rule."""

    def test_case_insensitive(self):
        assert answers_match("a", "A")
        assert answers_match("B", "b")

    def test_mismatch(self):
        assert not answers_match("A", "B")
        assert not answers_match("A", "")

    def test_no_trimming(self):
        """Whitespace is significant; extraction output is compared as is."""
        assert not answers_match("A", " A")

    def test_empty_vs_empty_policy(self):
        assert answers_match("", "", EmptyAnswerPolicy.MATCH)
        assert not answers_match("", "", EmptyAnswerPolicy.NO_CREDIT)


class TestScorePercentage:

    @pytest.mark.parametrize(
        "earned,total,expected",
        [(10, 15, 67), (1, 8, 13), (1, 3, 33), (0, 5, 0), (5, 5, 100), (0, 0, 0)],
    )
    def test_values(self, earned, total, expected):
        assert score_percentage(earned, total) == expected


class TestScoreAnswers:
    """Tests for whole-test scoring."""

    def test_end_to_end_example(self):
        scheme = _scheme((1, "A", 5), (2, "B", 5), (3, "", 5))
        report = score_answers(scheme, {"1": "a", "2": "C", "3": ""})

        assert [(i.question_number, i.correct, i.earned_points, i.points) for i in report.items] == [
            (1, True, 5, 5),
            (2, False, 0, 5),
            (3, True, 5, 5),
        ]
        assert report.points_earned == 10
        assert report.total_points == 15
        assert report.score_percentage == 67

    def test_no_credit_policy(self):
        scheme = _scheme((1, "A", 5), (2, "B", 5), (3, "", 5))
        report = score_answers(scheme, {"1": "a", "2": "C"}, EmptyAnswerPolicy.NO_CREDIT)
        assert report.points_earned == 5
        assert report.score_percentage == 33

    def test_missing_answers_are_empty(self):
        report = score_answers(_scheme((1, "A", 2)), {})
        assert report.items[0].student_answer == ""
        assert report.items[0].correct is False

    def test_empty_mark_scheme(self):
        """Zero total points never divides by zero."""
        report = score_answers([], {"1": "A"})
        assert report.items == []
        assert (report.points_earned, report.total_points, report.score_percentage) == (0, 0, 0)

    def test_answers_for_unknown_questions_ignored(self):
        report = score_answers(_scheme((1, "A", 1)), {"1": "A", "99": "B"})
        assert len(report.items) == 1
        assert report.score_percentage == 100

    def test_items_ordered_by_question(self):
        scheme = _scheme((3, "C", 1), (1, "A", 1), (2, "B", 1))
        report = score_answers(scheme, {})
        assert [i.question_number for i in report.items] == [1, 2, 3]

    def test_bounds(self):
        """0 <= earned <= total and 0 <= pct <= 100 for every answer combination."""
        scheme = _scheme((1, "A", 3), (2, "", 0), (3, "C", 7))
        choices = ["A", "C", "", "x"]
        for a1, a2, a3 in itertools.product(choices, repeat=3):
            for policy in EmptyAnswerPolicy:
                report = score_answers(scheme, {"1": a1, "2": a2, "3": a3}, policy)
                assert 0 <= report.points_earned <= report.total_points == 10
                assert 0 <= report.score_percentage <= 100


class TestEmptyAnswerPolicyParse:

    def test_known_values(self):
        assert EmptyAnswerPolicy.parse("match") is EmptyAnswerPolicy.MATCH
        assert EmptyAnswerPolicy.parse(" NO_CREDIT ") is EmptyAnswerPolicy.NO_CREDIT

    def test_unknown_falls_back_to_match(self):
        assert EmptyAnswerPolicy.parse("strict") is EmptyAnswerPolicy.MATCH
        assert EmptyAnswerPolicy.parse(None) is EmptyAnswerPolicy.MATCH
