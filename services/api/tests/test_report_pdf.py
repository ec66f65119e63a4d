"""
Tests for the results PDF export.

Run with: pytest tests/test_report_pdf.py -v
"""
from core.report_pdf import generate_results_pdf
from models import Result, ResultItem


def _item(q, student, expected, points, correct):
    return ResultItem(
        question_number=q,
        student_answer=student,
        expected_answer=expected,
        points=points,
        earned_points=points if correct else 0,
        correct=correct,
    )


class TestGenerateResultsPdf:

    def test_returns_pdf_bytes(self):
        result = Result(id=1, test_id=1, points_earned=10, total_points=15, score_percentage=67)
        items = [
            _item(1, "a", "A", 5, True),
            _item(2, "C", "B", 5, False),
            _item(3, "", "", 5, True),
        ]
        data = generate_results_pdf(result=result, items=items)
        assert isinstance(data, bytes)
        assert data.startswith(b"%PDF")

    def test_long_table_and_unicode(self):
        """Many rows flow onto several pages; non-latin text does not break rendering."""
        result = Result(id=1, test_id=1, points_earned=0, total_points=120, score_percentage=0)
        items = [_item(q, "✓ " + "x" * 80, "Ω", 1, False) for q in range(1, 121)]
        data = generate_results_pdf(result=result, items=items)
        assert data.startswith(b"%PDF")

    def test_empty_breakdown(self):
        result = Result(id=1, test_id=1)
        assert generate_results_pdf(result=result, items=[]).startswith(b"%PDF")
