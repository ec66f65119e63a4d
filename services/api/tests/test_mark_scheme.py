"""
Tests for mark-scheme normalization.

Run with: pytest tests/test_mark_scheme.py -v
"""
import pytest

from core.errors import ColumnMappingError, MarkSchemeError, RowValidationError
from core.mark_scheme import (
    MAX_FIELD_VALUE,
    ColumnMapping,
    NormalizedEntry,
    coerce_expected_answer,
    coerce_points,
    coerce_question_number,
    mark_scheme_totals,
    normalize_mark_scheme,
)


class TestCoerceQuestionNumber:
    """Tests for question-number coercion."""

    def test_decorated_text(self):
        """Non-digits are stripped from text cells."""
        assert coerce_question_number("Q7", 0) == 7
        assert coerce_question_number("#12", 0) == 12
        assert coerce_question_number(" 3. ", 0) == 3

    def test_spreadsheet_float(self):
        """Integral floats from Excel come back as int."""
        assert coerce_question_number(4.0, 0) == 4
        assert isinstance(coerce_question_number(4.0, 0), int)

    def test_blank_falls_back_to_row_position(self):
        """Missing number uses the 1-based row position."""
        assert coerce_question_number(None, 0) == 1
        assert coerce_question_number("", 4) == 5
        assert coerce_question_number("   ", 9) == 10

    def test_text_without_digits_falls_back(self):
        assert coerce_question_number("abc", 2) == 3


class TestCoerceExpectedAnswer:
    """Tests for expected-answer coercion."""

    def test_literal_undefined_is_empty(self):
        """The text 'undefined' in any case never becomes an answer."""
        assert coerce_expected_answer("undefined") == ""
        assert coerce_expected_answer("UNDEFINED") == ""
        assert coerce_expected_answer("  Undefined ") == ""

    def test_missing_is_empty(self):
        assert coerce_expected_answer(None) == ""
        assert coerce_expected_answer("") == ""

    def test_single_letter_uppercased(self):
        assert coerce_expected_answer("a") == "A"
        assert coerce_expected_answer(" c ") == "C"

    def test_longer_text_kept_verbatim(self):
        """Only single letters are case-normalized."""
        assert coerce_expected_answer("Paris") == "Paris"
        assert coerce_expected_answer(" true ") == "true"

    def test_numeric_answer(self):
        assert coerce_expected_answer(42) == "42"
        assert coerce_expected_answer(3.0) == "3"


class TestCoercePoints:
    """Tests for points coercion."""

    def test_decorated_text(self):
        assert coerce_points("10 pts", 0) == 10
        assert coerce_points("2 marks", 0) == 2

    def test_blank_defaults_to_one(self):
        assert coerce_points(None, 0) == 1
        assert coerce_points("", 0) == 1
        assert coerce_points("n/a", 0) == 1

    def test_zero_is_kept(self):
        """0 points is a valid value, not a missing one."""
        assert coerce_points(0, 0) == 0
        assert coerce_points("0", 0) == 0


class TestNormalizeMarkScheme:
    """Tests for whole-batch normalization."""

    def test_canonical_entries(self, mapping):
        rows = [
            {"Question": "Q2", "Answer": "b", "Points": "10 pts"},
            {"Question": 1, "Answer": "undefined", "Points": None},
        ]
        entries = normalize_mark_scheme(rows, mapping)
        assert entries == [
            NormalizedEntry(question_number=1, expected_answer="", points=1),
            NormalizedEntry(question_number=2, expected_answer="B", points=10),
        ]

    def test_idempotent(self, mapping, sample_rows):
        """Normalizing the same input twice gives identical output."""
        first = normalize_mark_scheme(sample_rows, mapping)
        second = normalize_mark_scheme(sample_rows, mapping)
        assert first == second

    def test_sorted_by_question_number(self, mapping):
        rows = [
            {"Question": 3, "Answer": "C", "Points": 1},
            {"Question": 1, "Answer": "A", "Points": 1},
            {"Question": 2, "Answer": "B", "Points": 1},
        ]
        numbers = [e.question_number for e in normalize_mark_scheme(rows, mapping)]
        assert numbers == [1, 2, 3]

    def test_incomplete_mapping(self, sample_rows):
        """A mapping with an unset column is rejected before any row is read."""
        mapping = ColumnMapping("Question", "", "Points")
        with pytest.raises(ColumnMappingError) as exc:
            normalize_mark_scheme(sample_rows, mapping)
        assert "incomplete" in str(exc.value)
        assert exc.value.missing == ["expected_answer"]

    def test_unknown_column(self, sample_rows):
        mapping = ColumnMapping("Question", "Key", "Points")
        with pytest.raises(ColumnMappingError) as exc:
            normalize_mark_scheme(sample_rows, mapping)
        assert exc.value.missing == ["Key"]
        assert "Answer" in exc.value.available

    def test_explicit_headers_allow_sparse_rows(self, mapping):
        """A column present in the header row but blank in every row is fine."""
        rows = [{"Question": 1, "Answer": "A"}]
        entries = normalize_mark_scheme(rows, mapping, headers=["Question", "Answer", "Points"])
        assert entries[0].points == 1

    def test_no_rows(self, mapping):
        with pytest.raises(MarkSchemeError):
            normalize_mark_scheme([], mapping)

    def test_duplicate_question_reports_later_row(self, mapping):
        rows = [
            {"Question": 1, "Answer": "A", "Points": 1},
            {"Question": 2, "Answer": "B", "Points": 1},
            {"Question": "Q1", "Answer": "C", "Points": 1},
        ]
        with pytest.raises(RowValidationError) as exc:
            normalize_mark_scheme(rows, mapping)
        assert exc.value.row_number == 3
        assert exc.value.field == "question_number"
        assert "row 1" in exc.value.reason

    def test_fractional_points_rejected(self, mapping):
        rows = [
            {"Question": 1, "Answer": "A", "Points": 1},
            {"Question": 2, "Answer": "B", "Points": 2.5},
        ]
        with pytest.raises(RowValidationError) as exc:
            normalize_mark_scheme(rows, mapping)
        assert exc.value.row_number == 2
        assert exc.value.field == "points"
        assert exc.value.to_detail()["value"] == "2.5"

    def test_non_positive_question_number_rejected(self, mapping):
        for bad in (0, -3, "0"):
            rows = [{"Question": bad, "Answer": "A", "Points": 1}]
            with pytest.raises(RowValidationError):
                normalize_mark_scheme(rows, mapping)

    def test_one_bad_row_fails_batch(self, mapping):
        """Nothing is returned when any row is invalid."""
        rows = [
            {"Question": 1, "Answer": "A", "Points": 1},
            {"Question": 2, "Answer": "B", "Points": -1},
        ]
        with pytest.raises(RowValidationError):
            normalize_mark_scheme(rows, mapping)

    def test_very_long_question_number_rejected(self, mapping):
        rows = [{"Question": "Q" + "9" * 5000, "Answer": "A", "Points": 1}]
        with pytest.raises(RowValidationError) as exc:
            normalize_mark_scheme(rows, mapping)
        assert exc.value.row_number == 1
        assert exc.value.field == "question_number"
        assert "too large" in exc.value.reason

    def test_oversized_points_rejected(self, mapping):
        rows = [{"Question": 1, "Answer": "A", "Points": "9" * 25}]
        with pytest.raises(RowValidationError) as exc:
            normalize_mark_scheme(rows, mapping)
        assert exc.value.field == "points"
        assert "too large" in exc.value.reason

    def test_largest_values_accepted(self, mapping):
        rows = [{"Question": MAX_FIELD_VALUE, "Answer": "A", "Points": str(MAX_FIELD_VALUE)}]
        entries = normalize_mark_scheme(rows, mapping)
        assert entries == [NormalizedEntry(MAX_FIELD_VALUE, "A", MAX_FIELD_VALUE)]


class TestMarkSchemeTotals:

    def test_totals(self, mapping, sample_rows):
        entries = normalize_mark_scheme(sample_rows, mapping)
        assert mark_scheme_totals(entries) == (3, 15)

    def test_empty(self):
        assert mark_scheme_totals([]) == (0, 0)
