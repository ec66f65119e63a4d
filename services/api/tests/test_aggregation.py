"""
Tests for merging per-page answers.

Run with: pytest tests/test_aggregation.py -v
"""
import itertools

from core.aggregation import aggregate_answers, aggregate_answers_with_sources
from models import Page


def _page(page_id, page_number, answers):
    return Page(
        id=page_id,
        test_id=1,
        page_number=page_number,
        image_data="",
        processed=True,
        extracted_answers=answers,
    )


class TestAggregateAnswers:
    """Tests for the last-page-wins fold."""

    def test_disjoint_pages_merge(self):
        pages = [
            _page(1, 1, {"1": "A", "2": "B"}),
            _page(2, 2, {"3": "C"}),
        ]
        assert aggregate_answers(pages) == {"1": "A", "2": "B", "3": "C"}

    def test_highest_page_number_wins_in_any_order(self):
        """Overlapping answers resolve to the highest page number, whatever the input order."""
        pages = [
            _page(10, 1, {"1": "A", "2": "A"}),
            _page(11, 2, {"2": "B", "3": "B"}),
            _page(12, 3, {"3": "C"}),
        ]
        expected = {"1": "A", "2": "B", "3": "C"}
        for ordering in itertools.permutations(pages):
            assert aggregate_answers(list(ordering)) == expected

    def test_same_page_number_later_capture_wins(self):
        """Pages sharing a number are ordered by id."""
        pages = [
            _page(7, 1, {"1": "D"}),
            _page(3, 1, {"1": "A"}),
        ]
        assert aggregate_answers(pages) == {"1": "D"}

    def test_keys_are_trimmed(self):
        pages = [_page(1, 1, {" 4 ": "A"}), _page(2, 2, {"4": "B"})]
        assert aggregate_answers(pages) == {"4": "B"}

    def test_sources(self):
        pages = [_page(1, 2, {"1": "B"}), _page(2, 1, {"1": "A", "2": "C"})]
        answers, sources = aggregate_answers_with_sources(pages)
        assert answers == {"1": "B", "2": "C"}
        assert sources == {"1": 2, "2": 1}

    def test_no_pages(self):
        assert aggregate_answers([]) == {}
