# services/api/core/aggregation.py
"""
Merge per-page extracted answers into one student-answer set.

The tie-break rule is: for a question reported on several pages, the page
with the highest page_number wins (a retake photo supersedes the earlier
capture). Pages are sorted before folding, so the input order never
matters.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Tuple


def _page_sort_key(page: Any) -> Tuple[int, int]:
    # id breaks ties between pages that share a page_number
    return int(page.page_number), int(getattr(page, "id", 0) or 0)


def aggregate_answers_with_sources(pages: Iterable[Any]) -> Tuple[Dict[str, str], Dict[str, int]]:
    """
    Fold pages in ascending page order into a single answer map.

    Args:
        pages: objects with page_number and extracted_answers attributes

    Returns:
        (answers, sources) where sources[question] is the page_number whose
        answer was kept.
    """
    answers: Dict[str, str] = {}
    sources: Dict[str, int] = {}

    ordered: List[Any] = sorted(pages, key=_page_sort_key)
    for page in ordered:
        for question, answer in (page.extracted_answers or {}).items():
            key = str(question).strip()
            answers[key] = answer
            sources[key] = int(page.page_number)

    return answers, sources


def aggregate_answers(pages: Iterable[Any]) -> Dict[str, str]:
    """Answer map only; see aggregate_answers_with_sources."""
    answers, _ = aggregate_answers_with_sources(pages)
    return answers
