# services/api/adapters/memory/__init__.py
"""
In-memory storage adapter.

Keeps every entity in a dict keyed by an auto-incrementing id. Fast and
dependency-free, used by default and in tests. Nothing survives a restart.

All mutations run under one re-entrant lock so that "replace mark scheme +
recompute totals" and "supersede result" are each observed as one step.
"""
from __future__ import annotations

import logging
import threading
from itertools import count
from typing import Any, Dict, List, Optional, Sequence

from core.errors import PageAlreadyProcessedError
from core.mark_scheme import NormalizedEntry, mark_scheme_totals
from models import MarkSchemeEntry, Page, RecognitionSettings, Result, Test

logger = logging.getLogger(__name__)


class MemoryAdapter:
    """Process-local keyed-map store."""

    backend_name = "memory"

    def __init__(self) -> None:
        self._lock = threading.RLock()

        self._tests: Dict[int, Test] = {}
        self._entries: Dict[int, MarkSchemeEntry] = {}
        self._pages: Dict[int, Page] = {}
        self._results: Dict[int, Result] = {}
        # test_id -> id of the current result
        self._current_result: Dict[int, int] = {}
        self._settings = RecognitionSettings()

        self._test_ids = count(1)
        self._entry_ids = count(1)
        self._page_ids = count(1)
        self._result_ids = count(1)

    # ---------- helpers ----------

    def _require_test(self, test_id: int) -> Test:
        test = self._tests.get(test_id)
        if test is None:
            raise ValueError(f"Test {test_id} not found")
        return test

    # ========== Tests ==========

    def create_test(self, name: str) -> Test:
        with self._lock:
            test = Test(id=next(self._test_ids), name=name)
            self._tests[test.id] = test
            return test.model_copy()

    def get_test(self, test_id: int) -> Optional[Test]:
        test = self._tests.get(test_id)
        return test.model_copy() if test else None

    def list_tests(self) -> List[Test]:
        with self._lock:
            return [t.model_copy() for _, t in sorted(self._tests.items())]

    # ========== Mark scheme ==========

    def get_mark_scheme(self, test_id: int) -> List[MarkSchemeEntry]:
        with self._lock:
            entries = [e for e in self._entries.values() if e.test_id == test_id]
        entries.sort(key=lambda e: e.question_number)
        return [e.model_copy() for e in entries]

    def replace_mark_scheme(
        self,
        test_id: int,
        entries: Sequence[NormalizedEntry],
    ) -> List[MarkSchemeEntry]:
        with self._lock:
            test = self._require_test(test_id)

            stale = [eid for eid, e in self._entries.items() if e.test_id == test_id]
            for eid in stale:
                del self._entries[eid]

            for entry in entries:
                stored = MarkSchemeEntry(
                    id=next(self._entry_ids),
                    test_id=test_id,
                    question_number=entry.question_number,
                    expected_answer=entry.expected_answer,
                    points=entry.points,
                )
                self._entries[stored.id] = stored

            total_questions, total_points = mark_scheme_totals(entries)
            self._tests[test_id] = test.model_copy(
                update={"total_questions": total_questions, "total_points": total_points}
            )
            logger.info(
                f"[memory] Replaced mark scheme for test {test_id}: "
                f"{len(stale)} removed, {len(entries)} stored"
            )
            return self.get_mark_scheme(test_id)

    # ========== Pages ==========

    def add_page(
        self,
        test_id: int,
        image_data: str,
        page_number: Optional[int] = None,
    ) -> Page:
        with self._lock:
            self._require_test(test_id)
            if page_number is None:
                existing = [p.page_number for p in self._pages.values() if p.test_id == test_id]
                page_number = max(existing, default=0) + 1

            page = Page(
                id=next(self._page_ids),
                test_id=test_id,
                page_number=page_number,
                image_data=image_data,
            )
            self._pages[page.id] = page
            return page.model_copy(deep=True)

    def get_page(self, page_id: int) -> Optional[Page]:
        page = self._pages.get(page_id)
        return page.model_copy(deep=True) if page else None

    def list_pages(self, test_id: int) -> List[Page]:
        with self._lock:
            pages = [p for p in self._pages.values() if p.test_id == test_id]
        pages.sort(key=lambda p: (p.page_number, p.id))
        return [p.model_copy(deep=True) for p in pages]

    def mark_page_processed(
        self,
        page_id: int,
        extracted_answers: Dict[str, str],
        confidence: Optional[float] = None,
    ) -> Page:
        with self._lock:
            page = self._pages.get(page_id)
            if page is None:
                raise ValueError(f"Page {page_id} not found")
            if page.processed:
                raise PageAlreadyProcessedError(page_id)

            updated = page.model_copy(
                update={
                    "processed": True,
                    "extracted_answers": dict(extracted_answers),
                    "confidence": confidence,
                }
            )
            self._pages[page_id] = updated
            return updated.model_copy(deep=True)

    def delete_page(self, page_id: int) -> None:
        with self._lock:
            if self._pages.pop(page_id, None) is None:
                raise ValueError(f"Page {page_id} not found")

    # ========== Results ==========

    def save_result(
        self,
        test_id: int,
        student_answers: Dict[str, str],
        points_earned: int,
        total_points: int,
        score_percentage: int,
    ) -> Result:
        with self._lock:
            self._require_test(test_id)
            result = Result(
                id=next(self._result_ids),
                test_id=test_id,
                student_answers=dict(student_answers),
                points_earned=points_earned,
                total_points=total_points,
                score_percentage=score_percentage,
            )
            self._results[result.id] = result
            self._current_result[test_id] = result.id
            return result.model_copy(deep=True)

    def get_result(self, test_id: int) -> Optional[Result]:
        result_id = self._current_result.get(test_id)
        if result_id is None:
            return None
        return self._results[result_id].model_copy(deep=True)

    # ========== Recognition settings ==========

    def get_recognition_settings(self) -> RecognitionSettings:
        return self._settings.model_copy()

    def update_recognition_settings(self, updates: Dict[str, Any]) -> RecognitionSettings:
        with self._lock:
            allowed = {k: v for k, v in updates.items() if k in RecognitionSettings.model_fields}
            merged = {**self._settings.model_dump(), **allowed}
            # re-validate so bad values never land in the store
            self._settings = RecognitionSettings(**merged)
            return self._settings.model_copy()
