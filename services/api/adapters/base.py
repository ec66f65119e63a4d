"""
Storage adapter interface for the answer sheet grader.
Defines the contract that all storage backends must implement.
"""

from typing import Protocol, List, Dict, Any, Optional, Sequence

from core.mark_scheme import NormalizedEntry
from models import MarkSchemeEntry, Page, RecognitionSettings, Result, Test


class StorageAdapter(Protocol):
    """
    Protocol defining the interface for all storage adapters.

    This allows swapping between the in-memory store and SQLite
    without changing the router or scoring code.

    NOTE:
    - Lookups of a single row return None when it does not exist.
    - Mutations on a missing parent row raise ValueError
      (routers turn that into 404).
    - Every method returns copies; mutating a returned model never
      changes stored state.
    """

    backend_name: str

    # ========== Tests ==========

    def create_test(self, name: str) -> Test:
        """
        Create a new test with zero totals.

        Returns:
            The created Test (id assigned by the store).
        """
        ...

    def get_test(self, test_id: int) -> Optional[Test]:
        """Fetch a test by id, or None."""
        ...

    def list_tests(self) -> List[Test]:
        """Return all tests ordered by id."""
        ...

    # ========== Mark scheme ==========

    def get_mark_scheme(self, test_id: int) -> List[MarkSchemeEntry]:
        """
        Return the test's mark scheme ordered by question_number.
        Unknown tests yield an empty list.
        """
        ...

    def replace_mark_scheme(
        self,
        test_id: int,
        entries: Sequence[NormalizedEntry],
    ) -> List[MarkSchemeEntry]:
        """
        Replace the full mark scheme of a test.

        Implementations must, as one atomic step:
            - delete every existing entry for test_id
            - insert the new entries
            - recompute Test.total_questions / Test.total_points

        Raises:
            ValueError: test does not exist.

        Returns:
            Stored entries ordered by question_number.
        """
        ...

    # ========== Pages ==========

    def add_page(
        self,
        test_id: int,
        image_data: str,
        page_number: Optional[int] = None,
    ) -> Page:
        """
        Store a captured page.

        Args:
            test_id: owning test
            image_data: base64 image (data URL prefix allowed)
            page_number: 1-based capture position; when None the next
                number for this test is assigned (max + 1)

        Raises:
            ValueError: test does not exist.
        """
        ...

    def get_page(self, page_id: int) -> Optional[Page]:
        """Fetch a page by id, or None."""
        ...

    def list_pages(self, test_id: int) -> List[Page]:
        """Pages of a test ordered by (page_number, id)."""
        ...

    def mark_page_processed(
        self,
        page_id: int,
        extracted_answers: Dict[str, str],
        confidence: Optional[float] = None,
    ) -> Page:
        """
        Record a successful extraction and flip processed to True.

        Raises:
            ValueError: page does not exist.
            PageAlreadyProcessedError: page was processed before.
        """
        ...

    def delete_page(self, page_id: int) -> None:
        """
        Remove a captured page.

        Raises:
            ValueError: page does not exist.
        """
        ...

    # ========== Results ==========

    def save_result(
        self,
        test_id: int,
        student_answers: Dict[str, str],
        points_earned: int,
        total_points: int,
        score_percentage: int,
    ) -> Result:
        """
        Store a new result for a test. It becomes the current result,
        superseding any earlier one.

        Raises:
            ValueError: test does not exist.
        """
        ...

    def get_result(self, test_id: int) -> Optional[Result]:
        """The current (latest) result for a test, or None."""
        ...

    # ========== Recognition settings ==========

    def get_recognition_settings(self) -> RecognitionSettings:
        """Return the single settings record (defaults if never saved)."""
        ...

    def update_recognition_settings(self, updates: Dict[str, Any]) -> RecognitionSettings:
        """
        Merge the provided keys into the settings record and return it.
        Unknown keys are ignored.
        """
        ...
