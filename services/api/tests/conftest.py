"""
Shared fixtures.

Run with: pytest services/api/tests -v
"""
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from adapters.memory import MemoryAdapter  # noqa: E402
from core.mark_scheme import ColumnMapping  # noqa: E402


@pytest.fixture
def storage():
    """Fresh in-memory store per test."""
    return MemoryAdapter()


@pytest.fixture
def mapping():
    """Column mapping matching the sample rows below."""
    return ColumnMapping(
        question_number_col="Question",
        expected_answer_col="Answer",
        points_col="Points",
    )


@pytest.fixture
def sample_rows():
    """The three-question key used across the end-to-end checks."""
    return [
        {"Question": 1, "Answer": "A", "Points": 5},
        {"Question": 2, "Answer": "B", "Points": 5},
        {"Question": 3, "Answer": "", "Points": 5},
    ]


@pytest.fixture
def client(storage):
    """TestClient bound to the app with a fresh memory adapter."""
    from fastapi.testclient import TestClient

    from main import app

    previous = app.state.storage_adapter
    app.state.storage_adapter = storage
    with TestClient(app) as c:
        yield c
    app.state.storage_adapter = previous
