# services/api/routers/tests.py
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, status

from models import Test
from routers.deps import Results, Storage
from schemas import GradeOut, TestCreate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tests", tags=["tests"])


@router.post("", response_model=Test, status_code=status.HTTP_201_CREATED)
def create_test(body: TestCreate, storage: Storage):
    test = storage.create_test(body.name)
    logger.info(f"Created test {test.id} ({test.name!r})")
    return test


@router.get("", response_model=List[Test])
def list_tests(storage: Storage):
    return storage.list_tests()


@router.get("/{test_id}", response_model=Test)
def get_test(test_id: int, storage: Storage):
    test = storage.get_test(test_id)
    if test is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="TEST_NOT_FOUND")
    return test


@router.post("/{test_id}/grade", response_model=GradeOut)
def grade_test(test_id: int, storage: Storage, service: Results):
    """
    Merge the answers of every processed page (higher page number wins on
    overlap), score them and store the result as the test's current one.
    """
    if storage.get_test(test_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="TEST_NOT_FOUND")
    try:
        result, items = service.grade_test(test_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return GradeOut(result=result, detailed_results=items)
