# services/api/routers/pages.py
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Response, status

from core import vision_extract
from core.errors import ExtractionError, PageAlreadyProcessedError, VisionNotConfiguredError
from models import Page
from routers.deps import AppSettings, Storage
from schemas import PageCreate, PageProcessOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pages", tags=["pages"])


@router.post("", response_model=Page, status_code=status.HTTP_201_CREATED)
def add_page(body: PageCreate, storage: Storage, settings: AppSettings):
    if len(body.image_data) > settings.max_upload_bytes():
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image exceeds {settings.max_upload_mb} MB",
        )
    try:
        page = storage.add_page(body.test_id, body.image_data, body.page_number)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    logger.info(f"Captured page {page.id} (#{page.page_number}) for test {page.test_id}")
    return page


@router.get("/{test_id}", response_model=List[Page])
def list_pages(test_id: int, storage: Storage):
    """Pages of a test ordered by page number."""
    if storage.get_test(test_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="TEST_NOT_FOUND")
    return storage.list_pages(test_id)


@router.post("/{page_id}/process", response_model=PageProcessOut)
def process_page(page_id: int, storage: Storage, settings: AppSettings):
    """
    Run answer extraction on one captured page and store what was read.

    Confidence below the configured threshold is flagged but the answers
    are kept; the user decides whether to retake the photo.
    """
    page = storage.get_page(page_id)
    if page is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="PAGE_NOT_FOUND")
    if page.processed:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="PAGE_ALREADY_PROCESSED")

    recognition = storage.get_recognition_settings()
    try:
        answers, confidence = vision_extract.extract_answers_from_image(
            page.image_data, recognition, settings, page_id=page.id
        )
    except VisionNotConfiguredError as e:
        logger.error(str(e))
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except ExtractionError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    low_confidence = vision_extract.is_low_confidence(confidence, recognition.confidence_threshold)
    if low_confidence:
        logger.warning(
            f"Low confidence ({confidence:.2f}) for page {page_id} "
            f"below threshold ({recognition.confidence_threshold / 100:.2f})"
        )

    try:
        updated = storage.mark_page_processed(page_id, answers, confidence)
    except PageAlreadyProcessedError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="PAGE_ALREADY_PROCESSED")
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return PageProcessOut(
        page=updated,
        extracted_answers=updated.extracted_answers,
        confidence=confidence,
        low_confidence=low_confidence,
    )


@router.delete("/{page_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_page(page_id: int, storage: Storage):
    try:
        storage.delete_page(page_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="PAGE_NOT_FOUND")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
