# services/api/routers/settings.py
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import ValidationError

from models import RecognitionSettings
from routers.deps import Storage
from schemas import RecognitionSettingsUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=RecognitionSettings)
def get_recognition_settings(storage: Storage):
    return storage.get_recognition_settings()


@router.put("", response_model=RecognitionSettings)
def update_recognition_settings(body: RecognitionSettingsUpdate, storage: Storage):
    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    try:
        updated = storage.update_recognition_settings(updates)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        )
    logger.info(f"Recognition settings updated: {sorted(updates)}")
    return updated
