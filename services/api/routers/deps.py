# services/api/routers/deps.py
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from adapters.base import StorageAdapter
from core.results import ResultService
from core.scoring import EmptyAnswerPolicy
from settings import Settings, get_settings


def get_storage(request: Request) -> StorageAdapter:
    """The adapter main.py put on app.state at startup."""
    return request.app.state.storage_adapter


# ---- DI aliases (no default value allowed) ----
Storage = Annotated[StorageAdapter, Depends(get_storage)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_result_service(storage: Storage, settings: AppSettings) -> ResultService:
    return ResultService(storage, EmptyAnswerPolicy.parse(settings.empty_answer_policy))


Results = Annotated[ResultService, Depends(get_result_service)]
