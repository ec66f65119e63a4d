# services/api/routers/mark_scheme.py
from __future__ import annotations

import logging
from typing import Annotated, Any, List, Mapping, Optional, Sequence

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status

from core.column_hints import suggest_column_mapping
from core.errors import ColumnMappingError, MarkSchemeError, RowValidationError
from core.mark_scheme import ColumnMapping, normalize_mark_scheme
from core.spreadsheet import preview_rows, read_spreadsheet
from models import MarkSchemeEntry
from routers.deps import AppSettings, Storage
from schemas import (
    ColumnMappingIn,
    MarkSchemePreviewOut,
    MarkSchemeRowsUpload,
    MarkSchemeUploadOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mark-scheme", tags=["mark-scheme"])


# ---------- Helpers ----------

def _bad_mark_scheme(e: MarkSchemeError) -> HTTPException:
    """400 with enough detail for the UI to point at the offending cell or column."""
    detail: Any
    if isinstance(e, RowValidationError):
        detail = e.to_detail()
    elif isinstance(e, ColumnMappingError):
        detail = {"message": str(e), "missing": e.missing, "available": e.available}
    else:
        detail = {"message": str(e)}
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


async def _read_upload(file: UploadFile, settings) -> bytes:
    data = await file.read()
    if len(data) > settings.max_upload_bytes():
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {settings.max_upload_mb} MB",
        )
    return data


def _store_mark_scheme(
    storage,
    test_id: int,
    rows: Sequence[Mapping[str, Any]],
    mapping: ColumnMapping,
    headers: Optional[Sequence[str]] = None,
) -> MarkSchemeUploadOut:
    """Normalize then replace the test's mark scheme in one go."""
    if storage.get_test(test_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="TEST_NOT_FOUND")

    try:
        entries = normalize_mark_scheme(rows, mapping, headers)
    except MarkSchemeError as e:
        logger.warning(f"Rejected mark scheme for test {test_id}: {e}")
        raise _bad_mark_scheme(e)

    try:
        stored = storage.replace_mark_scheme(test_id, entries)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return MarkSchemeUploadOut(test=storage.get_test(test_id), entries=stored)


# ---------- Routes ----------

@router.post("/preview", response_model=MarkSchemePreviewOut)
async def preview_mark_scheme(
    file: Annotated[UploadFile, File(...)],
    settings: AppSettings,
):
    """
    Parse an uploaded sheet and return its columns, the first 5 rows and a
    suggested column mapping. Nothing is stored.
    """
    data = await _read_upload(file, settings)
    try:
        sheet = read_spreadsheet(data, file.filename or "")
    except MarkSchemeError as e:
        raise _bad_mark_scheme(e)

    return MarkSchemePreviewOut(
        columns=sheet.headers,
        rows=preview_rows(sheet),
        total_rows=len(sheet.rows),
        suggested_mapping=ColumnMappingIn(**suggest_column_mapping(sheet.headers)),
    )


@router.post("", response_model=MarkSchemeUploadOut, status_code=status.HTTP_201_CREATED)
async def upload_mark_scheme(
    file: Annotated[UploadFile, File(...)],
    test_id: Annotated[int, Form(...)],
    storage: Storage,
    settings: AppSettings,
    question_number_col: Annotated[str, Form()] = "",
    expected_answer_col: Annotated[str, Form()] = "",
    points_col: Annotated[str, Form()] = "",
):
    """
    Upload a spreadsheet together with the chosen column mapping.
    Replaces any earlier mark scheme of the test.
    """
    data = await _read_upload(file, settings)
    try:
        sheet = read_spreadsheet(data, file.filename or "")
    except MarkSchemeError as e:
        raise _bad_mark_scheme(e)

    mapping = ColumnMappingIn(
        question_number_col=question_number_col,
        expected_answer_col=expected_answer_col,
        points_col=points_col,
    ).to_mapping()
    return _store_mark_scheme(storage, test_id, sheet.rows, mapping, sheet.headers)


@router.post("/rows", response_model=MarkSchemeUploadOut, status_code=status.HTTP_201_CREATED)
def upload_mark_scheme_rows(body: MarkSchemeRowsUpload, storage: Storage):
    """Same as the file upload, for rows that were already parsed."""
    return _store_mark_scheme(
        storage, body.test_id, body.rows, body.mapping.to_mapping(), body.headers
    )


@router.get("/{test_id}", response_model=List[MarkSchemeEntry])
def get_mark_scheme(test_id: int, storage: Storage):
    if storage.get_test(test_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="TEST_NOT_FOUND")
    return storage.get_mark_scheme(test_id)
