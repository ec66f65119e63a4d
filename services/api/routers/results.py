# services/api/routers/results.py
from __future__ import annotations

import io
import logging
from typing import List

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import StreamingResponse

from core.report_pdf import generate_results_pdf
from models import Result, ResultItem
from routers.deps import Results, Storage
from schemas import ResultCreate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/results", tags=["results"])


@router.post("", response_model=Result, status_code=status.HTTP_201_CREATED)
def create_result(body: ResultCreate, service: Results):
    """Score the given answers and make them the test's current result."""
    try:
        return service.record_result(body.test_id, body.student_answers)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{test_id}", response_model=Result)
def get_result(test_id: int, service: Results):
    result = service.get_current_result(test_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="RESULT_NOT_FOUND")
    return result


@router.get("/{test_id}/detailed", response_model=List[ResultItem])
def get_detailed_results(test_id: int, service: Results):
    """Per-question breakdown against the current mark scheme; [] when not graded yet."""
    return service.get_detailed_results(test_id)


@router.get("/{test_id}/report.pdf")
def download_report(test_id: int, storage: Storage, service: Results):
    result = service.get_current_result(test_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="RESULT_NOT_FOUND")

    try:
        pdf_bytes = generate_results_pdf(
            result=result,
            items=service.get_detailed_results(test_id),
            test=storage.get_test(test_id),
        )
    except Exception as e:
        logger.error(f"PDF generation failed for test {test_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to generate report: {e}")

    filename = f"test-results-{test_id}.pdf"
    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
