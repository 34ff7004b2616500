from fastapi import APIRouter, HTTPException, Query
from typing import Optional

from app.common.schemas import ErrorResponse
from app.features.garden.stages import classify
from .schemas import StudentProgressOut
from .service import ERROR_UNAVAILABLE, progress_service

router = APIRouter(prefix="/progress", tags=["progress"])


def _err(status: int, code: str, message: str):
    return HTTPException(status_code=status, detail={"error_code": code, "message": message})


@router.get(
    "/students/{student_id}",
    response_model=StudentProgressOut,
    responses={503: {"model": ErrorResponse}},
)
async def get_student_progress(student_id: str, class_id: Optional[str] = Query(default=None)):
    """Completion counts and growth stage for one student in the given class."""
    row = await progress_service.compute_progress_row(student_id, class_id)
    if row.error == ERROR_UNAVAILABLE:
        raise _err(503, "E_STORE_UNAVAILABLE", "Could not reach the data source")
    return StudentProgressOut(
        student_id=student_id,
        class_id=class_id,
        total=row.total,
        completed=row.completed,
        percentage=row.percentage,
        stage=classify(row.percentage),
    )
