from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query

from app.common.schemas import ErrorResponse
from app.db.record_store import StoreUnavailableError
from .schemas import ClassRankingRow, MonthlyScore, SubjectPerf, SubmissionStats, WeeklyEngagement
from .service import metrics_service

router = APIRouter(prefix="/metrics", tags=["metrics"], responses={503: {"model": ErrorResponse}})


def _err(status: int, code: str, message: str):
    return HTTPException(status_code=status, detail={"error_code": code, "message": message})


def _unavailable(exc: StoreUnavailableError):
    return _err(503, "E_STORE_UNAVAILABLE", str(exc) or "Could not reach the data source")


# ------------------- Subjects -------------------
@router.get("/students/{student_id}/subjects", response_model=List[SubjectPerf])
async def subject_averages(student_id: str, class_id: Optional[str] = Query(default=None)):
    try:
        return await metrics_service.get_subject_averages_for_student(student_id, class_id)
    except StoreUnavailableError as e:
        raise _unavailable(e)


@router.get("/classes/{class_id}/rankings", response_model=List[ClassRankingRow])
async def subject_rankings(class_id: str):
    try:
        return await metrics_service.get_subject_rankings_for_class(class_id)
    except StoreUnavailableError as e:
        raise _unavailable(e)


# ------------------- Student trends -------------------
@router.get("/students/{student_id}/monthly", response_model=List[MonthlyScore])
async def monthly_scores(student_id: str):
    try:
        return await metrics_service.get_monthly_average_scores(student_id)
    except StoreUnavailableError as e:
        raise _unavailable(e)


@router.get("/students/{student_id}/submission-stats", response_model=SubmissionStats)
async def submission_stats(student_id: str):
    try:
        return await metrics_service.get_submission_stats(student_id)
    except StoreUnavailableError as e:
        raise _unavailable(e)


@router.get("/students/{student_id}/engagement", response_model=WeeklyEngagement)
async def weekly_engagement(student_id: str, today: Optional[date] = Query(default=None)):
    try:
        return await metrics_service.get_weekly_engagement(student_id, today)
    except StoreUnavailableError as e:
        raise _unavailable(e)
