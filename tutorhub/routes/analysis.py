"""Progress intelligence endpoints: per-student analysis, peer comparison and
the teacher's progress summary."""

from fastapi import APIRouter, Depends, HTTPException, Query

from tutorhub.config import settings
from tutorhub.db.database import get_db
from tutorhub.models.progress import PeerComparison, ProgressAnalysis, StudentProgressSummary
from tutorhub.services.progress_intelligence import (
    NoProgressDataError,
    StudentNotFoundError,
    analyze_student_progress,
    compare_student_progress,
    get_teacher_progress_summary,
)

router = APIRouter(prefix="/api", tags=["analysis"])


@router.get("/students/{student_id}/analysis", response_model=ProgressAnalysis)
async def get_student_analysis(
    student_id: int,
    timeframe_weeks: int = Query(default=settings.analysis_timeframe_weeks, ge=1, le=52),
    db=Depends(get_db),
):
    try:
        return await analyze_student_progress(student_id, db, timeframe_weeks)
    except StudentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/students/{student_id}/comparison", response_model=PeerComparison)
async def get_student_comparison(student_id: int, db=Depends(get_db)):
    try:
        return await compare_student_progress(student_id, db)
    except (StudentNotFoundError, NoProgressDataError) as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/teachers/{teacher_id}/progress-summary", response_model=list[StudentProgressSummary])
async def get_progress_summary(
    teacher_id: int,
    limit: int = Query(default=20, ge=1, le=100),
    db=Depends(get_db),
):
    return await get_teacher_progress_summary(teacher_id, db, limit)
