from typing import Optional

from fastapi import APIRouter, Depends, Query

from tutorhub.db.database import get_db
from tutorhub.models.lesson import LessonPlanStats
from tutorhub.services import teacher_analytics

router = APIRouter(prefix="/api/teachers", tags=["analytics"])


@router.get("/{teacher_id}/analytics")
async def get_analytics(
    teacher_id: int,
    time_range_weeks: Optional[int] = Query(default=None, ge=1),
    db=Depends(get_db),
):
    return await teacher_analytics.get_teacher_analytics(teacher_id, db, time_range_weeks)


@router.get("/{teacher_id}/analytics/skill-progression")
async def get_skill_progression(
    teacher_id: int,
    weeks: int = Query(default=12, ge=1, le=104),
    db=Depends(get_db),
):
    return await teacher_analytics.get_skill_progression(teacher_id, db, weeks)


@router.get("/{teacher_id}/analytics/student-comparison")
async def get_student_comparison(teacher_id: int, db=Depends(get_db)):
    return await teacher_analytics.get_student_comparison(teacher_id, db)


@router.get("/{teacher_id}/analytics/insights")
async def get_performance_insights(teacher_id: int, db=Depends(get_db)):
    return await teacher_analytics.get_performance_insights(teacher_id, db)


@router.get("/{teacher_id}/analytics/lesson-plans", response_model=LessonPlanStats)
async def get_lesson_plan_stats(
    teacher_id: int,
    timeframe_days: int = Query(default=30, ge=1),
    db=Depends(get_db),
):
    return await teacher_analytics.get_lesson_plan_stats(teacher_id, db, timeframe_days)
