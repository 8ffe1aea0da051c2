"""AI lesson-plan endpoints: generation, follow-ups, scheduling and feedback."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from tutorhub.config import settings
from tutorhub.db import records
from tutorhub.db.database import get_db
from tutorhub.models.lesson import (
    FollowUpPlanRequest,
    LessonPlanRequest,
    LessonPlanResult,
    LessonResponse,
    ScheduleFromPlan,
    StoredLessonPlan,
    TeacherFeedback,
)
from tutorhub.services.ai_client import AllProvidersFailedError, build_provider_chain, check_providers
from tutorhub.services.lesson_planner import (
    LessonNotFoundError,
    LessonPlanNotFoundError,
    TeacherNotFoundError,
    generate_follow_up_plan,
    generate_lesson_plan_for_student,
    schedule_lesson_from_plan,
)
from tutorhub.services.progress_intelligence import StudentNotFoundError

router = APIRouter(prefix="/api", tags=["lesson-plans"])


def get_providers():
    """Provider chain dependency, overridden in tests."""
    return build_provider_chain(settings)


@router.post("/students/{student_id}/lesson-plans", response_model=LessonPlanResult)
async def generate_plan(
    student_id: int,
    body: LessonPlanRequest,
    db=Depends(get_db),
    providers=Depends(get_providers),
):
    try:
        return await generate_lesson_plan_for_student(student_id, body, db, providers)
    except (StudentNotFoundError, TeacherNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except AllProvidersFailedError as exc:
        raise HTTPException(status_code=502, detail=str(exc))


@router.post("/students/{student_id}/lesson-plans/follow-up", response_model=LessonPlanResult)
async def generate_follow_up(
    student_id: int,
    body: FollowUpPlanRequest,
    db=Depends(get_db),
    providers=Depends(get_providers),
):
    try:
        return await generate_follow_up_plan(student_id, body, db, providers)
    except (StudentNotFoundError, TeacherNotFoundError, LessonNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except AllProvidersFailedError as exc:
        raise HTTPException(status_code=502, detail=str(exc))


@router.get("/students/{student_id}/lesson-plans", response_model=list[StoredLessonPlan])
async def list_plans(
    student_id: int,
    unused_only: bool = False,
    limit: Optional[int] = None,
    db=Depends(get_db),
):
    return await records.list_lesson_plans_by_student(db, student_id, unused_only=unused_only, limit=limit)


@router.get("/lesson-plans/{plan_id}", response_model=StoredLessonPlan)
async def get_plan(plan_id: int, db=Depends(get_db)):
    plan = await records.get_lesson_plan(db, plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="AI lesson plan not found")
    return plan


@router.post("/lesson-plans/{plan_id}/schedule", response_model=LessonResponse)
async def schedule_plan(plan_id: int, body: ScheduleFromPlan, db=Depends(get_db)):
    try:
        lesson_id = await schedule_lesson_from_plan(plan_id, body, db)
    except LessonPlanNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return await records.get_lesson(db, lesson_id)


@router.post("/lesson-plans/{plan_id}/feedback", response_model=StoredLessonPlan)
async def add_feedback(plan_id: int, body: TeacherFeedback, db=Depends(get_db)):
    if not await records.get_lesson_plan(db, plan_id):
        raise HTTPException(status_code=404, detail="AI lesson plan not found")
    await records.set_lesson_plan_feedback(db, plan_id, body.model_dump())
    return await records.get_lesson_plan(db, plan_id)


@router.get("/ai/check")
async def check_ai_providers():
    return await check_providers(settings)
