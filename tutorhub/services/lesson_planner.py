"""AI lesson-plan generation.

Builds prompts from progress analysis (or from the previous lesson and its
assessment), runs them through the provider fallback chain, and records the
request in ai_generation_history plus the resulting ai_lesson_plans row.
"""

import json
import logging
import time
from datetime import datetime, timezone

from pydantic import ValidationError

from tutorhub.config import settings
from tutorhub.db import records
from tutorhub.models.lesson import (
    FollowUpPlanRequest,
    GeneratedLessonPlan,
    LessonCreate,
    LessonOutline,
    LessonPlanRequest,
    LessonPlanResult,
    PreviousLessonContext,
    ScheduleFromPlan,
)
from tutorhub.models.progress import SKILLS, LessonPerformance, MetricSummary, SkillScores
from tutorhub.services.ai_client import AllProvidersFailedError, Provider, generate_with_fallback
from tutorhub.services.progress_analysis import assess_lesson_performance
from tutorhub.services.progress_intelligence import StudentNotFoundError, analyze_student_progress
from tutorhub.services.prompts import load_prompt

logger = logging.getLogger(__name__)

DEFAULT_LESSON_DURATION = 60


class LessonNotFoundError(LookupError):
    pass


class LessonPlanNotFoundError(LookupError):
    pass


class TeacherNotFoundError(LookupError):
    def __init__(self, teacher_id: int):
        self.teacher_id = teacher_id
        super().__init__("Teacher not found")


async def _require_students_teacher(db, student_id: int, teacher_id: int) -> dict:
    """The student, provided both exist and the student belongs to ``teacher_id``."""
    if not await records.get_teacher(db, teacher_id):
        raise TeacherNotFoundError(teacher_id)
    student = await records.get_student(db, student_id)
    if not student or student["teacher_id"] != teacher_id:
        raise StudentNotFoundError(student_id)
    return student


def _skill_lines(skills: SkillScores, indent: str = "") -> str:
    scores = skills.as_dict()
    return "\n".join(f"{indent}- {skill.title()}: {scores[skill]}/10" for skill in SKILLS)


def build_lesson_plan_prompt(
    student_level: str,
    progress_data: MetricSummary,
    focus_skills: list[str],
    lesson_duration: int,
    specific_goals: list[str],
    additional_context: str | None = None,
) -> str:
    template = load_prompt("lesson_plan.yaml")["user_template"]
    return template.format(
        student_level=student_level,
        total_lessons=progress_data.total_lessons,
        focus_skills=", ".join(focus_skills),
        specific_goals=", ".join(specific_goals),
        lesson_duration=lesson_duration,
        skill_lines=_skill_lines(progress_data.recent_skills_average),
        strong_areas=", ".join(progress_data.strong_areas),
        weak_areas=", ".join(progress_data.weak_areas),
        recent_topics=", ".join(progress_data.recent_topics),
        additional_context=f"\nADDITIONAL CONTEXT: {additional_context}\n" if additional_context else "",
    )


def build_follow_up_prompt(
    student: dict,
    previous_lesson: dict,
    previous_progress,
    performance: LessonPerformance,
    lesson_duration: int,
    focus_skills: list[str] | None = None,
    additional_context: str | None = None,
) -> str:
    template = load_prompt("follow_up_lesson.yaml")["user_template"]
    lesson_date = datetime.fromtimestamp(previous_lesson["scheduled_at"] / 1000, tz=timezone.utc)
    return template.format(
        student_name=student["name"],
        student_level=student["level"],
        previous_lesson_date=lesson_date.strftime("%Y-%m-%d"),
        previous_lesson_title=previous_lesson["title"],
        topics_covered=", ".join(previous_progress.topics_covered),
        skill_lines=_skill_lines(previous_progress.skills, indent="  "),
        areas_for_improvement=", ".join(performance.areas_for_improvement),
        strengths=", ".join(performance.strengths),
        overall_performance=performance.overall_performance,
        notes=previous_progress.notes,
        focus_skills=", ".join(focus_skills) if focus_skills else "Based on areas for improvement",
        lesson_duration=lesson_duration,
        additional_context=f"- Additional context: {additional_context}\n" if additional_context else "",
    )


def parse_lesson_plan(text: str) -> GeneratedLessonPlan:
    """Parse the AI reply; tolerates a ```json fenced block around the object."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.startswith("json"):
            cleaned = cleaned[len("json"):]
    try:
        return GeneratedLessonPlan.model_validate(json.loads(cleaned))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ValueError(f"AI returned an invalid lesson plan: {exc}") from exc


def _primary_model(providers: list[Provider]) -> tuple[str, str]:
    primary = providers[0]
    return primary.name, getattr(primary, "model", "unknown")


async def _run_generation(
    db,
    teacher_id: int,
    student_id: int,
    prompt: str,
    providers: list[Provider],
    parameters: dict,
    progress_data: dict | None,
    request_type: str,
) -> tuple[int, int, str, GeneratedLessonPlan]:
    """Generate with fallback, keeping ai_generation_history in step."""
    provider_name, model = _primary_model(providers)
    generation_id = await records.create_generation(
        db, teacher_id, student_id, provider_name, model,
        parameters=parameters,
        progress_data=progress_data,
        request_type=request_type,
    )

    started = time.monotonic()
    try:
        plan, used_provider = await generate_with_fallback(prompt, providers, parse=parse_lesson_plan)
    except AllProvidersFailedError as exc:
        await records.complete_generation(
            db, generation_id, "failed", {"success": False, "error": str(exc)}
        )
        raise

    await records.complete_generation(
        db,
        generation_id,
        "completed",
        {
            "success": True,
            "data": plan.model_dump(by_alias=True),
            "processing_time": int((time.monotonic() - started) * 1000),
        },
        ai_provider=used_provider,
    )
    plan_id = await records.create_lesson_plan(db, teacher_id, student_id, generation_id, plan)
    logger.info(
        "Generated lesson plan %d for student %d via %s", plan_id, student_id, used_provider
    )
    return generation_id, plan_id, used_provider, plan


async def generate_lesson_plan_for_student(
    student_id: int,
    request: LessonPlanRequest,
    db,
    providers: list[Provider],
) -> LessonPlanResult:
    """Generate a lesson plan from the student's last four weeks of progress."""
    await _require_students_teacher(db, student_id, request.teacher_id)
    analysis = await analyze_student_progress(student_id, db, settings.analysis_timeframe_weeks)

    focus_skills = request.focus_skills
    if focus_skills is None:
        focus_skills = analysis.recommendations.focus_skills
    lesson_duration = request.lesson_duration or DEFAULT_LESSON_DURATION
    specific_goals = request.specific_goals or [f"Improve {' and '.join(focus_skills)}"]

    prompt = build_lesson_plan_prompt(
        analysis.student_level,
        analysis.progress_data,
        focus_skills,
        lesson_duration,
        specific_goals,
        request.additional_context,
    )
    parameters = {
        "student_level": analysis.student_level,
        "focus_skills": focus_skills,
        "lesson_duration": lesson_duration,
        "specific_goals": specific_goals,
        "additional_context": request.additional_context,
    }

    generation_id, plan_id, provider, plan = await _run_generation(
        db, request.teacher_id, student_id, prompt, providers,
        parameters=parameters,
        progress_data=analysis.progress_data.model_dump(),
        request_type="lesson_plan_generation",
    )
    return LessonPlanResult(
        generation_id=generation_id,
        lesson_plan_id=plan_id,
        provider=provider,
        lesson_plan=plan,
        recommendations=analysis.recommendations,
        progress_trend=analysis.progress_trend,
    )


async def generate_follow_up_plan(
    student_id: int,
    request: FollowUpPlanRequest,
    db,
    providers: list[Provider],
) -> LessonPlanResult:
    """Generate a lesson plan that continues from a previous, assessed lesson."""
    student = await _require_students_teacher(db, student_id, request.teacher_id)

    previous_lesson = await records.get_lesson(db, request.previous_lesson_id)
    if not previous_lesson or previous_lesson["student_id"] != student_id:
        raise LessonNotFoundError("Previous lesson not found")

    previous_progress = await records.get_progress_by_lesson(db, request.previous_lesson_id)
    if not previous_progress:
        raise LessonNotFoundError("Previous lesson progress not found")

    performance = assess_lesson_performance(previous_progress.skills)
    lesson_duration = request.lesson_duration or DEFAULT_LESSON_DURATION
    prompt = build_follow_up_prompt(
        student,
        previous_lesson,
        previous_progress,
        performance,
        lesson_duration,
        request.focus_skills,
        request.additional_context,
    )
    parameters = {
        "student_level": student["level"],
        "focus_skills": request.focus_skills or performance.areas_for_improvement,
        "lesson_duration": lesson_duration,
        "previous_lesson_id": request.previous_lesson_id,
        "additional_context": request.additional_context,
    }

    generation_id, plan_id, provider, plan = await _run_generation(
        db, request.teacher_id, student_id, prompt, providers,
        parameters=parameters,
        progress_data=None,
        request_type="lesson_adaptation",
    )
    return LessonPlanResult(
        generation_id=generation_id,
        lesson_plan_id=plan_id,
        provider=provider,
        lesson_plan=plan,
        previous_lesson_context=PreviousLessonContext(
            topics_covered=previous_progress.topics_covered,
            skills_assessed=previous_progress.skills,
            performance=performance,
            notes=previous_progress.notes,
        ),
    )


async def schedule_lesson_from_plan(plan_id: int, request: ScheduleFromPlan, db) -> int:
    """Turn a stored AI lesson plan into a planned lesson and mark the plan used."""
    stored = await records.get_lesson_plan(db, plan_id)
    if not stored:
        raise LessonPlanNotFoundError("AI lesson plan not found")

    plan: GeneratedLessonPlan = stored["lesson_plan"]
    generation = await records.get_generation(db, stored["generation_id"])

    lesson_id = await records.create_lesson(
        db,
        LessonCreate(
            teacher_id=stored["teacher_id"],
            student_id=stored["student_id"],
            title=request.title or plan.title,
            description=request.description or plan.description,
            scheduled_at=request.scheduled_at,
            duration=plan.estimated_duration,
            lesson_plan=LessonOutline(
                objectives=plan.objectives,
                activities=[f"{a.name}: {a.description} ({a.duration} min)" for a in plan.activities],
                materials=plan.materials,
                homework=plan.homework.description if plan.homework else None,
            ),
        ),
        ai_provider=generation["ai_provider"] if generation else None,
        generation_id=stored["generation_id"],
    )
    await records.mark_lesson_plan_used(db, plan_id, lesson_id)
    return lesson_id
