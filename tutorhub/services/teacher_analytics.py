"""Teacher-level analytics for the dashboard.

Aggregates across all of a teacher's students: skill averages, popular
topics, daily activity, per-student improvement, attention flags and AI
lesson-plan usage.
"""

import math
from collections import Counter
from datetime import datetime, timedelta

from tutorhub.db import records
from tutorhub.models.lesson import LessonPlanStats
from tutorhub.models.progress import SKILLS
from tutorhub.services.progress_analysis import overall_score, round1

TOP_TOPICS = 10
TOP_PLAN_SKILLS = 5
INSIGHT_WINDOW = 50
ATTENTION_SCORE = 6


def average_skills(progress: list) -> dict[str, float]:
    """Per-skill mean rounded to one decimal; zeros when there is no data."""
    if not progress:
        return {skill: 0 for skill in SKILLS}
    return {
        skill: round1(sum(getattr(p.skills, skill) for p in progress) / len(progress))
        for skill in SKILLS
    }


def top_topics(progress: list, limit: int = TOP_TOPICS) -> list[dict]:
    counts = Counter(topic for p in progress for topic in p.topics_covered)
    return [{"topic": topic, "count": count} for topic, count in counts.most_common(limit)]


def daily_activity(lessons: list[dict], today: datetime, days: int = 7) -> list[dict]:
    """Completed lessons per local day for the last ``days`` days, oldest first."""
    midnight = today.replace(hour=0, minute=0, second=0, microsecond=0)
    activity = []
    for offset in range(days - 1, -1, -1):
        start = int((midnight - timedelta(days=offset)).timestamp() * 1000)
        end = start + records.DAY_MS
        count = sum(1 for lesson in lessons if start <= lesson["scheduled_at"] < end)
        activity.append({"date": start, "lessons_count": count})
    return activity


async def get_teacher_analytics(teacher_id: int, db, time_range_weeks: int | None = None) -> dict:
    since = records.now_ms() - time_range_weeks * records.WEEK_MS if time_range_weeks else None

    students = await records.list_students(db, teacher_id)
    lessons = await records.list_lessons_by_teacher(db, teacher_id, scheduled_from=since)
    completed = [lesson for lesson in lessons if lesson["status"] == "completed"]
    progress = await records.get_progress_by_teacher(db, teacher_id, since=since)

    return {
        "total_students": len(students),
        "active_students": sum(1 for s in students if s["is_active"]),
        "total_lessons": len(lessons),
        "completed_lessons": len(completed),
        "avg_skill_scores": average_skills(progress),
        "top_topics": top_topics(progress),
        "recent_activity": daily_activity(completed, datetime.now()),
    }


async def get_skill_progression(teacher_id: int, db, weeks: int = 12) -> list[dict]:
    """Chronological skill snapshots per active student."""
    since = records.now_ms() - weeks * records.WEEK_MS
    trends = []
    for student in await records.list_students(db, teacher_id, active_only=True):
        progress = await records.get_progress_by_student(db, student["id"], since=since)
        if not progress:
            continue
        trends.append({
            "student_id": student["id"],
            "student_name": student["name"],
            "progress_data": [
                {"date": p.created_at, "skills": p.skills.as_dict()}
                for p in reversed(progress)
            ],
        })
    return trends


async def get_student_comparison(teacher_id: int, db) -> list[dict]:
    """Averages and first-to-latest improvement for each active student."""
    comparisons = []
    for student in await records.list_students(db, teacher_id, active_only=True):
        progress = await records.get_progress_by_student(db, student["id"])
        if not progress:
            continue

        latest = progress[0].skills.as_dict()
        earliest = progress[-1].skills.as_dict()
        lessons = await records.list_lessons_by_student(db, student["id"])

        comparisons.append({
            "student_id": student["id"],
            "student_name": student["name"],
            "level": student["level"],
            "average_skills": average_skills(progress),
            "total_lessons": len(lessons),
            "improvement": {skill: round1(latest[skill] - earliest[skill]) for skill in SKILLS},
            "last_lesson_date": progress[0].created_at,
        })

    comparisons.sort(key=lambda c: c["total_lessons"], reverse=True)
    return comparisons


async def get_performance_insights(teacher_id: int, db) -> dict:
    students = await records.list_students(db, teacher_id)
    recent = await records.get_progress_by_teacher(db, teacher_id, limit=INSIGHT_WINDOW)

    needing_attention = []
    for student in students:
        latest = next((p for p in recent if p.student_id == student["id"]), None)
        if latest and overall_score(latest.skills) < ATTENTION_SCORE:
            needing_attention.append(student["name"])

    now = records.now_ms()
    upcoming = await records.list_lessons_by_teacher(
        db, teacher_id, scheduled_from=now, scheduled_to=now + 7 * records.DAY_MS
    )

    with_homework = [p for p in recent if p.homework]
    completion_rate = None
    if with_homework:
        done = sum(1 for p in with_homework if p.homework.completed)
        completion_rate = math.floor(done / len(with_homework) * 100 + 0.5)

    return {
        "students_needing_attention": needing_attention,
        "upcoming_lessons": [lesson["title"] for lesson in upcoming],
        "homework_completion_rate": completion_rate,
    }


async def get_lesson_plan_stats(teacher_id: int, db, timeframe_days: int = 30) -> LessonPlanStats:
    since = records.now_ms() - timeframe_days * records.DAY_MS
    plans = await records.list_lesson_plans_by_teacher(db, teacher_id, since=since)

    stats = LessonPlanStats(total_generated=len(plans))
    if not plans:
        return stats

    ratings = []
    skill_counts: Counter = Counter()
    breakdown = dict(stats.difficulty_breakdown)
    for plan in plans:
        lesson_plan = plan["lesson_plan"]
        breakdown[lesson_plan.difficulty] += 1
        feedback = plan.get("teacher_feedback")
        if isinstance(feedback, dict) and feedback.get("rating"):
            ratings.append(feedback["rating"])
        for activity in lesson_plan.activities:
            skill_counts.update(activity.skills_targeted)

    stats.total_used = sum(1 for plan in plans if plan["is_used"])
    stats.usage_rate = round(stats.total_used / len(plans) * 100)
    stats.avg_rating = round1(sum(ratings) / len(ratings)) if ratings else 0.0
    stats.difficulty_breakdown = breakdown
    stats.top_skills_targeted = [skill for skill, _ in skill_counts.most_common(TOP_PLAN_SKILLS)]
    stats.avg_duration = round(sum(p["lesson_plan"].estimated_duration for p in plans) / len(plans))
    return stats
