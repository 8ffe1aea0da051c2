"""Progress intelligence service.

Provides:
- Per-student progress analysis (metrics, recommendations, trend)
- Peer comparison against students of the same level
- Teacher dashboard summary with "needs attention" flags

Fetches records, then hands them to the pure engine in progress_analysis.
"""

import logging

from tutorhub.db import records
from tutorhub.models.progress import ProgressAnalysis, PeerComparison, StudentProgressSummary
from tutorhub.services.progress_analysis import (
    aggregate,
    synthesize,
    classify_trend,
    compare,
    rank_skills,
    overall_score,
    round1,
    COMPARISON_WINDOW,
)

logger = logging.getLogger(__name__)

SUMMARY_WINDOW = 10
ATTENTION_SCORE = 6
ATTENTION_IDLE_MS = 14 * records.DAY_MS


class StudentNotFoundError(LookupError):
    def __init__(self, student_id: int):
        self.student_id = student_id
        super().__init__("Student not found")


class NoProgressDataError(LookupError):
    def __init__(self, student_id: int):
        self.student_id = student_id
        super().__init__("No progress data found for student")


async def _require_student(student_id: int, db) -> dict:
    student = await records.get_student(db, student_id)
    if not student:
        raise StudentNotFoundError(student_id)
    return student


async def analyze_student_progress(student_id: int, db, timeframe_weeks: int = 4) -> ProgressAnalysis:
    """Analyze a student's progress over the last ``timeframe_weeks`` weeks."""
    student = await _require_student(student_id, db)

    cutoff = records.now_ms() - timeframe_weeks * records.WEEK_MS
    recent = await records.get_progress_by_student(db, student_id, since=cutoff)

    summary = aggregate(recent)
    analysis = ProgressAnalysis(
        student_level=student["level"],
        progress_data=summary,
        recommendations=synthesize(summary),
        progress_trend=classify_trend(recent),
    )
    logger.debug(
        "Analyzed %d progress records for student %d (trend=%s)",
        len(recent), student_id, analysis.progress_trend,
    )
    return analysis


async def compare_student_progress(student_id: int, db) -> PeerComparison:
    """Compare a student's recent scores with other students at the same level."""
    student = await _require_student(student_id, db)

    own = await records.get_progress_by_student(db, student_id, limit=COMPARISON_WINDOW)
    if not own:
        raise NoProgressDataError(student_id)

    peers = await records.list_students_by_level(db, student["level"], exclude_id=student_id)
    peer_sets = [
        await records.get_progress_by_student(db, peer["id"], limit=COMPARISON_WINDOW)
        for peer in peers
    ]
    return compare(own, peer_sets)


def summarize_student(student: dict, recent: list, now: int) -> StudentProgressSummary:
    """Dashboard row for one student from their most recent records (newest first)."""
    if not recent:
        return StudentProgressSummary(
            student_id=student["id"],
            student_name=student["name"],
            student_level=student["level"],
            overall_score=0,
            weakest_skill="no data",
            strongest_skill="no data",
            last_lesson_date=None,
            progress_trend="stable",
            needs_attention=True,
        )

    averages = aggregate(recent).recent_skills_average
    trend = classify_trend(recent)
    score = round1(overall_score(averages))
    ranked = rank_skills(averages)
    last_lesson = recent[0].created_at

    needs_attention = (
        score < ATTENTION_SCORE
        or trend == "declining"
        or now - last_lesson > ATTENTION_IDLE_MS
    )

    return StudentProgressSummary(
        student_id=student["id"],
        student_name=student["name"],
        student_level=student["level"],
        overall_score=score,
        weakest_skill=ranked[0],
        strongest_skill=ranked[-1],
        last_lesson_date=last_lesson,
        progress_trend=trend,
        needs_attention=needs_attention,
    )


async def get_teacher_progress_summary(teacher_id: int, db, limit: int = 20) -> list[StudentProgressSummary]:
    """Progress summary for a teacher's active students.

    Students needing attention come first, then by overall score descending.
    """
    students = await records.list_students(db, teacher_id, active_only=True, limit=limit)
    now = records.now_ms()

    summaries = []
    for student in students:
        recent = await records.get_progress_by_student(db, student["id"], limit=SUMMARY_WINDOW)
        summaries.append(summarize_student(student, recent, now))

    summaries.sort(key=lambda s: (not s.needs_attention, -s.overall_score))
    return summaries
