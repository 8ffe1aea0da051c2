from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from tutorhub.db import records
from tutorhub.db.database import get_db
from tutorhub.models.lesson import LessonHistoryEntry
from tutorhub.models.progress import ProgressEntry, ProgressRecord, ProgressUpdate, SkillAverages
from tutorhub.services.teacher_analytics import average_skills

router = APIRouter(prefix="/api", tags=["progress"])


@router.post("/progress", response_model=ProgressRecord)
async def submit_progress(entry: ProgressEntry, db=Depends(get_db)):
    lesson = await records.get_lesson(db, entry.lesson_id)
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    if lesson["student_id"] != entry.student_id:
        raise HTTPException(status_code=400, detail="Lesson does not belong to this student")
    if lesson["teacher_id"] != entry.teacher_id:
        raise HTTPException(status_code=400, detail="Lesson does not belong to this teacher")

    # One progress record per lesson
    if await records.get_progress_by_lesson(db, entry.lesson_id):
        raise HTTPException(status_code=409, detail="Progress already recorded for this lesson")

    record = await records.create_progress(db, entry)
    await records.update_lesson_status(db, entry.lesson_id, "completed")
    return record


@router.patch("/progress/{progress_id}", response_model=ProgressRecord)
async def update_progress(progress_id: int, body: ProgressUpdate, db=Depends(get_db)):
    if not await records.get_progress(db, progress_id):
        raise HTTPException(status_code=404, detail="Progress record not found")
    await records.update_progress(db, progress_id, body.model_dump(exclude_unset=True))
    return await records.get_progress(db, progress_id)


@router.get("/lessons/{lesson_id}/progress", response_model=ProgressRecord)
async def get_lesson_progress(lesson_id: int, db=Depends(get_db)):
    record = await records.get_progress_by_lesson(db, lesson_id)
    if not record:
        raise HTTPException(status_code=404, detail="No progress recorded for this lesson")
    return record


@router.get("/students/{student_id}/progress", response_model=list[ProgressRecord])
async def get_student_progress(student_id: int, limit: Optional[int] = None, db=Depends(get_db)):
    return await records.get_progress_by_student(db, student_id, limit=limit)


@router.get("/students/{student_id}/skills-average", response_model=SkillAverages)
async def get_skill_averages(student_id: int, db=Depends(get_db)):
    progress = await records.get_progress_by_student(db, student_id)
    return SkillAverages(**average_skills(progress), total_sessions=len(progress))


@router.get("/students/{student_id}/lesson-history", response_model=list[LessonHistoryEntry])
async def get_lesson_history(student_id: int, limit: Optional[int] = None, db=Depends(get_db)):
    """Lessons of a student, most recent first, with their progress record when assessed."""
    history = []
    for lesson in await records.list_lessons_by_student(db, student_id, limit=limit):
        record = await records.get_progress_by_lesson(db, lesson["id"])
        entry = LessonHistoryEntry(
            lesson_id=lesson["id"],
            lesson_title=lesson["title"],
            lesson_date=lesson["scheduled_at"],
            lesson_duration=lesson["duration"],
            lesson_status=lesson["status"],
        )
        if record:
            entry.progress_id = record.id
            entry.skills = record.skills
            entry.topics_covered = record.topics_covered
            entry.notes = record.notes
            entry.homework = record.homework
            entry.progress_created_at = record.created_at
        history.append(entry)
    return history
