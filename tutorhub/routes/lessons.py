from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from tutorhub.db import records
from tutorhub.db.database import get_db
from tutorhub.models.lesson import LessonCreate, LessonResponse, LessonStatus, LessonStatusUpdate

router = APIRouter(prefix="/api", tags=["lessons"])


@router.post("/lessons", response_model=LessonResponse)
async def create_lesson(body: LessonCreate, db=Depends(get_db)):
    student = await records.get_student(db, body.student_id)
    if not student or student["teacher_id"] != body.teacher_id:
        raise HTTPException(status_code=404, detail="Student not found")
    lesson_id = await records.create_lesson(db, body)
    return await records.get_lesson(db, lesson_id)


@router.get("/lessons/{lesson_id}", response_model=LessonResponse)
async def get_lesson(lesson_id: int, db=Depends(get_db)):
    lesson = await records.get_lesson(db, lesson_id)
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return lesson


@router.get("/students/{student_id}/lessons", response_model=list[LessonResponse])
async def list_student_lessons(student_id: int, limit: Optional[int] = None, db=Depends(get_db)):
    return await records.list_lessons_by_student(db, student_id, limit=limit)


@router.get("/teachers/{teacher_id}/lessons", response_model=list[LessonResponse])
async def list_teacher_lessons(
    teacher_id: int,
    scheduled_from: Optional[int] = None,
    scheduled_to: Optional[int] = None,
    status: Optional[LessonStatus] = None,
    db=Depends(get_db),
):
    return await records.list_lessons_by_teacher(
        db, teacher_id,
        scheduled_from=scheduled_from,
        scheduled_to=scheduled_to,
        status=status,
    )


@router.patch("/lessons/{lesson_id}/status", response_model=LessonResponse)
async def update_lesson_status(lesson_id: int, body: LessonStatusUpdate, db=Depends(get_db)):
    if not await records.get_lesson(db, lesson_id):
        raise HTTPException(status_code=404, detail="Lesson not found")
    await records.update_lesson_status(db, lesson_id, body.status)
    return await records.get_lesson(db, lesson_id)
