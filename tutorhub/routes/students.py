from fastapi import APIRouter, Depends, HTTPException

from tutorhub.db import records
from tutorhub.db.database import get_db
from tutorhub.models.student import (
    StudentCreate,
    StudentResponse,
    StudentUpdate,
    TeacherCreate,
    TeacherResponse,
)

router = APIRouter(prefix="/api", tags=["students"])


@router.post("/teachers", response_model=TeacherResponse)
async def create_teacher(body: TeacherCreate, db=Depends(get_db)):
    if await records.get_teacher_by_email(db, body.email):
        raise HTTPException(status_code=409, detail="A user with this email already exists")
    teacher_id = await records.create_teacher(db, body.name, body.email)
    return await records.get_teacher(db, teacher_id)


@router.get("/teachers/{teacher_id}", response_model=TeacherResponse)
async def get_teacher(teacher_id: int, db=Depends(get_db)):
    teacher = await records.get_teacher(db, teacher_id)
    if not teacher:
        raise HTTPException(status_code=404, detail="Teacher not found")
    return teacher


@router.post("/students", response_model=StudentResponse)
async def create_student(body: StudentCreate, db=Depends(get_db)):
    if not await records.get_teacher(db, body.teacher_id):
        raise HTTPException(status_code=404, detail="Teacher not found")
    student_id = await records.create_student(db, body)
    return await records.get_student(db, student_id)


@router.get("/teachers/{teacher_id}/students", response_model=list[StudentResponse])
async def list_students(teacher_id: int, active_only: bool = False, db=Depends(get_db)):
    return await records.list_students(db, teacher_id, active_only=active_only)


@router.get("/students/{student_id}", response_model=StudentResponse)
async def get_student(student_id: int, db=Depends(get_db)):
    student = await records.get_student(db, student_id)
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


@router.patch("/students/{student_id}", response_model=StudentResponse)
async def update_student(student_id: int, body: StudentUpdate, db=Depends(get_db)):
    if not await records.get_student(db, student_id):
        raise HTTPException(status_code=404, detail="Student not found")
    await records.update_student(db, student_id, body.model_dump(exclude_unset=True))
    return await records.get_student(db, student_id)


@router.delete("/students/{student_id}", response_model=StudentResponse)
async def deactivate_student(student_id: int, db=Depends(get_db)):
    """Soft delete: the student is kept for history but marked inactive."""
    if not await records.get_student(db, student_id):
        raise HTTPException(status_code=404, detail="Student not found")
    await records.update_student(db, student_id, {"is_active": False})
    return await records.get_student(db, student_id)
