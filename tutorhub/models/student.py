from typing import Literal, Optional

from pydantic import BaseModel

StudentLevel = Literal["beginner", "intermediate", "advanced"]


class TeacherCreate(BaseModel):
    name: str
    email: str


class TeacherResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str = "teacher"
    created_at: int


class StudentCreate(BaseModel):
    teacher_id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    level: StudentLevel = "beginner"
    goals: list[str] = []
    notes: Optional[str] = None


class StudentUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    level: Optional[StudentLevel] = None
    goals: Optional[list[str]] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class StudentResponse(BaseModel):
    id: int
    teacher_id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    level: StudentLevel
    goals: list[str] = []
    notes: Optional[str] = None
    is_active: bool = True
    created_at: int
    updated_at: int
