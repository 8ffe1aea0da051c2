"""
records.py - Database helper queries for teachers, students, lessons,
progress records and AI lesson plans.

All timestamps are epoch milliseconds. Progress queries return
ProgressRecord models ordered most-recent-first.
"""

import json
import time
from typing import Optional, List, Dict, Any

import aiosqlite

from tutorhub.models.lesson import GeneratedLessonPlan, LessonCreate, LessonOutline
from tutorhub.models.progress import SKILLS, Homework, ProgressEntry, ProgressRecord, SkillScores
from tutorhub.models.student import StudentCreate

DAY_MS = 24 * 60 * 60 * 1000
WEEK_MS = 7 * DAY_MS

STUDENT_FIELDS = ("name", "email", "phone", "date_of_birth", "level", "goals", "notes", "is_active")


def now_ms() -> int:
    return int(time.time() * 1000)


# ══════════════════════════════════════════════════════════════════════════════
# TEACHERS
# ══════════════════════════════════════════════════════════════════════════════

async def create_teacher(db: aiosqlite.Connection, name: str, email: str) -> int:
    now = now_ms()
    cursor = await db.execute(
        """INSERT INTO users (name, email, role, created_at, updated_at)
           VALUES (?, ?, 'teacher', ?, ?)""",
        (name, email, now, now)
    )
    await db.commit()
    return cursor.lastrowid


async def get_teacher(db: aiosqlite.Connection, teacher_id: int) -> Optional[Dict[str, Any]]:
    cursor = await db.execute("SELECT * FROM users WHERE id = ?", (teacher_id,))
    return _row_to_dict(await cursor.fetchone())


async def get_teacher_by_email(db: aiosqlite.Connection, email: str) -> Optional[Dict[str, Any]]:
    cursor = await db.execute("SELECT * FROM users WHERE email = ?", (email,))
    return _row_to_dict(await cursor.fetchone())


# ══════════════════════════════════════════════════════════════════════════════
# STUDENTS
# ══════════════════════════════════════════════════════════════════════════════

async def create_student(db: aiosqlite.Connection, student: StudentCreate) -> int:
    """Create a student for a teacher. Returns the new student ID."""
    now = now_ms()
    cursor = await db.execute(
        """INSERT INTO students
           (teacher_id, name, email, phone, date_of_birth, level, goals, notes,
            is_active, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)""",
        (
            student.teacher_id,
            student.name,
            student.email,
            student.phone,
            student.date_of_birth,
            student.level,
            json.dumps(student.goals),
            student.notes,
            now,
            now,
        )
    )
    await db.commit()
    return cursor.lastrowid


async def get_student(db: aiosqlite.Connection, student_id: int) -> Optional[Dict[str, Any]]:
    cursor = await db.execute("SELECT * FROM students WHERE id = ?", (student_id,))
    return _student_row(await cursor.fetchone())


async def list_students(
    db: aiosqlite.Connection,
    teacher_id: int,
    active_only: bool = False,
    limit: Optional[int] = None
) -> List[Dict[str, Any]]:
    """Students of a teacher, newest first."""
    sql = "SELECT * FROM students WHERE teacher_id = ?"
    params: list = [teacher_id]
    if active_only:
        sql += " AND is_active = 1"
    sql += " ORDER BY created_at DESC, id DESC"
    if limit:
        sql += " LIMIT ?"
        params.append(limit)
    cursor = await db.execute(sql, params)
    return [_student_row(r) for r in await cursor.fetchall()]


async def list_students_by_level(
    db: aiosqlite.Connection,
    level: str,
    exclude_id: Optional[int] = None
) -> List[Dict[str, Any]]:
    cursor = await db.execute(
        "SELECT * FROM students WHERE level = ? AND id != ? ORDER BY id",
        (level, exclude_id if exclude_id is not None else -1)
    )
    return [_student_row(r) for r in await cursor.fetchall()]


async def update_student(db: aiosqlite.Connection, student_id: int, updates: Dict[str, Any]) -> None:
    """Patch the given student columns; unknown keys are ignored."""
    clean = {k: v for k, v in updates.items() if k in STUDENT_FIELDS and v is not None}
    if not clean:
        return
    if "goals" in clean:
        clean["goals"] = json.dumps(clean["goals"])
    if "is_active" in clean:
        clean["is_active"] = 1 if clean["is_active"] else 0

    assignments = ", ".join(f"{column} = ?" for column in clean)
    await db.execute(
        f"UPDATE students SET {assignments}, updated_at = ? WHERE id = ?",
        (*clean.values(), now_ms(), student_id)
    )
    await db.commit()


# ══════════════════════════════════════════════════════════════════════════════
# LESSONS
# ══════════════════════════════════════════════════════════════════════════════

async def create_lesson(
    db: aiosqlite.Connection,
    lesson: LessonCreate,
    ai_provider: Optional[str] = None,
    generation_id: Optional[int] = None
) -> int:
    """Create a planned lesson. Returns the new lesson ID."""
    now = now_ms()
    cursor = await db.execute(
        """INSERT INTO lessons
           (teacher_id, student_id, title, description, scheduled_at, duration,
            status, lesson_plan, is_ai_generated, ai_provider, generation_id,
            created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, 'planned', ?, ?, ?, ?, ?, ?)""",
        (
            lesson.teacher_id,
            lesson.student_id,
            lesson.title,
            lesson.description,
            lesson.scheduled_at,
            lesson.duration,
            lesson.lesson_plan.model_dump_json() if lesson.lesson_plan else None,
            1 if generation_id else 0,
            ai_provider,
            generation_id,
            now,
            now,
        )
    )
    await db.commit()
    return cursor.lastrowid


async def get_lesson(db: aiosqlite.Connection, lesson_id: int) -> Optional[Dict[str, Any]]:
    cursor = await db.execute("SELECT * FROM lessons WHERE id = ?", (lesson_id,))
    return _lesson_row(await cursor.fetchone())


async def list_lessons_by_student(
    db: aiosqlite.Connection,
    student_id: int,
    limit: Optional[int] = None
) -> List[Dict[str, Any]]:
    """Lessons of a student, most recently scheduled first."""
    sql = "SELECT * FROM lessons WHERE student_id = ? ORDER BY scheduled_at DESC, id DESC"
    params: list = [student_id]
    if limit:
        sql += " LIMIT ?"
        params.append(limit)
    cursor = await db.execute(sql, params)
    return [_lesson_row(r) for r in await cursor.fetchall()]


async def list_lessons_by_teacher(
    db: aiosqlite.Connection,
    teacher_id: int,
    scheduled_from: Optional[int] = None,
    scheduled_to: Optional[int] = None,
    status: Optional[str] = None
) -> List[Dict[str, Any]]:
    sql = "SELECT * FROM lessons WHERE teacher_id = ?"
    params: list = [teacher_id]
    if scheduled_from is not None:
        sql += " AND scheduled_at >= ?"
        params.append(scheduled_from)
    if scheduled_to is not None:
        sql += " AND scheduled_at <= ?"
        params.append(scheduled_to)
    if status:
        sql += " AND status = ?"
        params.append(status)
    sql += " ORDER BY scheduled_at ASC, id ASC"
    cursor = await db.execute(sql, params)
    return [_lesson_row(r) for r in await cursor.fetchall()]


async def update_lesson_status(db: aiosqlite.Connection, lesson_id: int, status: str) -> None:
    await db.execute(
        "UPDATE lessons SET status = ?, updated_at = ? WHERE id = ?",
        (status, now_ms(), lesson_id)
    )
    await db.commit()


# ══════════════════════════════════════════════════════════════════════════════
# PROGRESS
# ══════════════════════════════════════════════════════════════════════════════

async def create_progress(db: aiosqlite.Connection, entry: ProgressEntry) -> ProgressRecord:
    """Insert the progress record for a completed lesson."""
    created_at = now_ms()
    skills = entry.skills.as_dict()
    cursor = await db.execute(
        """INSERT INTO progress
           (lesson_id, student_id, teacher_id, reading, writing, speaking,
            listening, grammar, vocabulary, topics_covered, notes, homework, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            entry.lesson_id,
            entry.student_id,
            entry.teacher_id,
            *(skills[s] for s in SKILLS),
            json.dumps(entry.topics_covered),
            entry.notes,
            entry.homework.model_dump_json() if entry.homework else None,
            created_at,
        )
    )
    await db.commit()
    return ProgressRecord(id=cursor.lastrowid, created_at=created_at, **entry.model_dump())


async def update_progress(db: aiosqlite.Connection, progress_id: int, updates: Dict[str, Any]) -> None:
    """Patch a progress record; None values are left unchanged."""
    columns: Dict[str, Any] = {}
    if updates.get("skills") is not None:
        columns.update(SkillScores.model_validate(updates["skills"]).as_dict())
    if updates.get("topics_covered") is not None:
        columns["topics_covered"] = json.dumps(updates["topics_covered"])
    if updates.get("notes") is not None:
        columns["notes"] = updates["notes"]
    if updates.get("homework") is not None:
        columns["homework"] = Homework.model_validate(updates["homework"]).model_dump_json()
    if not columns:
        return

    assignments = ", ".join(f"{column} = ?" for column in columns)
    await db.execute(
        f"UPDATE progress SET {assignments} WHERE id = ?",
        (*columns.values(), progress_id)
    )
    await db.commit()


async def get_progress(db: aiosqlite.Connection, progress_id: int) -> Optional[ProgressRecord]:
    cursor = await db.execute("SELECT * FROM progress WHERE id = ?", (progress_id,))
    return _progress_row(await cursor.fetchone())


async def get_progress_by_lesson(db: aiosqlite.Connection, lesson_id: int) -> Optional[ProgressRecord]:
    cursor = await db.execute("SELECT * FROM progress WHERE lesson_id = ?", (lesson_id,))
    return _progress_row(await cursor.fetchone())


async def get_progress_by_student(
    db: aiosqlite.Connection,
    student_id: int,
    since: Optional[int] = None,
    limit: Optional[int] = None
) -> List[ProgressRecord]:
    """Progress records of a student, most recent first."""
    sql = "SELECT * FROM progress WHERE student_id = ?"
    params: list = [student_id]
    if since is not None:
        sql += " AND created_at >= ?"
        params.append(since)
    sql += " ORDER BY created_at DESC, id DESC"
    if limit:
        sql += " LIMIT ?"
        params.append(limit)
    cursor = await db.execute(sql, params)
    return [_progress_row(r) for r in await cursor.fetchall()]


async def get_progress_by_teacher(
    db: aiosqlite.Connection,
    teacher_id: int,
    since: Optional[int] = None,
    limit: Optional[int] = None
) -> List[ProgressRecord]:
    """Progress records entered by a teacher, most recent first."""
    sql = "SELECT * FROM progress WHERE teacher_id = ?"
    params: list = [teacher_id]
    if since is not None:
        sql += " AND created_at >= ?"
        params.append(since)
    sql += " ORDER BY created_at DESC, id DESC"
    if limit:
        sql += " LIMIT ?"
        params.append(limit)
    cursor = await db.execute(sql, params)
    return [_progress_row(r) for r in await cursor.fetchall()]


# ══════════════════════════════════════════════════════════════════════════════
# AI GENERATION HISTORY & LESSON PLANS
# ══════════════════════════════════════════════════════════════════════════════

async def create_generation(
    db: aiosqlite.Connection,
    teacher_id: int,
    student_id: int,
    ai_provider: str,
    model: str,
    parameters: Dict[str, Any],
    progress_data: Optional[Dict[str, Any]] = None,
    request_type: str = "lesson_plan_generation"
) -> int:
    """Record a pending generation request. Returns the generation ID."""
    cursor = await db.execute(
        """INSERT INTO ai_generation_history
           (teacher_id, student_id, ai_provider, model, request_type,
            parameters, progress_data, status, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, 'pending', ?)""",
        (
            teacher_id,
            student_id,
            ai_provider,
            model,
            request_type,
            json.dumps(parameters),
            json.dumps(progress_data) if progress_data is not None else None,
            now_ms(),
        )
    )
    await db.commit()
    return cursor.lastrowid


async def complete_generation(
    db: aiosqlite.Connection,
    generation_id: int,
    status: str,
    response: Dict[str, Any],
    ai_provider: Optional[str] = None
) -> None:
    """Mark a generation completed or failed and store the response."""
    await db.execute(
        """UPDATE ai_generation_history
           SET status = ?, response = ?, ai_provider = COALESCE(?, ai_provider), completed_at = ?
           WHERE id = ?""",
        (status, json.dumps(response), ai_provider, now_ms(), generation_id)
    )
    await db.commit()


async def get_generation(db: aiosqlite.Connection, generation_id: int) -> Optional[Dict[str, Any]]:
    cursor = await db.execute("SELECT * FROM ai_generation_history WHERE id = ?", (generation_id,))
    return _row_to_dict(
        await cursor.fetchone(),
        parse_json_fields=["parameters", "progress_data", "response"]
    )


async def create_lesson_plan(
    db: aiosqlite.Connection,
    teacher_id: int,
    student_id: int,
    generation_id: int,
    plan: GeneratedLessonPlan
) -> int:
    cursor = await db.execute(
        """INSERT INTO ai_lesson_plans
           (teacher_id, student_id, generation_id, plan_json, difficulty,
            estimated_duration, is_used, created_at)
           VALUES (?, ?, ?, ?, ?, ?, 0, ?)""",
        (
            teacher_id,
            student_id,
            generation_id,
            plan.model_dump_json(by_alias=True),
            plan.difficulty,
            plan.estimated_duration,
            now_ms(),
        )
    )
    await db.commit()
    return cursor.lastrowid


async def get_lesson_plan(db: aiosqlite.Connection, plan_id: int) -> Optional[Dict[str, Any]]:
    cursor = await db.execute("SELECT * FROM ai_lesson_plans WHERE id = ?", (plan_id,))
    return _plan_row(await cursor.fetchone())


async def list_lesson_plans_by_student(
    db: aiosqlite.Connection,
    student_id: int,
    unused_only: bool = False,
    limit: Optional[int] = None
) -> List[Dict[str, Any]]:
    sql = "SELECT * FROM ai_lesson_plans WHERE student_id = ?"
    params: list = [student_id]
    if unused_only:
        sql += " AND is_used = 0"
    sql += " ORDER BY created_at DESC, id DESC"
    if limit:
        sql += " LIMIT ?"
        params.append(limit)
    cursor = await db.execute(sql, params)
    return [_plan_row(r) for r in await cursor.fetchall()]


async def list_lesson_plans_by_teacher(
    db: aiosqlite.Connection,
    teacher_id: int,
    since: Optional[int] = None
) -> List[Dict[str, Any]]:
    sql = "SELECT * FROM ai_lesson_plans WHERE teacher_id = ?"
    params: list = [teacher_id]
    if since is not None:
        sql += " AND created_at >= ?"
        params.append(since)
    sql += " ORDER BY created_at DESC, id DESC"
    cursor = await db.execute(sql, params)
    return [_plan_row(r) for r in await cursor.fetchall()]


async def mark_lesson_plan_used(db: aiosqlite.Connection, plan_id: int, lesson_id: int) -> None:
    await db.execute(
        "UPDATE ai_lesson_plans SET is_used = 1, used_in_lesson_id = ? WHERE id = ?",
        (lesson_id, plan_id)
    )
    await db.commit()


async def set_lesson_plan_feedback(db: aiosqlite.Connection, plan_id: int, feedback: Dict[str, Any]) -> None:
    await db.execute(
        "UPDATE ai_lesson_plans SET teacher_feedback = ? WHERE id = ?",
        (json.dumps(feedback), plan_id)
    )
    await db.commit()


# ══════════════════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS
# ══════════════════════════════════════════════════════════════════════════════

def _row_to_dict(row: aiosqlite.Row, parse_json_fields: List[str] = None) -> Dict[str, Any]:
    """Convert a database row to a dictionary, optionally parsing JSON fields."""
    if row is None:
        return None

    result = dict(row)

    if parse_json_fields:
        for field in parse_json_fields:
            if field in result and result[field]:
                try:
                    result[field] = json.loads(result[field])
                except (json.JSONDecodeError, TypeError):
                    pass  # Keep original value if JSON parsing fails

    return result


def _student_row(row: aiosqlite.Row) -> Optional[Dict[str, Any]]:
    result = _row_to_dict(row, parse_json_fields=["goals"])
    if result is None:
        return None
    result["goals"] = result["goals"] if isinstance(result["goals"], list) else []
    result["is_active"] = bool(result["is_active"])
    return result


def _lesson_row(row: aiosqlite.Row) -> Optional[Dict[str, Any]]:
    result = _row_to_dict(row, parse_json_fields=["lesson_plan"])
    if result is None:
        return None
    if isinstance(result["lesson_plan"], dict):
        result["lesson_plan"] = LessonOutline.model_validate(result["lesson_plan"])
    else:
        result["lesson_plan"] = None
    result["is_ai_generated"] = bool(result["is_ai_generated"])
    return result


def _plan_row(row: aiosqlite.Row) -> Optional[Dict[str, Any]]:
    result = _row_to_dict(row, parse_json_fields=["plan_json", "teacher_feedback"])
    if result is None:
        return None
    result["lesson_plan"] = GeneratedLessonPlan.model_validate(result.pop("plan_json"))
    result["is_used"] = bool(result["is_used"])
    return result


def _progress_row(row: aiosqlite.Row) -> Optional[ProgressRecord]:
    if row is None:
        return None
    data = _row_to_dict(row, parse_json_fields=["topics_covered", "homework"])
    return ProgressRecord(
        id=data["id"],
        lesson_id=data["lesson_id"],
        student_id=data["student_id"],
        teacher_id=data["teacher_id"],
        skills=SkillScores(**{s: data[s] for s in SKILLS}),
        topics_covered=data["topics_covered"] or [],
        notes=data["notes"] or "",
        homework=Homework.model_validate(data["homework"]) if data["homework"] else None,
        created_at=data["created_at"],
    )
