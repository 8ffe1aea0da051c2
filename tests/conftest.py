"""Shared fixtures: a throwaway SQLite database per test and a seeding helper."""

import asyncio
import sqlite3

import pytest

from tutorhub.db import records
from tutorhub.db.database import SCHEMA_PATH, connect
from tutorhub.models.lesson import LessonCreate
from tutorhub.models.progress import SKILLS, Homework, ProgressEntry, SkillScores
from tutorhub.models.student import StudentCreate


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "tutorhub_test.db"
    conn = sqlite3.connect(path)
    try:
        conn.executescript(SCHEMA_PATH.read_text())
    finally:
        conn.close()
    return str(path)


@pytest.fixture
def run_db(db_path):
    """Run ``scenario(db)`` against the test database and return its result."""

    def run(scenario):
        async def main():
            db = await connect(db_path)
            try:
                return await scenario(db)
            finally:
                await db.close()

        return asyncio.run(main())

    return run


class Seeder:
    """Creates teachers, students, lessons and progress with controlled timestamps."""

    def __init__(self):
        self.now = records.now_ms()
        self._emails = 0

    async def teacher(self, db, name="Ms. Smith"):
        self._emails += 1
        return await records.create_teacher(db, name, f"teacher{self._emails}@example.com")

    async def student(self, db, teacher_id, name="Anna", level="intermediate"):
        return await records.create_student(
            db, StudentCreate(teacher_id=teacher_id, name=name, level=level)
        )

    async def lesson(self, db, teacher_id, student_id, title="Lesson", days_ago=0, status=None):
        lesson_id = await records.create_lesson(
            db,
            LessonCreate(
                teacher_id=teacher_id,
                student_id=student_id,
                title=title,
                scheduled_at=self.now - days_ago * records.DAY_MS,
            ),
        )
        if status:
            await records.update_lesson_status(db, lesson_id, status)
        return lesson_id

    async def progress(self, db, teacher_id, student_id, score=7, days_ago=0, topics=(), homework=None, notes=""):
        """Record an assessed lesson ``days_ago`` days back.

        ``score`` is either one value for every skill or a dict of overrides
        on top of 7.
        """
        if isinstance(score, dict):
            scores = {skill: 7 for skill in SKILLS}
            scores.update(score)
        else:
            scores = {skill: score for skill in SKILLS}

        lesson_id = await self.lesson(db, teacher_id, student_id, days_ago=days_ago, status="completed")
        record = await records.create_progress(
            db,
            ProgressEntry(
                lesson_id=lesson_id,
                student_id=student_id,
                teacher_id=teacher_id,
                skills=SkillScores(**scores),
                topics_covered=list(topics),
                notes=notes,
                homework=Homework(**homework) if homework else None,
            ),
        )
        await db.execute(
            "UPDATE progress SET created_at = ? WHERE id = ?",
            (self.now - days_ago * records.DAY_MS, record.id),
        )
        await db.commit()
        return lesson_id


@pytest.fixture
def seed():
    return Seeder()
