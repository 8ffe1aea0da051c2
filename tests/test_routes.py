"""HTTP-level tests against the FastAPI app with a temporary database."""

import json

import pytest
from fastapi.testclient import TestClient

from tutorhub.db.database import connect, get_db
from tutorhub.routes.lesson_plans import get_providers
from tutorhub.server import app

SKILLS_7 = {skill: 7 for skill in ("reading", "writing", "speaking", "listening", "grammar", "vocabulary")}

PLAN_REPLY = json.dumps({
    "title": "Job interviews",
    "description": "Answering common interview questions",
    "difficulty": "intermediate",
    "estimatedDuration": 60,
    "objectives": ["Describe past experience"],
    "activities": [{"name": "Mock interview", "description": "Pairs", "duration": 30, "skillsTargeted": ["speaking"]}],
    "materials": [],
    "assessmentCriteria": [],
    "adaptationNotes": "",
})


class StaticProvider:

    def __init__(self, name, reply=None, error=None):
        self.name = name
        self.model = f"{name}-test"
        self.reply = reply
        self.error = error

    async def generate(self, prompt):
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def client(db_path):
    async def override_get_db():
        db = await connect(db_path)
        try:
            yield db
        finally:
            await db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_providers] = lambda: [StaticProvider("claude", reply=PLAN_REPLY)]
    # No context manager: the lifespan (Alembic upgrade) is not needed here
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def teacher_and_student(client):
    teacher = client.post("/api/teachers", json={"name": "Ms. Smith", "email": "smith@example.com"}).json()
    student = client.post(
        "/api/students",
        json={"teacher_id": teacher["id"], "name": "Anna", "level": "intermediate", "goals": ["IELTS 7"]},
    ).json()
    return teacher["id"], student["id"]


def assess_lesson(client, teacher_id, student_id, skills=None):
    lesson = client.post(
        "/api/lessons",
        json={"teacher_id": teacher_id, "student_id": student_id, "title": "Small talk", "scheduled_at": 1_700_000_000_000},
    ).json()
    response = client.post(
        "/api/progress",
        json={
            "lesson_id": lesson["id"],
            "student_id": student_id,
            "teacher_id": teacher_id,
            "skills": skills or SKILLS_7,
            "topics_covered": ["weather"],
            "homework": {"assigned": "Workbook p. 12"},
        },
    )
    return lesson["id"], response


class TestHealth:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestStudents:

    def test_duplicate_teacher_email(self, client):
        body = {"name": "Ms. Smith", "email": "smith@example.com"}
        assert client.post("/api/teachers", json=body).status_code == 200
        assert client.post("/api/teachers", json=body).status_code == 409

    def test_student_for_unknown_teacher(self, client):
        response = client.post("/api/students", json={"teacher_id": 99, "name": "Anna"})
        assert response.status_code == 404

    def test_student_lifecycle(self, client, teacher_and_student):
        teacher_id, student_id = teacher_and_student

        student = client.get(f"/api/students/{student_id}").json()
        assert student["goals"] == ["IELTS 7"]
        assert student["is_active"] is True

        updated = client.patch(f"/api/students/{student_id}", json={"level": "advanced"}).json()
        assert updated["level"] == "advanced"
        assert updated["name"] == "Anna"

        assert client.delete(f"/api/students/{student_id}").json()["is_active"] is False
        assert client.get(f"/api/teachers/{teacher_id}/students?active_only=true").json() == []
        assert len(client.get(f"/api/teachers/{teacher_id}/students").json()) == 1

    def test_unknown_student(self, client):
        assert client.get("/api/students/123").status_code == 404
        assert client.patch("/api/students/123", json={"name": "X"}).status_code == 404


class TestProgress:

    def test_submit_marks_lesson_completed(self, client, teacher_and_student):
        teacher_id, student_id = teacher_and_student

        lesson_id, response = assess_lesson(client, teacher_id, student_id)

        assert response.status_code == 200
        assert response.json()["skills"]["reading"] == 7
        assert client.get(f"/api/lessons/{lesson_id}").json()["status"] == "completed"

    def test_duplicate_progress_rejected(self, client, teacher_and_student):
        teacher_id, student_id = teacher_and_student
        lesson_id, _ = assess_lesson(client, teacher_id, student_id)

        response = client.post(
            "/api/progress",
            json={"lesson_id": lesson_id, "student_id": student_id, "teacher_id": teacher_id, "skills": SKILLS_7},
        )

        assert response.status_code == 409

    def test_progress_for_unknown_lesson(self, client, teacher_and_student):
        teacher_id, student_id = teacher_and_student
        response = client.post(
            "/api/progress",
            json={"lesson_id": 404, "student_id": student_id, "teacher_id": teacher_id, "skills": SKILLS_7},
        )
        assert response.status_code == 404

    def test_progress_from_another_teacher_rejected(self, client, teacher_and_student):
        teacher_id, student_id = teacher_and_student
        lesson_id = client.post(
            "/api/lessons",
            json={"teacher_id": teacher_id, "student_id": student_id, "title": "Small talk", "scheduled_at": 0},
        ).json()["id"]

        response = client.post(
            "/api/progress",
            json={"lesson_id": lesson_id, "student_id": student_id, "teacher_id": 999, "skills": SKILLS_7},
        )

        assert response.status_code == 400
        assert client.get(f"/api/lessons/{lesson_id}/progress").status_code == 404

    def test_update_progress(self, client, teacher_and_student):
        teacher_id, student_id = teacher_and_student
        _, response = assess_lesson(client, teacher_id, student_id)
        progress_id = response.json()["id"]

        updated = client.patch(
            f"/api/progress/{progress_id}",
            json={"notes": "Great improvement", "homework": {"assigned": "Workbook p. 12", "completed": True}},
        ).json()

        assert updated["notes"] == "Great improvement"
        assert updated["homework"]["completed"] is True
        assert updated["topics_covered"] == ["weather"]

    def test_skill_averages_and_history(self, client, teacher_and_student):
        teacher_id, student_id = teacher_and_student

        empty = client.get(f"/api/students/{student_id}/skills-average").json()
        assert empty["total_sessions"] == 0
        assert empty["reading"] == 0

        assess_lesson(client, teacher_id, student_id, {**SKILLS_7, "reading": 5})
        assess_lesson(client, teacher_id, student_id, {**SKILLS_7, "reading": 8})

        averages = client.get(f"/api/students/{student_id}/skills-average").json()
        assert averages["total_sessions"] == 2
        assert averages["reading"] == 6.5

        history = client.get(f"/api/students/{student_id}/lesson-history").json()
        assert len(history) == 2
        assert all(entry["progress_id"] for entry in history)


class TestAnalysis:

    def test_unknown_student_is_404(self, client):
        response = client.get("/api/students/999/analysis")
        assert response.status_code == 404
        assert response.json()["detail"] == "Student not found"

    def test_comparison_without_progress_is_404(self, client, teacher_and_student):
        _, student_id = teacher_and_student
        response = client.get(f"/api/students/{student_id}/comparison")
        assert response.status_code == 404
        assert response.json()["detail"] == "No progress data found for student"

    def test_analysis_and_summary(self, client, teacher_and_student):
        teacher_id, student_id = teacher_and_student
        assess_lesson(client, teacher_id, student_id, {**SKILLS_7, "speaking": 4})

        analysis = client.get(f"/api/students/{student_id}/analysis").json()
        assert analysis["progress_data"]["total_lessons"] == 1
        assert analysis["progress_data"]["weak_areas"][0] == "speaking"
        assert analysis["recommendations"]["suggested_activities"][0] == "Role-play conversations"

        summary = client.get(f"/api/teachers/{teacher_id}/progress-summary").json()
        assert summary[0]["student_id"] == student_id
        assert summary[0]["weakest_skill"] == "speaking"

        comparison = client.get(f"/api/students/{student_id}/comparison").json()
        assert comparison["percentile"] is None

    def test_teacher_analytics(self, client, teacher_and_student):
        teacher_id, student_id = teacher_and_student
        assess_lesson(client, teacher_id, student_id)

        analytics = client.get(f"/api/teachers/{teacher_id}/analytics").json()
        assert analytics["completed_lessons"] == 1
        assert analytics["top_topics"] == [{"topic": "weather", "count": 1}]

        insights = client.get(f"/api/teachers/{teacher_id}/analytics/insights").json()
        assert insights["homework_completion_rate"] == 0


class TestLessonPlans:

    def test_generate_schedule_and_rate(self, client, teacher_and_student):
        teacher_id, student_id = teacher_and_student

        response = client.post(f"/api/students/{student_id}/lesson-plans", json={"teacher_id": teacher_id})
        assert response.status_code == 200
        result = response.json()
        assert result["provider"] == "claude"
        assert result["lesson_plan"]["estimatedDuration"] == 60

        plan_id = result["lesson_plan_id"]
        lesson = client.post(f"/api/lesson-plans/{plan_id}/schedule", json={"scheduled_at": 1_800_000_000_000}).json()
        assert lesson["title"] == "Job interviews"
        assert lesson["is_ai_generated"] is True

        assert client.post(f"/api/lesson-plans/{plan_id}/feedback", json={"rating": 6}).status_code == 422
        rated = client.post(f"/api/lesson-plans/{plan_id}/feedback", json={"rating": 4, "comments": "Useful"}).json()
        assert rated["teacher_feedback"]["rating"] == 4
        assert rated["is_used"] is True

        assert client.get(f"/api/students/{student_id}/lesson-plans?unused_only=true").json() == []
        stats = client.get(f"/api/teachers/{teacher_id}/analytics/lesson-plans").json()
        assert stats["total_used"] == 1
        assert stats["avg_rating"] == 4.0

    def test_provider_exhaustion_is_502(self, client, teacher_and_student):
        teacher_id, student_id = teacher_and_student
        app.dependency_overrides[get_providers] = lambda: [
            StaticProvider("claude", error=RuntimeError("overloaded")),
            StaticProvider("openai", reply="not json"),
        ]

        response = client.post(f"/api/students/{student_id}/lesson-plans", json={"teacher_id": teacher_id})

        assert response.status_code == 502
        assert "failed with all providers" in response.json()["detail"]

    def test_generate_for_unknown_student(self, client):
        response = client.post("/api/students/999/lesson-plans", json={"teacher_id": 1})
        assert response.status_code == 404

    def test_generate_for_unknown_teacher(self, client, teacher_and_student):
        _, student_id = teacher_and_student
        response = client.post(f"/api/students/{student_id}/lesson-plans", json={"teacher_id": 999})
        assert response.status_code == 404
        assert response.json()["detail"] == "Teacher not found"

    def test_follow_up_on_another_students_lesson(self, client, teacher_and_student):
        teacher_id, student_id = teacher_and_student
        ben = client.post("/api/students", json={"teacher_id": teacher_id, "name": "Ben"}).json()
        bens_lesson, _ = assess_lesson(client, teacher_id, ben["id"])

        response = client.post(
            f"/api/students/{student_id}/lesson-plans/follow-up",
            json={"teacher_id": teacher_id, "previous_lesson_id": bens_lesson},
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Previous lesson not found"

    def test_schedule_unknown_plan(self, client):
        assert client.post("/api/lesson-plans/5/schedule", json={"scheduled_at": 0}).status_code == 404
