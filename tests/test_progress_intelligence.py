"""Tests for the database-backed progress intelligence service."""

import pytest

from tutorhub.db import records
from tutorhub.services.progress_intelligence import (
    NoProgressDataError,
    StudentNotFoundError,
    analyze_student_progress,
    compare_student_progress,
    get_teacher_progress_summary,
)


class TestAnalyzeStudentProgress:

    def test_unknown_student(self, run_db):
        with pytest.raises(StudentNotFoundError):
            run_db(lambda db: analyze_student_progress(999, db))

    def test_no_recent_records_gives_defaults(self, run_db, seed):
        async def scenario(db):
            teacher = await seed.teacher(db)
            student = await seed.student(db, teacher, level="beginner")
            await seed.progress(db, teacher, student, score=9, days_ago=40)
            return await analyze_student_progress(student, db)

        analysis = run_db(scenario)

        assert analysis.student_level == "beginner"
        assert analysis.progress_data.total_lessons == 0
        assert analysis.progress_data.weak_areas == ["all skills need development"]
        assert analysis.recommendations.difficulty_adjustment == "decrease"
        assert analysis.progress_trend == "stable"

    def test_recent_records(self, run_db, seed):
        async def scenario(db):
            teacher = await seed.teacher(db)
            student = await seed.student(db, teacher)
            await seed.progress(db, teacher, student, score=6, days_ago=10, topics=["travel"])
            await seed.progress(db, teacher, student, score=7, days_ago=5, topics=["food"])
            await seed.progress(
                db, teacher, student, score={"speaking": 4, "listening": 5}, days_ago=1, topics=["travel"]
            )
            return await analyze_student_progress(student, db)

        analysis = run_db(scenario)

        assert analysis.progress_data.total_lessons == 3
        assert analysis.progress_data.recent_skills_average.reading == 6.7
        assert analysis.progress_data.weak_areas == ["speaking", "listening"]
        assert analysis.progress_data.recent_topics == ["travel", "food"]
        assert analysis.recommendations.focus_skills == ["speaking", "listening"]
        assert analysis.progress_trend == "stable"

    def test_timeframe_is_configurable(self, run_db, seed):
        async def scenario(db):
            teacher = await seed.teacher(db)
            student = await seed.student(db, teacher)
            await seed.progress(db, teacher, student, days_ago=40)
            return await analyze_student_progress(student, db, timeframe_weeks=8)

        assert run_db(scenario).progress_data.total_lessons == 1


class TestCompareStudentProgress:

    def test_requires_progress(self, run_db, seed):
        async def scenario(db):
            teacher = await seed.teacher(db)
            student = await seed.student(db, teacher)
            return await compare_student_progress(student, db)

        with pytest.raises(NoProgressDataError):
            run_db(scenario)

    def test_compares_against_same_level_only(self, run_db, seed):
        async def scenario(db):
            teacher = await seed.teacher(db)
            student = await seed.student(db, teacher, name="Anna", level="intermediate")
            peer = await seed.student(db, teacher, name="Ben", level="intermediate")
            await seed.student(db, teacher, name="Cara", level="intermediate")
            other_level = await seed.student(db, teacher, name="Dan", level="advanced")

            await seed.progress(db, teacher, student, score=9)
            await seed.progress(db, teacher, peer, score=5)
            await seed.progress(db, teacher, other_level, score=10)
            return await compare_student_progress(student, db)

        comparison = run_db(scenario)

        assert comparison.peer_count == 1
        assert comparison.percentile == 100
        assert comparison.student_score.overall == 9.0
        assert comparison.level_average.overall == 5.0
        assert "Performing above average for their level" in comparison.comparison_insights

    def test_no_peers(self, run_db, seed):
        async def scenario(db):
            teacher = await seed.teacher(db)
            student = await seed.student(db, teacher)
            await seed.progress(db, teacher, student, score=6)
            return await compare_student_progress(student, db)

        comparison = run_db(scenario)

        assert comparison.percentile is None
        assert comparison.level_average.overall == 5.0
        assert comparison.comparison_insights == ["Performing at level average"]


class TestTeacherProgressSummary:

    def test_attention_first_then_by_score(self, run_db, seed):
        async def scenario(db):
            teacher = await seed.teacher(db)
            doing_well = await seed.student(db, teacher, name="Anna")
            struggling = await seed.student(db, teacher, name="Ben")
            await seed.student(db, teacher, name="Cara")
            idle = await seed.student(db, teacher, name="Dan")
            inactive = await seed.student(db, teacher, name="Eve")

            await seed.progress(db, teacher, doing_well, score=8, days_ago=1)
            await seed.progress(db, teacher, struggling, score=5, days_ago=1)
            await seed.progress(db, teacher, idle, score=8, days_ago=20)
            await records.update_student(db, inactive, {"is_active": False})
            return await get_teacher_progress_summary(teacher, db)

        summary = run_db(scenario)
        by_name = {s.student_name: s for s in summary}

        assert [s.student_name for s in summary] == ["Dan", "Ben", "Cara", "Anna"]
        assert not by_name["Anna"].needs_attention
        assert by_name["Ben"].needs_attention
        assert by_name["Cara"].overall_score == 0
        assert by_name["Cara"].weakest_skill == "no data"
        assert by_name["Cara"].last_lesson_date is None
        assert by_name["Dan"].needs_attention

    def test_declining_needs_attention(self, run_db, seed):
        async def scenario(db):
            teacher = await seed.teacher(db)
            student = await seed.student(db, teacher)
            await seed.progress(db, teacher, student, score=9, days_ago=6)
            await seed.progress(db, teacher, student, score=8.5, days_ago=4)
            await seed.progress(db, teacher, student, score=8, days_ago=2)
            return await get_teacher_progress_summary(teacher, db)

        [row] = run_db(scenario)

        assert row.progress_trend == "declining"
        assert row.needs_attention
        assert row.overall_score == 8.5
        assert row.weakest_skill == "reading"
        assert row.strongest_skill == "vocabulary"
