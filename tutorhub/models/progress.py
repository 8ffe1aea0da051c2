from typing import Literal, Optional

from pydantic import BaseModel

# Canonical skill order. Also the tie-break order when ranking skill means.
SKILLS = ("reading", "writing", "speaking", "listening", "grammar", "vocabulary")

DifficultyAdjustment = Literal["increase", "maintain", "decrease"]
ProgressTrend = Literal["improving", "stable", "declining"]


class SkillScores(BaseModel):
    """One score per skill, conventionally 1-10."""

    model_config = {"frozen": True}

    reading: float
    writing: float
    speaking: float
    listening: float
    grammar: float
    vocabulary: float

    def as_dict(self) -> dict[str, float]:
        return {skill: getattr(self, skill) for skill in SKILLS}


class ScoreCard(SkillScores):
    overall: float


class Homework(BaseModel):
    assigned: str
    completed: bool = False
    feedback: Optional[str] = None


class ProgressRecord(BaseModel):
    id: Optional[int] = None
    lesson_id: int
    student_id: int
    teacher_id: Optional[int] = None
    skills: SkillScores
    topics_covered: list[str] = []
    notes: str = ""
    homework: Optional[Homework] = None
    created_at: int


class ProgressEntry(BaseModel):
    lesson_id: int
    student_id: int
    teacher_id: int
    skills: SkillScores
    topics_covered: list[str] = []
    notes: str = ""
    homework: Optional[Homework] = None


class ProgressUpdate(BaseModel):
    skills: Optional[SkillScores] = None
    topics_covered: Optional[list[str]] = None
    notes: Optional[str] = None
    homework: Optional[Homework] = None


class MetricSummary(BaseModel):
    recent_skills_average: SkillScores
    weak_areas: list[str]
    strong_areas: list[str]
    recent_topics: list[str] = []
    total_lessons: int = 0


class RecommendationSet(BaseModel):
    focus_skills: list[str] = []
    suggested_activities: list[str] = []
    difficulty_adjustment: DifficultyAdjustment = "maintain"
    learning_style: Optional[str] = None


class LessonPerformance(BaseModel):
    areas_for_improvement: list[str] = []
    strengths: list[str] = []
    average_score: float
    overall_performance: Literal["excellent", "good", "needs_improvement"]


class PeerComparison(BaseModel):
    student_score: ScoreCard
    level_average: ScoreCard
    # None when there are no peers with progress data to rank against
    percentile: Optional[int] = None
    peer_count: int = 0
    comparison_insights: list[str] = []


class ProgressAnalysis(BaseModel):
    student_level: str
    progress_data: MetricSummary
    recommendations: RecommendationSet
    progress_trend: ProgressTrend


class SkillAverages(SkillScores):
    total_sessions: int = 0


class StudentProgressSummary(BaseModel):
    student_id: int
    student_name: str
    student_level: str
    overall_score: float
    weakest_skill: str
    strongest_skill: str
    last_lesson_date: Optional[int] = None
    progress_trend: ProgressTrend
    needs_attention: bool
