from typing import Literal, Optional

from pydantic import BaseModel, Field

from tutorhub.models.progress import (
    Homework,
    LessonPerformance,
    ProgressTrend,
    RecommendationSet,
    SkillScores,
)
from tutorhub.models.student import StudentLevel

LessonStatus = Literal["planned", "in_progress", "completed", "cancelled"]


class LessonOutline(BaseModel):
    objectives: list[str] = []
    activities: list[str] = []
    materials: list[str] = []
    homework: Optional[str] = None


class LessonCreate(BaseModel):
    teacher_id: int
    student_id: int
    title: str
    description: Optional[str] = None
    scheduled_at: int
    duration: int = 60
    lesson_plan: Optional[LessonOutline] = None


class LessonStatusUpdate(BaseModel):
    status: LessonStatus


class LessonResponse(BaseModel):
    id: int
    teacher_id: int
    student_id: int
    title: str
    description: Optional[str] = None
    scheduled_at: int
    duration: int
    status: LessonStatus = "planned"
    lesson_plan: Optional[LessonOutline] = None
    is_ai_generated: bool = False
    ai_provider: Optional[str] = None
    created_at: int


class LessonHistoryEntry(BaseModel):
    lesson_id: int
    lesson_title: str
    lesson_date: int
    lesson_duration: int
    lesson_status: LessonStatus
    progress_id: Optional[int] = None
    skills: Optional[SkillScores] = None
    topics_covered: Optional[list[str]] = None
    notes: Optional[str] = None
    homework: Optional[Homework] = None
    progress_created_at: Optional[int] = None


# ── AI lesson plans ──────────────────────────────────────────────────


class PlanActivity(BaseModel):
    name: str
    description: str
    duration: int
    materials: list[str] = []
    skills_targeted: list[str] = Field(default=[], alias="skillsTargeted")

    model_config = {"populate_by_name": True}


class PlanHomework(BaseModel):
    description: str
    estimated_time: int = Field(alias="estimatedTime")
    resources: list[str] = []

    model_config = {"populate_by_name": True}


class GeneratedLessonPlan(BaseModel):
    """Lesson plan as returned by the AI (camelCase keys accepted)."""

    title: str
    description: str
    difficulty: StudentLevel
    estimated_duration: int = Field(alias="estimatedDuration")
    objectives: list[str] = []
    activities: list[PlanActivity] = []
    materials: list[str] = []
    homework: Optional[PlanHomework] = None
    assessment_criteria: list[str] = Field(default=[], alias="assessmentCriteria")
    adaptation_notes: str = Field(default="", alias="adaptationNotes")

    model_config = {"populate_by_name": True}


class LessonPlanRequest(BaseModel):
    teacher_id: int
    focus_skills: Optional[list[str]] = None
    lesson_duration: Optional[int] = None
    specific_goals: Optional[list[str]] = None
    additional_context: Optional[str] = None


class FollowUpPlanRequest(BaseModel):
    teacher_id: int
    previous_lesson_id: int
    focus_skills: Optional[list[str]] = None
    lesson_duration: Optional[int] = None
    additional_context: Optional[str] = None


class PreviousLessonContext(BaseModel):
    topics_covered: list[str] = []
    skills_assessed: SkillScores
    performance: LessonPerformance
    notes: str = ""


class LessonPlanResult(BaseModel):
    generation_id: int
    lesson_plan_id: int
    provider: str
    lesson_plan: GeneratedLessonPlan
    recommendations: Optional[RecommendationSet] = None
    progress_trend: Optional[ProgressTrend] = None
    previous_lesson_context: Optional[PreviousLessonContext] = None


class TeacherFeedback(BaseModel):
    rating: int = Field(ge=1, le=5)
    comments: str = ""
    improvements: list[str] = []


class StoredLessonPlan(BaseModel):
    id: int
    teacher_id: int
    student_id: int
    generation_id: int
    lesson_plan: GeneratedLessonPlan
    is_used: bool = False
    used_in_lesson_id: Optional[int] = None
    teacher_feedback: Optional[TeacherFeedback] = None
    created_at: int


class ScheduleFromPlan(BaseModel):
    scheduled_at: int
    title: Optional[str] = None
    description: Optional[str] = None


class LessonPlanStats(BaseModel):
    total_generated: int = 0
    total_used: int = 0
    usage_rate: int = 0
    avg_rating: float = 0.0
    difficulty_breakdown: dict[str, int] = {"beginner": 0, "intermediate": 0, "advanced": 0}
    top_skills_targeted: list[str] = []
    avg_duration: int = 0

