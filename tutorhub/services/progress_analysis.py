"""Progress analysis and recommendation engine.

Pure functions over already-fetched progress records:
- aggregate:          per-skill means, weak/strong split, topic union
- synthesize:         focus skills, difficulty adjustment, activities, learning style
- classify_trend:     three-point trend over the most recent records
- compare:            percentile and per-skill comparison against peers
- assess_lesson_performance: single-lesson breakdown used for follow-up lessons

Nothing here touches the database or mutates its input.
"""

import math
from bisect import bisect_left
from collections.abc import Sequence

from tutorhub.models.progress import (
    SKILLS,
    LessonPerformance,
    MetricSummary,
    PeerComparison,
    ProgressRecord,
    RecommendationSet,
    ScoreCard,
    SkillScores,
)

DEFAULT_SKILL_SCORE = 5.0
EMPTY_WEAK_AREAS = ["all skills need development"]
EMPTY_STRONG_AREAS = ["beginner level appropriate"]

# Order in which weak skills contribute activities
ACTIVITY_ORDER = ("speaking", "listening", "reading", "writing", "grammar", "vocabulary")

SKILL_ACTIVITIES = {
    "speaking": ["Role-play conversations", "Pronunciation drills", "Speaking fluency exercises"],
    "listening": ["Audio comprehension tasks", "Dictation exercises", "Listening for details"],
    "reading": ["Reading comprehension passages", "Vocabulary building", "Text analysis"],
    "writing": ["Structured writing tasks", "Grammar exercises", "Creative writing"],
    "grammar": ["Grammar drills", "Sentence construction", "Error correction"],
    "vocabulary": ["Word association games", "Vocabulary expansion", "Context clues"],
}

MAX_SUGGESTED_ACTIVITIES = 4
MAX_FOCUS_SKILLS = 2

# First matching pair wins
LEARNING_STYLE_PATTERNS = (
    (("reading", "writing"), "visual/text-based"),
    (("speaking", "listening"), "auditory/verbal"),
    (("vocabulary", "grammar"), "analytical/structured"),
)

TREND_WINDOW = 3
TREND_THRESHOLD = 0.5
COMPARISON_WINDOW = 5
COMPARISON_THRESHOLD = 1.0


def round1(value: float) -> float:
    """Round half-up to one decimal place (7.25 -> 7.3, 7.24 -> 7.2)."""
    return math.floor(value * 10 + 0.5) / 10


def overall_score(skills: SkillScores) -> float:
    """Mean of the six skill scores, unrounded."""
    return sum(skills.as_dict().values()) / len(SKILLS)


def rank_skills(averages: SkillScores) -> list[str]:
    """Skill names ordered by ascending score, canonical order breaking ties."""
    scores = averages.as_dict()
    return sorted(SKILLS, key=lambda skill: (scores[skill], SKILLS.index(skill)))


def aggregate(records: Sequence[ProgressRecord]) -> MetricSummary:
    """Reduce progress records into a MetricSummary.

    Empty input yields the default summary: every skill at 5.0 and the
    placeholder weak/strong area strings.
    """
    if not records:
        return MetricSummary(
            recent_skills_average=SkillScores(**{skill: DEFAULT_SKILL_SCORE for skill in SKILLS}),
            weak_areas=list(EMPTY_WEAK_AREAS),
            strong_areas=list(EMPTY_STRONG_AREAS),
            recent_topics=[],
            total_lessons=0,
        )

    count = len(records)
    averages = SkillScores(
        **{
            skill: round1(sum(getattr(r.skills, skill) for r in records) / count)
            for skill in SKILLS
        }
    )

    ranked = rank_skills(averages)

    # dict.fromkeys keeps first-seen order while deduplicating
    topics = list(dict.fromkeys(t for r in records for t in r.topics_covered if t))

    return MetricSummary(
        recent_skills_average=averages,
        weak_areas=ranked[:2],
        strong_areas=ranked[-2:],
        recent_topics=topics,
        total_lessons=count,
    )


def infer_learning_style(strong_areas: Sequence[str]) -> str | None:
    for pair, style in LEARNING_STYLE_PATTERNS:
        if all(skill in strong_areas for skill in pair):
            return style
    return None


def synthesize(summary: MetricSummary) -> RecommendationSet:
    """Turn a MetricSummary into lesson recommendations.

    overall >= 8  → "increase"
    overall <= 5  → "decrease"
    otherwise     → "maintain"
    """
    overall = overall_score(summary.recent_skills_average)
    if overall >= 8:
        difficulty = "increase"
    elif overall <= 5:
        difficulty = "decrease"
    else:
        difficulty = "maintain"

    activities: list[str] = []
    for skill in ACTIVITY_ORDER:
        if skill in summary.weak_areas:
            activities.extend(SKILL_ACTIVITIES[skill])

    return RecommendationSet(
        focus_skills=summary.weak_areas[:MAX_FOCUS_SKILLS],
        suggested_activities=activities[:MAX_SUGGESTED_ACTIVITIES],
        difficulty_adjustment=difficulty,
        learning_style=infer_learning_style(summary.strong_areas),
    )


def classify_trend(records: Sequence[ProgressRecord]) -> str:
    """Classify the trend of records ordered most-recent-first.

    Compares the newest record against the third newest:
    difference > 0.5   → "improving"
    difference < -0.5  → "declining"
    otherwise          → "stable" (also for fewer than 3 records)
    """
    if len(records) < TREND_WINDOW:
        return "stable"

    window = [overall_score(r.skills) for r in records[:TREND_WINDOW]]
    difference = window[0] - window[-1]

    if difference > TREND_THRESHOLD:
        return "improving"
    if difference < -TREND_THRESHOLD:
        return "declining"
    return "stable"


def compare(
    student_records: Sequence[ProgressRecord],
    peer_record_sets: Sequence[Sequence[ProgressRecord]],
) -> PeerComparison:
    """Compare a student against same-level peers.

    Each record list is most-recent-first; only the five newest records of
    each list are used. Peers without records are ignored. With no peers the
    level average falls back to 5 for every skill and the percentile is None.
    """
    student_skills = aggregate(student_records[:COMPARISON_WINDOW]).recent_skills_average
    student_overall = overall_score(student_skills)

    peer_skills = [
        aggregate(records[:COMPARISON_WINDOW]).recent_skills_average
        for records in peer_record_sets
        if records
    ]

    if peer_skills:
        level_skills = {
            skill: sum(getattr(p, skill) for p in peer_skills) / len(peer_skills)
            for skill in SKILLS
        }
    else:
        level_skills = {skill: DEFAULT_SKILL_SCORE for skill in SKILLS}
    level_overall = sum(level_skills.values()) / len(SKILLS)

    percentile = None
    if peer_skills:
        ranked = sorted([overall_score(p) for p in peer_skills] + [student_overall])
        position = bisect_left(ranked, student_overall)
        percentile = math.floor(position / (len(ranked) - 1) * 100 + 0.5)

    insights = []
    if student_overall > level_overall + COMPARISON_THRESHOLD:
        insights.append("Performing above average for their level")
    elif student_overall < level_overall - COMPARISON_THRESHOLD:
        insights.append("Performing below average for their level")
    else:
        insights.append("Performing at level average")

    for skill, score in student_skills.as_dict().items():
        if score > level_skills[skill] + COMPARISON_THRESHOLD:
            insights.append(f"Strong in {skill} compared to peers")
        elif score < level_skills[skill] - COMPARISON_THRESHOLD:
            insights.append(f"Needs improvement in {skill} compared to peers")

    if percentile is not None:
        if percentile >= 75:
            insights.append("In the top 25% of students at this level")
        elif percentile <= 25:
            insights.append("In the bottom 25% of students at this level")

    return PeerComparison(
        student_score=ScoreCard(**student_skills.as_dict(), overall=round1(student_overall)),
        level_average=ScoreCard(
            **{skill: round1(value) for skill, value in level_skills.items()},
            overall=round1(level_overall),
        ),
        percentile=percentile,
        peer_count=len(peer_skills),
        comparison_insights=insights,
    )


def assess_lesson_performance(skills: SkillScores) -> LessonPerformance:
    """Break a single lesson's scores into improvement areas and strengths.

    score < 7   → area for improvement
    score >= 8  → strength
    """
    scores = skills.as_dict()
    average = overall_score(skills)

    if average >= 8:
        performance = "excellent"
    elif average >= 6:
        performance = "good"
    else:
        performance = "needs_improvement"

    return LessonPerformance(
        areas_for_improvement=[s for s, v in scores.items() if v < 7],
        strengths=[s for s, v in scores.items() if v >= 8],
        average_score=round1(average),
        overall_performance=performance,
    )
