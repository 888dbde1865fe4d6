"""
Recommendation scoring.

Each course gets six independent 0-100 factor scores which are combined with
fixed weights into an overall 0-100 score. Missing preference or course data
yields a neutral factor (50) rather than an error.
"""

import math
from typing import Iterable

from models import (
    DIFFICULTY_ANCHORS,
    Course,
    UserPreferences,
    effective_difficulty,
)
from normalizer import canonical_code


NEUTRAL_SCORE = 50
UNTAGGED_SCORE = 40

# Integer percentages; the weighted sum is divided by 100 once.
FACTOR_WEIGHTS = {
    "career_match": 25,
    "difficulty_match": 15,
    "gpa_optimal": 20,
    "prerequisite_ready": 15,
    "workload_fit": 15,
    "interest_match": 10,
}

DEFAULT_TOP_LIMIT = 10
DEFAULT_MIN_PREREQ_SCORE = 50


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def career_match(course: Course, preferences: UserPreferences) -> float:
    goals = preferences.career_goals
    if not goals:
        return NEUTRAL_SCORE
    if not course.career_tags:
        return UNTAGGED_SCORE
    matches = sum(1 for tag in course.career_tags if tag in goals)
    return 20 + 80 * (matches / len(goals))


def difficulty_match(course: Course, preferences: UserPreferences) -> float:
    if not preferences.preferred_difficulty:
        return NEUTRAL_SCORE
    anchor = DIFFICULTY_ANCHORS.get(preferences.preferred_difficulty, DIFFICULTY_ANCHORS["moderate"])
    diff = abs(effective_difficulty(course) - anchor)
    if diff == 0:
        return 100
    if diff <= 1:
        return 70
    if diff <= 2:
        return 40
    return 20


def gpa_optimal(course: Course, preferences: UserPreferences) -> float:
    target = preferences.target_gpa
    if not target or not course.avg_gpa:
        return NEUTRAL_SCORE
    if course.avg_gpa >= target:
        return min(100, 70 + (course.avg_gpa - target) * 30)
    deficit = target - course.avg_gpa
    if deficit <= 0.3:
        return 60
    if deficit <= 0.5:
        return 45
    if deficit <= 0.8:
        return 30
    return 20


def prerequisite_ready(course: Course, completed: Iterable[str]) -> int:
    if not course.prerequisites:
        return 100
    completed_set = {canonical_code(c) for c in completed}
    satisfied = sum(1 for p in course.prerequisites if canonical_code(p) in completed_set)
    return round_half_up(100 * satisfied / len(course.prerequisites))


def workload_fit(course: Course, preferences: UserPreferences) -> float:
    max_hours = preferences.max_workload_hours
    hours = course.workload_hours
    if not max_hours or not hours:
        return NEUTRAL_SCORE
    if hours <= max_hours * 0.7:
        return 80
    if hours <= max_hours:
        return 100
    over = (hours - max_hours) / max_hours
    if over <= 0.2:
        return 60
    if over <= 0.5:
        return 40
    return 20


def interest_match(course: Course, preferences: UserPreferences) -> float:
    interests = preferences.interests
    if not interests:
        return NEUTRAL_SCORE
    if not course.interest_tags:
        return UNTAGGED_SCORE
    matches = sum(1 for tag in course.interest_tags if tag in interests)
    if matches == 0:
        return 30
    if matches == 1:
        return 60
    if matches == 2:
        return 80
    return 100


def score_course(course: Course, preferences: UserPreferences, completed: Iterable[str]) -> dict:
    """
    Returns:
      {
        "overall": 0..100 int,
        "factors": {"career_match": ..., "difficulty_match": ..., ...}
      }
    """
    factors = {
        "career_match": career_match(course, preferences),
        "difficulty_match": difficulty_match(course, preferences),
        "gpa_optimal": gpa_optimal(course, preferences),
        "prerequisite_ready": prerequisite_ready(course, completed),
        "workload_fit": workload_fit(course, preferences),
        "interest_match": interest_match(course, preferences),
    }
    weighted = sum(factors[name] * weight for name, weight in FACTOR_WEIGHTS.items()) / 100
    overall = round_half_up(min(100, max(0, weighted)))
    return {"overall": overall, "factors": factors}


def rank_courses(
    courses: Iterable[Course],
    preferences: UserPreferences,
    completed: Iterable[str],
) -> list[dict]:
    """
    Score every course not already completed, best first.
    Ties keep catalog order; ranks are 1-based and contiguous.
    """
    completed = list(completed)
    completed_set = {canonical_code(c) for c in completed}

    scored = []
    for course in courses:
        if course.key in completed_set:
            continue
        result = score_course(course, preferences, completed)
        scored.append({
            "course": course,
            "score": result["overall"],
            "rank": 0,
            "factors": result["factors"],
        })

    scored.sort(key=lambda s: s["score"], reverse=True)
    for i, item in enumerate(scored, start=1):
        item["rank"] = i
    return scored


def top_recommendations(
    scored: list[dict],
    limit: int = DEFAULT_TOP_LIMIT,
    min_prereq_score: float = DEFAULT_MIN_PREREQ_SCORE,
) -> list[dict]:
    """
    Drop courses below the prerequisite-readiness floor, then take the first
    `limit`. The result can be shorter than `limit`.
    """
    ready = [s for s in scored if s["factors"]["prerequisite_ready"] >= min_prereq_score]
    return ready[:limit]


def filter_by_career(scored: list[dict], tag: str) -> list[dict]:
    return [s for s in scored if tag in s["course"].career_tags]


def scored_to_dict(item: dict) -> dict:
    """JSON view of a ranked entry."""
    return {
        "course": item["course"].summary(),
        "score": item["score"],
        "rank": item["rank"],
        "factors": dict(item["factors"]),
    }
