"""
GPA-oriented course selection.

optimize_for_gpa is a greedy heuristic: it ranks candidates by GPA buffer,
ease and credit size, then fills the term until the credit floor and a
minimum course count are both met. It does not search for an optimal set.
"""

from dataclasses import dataclass
from typing import Iterable

from models import (
    Course,
    average_difficulty,
    effective_difficulty,
    effective_gpa,
    projected_gpa,
)
from normalizer import canonical_code


# Greedy stop: once the credit floor is met, keep adding until this many courses.
MIN_SELECTED_COURSES = 4
HIGH_DIFFICULTY_THRESHOLD = 3.5
STANDARD_COURSE_CREDITS = 3

# find_gpa_boost_courses assumes one full future term and never asks for more than this.
BOOST_PLANNING_CREDITS = 15
BOOST_GPA_CAP = 3.5
DEFAULT_BOOST_COURSES = 5

LOW_GPA_THRESHOLD = 2.7
HARD_COURSE_DIFFICULTY = 4
HARD_COURSE_COUNT = 3
HEAVY_LOAD_CREDITS = 17
FULL_LOAD_CREDITS = 15


@dataclass(frozen=True)
class OptimizationConstraints:
    target_gpa: float
    min_credits: int
    max_credits: int
    max_difficulty: float | None = None
    required_courses: tuple[str, ...] = ()
    excluded_courses: tuple[str, ...] = ()


def _fmt(value: float) -> str:
    return f"{value:g}"


def _candidate_score(course: Course, target_gpa: float) -> float:
    gpa_part = max(0, min(50, (effective_gpa(course) - target_gpa + 1) * 25))
    ease_part = (5 - effective_difficulty(course)) * 6
    size_part = (STANDARD_COURSE_CREDITS - abs(course.credits - STANDARD_COURSE_CREDITS)) * 5
    return gpa_part + ease_part + size_part


def _result(selected: list[Course], credits: int, reasoning: list[str]) -> dict:
    return {
        "selected": selected,
        "projected_gpa": projected_gpa(selected),
        "total_credits": credits,
        "average_difficulty": average_difficulty(selected),
        "reasoning": reasoning,
    }


def optimize_for_gpa(candidates: Iterable[Course], constraints: OptimizationConstraints) -> dict:
    """
    Returns:
      {
        "selected": [Course, ...],       # required courses first
        "projected_gpa": float,
        "total_credits": int,
        "average_difficulty": float,
        "reasoning": [str, ...],
      }

    Required codes missing from the candidate pool are ignored. When the
    required courses alone exceed max_credits nothing else is added.
    """
    excluded = {canonical_code(c) for c in constraints.excluded_courses}
    pool = []
    for course in candidates:
        if course.key in excluded:
            continue
        if constraints.max_difficulty and effective_difficulty(course) > constraints.max_difficulty:
            continue
        pool.append(course)

    required: list[Course] = []
    for code in constraints.required_courses:
        key = canonical_code(code)
        match = next((c for c in pool if c.key == key), None)
        if match is None:
            continue
        required.append(match)
        pool = [c for c in pool if c.key != key]

    required_credits = sum(c.credits for c in required)
    if required_credits > constraints.max_credits:
        return _result(required, required_credits, [
            f"Required courses ({required_credits} credits) exceed maximum "
            f"({constraints.max_credits} credits)"
        ])

    ranked = sorted(pool, key=lambda c: _candidate_score(c, constraints.target_gpa), reverse=True)

    selected = list(required)
    credits = required_credits
    for course in ranked:
        if credits + course.credits > constraints.max_credits:
            continue
        selected.append(course)
        credits += course.credits
        if credits >= constraints.min_credits and len(selected) >= MIN_SELECTED_COURSES:
            break

    result = _result(selected, credits, [])
    reasoning = result["reasoning"]
    projected = result["projected_gpa"]
    target = _fmt(constraints.target_gpa)
    if projected >= constraints.target_gpa:
        reasoning.append(f"Selected courses project to {projected:.2f} GPA, meeting target of {target}")
    else:
        reasoning.append(f"Projected GPA of {projected:.2f} is below target of {target}")
        reasoning.append("Consider substituting difficult courses with easier alternatives")

    if result["average_difficulty"] > HIGH_DIFFICULTY_THRESHOLD:
        reasoning.append("Warning: High average difficulty may make target GPA harder to achieve")

    if credits < constraints.min_credits:
        reasoning.append(
            f"Only {credits} credits selected, below minimum of {constraints.min_credits}"
        )
    return result


def find_gpa_boost_courses(
    candidates: Iterable[Course],
    current_gpa: float,
    current_credits: float,
    target_gpa: float,
    max_courses: int = DEFAULT_BOOST_COURSES,
) -> list[Course]:
    """
    Courses most likely to pull a GPA up to `target_gpa`.

    Already at target: the courses averaging at least the target, best GPA first.
    Otherwise: courses averaging at least the GPA needed over a 15-credit term
    (capped at 3.5), ordered by GPA-to-difficulty ratio.
    Courses without GPA data are never suggested.
    """
    candidates = [c for c in candidates if c.avg_gpa]

    if target_gpa - current_gpa <= 0:
        keep = [c for c in candidates if c.avg_gpa >= target_gpa]
        keep.sort(key=lambda c: c.avg_gpa, reverse=True)
        return keep[:max_courses]

    needed = (
        target_gpa * (current_credits + BOOST_PLANNING_CREDITS) - current_gpa * current_credits
    ) / BOOST_PLANNING_CREDITS
    threshold = min(needed, BOOST_GPA_CAP)

    keep = [c for c in candidates if c.avg_gpa >= threshold]
    keep.sort(key=lambda c: effective_gpa(c) / effective_difficulty(c), reverse=True)
    return keep[:max_courses]


def analyze_gpa_risk(courses: Iterable[Course]) -> dict:
    """Returns {"risk_level": "low" | "medium" | "high", "factors": [str, ...]}."""
    courses = list(courses)
    avg_difficulty = average_difficulty(courses)
    credits = sum(c.credits for c in courses)
    factors: list[str] = []

    hard = [c for c in courses if effective_difficulty(c) >= HARD_COURSE_DIFFICULTY]
    if len(hard) >= HARD_COURSE_COUNT:
        factors.append(f"{len(hard)} courses have high difficulty ratings")

    low_gpa = [c for c in courses if effective_gpa(c) < LOW_GPA_THRESHOLD]
    if low_gpa:
        factors.append(f"{len(low_gpa)} courses have historically low average GPAs")

    if credits > HEAVY_LOAD_CREDITS:
        factors.append(f"Heavy credit load of {credits} credits")

    if avg_difficulty > HIGH_DIFFICULTY_THRESHOLD and credits >= FULL_LOAD_CREDITS:
        factors.append("Combination of high difficulty and full credit load")

    if len(factors) >= 3 or (avg_difficulty > 4 and credits >= FULL_LOAD_CREDITS):
        level = "high"
    elif factors:
        level = "medium"
    else:
        level = "low"
    return {"risk_level": level, "factors": factors}


def optimization_to_dict(result: dict) -> dict:
    out = dict(result)
    out["selected"] = [c.summary() for c in result["selected"]]
    return out
