"""
Multi-semester plan analysis.

analyze_schedule walks the planned semesters in chronological order. The
completed-by-now set is seeded from the student's baseline and only grows
after a whole semester has been checked, so a prerequisite taken in the same
term is a corequisite warning rather than a satisfied requirement.

Conflicts are returned as data. Only "error" severity makes a plan invalid.
"""

from typing import Iterable

from models import (
    Course,
    PlannedCourseAssignment,
    effective_difficulty,
    effective_gpa,
    effective_workload,
    projected_gpa,
)
from normalizer import canonical_code
from timeline import semester_order


OVERLOAD_CREDIT_LIMIT = 18
FULL_TIME_CREDIT_MINIMUM = 12
HIGH_DIFFICULTY_THRESHOLD = 3.5
GPA_VARIANCE_PER_DIFFICULTY = 0.2
MAX_GPA = 4.0


def _conflict(kind: str, severity: str, message: str, courses: list[str]) -> dict:
    return {"type": kind, "severity": severity, "message": message, "courses": courses}


def _analyze_semester(
    semester: str,
    codes: list[str],
    catalog: dict[str, Course],
    completed_before: set[str],
) -> tuple[dict, list[Course]]:
    conflicts: list[dict] = []
    recommendations: list[str] = []
    resolved: list[Course] = []

    seen: set[str] = set()
    for code in codes:
        key = canonical_code(code)
        if key in seen:
            conflicts.append(_conflict(
                "duplicate", "error", f"{code} is scheduled multiple times", [code],
            ))
        seen.add(key)

    in_semester = {canonical_code(c) for c in codes}
    for code in codes:
        course = catalog.get(canonical_code(code))
        if course is None:
            recommendations.append(f"Course {code} not found in database")
            continue
        resolved.append(course)

        for prereq in course.prerequisites:
            prereq_key = canonical_code(prereq)
            same_semester = prereq_key in in_semester
            if prereq_key not in completed_before and not same_semester:
                conflicts.append(_conflict(
                    "prerequisite", "error",
                    f"{code} requires {prereq} which is not completed",
                    [code, prereq],
                ))
            if same_semester:
                conflicts.append(_conflict(
                    "corequisite", "warning",
                    f"{code} and its prerequisite {prereq} are in the same semester",
                    [code, prereq],
                ))

    credits = sum(c.credits for c in resolved)
    workload = sum(effective_workload(c) for c in resolved)
    avg_difficulty = (
        sum(effective_difficulty(c) for c in resolved) / len(resolved) if resolved else 0
    )

    if credits > OVERLOAD_CREDIT_LIMIT:
        conflicts.append(_conflict(
            "overload", "warning",
            f"{credits} credits exceeds typical maximum of {OVERLOAD_CREDIT_LIMIT}",
            list(codes),
        ))
    if credits < FULL_TIME_CREDIT_MINIMUM and codes:
        recommendations.append("Consider adding more courses to meet full-time requirements")
    if avg_difficulty > HIGH_DIFFICULTY_THRESHOLD:
        recommendations.append(
            "This semester has high average difficulty - consider balancing with easier courses"
        )

    analysis = {
        "semester": semester,
        "courses": list(codes),
        "total_credits": credits,
        "avg_difficulty": avg_difficulty,
        "estimated_workload": workload,
        "conflicts": conflicts,
        "recommendations": recommendations,
    }
    return analysis, resolved


def analyze_schedule(
    assignments: Iterable[PlannedCourseAssignment],
    catalog: dict[str, Course],
    completed: Iterable[str],
) -> dict:
    """
    Returns:
      {
        "semesters": [ {semester analysis}, ... ],   # chronological
        "total_credits": int,
        "estimated_gpa": float,
        "overall_conflicts": [conflict, ...],
        "is_valid": bool,
      }
    """
    groups: dict[str, list[str]] = {}
    for assignment in assignments:
        groups.setdefault(assignment.semester, []).append(assignment.course_code)

    ordered = sorted(groups, key=semester_order)

    completed_so_far = {canonical_code(c) for c in completed}
    semesters: list[dict] = []
    conflicts: list[dict] = []
    plan_courses: list[Course] = []

    for semester in ordered:
        analysis, resolved = _analyze_semester(
            semester, groups[semester], catalog, completed_so_far,
        )
        semesters.append(analysis)
        conflicts.extend(analysis["conflicts"])
        plan_courses.extend(resolved)
        completed_so_far.update(c.key for c in resolved)

    return {
        "semesters": semesters,
        "total_credits": sum(c.credits for c in plan_courses),
        "estimated_gpa": projected_gpa(plan_courses),
        "overall_conflicts": conflicts,
        "is_valid": all(c["severity"] != "error" for c in conflicts),
    }


def calculate_gpa_impact(
    current_gpa: float,
    current_credits: float,
    planned_courses: Iterable[Course],
) -> dict:
    """
    Blend the current GPA with the planned courses' historical averages.

    The band widens each course by +/- difficulty * 0.2 grade points, clamped
    to [0, 4]. Everything is 0 when neither side carries credits.
    """
    planned_credits = 0
    expected_points = 0.0
    min_points = 0.0
    max_points = 0.0
    for course in planned_courses:
        gpa = effective_gpa(course)
        variance = effective_difficulty(course) * GPA_VARIANCE_PER_DIFFICULTY
        planned_credits += course.credits
        expected_points += gpa * course.credits
        min_points += max(0.0, gpa - variance) * course.credits
        max_points += min(MAX_GPA, gpa + variance) * course.credits

    credits = current_credits + planned_credits
    if credits <= 0:
        return {"projected_gpa": 0, "gpa_range": {"min": 0, "max": 0}}

    current_points = current_gpa * current_credits
    return {
        "projected_gpa": (current_points + expected_points) / credits,
        "gpa_range": {
            "min": (current_points + min_points) / credits,
            "max": (current_points + max_points) / credits,
        },
    }


def detect_schedule_conflicts(course_a: Course, course_b: Course) -> list[dict]:
    """Prerequisite conflicts between two courses, checked in both directions."""
    conflicts = []
    if course_b.key in {canonical_code(p) for p in course_a.prerequisites}:
        conflicts.append(_conflict(
            "prerequisite", "error",
            f"{course_a.code} requires {course_b.code} as prerequisite",
            [course_a.code, course_b.code],
        ))
    if course_a.key in {canonical_code(p) for p in course_b.prerequisites}:
        conflicts.append(_conflict(
            "prerequisite", "error",
            f"{course_b.code} requires {course_a.code} as prerequisite",
            [course_a.code, course_b.code],
        ))
    return conflicts
