"""
Read-only record types shared by the planning engine.

Courses, preferences and planned assignments arrive as snapshots from the
data layer; nothing in the engine mutates them. Missing numeric course data is
defaulted in exactly one place (the effective_* accessors below) so every
component aggregates the same way.
"""

from dataclasses import dataclass, fields
from typing import Iterable

from normalizer import canonical_code


DEFAULT_GPA = 3.0
DEFAULT_DIFFICULTY = 3
DEFAULT_WORKLOAD_HOURS = 10
DEFAULT_LEVEL = 20000

DIFFICULTY_ANCHORS = {
    "easy": 2,
    "moderate": 3,
    "challenging": 4,
}

ASSIGNMENT_STATUSES = ("planned", "in-progress", "completed")

_LIST_FIELDS = (
    "career_tags",
    "interest_tags",
    "prerequisites",
    "corequisites",
    "semesters",
    "professors",
    "typical_days",
)


@dataclass(frozen=True)
class Course:
    code: str
    name: str = ""
    credits: int = 0
    description: str = ""
    avg_gpa: float | None = None
    difficulty_rating: float | None = None
    workload_hours: float | None = None
    review_count: int = 0
    level: int | None = None
    career_tags: tuple[str, ...] = ()
    interest_tags: tuple[str, ...] = ()
    prerequisites: tuple[str, ...] = ()
    corequisites: tuple[str, ...] = ()
    semesters: tuple[str, ...] = ()
    professors: tuple[str, ...] = ()
    typical_days: tuple[str, ...] = ()
    has_morning_section: bool = False
    has_afternoon_section: bool = False
    has_evening_section: bool = False
    has_friday_class: bool = False
    has_online_option: bool = False
    has_hybrid_option: bool = False
    num_exams: int | None = None
    is_project_based: bool = False
    is_exam_based: bool = False
    homework_intensity: str | None = None
    is_coding_heavy: bool = False
    is_math_heavy: bool = False
    exam_intensity: str | None = None
    has_group_projects: bool = False
    is_major_requirement: bool = False
    is_tech_elective: bool = False
    is_gen_ed: bool = False
    is_lab_credit: bool = False
    requirement_category: str | None = None

    @property
    def key(self) -> str:
        """Canonical comparison key for this course."""
        return canonical_code(self.code)

    @classmethod
    def from_record(cls, record: dict) -> "Course":
        """
        Build a Course from a plain dict (JSON body, CSV row).
        Unknown keys are ignored; list-like fields become tuples.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in record.items():
            if key not in known:
                continue
            if key in _LIST_FIELDS:
                value = tuple(str(v).strip() for v in (value or []) if str(v).strip())
            kwargs[key] = value
        return cls(**kwargs)

    def to_dict(self) -> dict:
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            out[f.name] = list(value) if isinstance(value, tuple) else value
        return out

    def summary(self) -> dict:
        """Compact JSON view used in ranked and optimized results."""
        return {
            "code": self.code,
            "name": self.name,
            "credits": self.credits,
            "avg_gpa": self.avg_gpa,
            "difficulty_rating": self.difficulty_rating,
            "workload_hours": self.workload_hours,
            "level": self.level,
            "career_tags": list(self.career_tags),
            "interest_tags": list(self.interest_tags),
            "prerequisites": list(self.prerequisites),
        }


@dataclass(frozen=True)
class UserPreferences:
    career_goals: tuple[str, ...] = ()
    interests: tuple[str, ...] = ()
    target_gpa: float | None = None
    max_workload_hours: float | None = None
    preferred_difficulty: str | None = None
    completed_courses: tuple[str, ...] = ()
    current_semester: str | None = None
    graduation_semester: str | None = None


@dataclass(frozen=True)
class PlannedCourseAssignment:
    course_code: str
    semester: str
    status: str = "planned"
    grade: str | None = None


# Falsy values (None or 0) count as missing and take the default.
def effective_gpa(course: Course) -> float:
    return course.avg_gpa or DEFAULT_GPA


def effective_difficulty(course: Course) -> float:
    return course.difficulty_rating or DEFAULT_DIFFICULTY


def effective_workload(course: Course) -> float:
    return course.workload_hours or DEFAULT_WORKLOAD_HOURS


def effective_level(course: Course) -> int:
    return course.level or DEFAULT_LEVEL


def projected_gpa(courses: Iterable[Course]) -> float:
    """Credit-weighted mean of effective GPA. 0 when the set carries no credits."""
    points = 0.0
    credits = 0
    for course in courses:
        points += effective_gpa(course) * course.credits
        credits += course.credits
    return points / credits if credits > 0 else 0.0


def average_difficulty(courses: Iterable[Course]) -> float:
    ratings = [effective_difficulty(c) for c in courses]
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings)


def total_credits(courses: Iterable[Course]) -> int:
    return sum(c.credits for c in courses)


def completed_baseline(
    preferences: UserPreferences | None,
    assignments: Iterable[PlannedCourseAssignment] = (),
) -> list[str]:
    """
    Self-reported completed courses merged with assignments marked completed.
    First-seen order, deduplicated on the canonical code.
    """
    merged: list[str] = []
    seen: set[str] = set()
    reported = preferences.completed_courses if preferences is not None else ()
    from_plan = [a.course_code for a in assignments if a.status == "completed"]
    for code in list(reported) + from_plan:
        key = canonical_code(code)
        if not key or key in seen:
            continue
        seen.add(key)
        merged.append(code)
    return merged
