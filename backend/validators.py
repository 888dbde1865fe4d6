"""
Pure input-validation helpers for the JSON endpoints.
No Flask or data-loader imports.

Everything here either returns a clean value or raises InvalidInputError;
the engine modules assume their inputs already passed through these.
"""

import math

from gpa_optimizer import OptimizationConstraints
from models import (
    ASSIGNMENT_STATUSES,
    DIFFICULTY_ANCHORS,
    PlannedCourseAssignment,
    UserPreferences,
)
from normalizer import normalize_code, split_course_tokens
from timeline import SEM_RE, normalize_semester_label


MIN_GPA = 0.0
MAX_GPA = 4.0
_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off", ""}
_UNSET_VALUES = {"", "any", "all"}


class InvalidInputError(ValueError):
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


def _is_unset(value) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip().lower() in _UNSET_VALUES


def parse_optional_float(value, field: str, minimum: float | None = None,
                         maximum: float | None = None) -> float | None:
    """None, "" and "any" mean unset. Booleans are rejected."""
    if _is_unset(value):
        return None
    if isinstance(value, bool):
        raise InvalidInputError(field, "must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(field, "must be a number")
    if not math.isfinite(number):
        raise InvalidInputError(field, "must be a number")
    if minimum is not None and number < minimum:
        raise InvalidInputError(field, f"must be >= {minimum:g}")
    if maximum is not None and number > maximum:
        raise InvalidInputError(field, f"must be <= {maximum:g}")
    return number


def parse_optional_int(value, field: str, minimum: int | None = None) -> int | None:
    number = parse_optional_float(value, field, minimum=minimum)
    if number is None:
        return None
    if number != int(number):
        raise InvalidInputError(field, "must be a whole number")
    return int(number)


def parse_gpa(value, field: str = "gpa", required: bool = False) -> float | None:
    gpa = parse_optional_float(value, field, minimum=MIN_GPA, maximum=MAX_GPA)
    if gpa is None and required:
        raise InvalidInputError(field, "is required")
    return gpa


def parse_credits(value, field: str = "credits", required: bool = False) -> int | None:
    credits = parse_optional_int(value, field, minimum=0)
    if credits is None and required:
        raise InvalidInputError(field, "is required")
    return credits


def parse_bool_flag(value, field: str = "flag") -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES or text in _UNSET_VALUES:
        return False
    raise InvalidInputError(field, "must be true or false")


def parse_course_list(value, field: str = "completed_courses") -> list[str]:
    """
    Accepts a JSON list of codes or a comma/newline separated string.
    Recognizable codes come back in display form ('ece-30100' -> 'ECE 30100').
    """
    if value is None:
        return []
    if not isinstance(value, (list, tuple, str)):
        raise InvalidInputError(field, "must be a list of course codes")
    if isinstance(value, (list, tuple)) and any(not isinstance(v, str) for v in value):
        raise InvalidInputError(field, "must contain only strings")
    return [normalize_code(t) or t for t in split_course_tokens(value)]


def parse_tag_list(value, field: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(t.strip() for t in value.split(",") if t.strip())
    if not isinstance(value, (list, tuple)):
        raise InvalidInputError(field, "must be a list of strings")
    return tuple(str(t).strip() for t in value if str(t).strip())


def validate_semester_label(label, field: str = "semester") -> str:
    """'fall 2025' -> 'Fall 2025'. Anything not 'Term YYYY' is rejected."""
    if not isinstance(label, str) or not SEM_RE.match(label.strip()):
        raise InvalidInputError(field, "must look like 'Fall 2025'")
    return normalize_semester_label(label.strip())


def _optional_semester(value, field: str) -> str | None:
    if _is_unset(value):
        return None
    return validate_semester_label(value, field)


def parse_preferences(body: dict | None) -> UserPreferences:
    """
    Build UserPreferences from a request body. The preferences may sit under
    a "preferences" key or at the top level of the body.
    """
    body = body or {}
    prefs = body.get("preferences", body)
    if not isinstance(prefs, dict):
        raise InvalidInputError("preferences", "must be an object")

    difficulty = prefs.get("preferred_difficulty")
    if _is_unset(difficulty):
        difficulty = None
    else:
        difficulty = str(difficulty).strip().lower()
        if difficulty not in DIFFICULTY_ANCHORS:
            raise InvalidInputError(
                "preferred_difficulty",
                "must be one of: " + ", ".join(DIFFICULTY_ANCHORS),
            )

    completed = prefs.get("completed_courses", body.get("completed_courses"))
    return UserPreferences(
        career_goals=parse_tag_list(prefs.get("career_goals"), "career_goals"),
        interests=parse_tag_list(prefs.get("interests"), "interests"),
        target_gpa=parse_gpa(prefs.get("target_gpa"), "target_gpa"),
        max_workload_hours=parse_optional_float(
            prefs.get("max_workload_hours"), "max_workload_hours", minimum=0,
        ),
        preferred_difficulty=difficulty,
        completed_courses=tuple(parse_course_list(completed, "completed_courses")),
        current_semester=_optional_semester(prefs.get("current_semester"), "current_semester"),
        graduation_semester=_optional_semester(
            prefs.get("graduation_semester"), "graduation_semester",
        ),
    )


def parse_assignments(rows) -> list[PlannedCourseAssignment]:
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise InvalidInputError("planned_courses", "must be a list")

    assignments = []
    for i, row in enumerate(rows):
        field = f"planned_courses[{i}]"
        if not isinstance(row, dict):
            raise InvalidInputError(field, "must be an object")
        code = row.get("course_code")
        if not isinstance(code, str) or not code.strip():
            raise InvalidInputError(f"{field}.course_code", "is required")
        status = str(row.get("status") or "planned").strip().lower()
        if status not in ASSIGNMENT_STATUSES:
            raise InvalidInputError(
                f"{field}.status", "must be one of: " + ", ".join(ASSIGNMENT_STATUSES),
            )
        grade = row.get("grade")
        assignments.append(PlannedCourseAssignment(
            course_code=code.strip(),
            semester=validate_semester_label(row.get("semester"), f"{field}.semester"),
            status=status,
            grade=str(grade).strip() if grade else None,
        ))
    return assignments


def parse_constraints(body: dict | None) -> OptimizationConstraints:
    body = body or {}
    target = parse_gpa(body.get("target_gpa"), "target_gpa", required=True)
    min_credits = parse_credits(body.get("min_credits"), "min_credits")
    max_credits = parse_credits(body.get("max_credits"), "max_credits")
    if min_credits is None:
        min_credits = 12
    if max_credits is None:
        max_credits = 18
    if min_credits > max_credits:
        raise InvalidInputError("min_credits", "must not exceed max_credits")
    return OptimizationConstraints(
        target_gpa=target,
        min_credits=min_credits,
        max_credits=max_credits,
        max_difficulty=parse_optional_float(
            body.get("max_difficulty"), "max_difficulty", minimum=1, maximum=5,
        ),
        required_courses=tuple(parse_course_list(body.get("required_courses"), "required_courses")),
        excluded_courses=tuple(parse_course_list(body.get("excluded_courses"), "excluded_courses")),
    )
