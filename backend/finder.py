"""
Course finder: typed search criteria composed into a single predicate.

Each set field of FinderCriteria contributes one check; a course matches
when every check passes. Unset fields (None / False / empty) add nothing.
"""

from dataclasses import dataclass, fields
from typing import Callable, Iterable

from models import Course
from validators import (
    parse_bool_flag,
    parse_optional_float,
    parse_optional_int,
    parse_tag_list,
)


GRADUATE_LEVEL = 50000
LEVEL_BAND = 10000
TUE_THU_DAYS = {"TR", "T", "R"}
DEFAULT_LIST_LIMIT = 100
LIST_SORTS = ("code", "gpa", "difficulty", "reviews")

CoursePredicate = Callable[[Course], bool]


@dataclass(frozen=True)
class FinderCriteria:
    min_credits: int | None = None
    max_credits: int | None = None
    min_gpa: float | None = None
    max_gpa: float | None = None
    max_workload_hours: float | None = None
    max_difficulty: float | None = None
    no_prerequisites: bool = False
    semester: str | None = None
    level: int | None = None
    career_tags: tuple[str, ...] = ()
    search: str | None = None
    professor: str | None = None
    no_friday_classes: bool = False
    no_morning_classes: bool = False
    only_tue_thu: bool = False
    only_online_hybrid: bool = False
    max_exams: int | None = None
    project_based: bool = False
    exam_based: bool = False
    homework_intensity: str | None = None
    coding_heavy: bool = False
    math_heavy: bool = False
    exam_intensity: str | None = None
    has_group_projects: bool = False
    major_requirement: bool = False
    tech_elective: bool = False
    gen_ed: bool = False
    lab_credit: bool = False

    @classmethod
    def from_query(cls, query) -> "FinderCriteria":
        """
        Parse query-string values (snake_case keys). "any" and "" leave a
        filter unset; boolean flags accept true/false/1/0.
        Raises InvalidInputError on malformed numbers.
        """
        kwargs = {}
        for f in fields(cls):
            raw = query.get(f.name)
            if raw is None:
                continue
            if f.name in ("min_credits", "max_credits", "level", "max_exams"):
                kwargs[f.name] = parse_optional_int(raw, f.name, minimum=0)
            elif f.name in ("min_gpa", "max_gpa"):
                kwargs[f.name] = parse_optional_float(raw, f.name, minimum=0, maximum=4)
            elif f.name in ("max_workload_hours", "max_difficulty"):
                kwargs[f.name] = parse_optional_float(raw, f.name, minimum=0)
            elif f.name == "career_tags":
                kwargs[f.name] = parse_tag_list(raw, f.name)
            elif f.type is bool:
                kwargs[f.name] = parse_bool_flag(raw, f.name)
            else:
                text = str(raw).strip()
                kwargs[f.name] = None if text.lower() in ("", "any", "all") else text
        return cls(**kwargs)


def _at_least(attr: str, bound: float) -> CoursePredicate:
    def check(course: Course) -> bool:
        value = getattr(course, attr)
        return value is not None and value >= bound
    return check


def _at_most(attr: str, bound: float) -> CoursePredicate:
    def check(course: Course) -> bool:
        value = getattr(course, attr)
        return value is not None and value <= bound
    return check


def _flag_is(attr: str, expected: bool) -> CoursePredicate:
    return lambda course: bool(getattr(course, attr)) is expected


def _equals(attr: str, expected: str) -> CoursePredicate:
    return lambda course: getattr(course, attr) == expected


def _level_band(level: int) -> CoursePredicate:
    if level >= GRADUATE_LEVEL:
        return _at_least("level", GRADUATE_LEVEL)

    def check(course: Course) -> bool:
        return course.level is not None and level <= course.level < level + LEVEL_BAND
    return check


def _text_search(term: str) -> CoursePredicate:
    needle = term.lower()

    def check(course: Course) -> bool:
        return any(
            needle in (text or "").lower()
            for text in (course.code, course.name, course.description)
        )
    return check


def _professor(name: str) -> CoursePredicate:
    needle = name.lower()
    return lambda course: any(needle in p.lower() for p in course.professors)


def build_course_predicate(criteria: FinderCriteria) -> CoursePredicate:
    """AND of one check per set criteria field. No criteria matches everything."""
    checks: list[CoursePredicate] = []

    if criteria.min_credits is not None:
        checks.append(_at_least("credits", criteria.min_credits))
    if criteria.max_credits is not None:
        checks.append(_at_most("credits", criteria.max_credits))
    if criteria.min_gpa is not None:
        checks.append(_at_least("avg_gpa", criteria.min_gpa))
    if criteria.max_gpa is not None:
        checks.append(_at_most("avg_gpa", criteria.max_gpa))
    if criteria.max_workload_hours is not None:
        checks.append(_at_most("workload_hours", criteria.max_workload_hours))
    if criteria.max_difficulty is not None:
        checks.append(_at_most("difficulty_rating", criteria.max_difficulty))
    if criteria.max_exams is not None:
        checks.append(_at_most("num_exams", criteria.max_exams))
    if criteria.level is not None:
        checks.append(_level_band(criteria.level))

    if criteria.no_prerequisites:
        checks.append(lambda course: not course.prerequisites)
    if criteria.semester:
        checks.append(lambda course: criteria.semester in course.semesters)
    if criteria.career_tags:
        wanted = set(criteria.career_tags)
        checks.append(lambda course: bool(wanted.intersection(course.career_tags)))
    if criteria.search:
        checks.append(_text_search(criteria.search))
    if criteria.professor:
        checks.append(_professor(criteria.professor))

    if criteria.no_friday_classes:
        checks.append(_flag_is("has_friday_class", False))
    if criteria.no_morning_classes:
        checks.append(_flag_is("has_morning_section", False))
    if criteria.only_tue_thu:
        checks.append(lambda course: any(d in TUE_THU_DAYS for d in course.typical_days))
    if criteria.only_online_hybrid:
        checks.append(lambda course: course.has_online_option or course.has_hybrid_option)

    if criteria.project_based:
        checks.append(_flag_is("is_project_based", True))
    if criteria.exam_based:
        checks.append(_flag_is("is_exam_based", True))
    if criteria.homework_intensity:
        checks.append(_equals("homework_intensity", criteria.homework_intensity))
    if criteria.coding_heavy:
        checks.append(_flag_is("is_coding_heavy", True))
    if criteria.math_heavy:
        checks.append(_flag_is("is_math_heavy", True))
    if criteria.exam_intensity:
        checks.append(_equals("exam_intensity", criteria.exam_intensity))
    if criteria.has_group_projects:
        checks.append(_flag_is("has_group_projects", True))

    if criteria.major_requirement:
        checks.append(_flag_is("is_major_requirement", True))
    if criteria.tech_elective:
        checks.append(_flag_is("is_tech_elective", True))
    if criteria.gen_ed:
        checks.append(_flag_is("is_gen_ed", True))
    if criteria.lab_credit:
        checks.append(_flag_is("is_lab_credit", True))

    return lambda course: all(check(course) for check in checks)


def _gpa_then_code(course: Course):
    # Missing GPA sorts after every real value.
    has_gpa = course.avg_gpa is not None
    return (not has_gpa, -(course.avg_gpa or 0.0), course.code)


def find_courses(courses: Iterable[Course], criteria: FinderCriteria) -> list[Course]:
    """Matching courses, highest average GPA first, then by code."""
    matches = build_course_predicate(criteria)
    return sorted((c for c in courses if matches(c)), key=_gpa_then_code)


def list_courses(
    courses: Iterable[Course],
    level: int | None = None,
    search: str | None = None,
    sort: str = "code",
    limit: int = DEFAULT_LIST_LIMIT,
) -> list[Course]:
    """
    Catalog browsing. `level` selects a 10000-wide band, `search` matches
    code or name. Unknown sort keys fall back to code order.
    """
    rows = list(courses)
    if level is not None:
        rows = [c for c in rows if c.level is not None and level <= c.level < level + LEVEL_BAND]
    if search:
        needle = search.lower()
        rows = [c for c in rows if needle in c.code.lower() or needle in (c.name or "").lower()]

    if sort == "gpa":
        rows.sort(key=_gpa_then_code)
    elif sort == "difficulty":
        rows.sort(key=lambda c: (c.difficulty_rating is None, c.difficulty_rating or 0.0, c.code))
    elif sort == "reviews":
        rows.sort(key=lambda c: (-(c.review_count or 0), c.code))
    else:
        rows.sort(key=lambda c: c.code)
    return rows[:max(limit, 0)]
