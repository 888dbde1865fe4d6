from typing import Iterable

from models import Course
from normalizer import canonical_code


def build_reverse_prereq_map(courses: Iterable[Course]) -> dict[str, list[str]]:
    """
    Builds a reverse prerequisite map: for each course, which courses directly
    list it as a prerequisite.

    Keys are canonical codes; values are dependent course codes as written in
    the catalog.

    Returns: {"ECE20001": ["ECE 20002"], "ECE26400": ["ECE 36200", "ECE 36800"], ...}

    Only direct prerequisites (one level deep). No transitive graph traversal.
    """
    reverse: dict[str, list[str]] = {}

    for course in courses:
        for prereq in course.prerequisites:
            key = canonical_code(prereq)
            if not key or key == course.key:
                continue
            dependents = reverse.setdefault(key, [])
            if course.code not in dependents:
                dependents.append(course.code)

    return reverse


def count_unlocks(course_code: str, reverse_map: dict[str, list[str]]) -> int:
    """Number of catalog courses that list `course_code` as a direct prerequisite."""
    return len(reverse_map.get(canonical_code(course_code), []))


def get_direct_unlocks(
    course_code: str,
    reverse_map: dict[str, list[str]],
    limit: int = 3,
) -> list[str]:
    """
    Returns up to `limit` courses directly unlocked by completing `course_code`.
    A course is "unlocked" if it lists `course_code` as a direct prerequisite.
    """
    return reverse_map.get(canonical_code(course_code), [])[:limit]
