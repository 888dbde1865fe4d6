import math
import re


SEM_RE = re.compile(r"^(Spring|Summer|Fall)\s+(\d{4})$", re.IGNORECASE)

TERMS = ("Spring", "Summer", "Fall")
TERM_ORDER = {"Spring": 0, "Summer": 1, "Fall": 2}
DEFAULT_YEAR = 2024
CREDITS_PER_SEMESTER = 15


def normalize_semester_label(label: str) -> str:
    m = SEM_RE.match((label or "").strip())
    if not m:
        return label
    term = m.group(1).capitalize()
    year = int(m.group(2))
    return f"{term} {year}"


def semester_order(label: str) -> int:
    """
    Chronological sort key: year*10 + term (Spring 0, Summer 1, Fall 2).

    'Fall 2025' -> 20252, 'Spring 2026' -> 20260. An unreadable year falls
    back to 2024 and an unknown term sorts as Fall.
    """
    parts = str(label or "").split()
    term = parts[0].capitalize() if parts else ""
    try:
        year = int(parts[1])
    except (IndexError, ValueError):
        year = DEFAULT_YEAR
    return year * 10 + TERM_ORDER.get(term, TERM_ORDER["Fall"])


def generate_semesters(start: str, count: int, include_summer: bool = False) -> list[str]:
    """
    Consecutive semester labels starting at `start`.
    Summer terms are skipped after the first label unless include_summer is set.
    """
    parts = str(start or "").split()
    term = parts[0].capitalize() if parts else "Fall"
    try:
        year = int(parts[1])
    except (IndexError, ValueError):
        year = DEFAULT_YEAR
    idx = TERM_ORDER.get(term, TERM_ORDER["Fall"])

    labels: list[str] = []
    while len(labels) < count:
        if TERMS[idx] != "Summer" or include_summer or not labels:
            labels.append(f"{TERMS[idx]} {year}")
        idx = (idx + 1) % len(TERMS)
        if idx == 0:
            year += 1
    return labels


def semesters_between(start: str, end: str, include_summer: bool = False) -> list[str]:
    """Labels from `start` through `end` inclusive; empty when `end` precedes `start`."""
    first, last = semester_order(start), semester_order(end)
    if last < first:
        return []
    upper = (last // 10 - first // 10 + 1) * len(TERMS)
    return [
        label for label in generate_semesters(start, upper, include_summer)
        if semester_order(label) <= last
    ]


def estimate_semesters(total_credits: int, credits_per_term: int = CREDITS_PER_SEMESTER) -> int:
    """Rough semester count for a credit load, assuming ~15 credits per term."""
    if total_credits <= 0:
        return 0
    return math.ceil(total_credits / credits_per_term)
