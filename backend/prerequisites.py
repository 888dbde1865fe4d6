"""
Prerequisite resolution over an in-memory catalog.

Pure helpers: readiness checks, available-course filtering, prerequisite
trees, take-order chains and next-semester suggestions. A catalog here is a
dict of canonical code -> Course (see build_catalog).

Prerequisite codes that are not in the catalog can never be satisfied by
catalog membership; callers that want them treated as met must list them in
the completed set.
"""

from typing import Iterable

from models import Course, effective_gpa, effective_level
from normalizer import canonical_code
from timeline import estimate_semesters
from unlocks import build_reverse_prereq_map, count_unlocks


DEFAULT_TREE_DEPTH = 5

# suggest_next_courses heuristic weights. Tunable; the ordering they produce
# is a preference, not an optimal schedule.
UNLOCK_WEIGHT = 10
LEVEL_CEILING = 50000
GPA_TIEBREAK_WEIGHT = 5
DEFAULT_TARGET_CREDITS = 15


class CyclicPrerequisiteError(ValueError):
    """Raised when prerequisite traversal runs into a cycle (A requires B requires A)."""

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        super().__init__(
            "Prerequisite cycle detected: " + " -> ".join(self.cycle)
        )


def build_catalog(courses: Iterable[Course]) -> dict[str, Course]:
    """Index courses by canonical code. The first entry for a code wins."""
    catalog: dict[str, Course] = {}
    for course in courses:
        catalog.setdefault(course.key, course)
    return catalog


def _completed_keys(completed: Iterable[str]) -> set[str]:
    return {canonical_code(c) for c in completed if canonical_code(c)}


def check_satisfied(course: Course, completed: Iterable[str]) -> dict:
    """
    Returns {"satisfied": bool, "missing": [prereq, ...]}.

    `missing` keeps each prerequisite as written in the catalog, in order.
    A course without prerequisites is always satisfied.
    """
    completed_set = _completed_keys(completed)
    missing = [p for p in course.prerequisites if canonical_code(p) not in completed_set]
    return {"satisfied": not missing, "missing": missing}


def available_courses(courses: Iterable[Course], completed: Iterable[str]) -> list[Course]:
    """Courses not yet completed whose prerequisites are all completed."""
    completed_set = _completed_keys(completed)
    return [
        course for course in courses
        if course.key not in completed_set
        and all(canonical_code(p) in completed_set for p in course.prerequisites)
    ]


def build_prerequisite_tree(
    course: Course,
    catalog: dict[str, Course],
    max_depth: int = DEFAULT_TREE_DEPTH,
) -> dict:
    """
    Expand a course into a nested prerequisite tree.

    Node shape:
      {"code": str, "course": Course | None, "depth": int, "prerequisites": [node, ...]}

    Nodes below max_depth are leaves without a course payload. Codes missing
    from the catalog are leaves with course=None. Raises CyclicPrerequisiteError
    when a code reappears on its own ancestor path.
    """
    path: list[str] = []

    def _node(code: str, depth: int) -> dict:
        if depth > max_depth:
            return {"code": code, "course": None, "depth": depth, "prerequisites": []}

        key = canonical_code(code)
        if key in path:
            raise CyclicPrerequisiteError(_cycle_labels(path, key, catalog) + [code])

        current = catalog.get(key)
        if current is None:
            return {"code": code, "course": None, "depth": depth, "prerequisites": []}

        path.append(key)
        children = [_node(p, depth + 1) for p in current.prerequisites]
        path.pop()
        return {"code": code, "course": current, "depth": depth, "prerequisites": children}

    return _node(course.code, 0)


def render_prerequisite_tree(node: dict, indent: str = "") -> str:
    """Indented text rendering, one 'CODE (N cr)' line per node."""
    line = f"{indent}{node['code']}"
    if node.get("course") is not None:
        line += f" ({node['course'].credits} cr)"
    lines = [line]
    for child in node.get("prerequisites", []):
        lines.append(render_prerequisite_tree(child, indent + "  ").rstrip("\n"))
    return "\n".join(lines) + "\n"


def tree_to_dict(node: dict) -> dict:
    """JSON-safe copy of a prerequisite tree (course payload reduced to a summary)."""
    course = node.get("course")
    return {
        "code": node["code"],
        "depth": node["depth"],
        "course": course.summary() if course is not None else None,
        "prerequisites": [tree_to_dict(child) for child in node.get("prerequisites", [])],
    }


def prerequisite_chain(
    target: Course,
    catalog: dict[str, Course],
    completed: Iterable[str],
) -> dict:
    """
    Take-order list of every course still needed to reach `target`, itself included.

    Post-order DFS: prerequisites are listed before the courses that need
    them. Completed courses are skipped, a course reached twice (diamond
    dependency) is listed once, and codes outside the catalog are skipped.

    Returns:
      {
        "target_course": "ECE 49500",
        "chain": ["ECE 20875", "ECE 30200", "ECE 49500"],
        "total_courses": 3,
        "total_credits": 9,
        "estimated_semesters": 1,
      }
    """
    completed_set = _completed_keys(completed)
    chain: list[Course] = []
    done: set[str] = set()
    in_progress: list[str] = []

    def _collect(code: str) -> None:
        key = canonical_code(code)
        if key in done or key in completed_set:
            return
        if key in in_progress:
            raise CyclicPrerequisiteError(_cycle_labels(in_progress, key, catalog) + [code])

        course = catalog.get(key)
        if course is None:
            done.add(key)
            return

        in_progress.append(key)
        for prereq in course.prerequisites:
            _collect(prereq)
        in_progress.pop()

        done.add(key)
        chain.append(course)

    _collect(target.code)

    credits = sum(c.credits for c in chain)
    return {
        "target_course": target.code,
        "chain": [c.code for c in chain],
        "total_courses": len(chain),
        "total_credits": credits,
        "estimated_semesters": estimate_semesters(credits),
    }


def suggest_next_courses(
    courses: list[Course],
    completed: Iterable[str],
    target_credits: int = DEFAULT_TARGET_CREDITS,
) -> list[Course]:
    """
    Pick a next-semester load from the currently available courses.

    Value per course:
      UNLOCK_WEIGHT per other catalog course that lists it as a prerequisite
      + (LEVEL_CEILING - level) / 1000   (earlier courses first)
      + GPA_TIEBREAK_WEIGHT * avg GPA      (tie-break)

    Courses are taken greedily in value order while the running credit total
    stays within target_credits; selection stops once the target is reached.
    """
    completed = list(completed)
    available = available_courses(courses, completed)
    reverse_map = build_reverse_prereq_map(courses)

    def _value(course: Course) -> float:
        value = UNLOCK_WEIGHT * count_unlocks(course.code, reverse_map)
        value += (LEVEL_CEILING - effective_level(course)) / 1000
        value += effective_gpa(course) * GPA_TIEBREAK_WEIGHT
        return value

    ranked = sorted(available, key=_value, reverse=True)

    selected: list[Course] = []
    running = 0
    for course in ranked:
        if running + course.credits <= target_credits:
            selected.append(course)
            running += course.credits
        if running >= target_credits:
            break
    return selected


def find_prerequisite_cycles(catalog: dict[str, Course]) -> list[list[str]]:
    """
    Every distinct prerequisite cycle reachable in the catalog, as code lists
    that start and end on the same course. Used for catalog integrity checks.
    """
    state: dict[str, str] = {}  # key -> "visiting" | "done"
    stack: list[str] = []
    cycles: list[list[str]] = []
    seen_cycles: set[frozenset] = set()

    def _visit(key: str) -> None:
        state[key] = "visiting"
        stack.append(key)
        for prereq in catalog[key].prerequisites:
            pkey = canonical_code(prereq)
            if pkey not in catalog:
                continue
            if state.get(pkey) == "visiting":
                members = stack[stack.index(pkey):]
                signature = frozenset(members)
                if signature not in seen_cycles:
                    seen_cycles.add(signature)
                    cycles.append([catalog[k].code for k in members] + [catalog[pkey].code])
            elif pkey not in state:
                _visit(pkey)
        stack.pop()
        state[key] = "done"

    for key in catalog:
        if key not in state:
            _visit(key)
    return cycles


def _cycle_labels(path: list[str], repeated_key: str, catalog: dict[str, Course]) -> list[str]:
    start = path.index(repeated_key)
    labels = []
    for key in path[start:]:
        course = catalog.get(key)
        labels.append(course.code if course is not None else key)
    return labels


def next_major_requirements(
    courses: Iterable[Course],
    completed: Iterable[str],
    planned: Iterable[str] = (),
    limit: int = 5,
) -> list[dict]:
    """
    Major-requirement courses that can be taken now, earliest first.

    Skips courses already completed or planned. Courses whose prerequisites
    were just completed sort 5000 levels earlier than their own level.

    Returns: [{"code", "name", "credits", "reason"}, ...]
    """
    completed = list(completed)
    completed_set = _completed_keys(completed)
    taken_or_planned = completed_set | _completed_keys(planned)

    ready = []
    for course in courses:
        if not course.is_major_requirement or course.key in taken_or_planned:
            continue
        if not check_satisfied(course, completed)["satisfied"]:
            continue

        level = effective_level(course)
        if course.prerequisites:
            reason = "Prereqs completed: " + ", ".join(course.prerequisites)
            priority = level - 5000
        else:
            reason = "No prerequisites required"
            priority = level
        if course.requirement_category:
            reason += f" · {course.requirement_category.capitalize()} requirement"

        ready.append(((priority, level), {
            "code": course.code,
            "name": course.name,
            "credits": course.credits,
            "reason": reason,
        }))

    ready.sort(key=lambda item: item[0])
    return [entry for _, entry in ready[:limit]]
