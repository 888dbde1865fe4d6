"""
Publish gate validator for the course catalog.

Checks data-quality rules that must pass before a catalog file is served.
Importable for tests and runnable as a standalone CLI.

Usage:
    python scripts/validate_catalog.py
    python scripts/validate_catalog.py --path data/courses.csv
    python scripts/validate_catalog.py --path path/to/catalog.xlsx
"""

import argparse
import os
import sys

try:
    import pandas as pd
except ImportError as e:
    sys.exit(f"Missing dependency: {e}. Run: pip install pandas")

BACKEND_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "backend")
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

from data_loader import REQUIRED_COLUMNS, _normalize_courses_df, _read_courses_frame, _row_to_course  # noqa: E402
from normalizer import canonical_code  # noqa: E402
from prerequisites import build_catalog, find_prerequisite_cycles  # noqa: E402

DEFAULT_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "data")


# ── Validation result ─────────────────────────────────────────────────────────

class ValidationResult:
    """Collects errors and warnings for a single catalog validation run."""

    def __init__(self, source: str):
        self.source = source
        self.errors: list[str] = []
        self.warnings: list[str] = []

    def error(self, msg: str) -> None:
        self.errors.append(msg)

    def warn(self, msg: str) -> None:
        self.warnings.append(msg)

    @property
    def passed(self) -> bool:
        return len(self.errors) == 0

    def summary(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        lines = [f"[{status}] Catalog '{self.source}'"]
        for e in self.errors:
            lines.append(f"  [ERROR] {e}")
        for w in self.warnings:
            lines.append(f"  [WARN]  {w}")
        if self.passed and not self.warnings:
            lines.append("  All checks passed.")
        return "\n".join(lines)


# ── Individual checks ─────────────────────────────────────────────────────────

def check_required_columns(courses_df: pd.DataFrame, result: ValidationResult) -> bool:
    """code, name and credits must be present. Returns False when later checks can't run."""
    columns = {str(c).strip() for c in courses_df.columns}
    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        result.error(f"Missing required column(s): {missing}")
        return False
    if len(courses_df) == 0:
        result.error("Catalog has no course rows.")
        return False
    return True


def check_duplicate_codes(courses_df: pd.DataFrame, result: ValidationResult) -> None:
    keys = courses_df["code"].map(canonical_code)
    dupes = sorted(set(courses_df.loc[keys.duplicated(keep=False), "code"]))
    if dupes:
        result.error(f"Duplicate course code(s): {dupes}")


def _out_of_range(courses_df: pd.DataFrame, col: str, low: float, high: float | None) -> list[str]:
    if col not in courses_df.columns:
        return []
    values = pd.to_numeric(courses_df[col], errors="coerce")
    bad = values < low
    if high is not None:
        bad = bad | (values > high)
    return sorted(courses_df.loc[bad, "code"].tolist())


def check_numeric_ranges(courses_df: pd.DataFrame, result: ValidationResult) -> None:
    """avg_gpa in [0, 4], difficulty_rating in [1, 5], credits and workload non-negative."""
    for col, low, high in (
        ("avg_gpa", 0, 4),
        ("difficulty_rating", 1, 5),
        ("credits", 0, None),
        ("workload_hours", 0, None),
    ):
        bad = _out_of_range(courses_df, col, low, high)
        if bad:
            bound = f"[{low}, {high}]" if high is not None else f">= {low}"
            result.error(f"{col} outside {bound} for: {bad}")

    credits = pd.to_numeric(courses_df["credits"], errors="coerce")
    missing = sorted(courses_df.loc[credits.isna(), "code"].tolist())
    if missing:
        result.error(f"credits missing or not numeric for: {missing}")


def check_prerequisite_cycles(catalog: dict, result: ValidationResult) -> None:
    for cycle in find_prerequisite_cycles(catalog):
        result.error(f"Prerequisite cycle: {' -> '.join(cycle)}")


def check_unknown_prerequisites(catalog: dict, result: ValidationResult) -> None:
    """References to codes outside the catalog only warn; they count as never satisfied."""
    unknown = {}
    for course in catalog.values():
        for ref in (*course.prerequisites, *course.corequisites):
            if canonical_code(ref) not in catalog:
                unknown.setdefault(ref, []).append(course.code)
    for ref in sorted(unknown):
        result.warn(f"'{ref}' is not in the catalog (referenced by {sorted(unknown[ref])})")


# ── Main validate function ────────────────────────────────────────────────────

def validate_catalog(path: str) -> ValidationResult:
    """Run all publish gate checks for one catalog file. Returns a ValidationResult."""
    result = ValidationResult(os.path.basename(os.path.normpath(path)))

    try:
        raw_df = _read_courses_frame(path)
    except (FileNotFoundError, ValueError) as exc:
        result.error(f"Could not read catalog: {exc}")
        return result

    raw_df = raw_df.rename(columns=lambda c: str(c).strip())
    if not check_required_columns(raw_df, result):
        return result

    courses_df = _normalize_courses_df(raw_df)
    check_duplicate_codes(courses_df, result)
    check_numeric_ranges(courses_df, result)
    if not result.passed:
        return result

    catalog = build_catalog(_row_to_course(row) for row in courses_df.to_dict(orient="records"))
    check_prerequisite_cycles(catalog, result)
    check_unknown_prerequisites(catalog, result)
    return result


# ── CLI entry point ───────────────────────────────────────────────────────────

def main(args=None):
    parser = argparse.ArgumentParser(
        description="Validate the course catalog before publishing.",
    )
    parser.add_argument(
        "--path", type=str, default=DEFAULT_PATH,
        help="Path to courses.csv, a directory holding it, or an .xlsx workbook.",
    )
    opts = parser.parse_args(args)

    result = validate_catalog(opts.path)
    print(result.summary())
    return 0 if result.passed else 1


if __name__ == "__main__":
    sys.exit(main())
