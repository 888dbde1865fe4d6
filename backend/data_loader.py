import os
import sys

import pandas as pd

from models import Course
from normalizer import canonical_code
from prerequisites import build_catalog, find_prerequisite_cycles
from unlocks import build_reverse_prereq_map


_BOOL_TRUTHY = {"true", "1", "yes", "y"}
LIST_SEPARATOR = ";"

REQUIRED_COLUMNS = ("code", "name", "credits")

BOOL_COLUMNS = (
    "has_morning_section",
    "has_afternoon_section",
    "has_evening_section",
    "has_friday_class",
    "has_online_option",
    "has_hybrid_option",
    "is_project_based",
    "is_exam_based",
    "is_coding_heavy",
    "is_math_heavy",
    "has_group_projects",
    "is_major_requirement",
    "is_tech_elective",
    "is_gen_ed",
    "is_lab_credit",
)
LIST_COLUMNS = (
    "career_tags",
    "interest_tags",
    "prerequisites",
    "corequisites",
    "semesters",
    "professors",
    "typical_days",
)
INT_COLUMNS = ("credits", "review_count", "level", "num_exams")
FLOAT_COLUMNS = ("avg_gpa", "difficulty_rating", "workload_hours")
TEXT_COLUMNS = ("name", "description", "homework_intensity", "exam_intensity", "requirement_category")


def _safe_bool_col(df: pd.DataFrame, col: str) -> pd.DataFrame:
    """Normalize a boolean column to Python bool regardless of CSV/Excel format.

    Handles: Python bool, Excel int/float (1/0), and string variants
    (TRUE/FALSE, true/false, 1/0, yes/no, y/n). NaN → False.
    """
    def _coerce(x):
        if pd.isna(x):
            return False
        if isinstance(x, bool):
            return x
        if isinstance(x, (int, float)):
            return bool(x)
        return str(x).strip().lower() in _BOOL_TRUTHY

    if col in df.columns:
        df[col] = df[col].apply(_coerce)
    return df


def _split_list_col(df: pd.DataFrame, col: str) -> pd.DataFrame:
    """'ECE 20001; MA 26100' -> ('ECE 20001', 'MA 26100'). NaN → ()."""
    def _split(x):
        if isinstance(x, (list, tuple)):
            return tuple(str(v).strip() for v in x if str(v).strip())
        if pd.isna(x):
            return ()
        return tuple(t.strip() for t in str(x).split(LIST_SEPARATOR) if t.strip())

    if col in df.columns:
        df[col] = df[col].apply(_split)
    return df


def _optional_number(x, cast):
    if x is None or pd.isna(x):
        return None
    return cast(x)


def _read_courses_frame(data_path: str) -> pd.DataFrame:
    """
    Accepts a .csv file, a directory holding courses.csv, or an .xlsx
    workbook with a "courses" sheet.
    """
    if os.path.isdir(data_path):
        csv_path = os.path.join(data_path, "courses.csv")
        if not os.path.exists(csv_path):
            raise FileNotFoundError(csv_path)
        return pd.read_csv(csv_path)
    if not os.path.exists(data_path):
        raise FileNotFoundError(data_path)
    if data_path.lower().endswith((".xlsx", ".xlsm")):
        return pd.read_excel(data_path, sheet_name="courses", engine="openpyxl")
    return pd.read_csv(data_path)


def _normalize_courses_df(courses_df: pd.DataFrame) -> pd.DataFrame:
    courses_df = courses_df.copy()
    courses_df.columns = [str(c).strip() for c in courses_df.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in courses_df.columns]
    if missing:
        raise ValueError(f"courses data is missing required column(s): {missing}")

    courses_df["code"] = courses_df["code"].astype(str).str.strip()
    courses_df = courses_df[~courses_df["code"].str.lower().isin(["", "nan"])].copy()

    for col in BOOL_COLUMNS:
        courses_df = _safe_bool_col(courses_df, col)
    for col in LIST_COLUMNS:
        courses_df = _split_list_col(courses_df, col)
    for col in TEXT_COLUMNS:
        if col in courses_df.columns:
            courses_df[col] = courses_df[col].apply(
                lambda x: None if pd.isna(x) else str(x).strip()
            )
    return courses_df


def _row_to_course(row: dict) -> Course:
    record = dict(row)
    for col in INT_COLUMNS:
        if col in record:
            record[col] = _optional_number(record[col], lambda v: int(float(v)))
    for col in FLOAT_COLUMNS:
        if col in record:
            record[col] = _optional_number(record[col], float)
    if record.get("credits") is None:
        record["credits"] = 0
    if record.get("review_count") is None:
        record["review_count"] = 0
    for col in ("name", "description"):
        if record.get(col) is None:
            record[col] = ""
    return Course.from_record(record)


def _integrity_warnings(courses: list[Course], catalog: dict[str, Course]) -> None:
    unknown = sorted({
        p for c in courses for p in c.prerequisites
        if canonical_code(p) not in catalog
    })
    if unknown:
        print(
            f"[WARN] {len(unknown)} prerequisite code(s) not found in catalog: {unknown}",
            file=sys.stderr,
        )

    cycles = find_prerequisite_cycles(catalog)
    for cycle in cycles:
        print(f"[WARN] Prerequisite cycle: {' -> '.join(cycle)}", file=sys.stderr)

    bad_gpa = sorted(c.code for c in courses if c.avg_gpa is not None and not 0 <= c.avg_gpa <= 4)
    if bad_gpa:
        print(f"[WARN] {len(bad_gpa)} course(s) have avg_gpa outside [0, 4]: {bad_gpa}", file=sys.stderr)

    bad_difficulty = sorted(
        c.code for c in courses
        if c.difficulty_rating is not None and not 1 <= c.difficulty_rating <= 5
    )
    if bad_difficulty:
        print(
            f"[WARN] {len(bad_difficulty)} course(s) have difficulty_rating outside [1, 5]: {bad_difficulty}",
            file=sys.stderr,
        )


def load_catalog(data_path: str) -> dict:
    """Load and parse the course catalog. Raises on file/schema errors."""
    courses_df = _normalize_courses_df(_read_courses_frame(data_path))
    courses = [_row_to_course(row) for row in courses_df.to_dict(orient="records")]

    catalog = build_catalog(courses)
    if len(catalog) != len(courses):
        print(
            f"[WARN] {len(courses) - len(catalog)} duplicate course code(s); first entry kept",
            file=sys.stderr,
        )
    _integrity_warnings(courses, catalog)

    return {
        "courses": list(catalog.values()),
        "catalog": catalog,
        "catalog_codes": set(catalog),
        "reverse_map": build_reverse_prereq_map(catalog.values()),
    }
