"""
Tests for request validation helpers. Pure functions; no Flask app needed.
"""

import pytest

# conftest.py already adds backend/ to sys.path
from validators import (
    InvalidInputError,
    parse_assignments,
    parse_bool_flag,
    parse_constraints,
    parse_course_list,
    parse_credits,
    parse_gpa,
    parse_optional_float,
    parse_optional_int,
    parse_preferences,
    parse_tag_list,
    validate_semester_label,
)


class TestNumbers:
    @pytest.mark.parametrize("raw", [None, "", "any", " ANY "])
    def test_unset(self, raw):
        assert parse_optional_float(raw, "x") is None

    def test_numeric_string(self):
        assert parse_optional_float("3.25", "x") == 3.25

    @pytest.mark.parametrize("raw", [True, "abc", "nan", "inf", [1]])
    def test_rejected(self, raw):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_optional_float(raw, "x")
        assert exc_info.value.field == "x"

    def test_bounds(self):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_optional_float(-1, "x", minimum=0)
        assert exc_info.value.message == "must be >= 0"

    def test_int_requires_whole_number(self):
        assert parse_optional_int("12", "n") == 12
        with pytest.raises(InvalidInputError):
            parse_optional_int("12.5", "n")

    def test_gpa_range(self):
        assert parse_gpa(4.0) == 4.0
        with pytest.raises(InvalidInputError):
            parse_gpa(4.1)

    def test_required(self):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_credits(None, "current_credits", required=True)
        assert str(exc_info.value) == "current_credits: is required"


class TestBoolFlag:
    @pytest.mark.parametrize("raw,expected", [
        (True, True), ("true", True), ("1", True), ("on", True),
        (False, False), ("false", False), ("0", False), (None, False), ("any", False),
    ])
    def test_values(self, raw, expected):
        assert parse_bool_flag(raw) is expected

    def test_garbage(self):
        with pytest.raises(InvalidInputError):
            parse_bool_flag("maybe", "gen_ed")


class TestLists:
    def test_course_list_normalized(self):
        assert parse_course_list(["ece-20001", "MA 26100"]) == ["ECE 20001", "MA 26100"]

    def test_course_list_from_string(self):
        assert parse_course_list("ECE 20001, ma26100") == ["ECE 20001", "MA 26100"]

    def test_unparseable_code_kept(self):
        assert parse_course_list(["SPECIAL"]) == ["SPECIAL"]

    def test_course_list_type_errors(self):
        with pytest.raises(InvalidInputError):
            parse_course_list(42)
        with pytest.raises(InvalidInputError):
            parse_course_list(["ECE 20001", 7])

    def test_tag_list(self):
        assert parse_tag_list(["ml", " ", "dsp "], "interests") == ("ml", "dsp")
        assert parse_tag_list("ml,dsp", "interests") == ("ml", "dsp")
        with pytest.raises(InvalidInputError):
            parse_tag_list({"ml": 1}, "interests")


class TestSemesterLabel:
    def test_normalized(self):
        assert validate_semester_label("fall 2025") == "Fall 2025"

    @pytest.mark.parametrize("raw", ["Winter 2025", "Fall", "2025", None])
    def test_rejected(self, raw):
        with pytest.raises(InvalidInputError):
            validate_semester_label(raw)


class TestParsePreferences:
    def test_nested_preferences(self):
        prefs = parse_preferences({
            "preferences": {
                "career_goals": ["ml"],
                "interests": ["robotics"],
                "target_gpa": 3.5,
                "preferred_difficulty": "Easy",
                "completed_courses": ["ece20001"],
                "current_semester": "fall 2025",
            }
        })
        assert prefs.career_goals == ("ml",)
        assert prefs.preferred_difficulty == "easy"
        assert prefs.completed_courses == ("ECE 20001",)
        assert prefs.current_semester == "Fall 2025"

    def test_top_level_completed(self):
        prefs = parse_preferences({"preferences": {}, "completed_courses": "ECE 20001"})
        assert prefs.completed_courses == ("ECE 20001",)

    def test_empty_body(self):
        prefs = parse_preferences(None)
        assert prefs.career_goals == ()
        assert prefs.target_gpa is None

    def test_bad_difficulty(self):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_preferences({"preferred_difficulty": "brutal"})
        assert exc_info.value.field == "preferred_difficulty"

    def test_preferences_not_object(self):
        with pytest.raises(InvalidInputError):
            parse_preferences({"preferences": ["ml"]})


class TestParseAssignments:
    def test_valid_rows(self):
        rows = parse_assignments([
            {"course_code": "ECE 20001", "semester": "Fall 2025"},
            {"course_code": "ECE 20002", "semester": "spring 2026", "status": "Completed", "grade": "A"},
        ])
        assert rows[0].status == "planned"
        assert rows[1].semester == "Spring 2026"
        assert rows[1].status == "completed"
        assert rows[1].grade == "A"

    def test_field_path_in_error(self):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_assignments([{"course_code": "ECE 20001", "semester": "Fall 2025", "status": "dropped"}])
        assert exc_info.value.field == "planned_courses[0].status"

    def test_missing_code(self):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_assignments([{"semester": "Fall 2025"}])
        assert exc_info.value.field == "planned_courses[0].course_code"

    def test_not_a_list(self):
        with pytest.raises(InvalidInputError):
            parse_assignments({"course_code": "ECE 20001"})


class TestParseConstraints:
    def test_defaults(self):
        c = parse_constraints({"target_gpa": 3.5})
        assert (c.min_credits, c.max_credits) == (12, 18)
        assert c.max_difficulty is None

    def test_target_required(self):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_constraints({})
        assert exc_info.value.field == "target_gpa"

    def test_min_above_max(self):
        with pytest.raises(InvalidInputError):
            parse_constraints({"target_gpa": 3.0, "min_credits": 15, "max_credits": 12})

    def test_course_lists(self):
        c = parse_constraints({"target_gpa": 3.0, "required_courses": ["ece20001"], "excluded_courses": "MA 26100"})
        assert c.required_courses == ("ECE 20001",)
        assert c.excluded_courses == ("MA 26100",)
