"""
Tests for the catalog publish gate (scripts/validate_catalog.py).

All fixtures are synthetic CSVs written to tmp_path, plus one run against
the bundled demo catalog.
"""

import os

import pandas as pd
import pytest

from validate_catalog import ValidationResult, main, validate_catalog

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "data")


def _catalog(tmp_path, *rows):
    path = tmp_path / "courses.csv"
    pd.DataFrame(list(rows)).to_csv(path, index=False)
    return str(path)


def _course(code, prerequisites="", **extra):
    row = {"code": code, "name": code, "credits": 3, "avg_gpa": 3.0,
           "difficulty_rating": 3.0, "prerequisites": prerequisites}
    row.update(extra)
    return row


class TestValidationResult:
    def test_summary_pass(self):
        result = ValidationResult("courses.csv")
        assert result.summary() == "[PASS] Catalog 'courses.csv'\n  All checks passed."

    def test_summary_fail(self):
        result = ValidationResult("courses.csv")
        result.error("bad")
        result.warn("meh")
        assert result.summary() == "[FAIL] Catalog 'courses.csv'\n  [ERROR] bad\n  [WARN]  meh"
        assert result.passed is False


class TestValidateCatalog:
    def test_good_catalog(self, tmp_path):
        path = _catalog(tmp_path, _course("ECE 20001"), _course("ECE 20002", "ECE 20001"))
        result = validate_catalog(path)
        assert result.passed
        assert result.warnings == []

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "courses.csv"
        pd.DataFrame([{"code": "ECE 20001"}]).to_csv(path, index=False)
        result = validate_catalog(str(path))
        assert not result.passed
        assert "name" in result.errors[0]

    def test_duplicate_codes(self, tmp_path):
        path = _catalog(tmp_path, _course("ECE 20001"), _course("ece20001"))
        result = validate_catalog(path)
        assert any("Duplicate course code" in e for e in result.errors)

    def test_out_of_range_values(self, tmp_path):
        path = _catalog(
            tmp_path,
            _course("ECE 20001", avg_gpa=4.3),
            _course("ECE 20002", difficulty_rating=0.5),
        )
        result = validate_catalog(path)
        assert "avg_gpa outside [0, 4] for: ['ECE 20001']" in result.errors
        assert "difficulty_rating outside [1, 5] for: ['ECE 20002']" in result.errors

    def test_cycle_is_error(self, tmp_path):
        path = _catalog(tmp_path, _course("ECE 40100", "ECE 40200"), _course("ECE 40200", "ECE 40100"))
        result = validate_catalog(path)
        assert not result.passed
        assert result.errors[0].startswith("Prerequisite cycle: ")

    def test_unknown_prereq_is_warning(self, tmp_path):
        path = _catalog(tmp_path, _course("ECE 20001", "MA 26100"))
        result = validate_catalog(path)
        assert result.passed
        assert result.warnings == ["'MA 26100' is not in the catalog (referenced by ['ECE 20001'])"]

    def test_missing_file(self, tmp_path):
        result = validate_catalog(str(tmp_path / "nope.csv"))
        assert not result.passed
        assert result.errors[0].startswith("Could not read catalog")


class TestCli:
    def test_bundled_catalog_passes(self, capsys):
        assert main(["--path", DATA_DIR]) == 0
        assert "[PASS]" in capsys.readouterr().out

    def test_exit_code_on_failure(self, tmp_path):
        path = _catalog(tmp_path, _course("ECE 20001", avg_gpa=9))
        assert main(["--path", path]) == 1
