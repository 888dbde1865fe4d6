import os

import pandas as pd
import pytest

from data_loader import load_catalog
from models import Course

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")


def _write_csv(path, rows):
    pd.DataFrame(rows).to_csv(path, index=False)
    return str(path)


@pytest.fixture
def rows():
    return [
        {"code": "ECE 20001", "name": "Circuits I", "credits": 3, "avg_gpa": 2.85,
         "prerequisites": "", "semesters": "Fall;Spring", "has_friday_class": "TRUE",
         "is_major_requirement": "yes", "level": 20000},
        {"code": "ECE 20002", "name": "Circuits II", "credits": 3, "avg_gpa": None,
         "prerequisites": "ECE 20001", "semesters": "Spring", "has_friday_class": "FALSE",
         "is_major_requirement": 0, "level": 20000},
    ]


class TestLoadCatalog:
    def test_loads_csv(self, tmp_path, rows):
        data = load_catalog(_write_csv(tmp_path / "courses.csv", rows))
        assert [c.code for c in data["courses"]] == ["ECE 20001", "ECE 20002"]
        assert data["catalog_codes"] == {"ECE20001", "ECE20002"}
        assert data["reverse_map"] == {"ECE20001": ["ECE 20002"]}

    def test_column_coercion(self, tmp_path, rows):
        data = load_catalog(_write_csv(tmp_path / "courses.csv", rows))
        first, second = data["courses"]
        assert isinstance(first, Course)
        assert first.semesters == ("Fall", "Spring")
        assert first.has_friday_class is True
        assert first.is_major_requirement is True
        assert first.level == 20000
        assert second.prerequisites == ("ECE 20001",)
        assert second.avg_gpa is None
        assert second.is_major_requirement is False

    def test_directory_path(self, tmp_path, rows):
        _write_csv(tmp_path / "courses.csv", rows)
        assert len(load_catalog(str(tmp_path))["courses"]) == 2

    def test_xlsx_courses_sheet(self, tmp_path, rows):
        path = str(tmp_path / "catalog.xlsx")
        with pd.ExcelWriter(path, engine="openpyxl") as w:
            pd.DataFrame(rows).to_excel(w, sheet_name="courses", index=False)
        assert load_catalog(path)["catalog"]["ECE20002"].name == "Circuits II"

    def test_missing_required_column(self, tmp_path):
        path = _write_csv(tmp_path / "courses.csv", [{"code": "ECE 20001", "name": "Circuits I"}])
        with pytest.raises(ValueError, match="credits"):
            load_catalog(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_catalog(str(tmp_path / "nope.csv"))

    def test_duplicate_codes_first_kept(self, tmp_path, rows, capsys):
        dup = dict(rows[0], name="Circuits I (dup)", code="ece20001")
        data = load_catalog(_write_csv(tmp_path / "courses.csv", rows + [dup]))
        assert data["catalog"]["ECE20001"].name == "Circuits I"
        assert "duplicate" in capsys.readouterr().err

    def test_integrity_warnings(self, tmp_path, rows, capsys):
        rows[0]["prerequisites"] = "MA 26100"
        rows[1]["avg_gpa"] = 4.5
        load_catalog(_write_csv(tmp_path / "courses.csv", rows))
        err = capsys.readouterr().err
        assert "MA 26100" in err
        assert "avg_gpa outside [0, 4]" in err

    def test_cycle_warning(self, tmp_path, rows, capsys):
        rows[0]["prerequisites"] = "ECE 20002"
        data = load_catalog(_write_csv(tmp_path / "courses.csv", rows))
        assert len(data["courses"]) == 2
        assert "Prerequisite cycle" in capsys.readouterr().err


class TestBundledCatalog:
    def test_demo_catalog_loads(self):
        data = load_catalog(DATA_DIR)
        assert len(data["courses"]) == 15
        circuits = data["catalog"]["ECE20001"]
        assert circuits.prerequisites == ("PHYS 17200", "MA 26100")
        assert circuits.requirement_category == "core"
