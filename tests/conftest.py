# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from resultease.domain import ResultSet
from resultease.logging.init import reset_logging
from tests.helpers import CLASS_ROWS


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("RESULTEASE_CONFIG", raising=False)
        monkeypatch.delenv("RESULTEASE_LOG_DIR", raising=False)
        yield p


@pytest.fixture(autouse=True)
def _fresh_logging():
    # handlers bind sys.stdout at setup time; capsys swaps it per test
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_config_yaml() -> str:
    return """reader:
  header_row: 0
  max_rows: 500
analysis:
  pass_threshold: 40
  excellence_threshold: 85
  min_failures: 2
  trend_threshold: 5
mapping:
  overrides:
    Adm: roll_number
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "analysis.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def class_rows() -> list[list[object]]:
    return [list(r) for r in CLASS_ROWS]


@pytest.fixture()
def class_result() -> ResultSet:
    """Four students, three subjects; unranked."""
    subjects = ["Mathematics", "Science", "English"]
    students = [
        {"name": r[0], "roll_number": r[1], "marks": dict(zip(subjects, r[2:]))}
        for r in CLASS_ROWS[1:]
    ]
    return ResultSet.from_raw_data("test-result-1", "Test Result", subjects, students)


@pytest.fixture()
def analytics_result() -> ResultSet:
    """Five students spanning excellent to failing."""
    subjects = ["Mathematics", "Science", "English"]
    rows = [
        ("Excellent Student", "001", [95, 92, 88]),
        ("Good Student", "002", [78, 82, 76]),
        ("Average Student", "003", [65, 68, 62]),
        ("Struggling Student", "004", [35, 38, 42]),
        ("Failed Student", "005", [25, 28, 32]),
    ]
    students = [{"name": n, "roll_number": r, "marks": dict(zip(subjects, m))} for n, r, m in rows]
    return ResultSet.from_raw_data("analytics-test", "Analytics Test", subjects, students)
