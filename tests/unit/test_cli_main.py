from __future__ import annotations

from pathlib import Path

import pytest

from resultease.cli.__main__ import main as cli_main
from tests.helpers import CLASS_ROWS, make_excel


def test_no_files_is_fatal(temp_workdir: Path, capsys):
    code = cli_main([])
    assert code == 1
    assert "ERROR no input files given" in capsys.readouterr().out


def test_invalid_config_is_fatal(temp_workdir: Path, capsys):
    cfg = temp_workdir / "config" / "analysis.yml"
    cfg.write_text("analysis:\n  pass_threshold: 500\n", encoding="utf-8")
    path = make_excel(temp_workdir / "data" / "term1.xlsx", {"Results": CLASS_ROWS})
    code = cli_main([str(path)])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_explicit_missing_config_is_fatal(temp_workdir: Path, capsys):
    path = make_excel(temp_workdir / "data" / "term1.xlsx", {"Results": CLASS_ROWS})
    code = cli_main([str(path), "--config", str(temp_workdir / "nope.yml")])
    assert code == 1
    assert "config file not found" in capsys.readouterr().out


def test_inspect_data(temp_workdir: Path, capsys):
    path = make_excel(temp_workdir / "data" / "term1.xlsx", {"Results": CLASS_ROWS})
    code = cli_main([str(path), "--inspect-data"])
    out = capsys.readouterr().out
    assert code == 0
    assert "FILE: term1.xlsx" in out
    assert "SHEET: Results cols=" in out
    assert "sample_rows=" in out
    assert "map: Roll No -> roll_number" in out
    assert "map: Mathematics -> subject_mathematics" in out
    assert "SUMMARY" not in out


def test_inspect_data_reports_read_errors(temp_workdir: Path, capsys):
    bad = temp_workdir / "data" / "broken.xlsx"
    bad.write_bytes(b"not a workbook")
    code = cli_main([str(bad), "--inspect-data"])
    assert code == 0
    assert "read_error:" in capsys.readouterr().out


def test_debug_flag(temp_workdir: Path, capsys):
    path = make_excel(temp_workdir / "data" / "term1.xlsx", {"Results": CLASS_ROWS})
    code = cli_main([str(path), "--debug"])
    out = capsys.readouterr().out
    assert code == 0
    assert "DEBUG debug mode enabled" in out
    assert "DEBUG term1.xlsx: mapping confidence=1.0" in out


def test_sheet_option_selects_sheet(temp_workdir: Path, capsys):
    path = make_excel(
        temp_workdir / "data" / "terms.xlsx",
        {"Notes": [["Remarks"], ["none"]], "Results": CLASS_ROWS},
    )
    code = cli_main([str(path), "--sheet", "Results"])
    out = capsys.readouterr().out
    assert code == 0
    assert "read sheet 'Results'" in out


def test_env_file_config(temp_workdir: Path, capsys, monkeypatch):
    # recorded so the value .env injects is undone after the test
    monkeypatch.setenv("RESULTEASE_CONFIG", "")
    other = temp_workdir / "strict.yml"
    other.write_text("analysis:\n  pass_threshold: 90\n", encoding="utf-8")
    (temp_workdir / ".env").write_text(f"RESULTEASE_CONFIG={other}\n", encoding="utf-8")
    path = make_excel(temp_workdir / "data" / "term1.xlsx", {"Results": CLASS_ROWS})
    code = cli_main([str(path)])
    out = capsys.readouterr().out
    assert code == 0
    assert "pass_percentage=25.0" in out


@pytest.mark.parametrize("flag", ["--header-row", "--max-rows"])
def test_negative_reader_offsets_rejected(temp_workdir: Path, capsys, flag):
    path = make_excel(temp_workdir / "data" / "term1.xlsx", {"Results": CLASS_ROWS})
    with pytest.raises(SystemExit) as exc:
        cli_main([str(path), flag, "-1"])
    assert exc.value.code == 2
    assert "must be >= 0, got -1" in capsys.readouterr().err
