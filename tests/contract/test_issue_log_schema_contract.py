from __future__ import annotations

import json
from pathlib import Path

from resultease.cli.__main__ import main as cli_main
from tests.helpers import CLASS_ROWS, make_excel

"""Issue log contract: JSON Lines with a fixed key set; row -1 marks batch-level issues."""

ISSUE_KEYS = {"timestamp", "file", "sheet", "row", "field", "rule", "severity", "message"}


def test_issue_log_lines_follow_schema(temp_workdir: Path):
    rows = [*CLASS_ROWS, ["bob middle", "002", 55, 60, 58]]
    path = make_excel(temp_workdir / "data" / "term1.xlsx", {"Results": rows})
    assert cli_main([str(path)]) == 2

    files = list((temp_workdir / "logs").glob("issues-*.log"))
    assert len(files) == 1
    records = [json.loads(line) for line in files[0].read_text(encoding="utf-8").splitlines()]
    assert records
    for rec in records:
        assert set(rec) == ISSUE_KEYS
        assert isinstance(rec["row"], int)
        assert rec["row"] == -1 or rec["row"] >= 2
        assert rec["severity"] in {"error", "warning"}
        assert rec["timestamp"].endswith("Z")
    assert any(r["row"] == -1 and r["rule"] == "batch_validation" for r in records)
    assert any(r["row"] == 6 and r["rule"] == "name_consistency" for r in records)
