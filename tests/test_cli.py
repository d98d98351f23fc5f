from pathlib import Path
import json

from typer.testing import CliRunner

from sheetmerge.cli import app
from sheetmerge.config import load_config


runner = CliRunner()


def _write_sheet(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "sheet.csv"
    path.write_text(text, encoding="utf-8")
    return path


def _init(tmp_path: Path) -> Path:
    out = tmp_path / "merge.yaml"
    result = runner.invoke(app, ["init-config", str(out)])
    assert result.exit_code == 0, result.output
    return out


# ==========================================================
# init-config
# ==========================================================

def test_init_config_writes_loadable_file(tmp_path: Path):
    out = _init(tmp_path)
    cfg = load_config(out)
    assert cfg.backend.mode == "mock"
    assert cfg.source_key == "Key"
    assert [(m.source_column, m.target_property) for m in cfg.mappings] == [("Amount", "Amount")]


def test_init_config_refuses_to_overwrite(tmp_path: Path):
    out = _init(tmp_path)
    result = runner.invoke(app, ["init-config", str(out)])
    assert result.exit_code == 1
    assert "exists" in result.output

    result = runner.invoke(app, ["init-config", str(out), "--force"])
    assert result.exit_code == 0


# ==========================================================
# inspect / preview
# ==========================================================

def test_inspect_lists_schema_and_summary(tmp_path: Path):
    cfg = _init(tmp_path)
    sheet = _write_sheet(tmp_path, "Key,Amount\nA001,42\nX9,1\n")
    result = runner.invoke(app, ["inspect", str(cfg), "--sheet", str(sheet)])
    assert result.exit_code == 0, result.output
    assert "Database mock-db: 2 record(s)" in result.output
    assert "Status (select)  options: New, Done" in result.output
    assert '"both_count": 1' in result.output


def test_preview_renders_plans(tmp_path: Path):
    cfg = _init(tmp_path)
    sheet = _write_sheet(tmp_path, "Key,Amount\nA001,42\nX9,1\n")
    result = runner.invoke(app, ["preview", str(cfg), "--sheet", str(sheet)])
    assert result.exit_code == 0, result.output
    assert "Planned: 1 update, 0 create, 1 skip" in result.output
    assert "update  A001 [p1] :: Amount=42" in result.output
    assert "no matching record" in result.output


def test_preview_limit_hides_rest(tmp_path: Path):
    cfg = _init(tmp_path)
    sheet = _write_sheet(tmp_path, "Key,Amount\nA001,42\nX9,1\nX10,2\n")
    result = runner.invoke(app, ["preview", str(cfg), "--sheet", str(sheet), "--limit", "1"])
    assert result.exit_code == 0, result.output
    assert "2 more plan(s) not shown" in result.output


def test_preview_reports_validation_error(tmp_path: Path):
    cfg = _init(tmp_path)
    sheet = _write_sheet(tmp_path, "SKU,Amount\n1,42\n")
    result = runner.invoke(app, ["preview", str(cfg), "--sheet", str(sheet)])
    assert result.exit_code == 1
    assert "Key column 'Key' is not in the spreadsheet" in result.output


def test_missing_config_fails_cleanly(tmp_path: Path):
    sheet = _write_sheet(tmp_path, "Key\nA001\n")
    result = runner.invoke(app, ["preview", str(tmp_path / "nope.yaml"), "--sheet", str(sheet)])
    assert result.exit_code == 1
    assert "[ERROR]" in result.output


# ==========================================================
# execute
# ==========================================================

def test_execute_applies_with_yes(tmp_path: Path):
    cfg = _init(tmp_path)
    sheet = _write_sheet(tmp_path, "Key,Amount\nA001,42\nA002,7\n")
    result = runner.invoke(app, ["execute", str(cfg), "--sheet", str(sheet), "--yes"])
    assert result.exit_code == 0, result.output
    assert "progress 50%" in result.output
    assert "progress 100%" in result.output
    assert "Done: 2 updated, 0 created, 0 skipped" in result.output


def test_execute_declined_prompt_changes_nothing(tmp_path: Path):
    cfg = _init(tmp_path)
    sheet = _write_sheet(tmp_path, "Key,Amount\nA001,42\n")
    result = runner.invoke(app, ["execute", str(cfg), "--sheet", str(sheet)], input="n\n")
    assert result.exit_code == 1
    assert "progress" not in result.output


def test_execute_summary_is_json(tmp_path: Path):
    cfg = _init(tmp_path)
    sheet = _write_sheet(tmp_path, "Key,Amount\nA001,42\n")
    result = runner.invoke(app, ["execute", str(cfg), "--sheet", str(sheet), "-y"])
    start = result.output.index("\n{\n") + 1
    end = result.output.index("\n}\n", start) + 2
    summary = json.loads(result.output[start:end])
    assert summary["status"] == "done"
    assert summary["updated"] == 1
