# tests/unit/test_main.py — v2
"""Tests for main.py — CLI entry point."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from daftflow.logging.logger import ROOT_LOGGER
from daftflow.core.models import Result, StepResult, Usage
from daftflow.main import _build_parser, _print_result_summary, main

SPEC = {
    "initial": {"text": "hello"},
    "steps": [
        {"name": "analyze", "until": "analyzeDone", "maxIter": 2, "tools": ["echo"]},
    ],
}


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DAFTFLOW_EMIT_EVENTS", "false")
    yield
    root = logging.getLogger(ROOT_LOGGER)
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()


def _write(path: Path, doc: object) -> Path:
    path.write_text(json.dumps(doc))
    return path


# ---------------------------------------------------------------------------
# Parser tests
# ---------------------------------------------------------------------------

class TestBuildParser:
    def test_version_flag(self):
        parser = _build_parser()
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_run_subcommand(self):
        args = _build_parser().parse_args(["run", "flow.yaml", "data.json", "-c", "2", "--json"])
        assert args.command == "run"
        assert args.spec == Path("flow.yaml")
        assert args.data == Path("data.json")
        assert args.concurrency == 2
        assert args.as_json is True

    def test_run_defaults(self):
        args = _build_parser().parse_args(["run", "flow.yaml"])
        assert args.data is None
        assert args.concurrency is None
        assert args.as_json is False


# ---------------------------------------------------------------------------
# main() integration
# ---------------------------------------------------------------------------

class TestMain:
    def test_no_command_returns_1(self):
        assert main([]) == 1

    def test_run_success(self, tmp_path, capsys):
        spec = _write(tmp_path / "flow.json", SPEC)
        assert main(["run", str(spec)]) == 0
        out = capsys.readouterr().out
        assert "Done in 1 iteration across 1 step" in out
        assert "analyze" in out

    def test_run_json_output(self, tmp_path, capsys):
        spec = _write(tmp_path / "flow.json", SPEC)
        assert main(["run", str(spec), "--json"]) == 0
        result = json.loads(capsys.readouterr().out)
        assert result["success"] is True
        assert result["data"]["analysis"] == "complete"

    def test_run_with_data_file(self, tmp_path, capsys):
        spec = _write(tmp_path / "flow.json", SPEC)
        data = _write(tmp_path / "data.json", {"text": "override"})
        assert main(["run", str(spec), str(data), "--json"]) == 0
        assert json.loads(capsys.readouterr().out)["data"]["text"] == "override"

    def test_run_failed_workflow_returns_1(self, tmp_path):
        doc = {"steps": [{"name": "s", "until": "scoreCheck", "maxIter": 1, "tools": ["ghost"]}]}
        spec = _write(tmp_path / "flow.json", doc)
        assert main(["run", str(spec)]) == 1

    def test_run_missing_file_returns_1(self, tmp_path):
        assert main(["run", str(tmp_path / "nope.json")]) == 1

    def test_run_invalid_concurrency_returns_1(self, tmp_path):
        spec = _write(tmp_path / "flow.json", SPEC)
        assert main(["run", str(spec), "-c", "0"]) == 1

    def test_tools_command(self, capsys):
        assert main(["tools"]) == 0
        assert "echo" in capsys.readouterr().out

    def test_predicates_command(self, capsys):
        assert main(["predicates"]) == 0
        out = capsys.readouterr().out
        assert "scoreCheck" in out
        assert "hasSummary" in out


class TestPrintResultSummary:
    def test_lists_steps_and_usage(self, capsys):
        result = Result(
            success=False,
            data={"k": 1},
            steps=[
                StepResult(name="fetch", iterations=2, success=True),
                StepResult(name="rank", iterations=1, success=False, error="no score"),
            ],
            usage=Usage(tokens=42, cost=0.5, duration_ms=1500.0),
            message="Failed: 1 step failed (rank)",
        )
        _print_result_summary(result)
        out = capsys.readouterr().out
        assert "Failed: 1 step failed (rank)" in out
        assert 'Result: {"k": 1}' in out
        assert "FAILED: no score" in out
        assert "Tokens:   42" in out
        assert "Cost:     $0.5000" in out
        assert "Duration: 1.5s" in out
