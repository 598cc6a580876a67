"""Tests for the tot-research command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tot_research import __version__
from tot_research.cli import _build_parser, main


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as info:
        main(argv)
    return int(info.value.code or 0)


class TestParser:

    def test_plan_arguments(self) -> None:
        args = _build_parser().parse_args(
            ["plan", "grid storage", "--beam-width", "2", "--strategy", "diverse"]
        )
        assert args.command == "plan"
        assert args.query == "grid storage"
        assert args.beam_width == 2
        assert args.strategy == "diverse"
        assert args.max_depth is None

    def test_report_requires_input(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["report"])


class TestCommands:

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run(["--version"]) == 0
        assert __version__ in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run([]) == 0
        assert "usage" in capsys.readouterr().out

    def test_info(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run(["info"]) == 0
        out = capsys.readouterr().out
        assert "Default configuration" in out
        assert '"beam_width": 3' in out

    def test_plan_summary(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = _run(
            ["plan", "grid storage", "--beam-width", "2", "--branching-factor", "2",
             "--max-depth", "1", "--seed", "3"]
        )
        assert code == 0
        captured = capsys.readouterr()
        assert "Query:       grid storage" in captured.out
        assert "Stop reason: max_depth" in captured.out
        assert "depth 1/1" in captured.err

    def test_plan_output_then_report(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        out_file = tmp_path / "outcome.json"
        code = _run(
            ["plan", "grid storage", "--max-depth", "1", "--branching-factor", "2",
             "--seed", "1", "--output", str(out_file)]
        )
        assert code == 0
        data = json.loads(out_file.read_text(encoding="utf-8"))
        assert data["query"] == "grid storage"
        capsys.readouterr()

        assert _run(["report", "--input", str(out_file), "--format", "tree"]) == 0
        tree = capsys.readouterr().out
        assert "depth 0:" in tree
        assert "best path:" in tree

        assert _run(["report", "--input", str(out_file), "--format", "json"]) == 0
        assert json.loads(capsys.readouterr().out)["query"] == "grid storage"

    def test_plan_with_config_file(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = tmp_path / "config.json"
        config.write_text(
            json.dumps({"tot": {"max_depth": 1, "branching_factor": 2},
                        "plan": {"target_tool": "scholar_search"}}),
            encoding="utf-8",
        )
        assert _run(["plan", "q", "--config", str(config), "--seed", "2"]) == 0
        assert "research paper academic" in capsys.readouterr().out

    def test_report_missing_file(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert _run(["report", "--input", str(tmp_path / "none.json")]) == 1
        assert "file not found" in capsys.readouterr().err

    def test_invalid_beam_width_reports_error(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert _run(["plan", "q", "--beam-width", "0"]) == 1
        assert "Error:" in capsys.readouterr().err
