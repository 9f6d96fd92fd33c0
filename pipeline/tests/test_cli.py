"""Tests for the pipeline command-line interface."""

import logging

import pytest

from pipeline.cli import main, parse_args
from pipeline.config import CSV_EXPORT_PATH


@pytest.fixture(autouse=True)
def reset_pipeline_logger():
    """main() installs console handlers; drop them so they don't outlive capsys."""
    yield
    logger = logging.getLogger("pipeline")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def paths(tmp_path, write_json, raw_catalog):
    return {
        "input": write_json("raw.json", raw_catalog),
        "output": tmp_path / "snapshot.json",
        "report": tmp_path / "report.json",
    }


def _args(paths, *extra):
    return [
        "--input", str(paths["input"]),
        "--output", str(paths["output"]),
        "--report", str(paths["report"]),
        "--no-log-file",
        *extra,
    ]


class TestParseArgs:
    def test_export_csv_default_path(self):
        assert parse_args(["--export-csv"]).export_csv == CSV_EXPORT_PATH
        assert parse_args([]).export_csv is None

    def test_explicit_csv_path(self):
        assert parse_args(["--export-csv", "out.csv"]).export_csv == "out.csv"


class TestMain:
    """Tests for the CLI entry point."""

    def test_run(self, paths, capsys):
        assert main(_args(paths)) == 0

        out = capsys.readouterr().out
        assert "Processed 2 of 4 records (1 skipped)" in out
        assert paths["output"].exists()
        assert paths["report"].exists()

    def test_strict_run_fails_on_gates(self, paths):
        assert main(_args(paths, "--strict")) == 1
        assert paths["output"].exists()

    def test_missing_input(self, paths, tmp_path, capsys):
        args = _args(paths)
        args[1] = str(tmp_path / "missing.json")

        assert main(args) == 1
        assert "Input file not found" in capsys.readouterr().err

    def test_stats(self, paths, capsys):
        main(_args(paths))
        capsys.readouterr()

        assert main(_args(paths, "--stats")) == 0
        out = capsys.readouterr().out
        assert "Total records:     4" in out
        assert "Columbus McKinnon: 1" in out

    def test_stats_without_report(self, paths, capsys):
        assert main(_args(paths, "--stats")) == 1
        assert "No report found" in capsys.readouterr().out

    def test_check_gates(self, paths, capsys):
        main(_args(paths))
        capsys.readouterr()

        assert main(_args(paths, "--check-gates")) == 0
        assert "FAILED" in capsys.readouterr().out
        assert main(_args(paths, "--check-gates", "--strict")) == 1

    def test_corrupt_snapshot(self, paths, capsys):
        paths["output"].write_text("{oops", encoding="utf-8")

        assert main(_args(paths, "--check-gates")) == 1
        assert "Storage error" in capsys.readouterr().err
