"""
Tests for the wc-compiler command line.
"""

from __future__ import annotations

import json
import logging

import pytest
import structlog
from typer.testing import CliRunner

from wc_compiler.cli.main import app

runner = CliRunner()

EVENT = 'timezone = "UTC"\nstart = "17:00"\nduration = 60\n'


@pytest.fixture(autouse=True)
def _window(monkeypatch):
    monkeypatch.setenv("WINDOW_START", "2024-01-01")
    monkeypatch.setenv("DAYS_AHEAD", "6")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)


class TestCli:
    def test_success(self, input_dir, output_dir):
        (input_dir / "book-club.toml").write_text(EVENT, encoding="utf-8")

        result = runner.invoke(app, [str(input_dir), str(output_dir)])

        assert result.exit_code == 0, result.output
        calendar = json.loads((output_dir / "calendar.json").read_text(encoding="utf-8"))
        assert calendar["window"] == {"start": "2024-01-01", "end": "2024-01-07"}
        assert len(calendar["occurrences"]) == 7

    def test_compile_errors_exit_nonzero(self, input_dir, output_dir):
        (input_dir / "book-club.toml").write_text('timezone = "UTC"\n', encoding="utf-8")

        result = runner.invoke(app, [str(input_dir), str(output_dir)])

        assert result.exit_code == 1
        assert "book-club.toml: start [" in result.output
        assert "MissingRequiredField" in result.output
        assert not output_dir.exists()

    def test_warnings_do_not_fail(self, input_dir, output_dir):
        (input_dir / "book-club.toml").write_text(
            EVENT + 'canceled = ["2023-01-03"]\nstart_date = "2024-01-01"\n', encoding="utf-8"
        )

        result = runner.invoke(app, [str(input_dir), str(output_dir)])

        assert result.exit_code == 0, result.output
        assert "warning" in result.output
        assert (output_dir / "calendar.json").is_file()

    def test_missing_input_directory(self, tmp_path, output_dir):
        result = runner.invoke(app, [str(tmp_path / "nowhere"), str(output_dir)])
        assert result.exit_code == 1
        assert "FileSystemError" in result.output

    def test_invalid_configuration(self, input_dir, output_dir, monkeypatch):
        monkeypatch.setenv("DAYS_AHEAD", "-1")
        result = runner.invoke(app, [str(input_dir), str(output_dir)])
        assert result.exit_code == 1
        assert "invalid configuration" in result.output

    def test_requires_two_arguments(self, input_dir):
        result = runner.invoke(app, [str(input_dir)])
        assert result.exit_code == 2
