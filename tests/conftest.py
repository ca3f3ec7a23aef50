"""
Global test configuration for wc-compiler.

This module provides global pytest configuration and fixtures.
"""

import sys
from pathlib import Path

import pytest

# Ensure the project src directory is importable without relying on external environment.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

SETTINGS_ENV = (
    "LOG_LEVEL",
    "LOG_FORMAT",
    "WINDOW_START",
    "DAYS_AHEAD",
    "COMPILE_WORKERS",
    "WC_COMPILER_ENV_FILE",
)


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch):
    """Keep the developer's environment out of settings-driven tests."""
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def input_dir(tmp_path):
    """An input directory holding only a minimal meta.toml."""
    directory = tmp_path / "events"
    directory.mkdir()
    (directory / "meta.toml").write_text('title = "Test Calendar"\n', encoding="utf-8")
    return directory


@pytest.fixture
def output_dir(tmp_path):
    """An output directory path that does not exist yet."""
    return tmp_path / "public"
