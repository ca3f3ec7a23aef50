"""
Application settings for wc-compiler.

This module defines all configuration settings using Pydantic BaseSettings.
The command line takes only the input and output directories; everything
else comes from the environment or an optional ``.env`` file.
"""

from __future__ import annotations

import os
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from wc_compiler.domain.calendar import CompileWindow


class Settings(BaseSettings):
    """Main application settings using Pydantic BaseSettings."""

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="json", alias="LOG_FORMAT")

    # Generation window: [window_start, window_start + days_ahead]
    window_start: date | None = Field(default=None, alias="WINDOW_START")
    days_ahead: int = Field(default=365, ge=0, alias="DAYS_AHEAD")

    compile_workers: int = Field(default=4, ge=1, alias="COMPILE_WORKERS")

    model_config: SettingsConfigDict = SettingsConfigDict(
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    def window(self, today: date | None = None) -> CompileWindow:
        """Return the generation window, anchored at today (UTC) unless configured."""
        start = self.window_start or today or datetime.now(timezone.utc).date()
        return CompileWindow(start=start, end=start + timedelta(days=self.days_ahead))


def _resolve_env_file() -> str | None:
    # 1) Explicit override
    explicit = os.getenv("WC_COMPILER_ENV_FILE")
    if explicit and Path(explicit).is_file():
        return explicit

    # 2) CWD .env, then the nearest parent
    cwd = Path.cwd()
    for directory in (cwd, *cwd.parents):
        candidate = directory / ".env"
        if candidate.is_file():
            return str(candidate)
    return None


def load_settings() -> Settings:
    """Build settings from the environment and best-effort .env discovery."""
    env_file = _resolve_env_file()
    return Settings(_env_file=env_file) if env_file else Settings()  # type: ignore[call-arg]
