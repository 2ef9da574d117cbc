"""Scheduler settings.

Configuration is explicit, validated, and environment-driven.  Every value
can be supplied through a ``SCHEDULER_``-prefixed environment variable or a
``.env`` file in the working directory.

Fields
──────
database_url        : SQLAlchemy URL of the job store
log_path            : Directory for per-job output files, or ``"disabled"``
app_env             : Environment selector forwarded to every dispatched target
excluded_namespaces : Command namespaces hidden from ``commands`` listings
commands_module     : Dotted path of a module exposing a ``registry`` attribute
log_level           : Structlog log level
log_format          : ``console`` | ``json`` | ``auto``

Examples:
    >>> settings = SchedulerSettings(log_path="false")
    >>> settings.log_path
    'disabled'

Tags:
    settings, configuration, pydantic, environment
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

#: Literal value of ``log_path`` that turns off output capture.
LOG_PATH_DISABLED = "disabled"


class SchedulerSettings(BaseSettings):
    """Settings for one scheduler invocation."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database_url: str = "sqlite:///scheduler.db"

    # ── Output capture ───────────────────────────────────────────
    log_path: str = Field(
        default=LOG_PATH_DISABLED,
        description="Directory receiving per-job log files, or 'disabled'",
    )

    # ── Dispatch ─────────────────────────────────────────────────
    app_env: str = "prod"
    commands_module: str | None = None
    excluded_namespaces: list[str] = Field(default_factory=list)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: Literal["console", "json", "auto"] = "auto"

    @field_validator("log_path")
    @classmethod
    def _normalize_log_path(cls, value: str) -> str:
        value = value.strip()
        if value.lower() in ("", "false", "none", LOG_PATH_DISABLED):
            return LOG_PATH_DISABLED
        return value

    @property
    def json_logs(self) -> bool | None:
        if self.log_format == "auto":
            return None
        return self.log_format == "json"


@lru_cache(maxsize=1)
def get_settings() -> SchedulerSettings:
    """Return the process-wide settings (cached)."""
    return SchedulerSettings()


__all__ = ["LOG_PATH_DISABLED", "SchedulerSettings", "get_settings"]
