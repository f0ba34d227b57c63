"""
Configuration — process settings and the YAML job file.

Two layers:
  - AppSettings (pydantic-settings): where the job file lives, where metrics
    are served, how to log. Loaded from CRL_UPDATER_* environment variables
    with a .env fallback. Invalid settings are fatal at startup.
  - JobsFile / JobDescriptor (pydantic): the `jobs:` list read from YAML.
    Descriptors are deliberately lenient — defaults and sanity checks belong
    to the preparer, which can drop a single bad job without failing the rest.

Example job file:

    jobs:
      - url: http://crl.example.com/root.crl
        dest: /etc/ssl/crl/root.crl
        mode: 0644
        owner: root
        group: ssl-cert
        schedule: "*/15 * * * *"
        limit: 1048576
        timeout: 30s
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from railway import ErrorCode, ResultFailures
from railway.result import Result

# Resolve the .env file relative to the project root (two levels above this file),
# so settings load correctly regardless of the working directory at runtime.
_ENV_FILE = Path(__file__).parent.parent.parent / ".env"


class JobDescriptor(BaseModel):
    """
    One raw entry of the `jobs:` list, exactly as configured.

    Only `url` and `dest` are mandatory, and even those are checked by the
    preparer rather than here. `src` is accepted as an alias of `url`.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    url: str = Field(default="", validation_alias=AliasChoices("url", "src"))
    dest: str = Field(default="", description="Destination file for the CRL")
    mode: int | str | None = Field(default=None, description="File mode, e.g. 0644 or '0640'")
    owner: str = Field(default="", description="Owner name of the CRL file")
    group: str = Field(default="", description="Group name of the CRL file")
    force: bool = Field(default=False, description="Skip format check and change detection")
    schedule: str = Field(default="", description="Cron expression or @descriptor")
    limit: int = Field(default=0, description="CRL file size limit in bytes")
    timeout: str = Field(default="", description="Download timeout, e.g. '30s' or '1m'")

    @field_validator("url", "dest", "owner", "group", "schedule", "timeout", mode="before")
    @classmethod
    def scalar_to_str(cls, value: Any) -> Any:
        """YAML turns `timeout: 30` or `owner: 0` into numbers; keep them as text."""
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class JobsFile(BaseModel):
    """Top-level structure of the job file."""

    model_config = ConfigDict(extra="ignore")

    jobs: list[JobDescriptor] = Field(default_factory=list)

    @field_validator("jobs", mode="before")
    @classmethod
    def none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class AppSettings(BaseSettings):
    """
    Root application settings.

    Load order (highest priority first):
      1. Environment variables (CRL_UPDATER_CONFIG_PATH, CRL_UPDATER_METRICS_PORT, ...)
      2. .env file
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="CRL_UPDATER_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    config_path: Path = Field(
        default=Path("/etc/crl-updater.yaml"),
        description="Path to the YAML job file",
    )
    metrics_host: str = Field(default="0.0.0.0", description="Metrics listener address")
    metrics_port: int = Field(default=8080, ge=1, le=65535, description="Metrics listener port")
    log_level: str = Field(default="INFO")
    log_format: Literal["console", "json"] = Field(default="console")
    run_on_startup: bool = Field(
        default=True,
        description="Run every job once right after startup instead of waiting for its first tick",
    )


def load_jobs_file(path: Path) -> Result[JobsFile]:
    """
    Read and validate the YAML job file.

    Returns Result[JobsFile], or CONFIGURATION_ERROR when the file cannot be
    opened, is not valid YAML, or does not match the expected structure.
    """
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle)
    except OSError as e:
        return ResultFailures.configuration_error(f"config file opening failed: {path}", e)
    except yaml.YAMLError as e:
        return ResultFailures.configuration_error(f"config file parsing failed: {path}", e)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        return ResultFailures.configuration_error(
            f"config file parsing failed: {path}: top level must be a mapping"
        )

    return Result.from_computation(
        lambda: JobsFile.model_validate(raw),
        ErrorCode.CONFIGURATION_ERROR,
        f"config file validation failed: {path}",
    )
