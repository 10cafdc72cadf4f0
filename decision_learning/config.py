"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``DECISION_LEARNING_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The recorder, the ranking query and every CLI command receive an
``AppConfig`` (or one of its sections) — never raw env var lookups.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/decision_learning.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class LearningConfig(BaseModel):
    """Weight Ledger update parameters.

    ``learning_rate`` is the EMA smoothing factor applied on every update
    after the first observation of an edge. The key lengths bound the size
    of content-derived edge keys for signals and objectives.
    """

    model_config = ConfigDict(frozen=True)

    learning_rate: float = 0.1
    signal_key_chars: int = 50
    objective_key_chars: int = 200

    @field_validator("learning_rate")
    @classmethod
    def validate_learning_rate(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError(f"learning_rate must be in (0.0, 1.0], got {v}.")
        return v

    @field_validator("signal_key_chars", "objective_key_chars")
    @classmethod
    def validate_key_chars(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"key lengths must be >= 1, got {v}.")
        return v


class ListingConfig(BaseModel):
    """Pagination bounds for the ranking query."""

    model_config = ConfigDict(frozen=True)

    default_limit: int = 50
    max_limit: int = 1000

    @model_validator(mode="after")
    def validate_bounds(self) -> "ListingConfig":
        if self.max_limit < 1:
            raise ValueError(f"max_limit must be >= 1, got {self.max_limit}.")
        if not 1 <= self.default_limit <= self.max_limit:
            raise ValueError(
                f"default_limit must be in [1, {self.max_limit}], got {self.default_limit}."
            )
        return self


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/decision_learning.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env + env vars.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    learning: LearningConfig = LearningConfig()
    listing: ListingConfig = ListingConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    load_dotenv(dotenv_path=root / ".env", override=False)

    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config explicitly."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    raw = _apply_env_overrides(raw)

    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply DECISION_LEARNING_* env vars to the raw config dict.

    Supported overrides:
      DECISION_LEARNING_DB_PATH        → raw["database"]["db_path"]
      DECISION_LEARNING_LOG_LEVEL      → raw["logging"]["level"]
      DECISION_LEARNING_LEARNING_RATE  → raw["learning"]["learning_rate"]
      DECISION_LEARNING_DEBUG          → raw["debug"]
    """
    if db_path := os.environ.get("DECISION_LEARNING_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get("DECISION_LEARNING_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if learning_rate := os.environ.get("DECISION_LEARNING_LEARNING_RATE"):
        raw.setdefault("learning", {})["learning_rate"] = float(learning_rate)

    if debug := os.environ.get("DECISION_LEARNING_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        learning=LearningConfig(**raw.get("learning", {})),
        listing=ListingConfig(**raw.get("listing", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
