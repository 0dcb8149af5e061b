"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``ITEM_SYNC_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

Every stage, service and CLI command receives an ``AppConfig`` instance (or one
of its sections), never raw dicts or scattered env var lookups.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/item_sync.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class ApiConfig(BaseModel):
    """External item API settings.

    The API key is never stored in TOML; it is read from ``ITEM_SYNC_API_KEY``
    (usually placed in ``.env``) by ``api_key_from_env()``.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://api.example.com"
    items_endpoint: str = "/items"
    timeout_seconds: float = 30.0
    cache_ttl_seconds: int = 300
    user_agent: str = "item-sync/0.1"

    @field_validator("cache_ttl_seconds")
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"cache_ttl_seconds must be positive, got {v}.")
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {v}.")
        return v


class QueryConfig(BaseModel):
    """Defaults applied to paginated item queries."""

    model_config = ConfigDict(frozen=True)

    default_limit: int = 50
    max_limit: int = 1000

    @field_validator("default_limit", "max_limit")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Query limits must be positive, got {v}.")
        return v


class AdminConfig(BaseModel):
    """Admin HTTP endpoint settings."""

    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = 8080
    cors_origins: list[str] = ["*"]


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/item_sync.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration: the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env + env vars.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    api: ApiConfig = ApiConfig()
    query: QueryConfig = QueryConfig()
    admin: AdminConfig = AdminConfig()
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


def api_key_from_env() -> Optional[str]:
    """Return the external API key from ``ITEM_SYNC_API_KEY``, or ``None``."""
    return os.environ.get("ITEM_SYNC_API_KEY") or None


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
    """Apply ITEM_SYNC_* env vars to the raw config dict.

    Supported overrides:
      ITEM_SYNC_DB_PATH       → raw["database"]["db_path"]
      ITEM_SYNC_API_BASE_URL  → raw["api"]["base_url"]
      ITEM_SYNC_LOG_LEVEL     → raw["logging"]["level"]
      ITEM_SYNC_DEBUG         → raw["debug"]
    """
    if db_path := os.environ.get("ITEM_SYNC_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if base_url := os.environ.get("ITEM_SYNC_API_BASE_URL"):
        raw.setdefault("api", {})["base_url"] = base_url

    if log_level := os.environ.get("ITEM_SYNC_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("ITEM_SYNC_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        api=ApiConfig(**raw.get("api", {})),
        query=QueryConfig(**raw.get("query", {})),
        admin=AdminConfig(**raw.get("admin", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
