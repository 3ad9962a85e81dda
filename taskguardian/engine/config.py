"""
Task Guardian Configuration — Load and validate taskguardian.yaml at startup.

The loaded PlatformConfig is frozen and handed to components explicitly
(create_app, stores, SessionManager). There is no module-level singleton.

Resolution order (last wins):
    1. Model defaults
    2. taskguardian.yaml (auto-discovered from CWD upwards, or explicit path)
    3. Environment variables: PORT, DATABASE_URL, JWT_SECRET, SITE_URL

Usage:
    from taskguardian.engine.config import load_config
    config = load_config("taskguardian.yaml")
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from taskguardian.engine.errors import TaskGuardianConfigError
from taskguardian.engine.logging import DEFAULT_RETENTION

CONFIG_FILENAME = "taskguardian.yaml"
DEFAULT_JWT_SECRET = "secret"
ROLES: Tuple[str, ...] = ("ADMIN", "MANAGER", "REGULAR")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class DatabaseConfig(_Frozen):
    url: str = "sqlite:///./taskguardian.db"
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True
    echo: bool = False


class SecurityConfig(_Frozen):
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    session_ttl_hours: int = Field(default=24, gt=0)
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)
    # REGULAR callers may only update/delete tasks assigned to them
    restrict_regular_to_assignee: bool = True

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        if v not in ("HS256", "HS384", "HS512"):
            raise ValueError(f"jwt_algorithm must be HS256/HS384/HS512, got '{v}'")
        return v


class LoggingConfig(_Frozen):
    enabled: bool = True
    level: str = "INFO"
    directory: str = ".taskguardian/logs"
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000
    # days kept per category; files past compress_after_days are gzipped
    retention_days: Dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_RETENTION))
    compress_after_days: int = Field(default=7, ge=0)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"invalid logging level '{v}'")
        return v


class PlatformConfig(_Frozen):
    """Root model for taskguardian.yaml."""
    name: str = "Task Guardian API"
    version: str = "0.1.0"
    environment: str = "dev"
    port: int = 3000
    site_url: str = "http://localhost:3000"
    roles: Tuple[str, ...] = ROLES

    database: DatabaseConfig = DatabaseConfig()
    security: SecurityConfig = SecurityConfig()
    logging: LoggingConfig = LoggingConfig()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v

    @field_validator("roles")
    @classmethod
    def validate_roles(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if set(v) != set(ROLES):
            raise ValueError(f"roles must be exactly {list(ROLES)}")
        return v

    def masked(self) -> Dict[str, Any]:
        """Dump for display with the JWT secret hidden."""
        data = self.model_dump(mode="json")
        data["security"]["jwt_secret"] = "***"
        return data


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

def _find_config_file() -> Optional[Path]:
    """Walk up from CWD looking for taskguardian.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return None


def _apply_env_overrides(data: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    if environ.get("PORT"):
        data["port"] = environ["PORT"]
    if environ.get("SITE_URL"):
        data["site_url"] = environ["SITE_URL"]
    if environ.get("DATABASE_URL"):
        data.setdefault("database", {})["url"] = environ["DATABASE_URL"]
    if environ.get("JWT_SECRET"):
        data.setdefault("security", {})["jwt_secret"] = environ["JWT_SECRET"]
    return data


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> PlatformConfig:
    """
    Load and validate taskguardian.yaml.

    Args:
        config_path: Explicit path to the YAML file. If None, auto-discovers;
                     if nothing is found, defaults are used.
        environ: Environment mapping for overrides (defaults to os.environ).

    Returns:
        Validated, frozen PlatformConfig instance.

    Raises:
        TaskGuardianConfigError: explicit path missing, bad YAML, failed
        validation, or the default JWT secret used in prod.
    """
    if environ is None:
        environ = os.environ

    raw: Dict[str, Any] = {}
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise TaskGuardianConfigError(f"Config file not found: {path}", path=str(path))
    else:
        path = _find_config_file()

    if path is not None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise TaskGuardianConfigError(f"Invalid YAML in {path}: {e}", path=str(path)) from e
        if not isinstance(raw, dict):
            raise TaskGuardianConfigError(f"{path} must contain a mapping", path=str(path))

    # Flatten the top-level "platform" key if present
    platform_data = raw.pop("platform", {}) or {}
    data = {**platform_data, **raw}
    data = _apply_env_overrides(data, environ)

    try:
        config = PlatformConfig(**data)
    except ValidationError as e:
        raise TaskGuardianConfigError(
            f"Invalid configuration: {e.error_count()} error(s)",
            validation_errors=e.errors(),
        ) from e

    if config.environment == "prod" and config.security.jwt_secret == DEFAULT_JWT_SECRET:
        raise TaskGuardianConfigError("JWT_SECRET must be set in prod")

    return config
