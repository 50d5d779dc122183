"""
actorkit Configuration — loads and merges config from multiple sources.

Precedence (highest to lowest):
1. Explicit overrides (passed in code)
2. Environment variables (ACTORKIT_*)
3. Project config (./actorkit.toml)
4. User config (~/.actorkit/config.toml)
5. Defaults (hardcoded)

Environment variable mapping:
    ACTORKIT_DB_PATH → storage.db_path
    ACTORKIT_ALARMS_TABLE → alarms.table
    ACTORKIT_DEFAULT_IDENTIFIER → alarms.default_identifier
    ACTORKIT_ID_LENGTH → alarms.id_length
    ACTORKIT_QUEUE_TABLE → queue.table
    ACTORKIT_LOG_LEVEL → logging.console_level
"""

from __future__ import annotations

import os
import re
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from actorkit.core.errors import ConfigError

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Config Sub-Models
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _check_identifier(value: str) -> str:
    # Table names are interpolated into SQL, so keep them to an identifier
    if not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", value):
        raise ValueError(f"invalid table name: {value!r}")
    return value


class StorageConfig(BaseModel):
    """Durable store configuration."""

    db_path: str = "~/.actorkit/actor.db"
    journal_mode: str = "WAL"

    def resolved_path(self) -> str:
        if self.db_path == ":memory:":
            return self.db_path
        return str(Path(self.db_path).expanduser())


class AlarmsConfig(BaseModel):
    """Durable task scheduler configuration."""

    table: str = "_actor_alarms"
    default_identifier: str = "default"
    id_length: int = 9

    @field_validator("table")
    @classmethod
    def _check_table(cls, value: str) -> str:
        return _check_identifier(value)

    @field_validator("id_length")
    @classmethod
    def _check_id_length(cls, value: int) -> int:
        if not 6 <= value <= 32:
            raise ValueError("id_length must be between 6 and 32")
        return value


class QueueConfig(BaseModel):
    """Durable callback queue configuration."""

    table: str = "_actor_queues"

    @field_validator("table")
    @classmethod
    def _check_table(cls, value: str) -> str:
        return _check_identifier(value)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    log_dir: str = "~/.actorkit/logs"
    console_level: str = "WARNING"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Main Config
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class ActorKitConfig(BaseModel):
    """Root configuration for actorkit."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    alarms: AlarmsConfig = Field(default_factory=AlarmsConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @staticmethod
    def load(
        overrides: dict[str, Any] | None = None,
        project_path: Path | None = None,
        user_path: Path | None = None,
    ) -> ActorKitConfig:
        """
        Load configuration from all sources and merge.

        Precedence: overrides > env vars > project toml > user toml > defaults
        """
        merged: dict[str, Any] = {}

        # Layer 1: User config (~/.actorkit/config.toml)
        user_config_path = user_path or Path.home() / ".actorkit" / "config.toml"
        if user_config_path.exists():
            _deep_merge(merged, _load_toml(user_config_path))

        # Layer 2: Project config (./actorkit.toml)
        project_config_path = project_path or Path.cwd() / "actorkit.toml"
        if project_config_path.exists():
            _deep_merge(merged, _load_toml(project_config_path))

        # Layer 3: Environment variables
        _deep_merge(merged, _load_from_env())

        # Layer 4: Explicit overrides
        if overrides:
            _deep_merge(merged, overrides)

        _substitute_env_vars(merged)

        try:
            return ActorKitConfig(**merged)
        except Exception as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Internal Helpers
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e


def _load_from_env() -> dict[str, Any]:
    """Load configuration from ACTORKIT_* environment variables."""
    result: dict[str, Any] = {}

    # (section, key, convert); string fields keep the raw value
    env_mapping = {
        "ACTORKIT_DB_PATH": ("storage", "db_path", False),
        "ACTORKIT_JOURNAL_MODE": ("storage", "journal_mode", False),
        "ACTORKIT_ALARMS_TABLE": ("alarms", "table", False),
        "ACTORKIT_DEFAULT_IDENTIFIER": ("alarms", "default_identifier", False),
        "ACTORKIT_ID_LENGTH": ("alarms", "id_length", True),
        "ACTORKIT_QUEUE_TABLE": ("queue", "table", False),
        "ACTORKIT_LOG_DIR": ("logging", "log_dir", False),
        "ACTORKIT_LOG_LEVEL": ("logging", "console_level", False),
    }

    for env_var, (section, key, convert) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            result.setdefault(section, {})[key] = _convert_value(value) if convert else value

    return result


def _convert_value(value: str) -> Any:
    """Convert string value to appropriate type."""
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _deep_merge(base: dict, override: dict) -> None:
    """Deep merge override into base (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def _substitute_env_vars(data: dict) -> None:
    """Recursively substitute ${ENV_VAR} patterns in string values."""
    pattern = re.compile(r"\$\{([^}]+)\}")

    for key, value in data.items():
        if isinstance(value, dict):
            _substitute_env_vars(value)
        elif isinstance(value, str):
            for var_name in pattern.findall(value):
                value = value.replace(f"${{{var_name}}}", os.environ.get(var_name, ""))
            data[key] = value
