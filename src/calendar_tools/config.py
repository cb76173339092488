"""Server configuration loading and validation.

Reads calendar.toml from a config directory, resolves ``${VAR}`` references
from the environment, and returns a validated ServerConfig dataclass.
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from calendar_tools.modules.calendar.module import CalendarConfig

CONFIG_FILENAME = "calendar.toml"
DEFAULT_SERVER_NAME = "calendar-tools"

# Matches ${VAR_NAME} with alphanumeric and underscore names.
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class ConfigError(Exception):
    """Raised when server configuration is missing, malformed, or invalid."""


@dataclass
class LoggingConfig:
    """Logging configuration from the [logging] section."""

    level: str = "INFO"
    format: str = "text"  # "text" or "json"
    log_file: str | None = None


@dataclass
class ServerConfig:
    """Parsed and validated server configuration."""

    name: str = DEFAULT_SERVER_NAME
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    calendar: CalendarConfig = field(default_factory=CalendarConfig)


def resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${VAR_NAME}`` references in config values.

    Walks dicts, lists, and strings. Non-string leaf values are returned
    unchanged.

    Raises
    ------
    ConfigError
        If a referenced environment variable is not set.
    """
    if isinstance(value, dict):
        return {k: resolve_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [resolve_env_vars(item) for item in value]

    if isinstance(value, str):
        return _resolve_string(value)

    return value


def _resolve_string(s: str) -> str:
    """Replace all ``${VAR_NAME}`` occurrences in *s* with env var values.

    Collects all missing variable names and reports them in a single error.
    """
    missing: list[str] = []

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            missing.append(var_name)
            return match.group(0)
        return env_value

    result = _ENV_VAR_PATTERN.sub(_replace, s)

    if missing:
        vars_str = ", ".join(missing)
        raise ConfigError(
            f"Unresolved environment variable(s) in config value: {vars_str} (original: {s!r})"
        )

    return result


def _parse_logging(data: dict[str, Any]) -> LoggingConfig:
    logging_section = data.get("logging", {})
    if not isinstance(logging_section, dict):
        raise ConfigError("[logging] must be a table")

    log_level = str(logging_section.get("level", "INFO")).upper()
    log_format = str(logging_section.get("format", "text")).lower()
    if log_format not in ("text", "json"):
        raise ConfigError(f"Invalid logging.format: {log_format!r}. Expected 'text' or 'json'.")
    log_file = logging_section.get("log_file")
    if log_file is not None and not isinstance(log_file, str):
        raise ConfigError("logging.log_file must be a string when set")
    return LoggingConfig(level=log_level, format=log_format, log_file=log_file)


def load_config(config_dir: Path) -> ServerConfig:
    """Load and validate calendar.toml from *config_dir*.

    Raises
    ------
    ConfigError
        If the file is missing, contains invalid TOML, or fails validation.
    """
    toml_path = Path(config_dir) / CONFIG_FILENAME

    if not toml_path.exists():
        raise ConfigError(f"Config file not found: {toml_path}")

    try:
        data = tomllib.loads(toml_path.read_bytes().decode())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {toml_path}: {exc}") from exc

    data = resolve_env_vars(data)

    server_section = data.get("server", {})
    if not isinstance(server_section, dict):
        raise ConfigError("[server] must be a table")
    name = str(server_section.get("name", DEFAULT_SERVER_NAME)).strip()
    if not name:
        raise ConfigError("server.name must be a non-empty string")

    calendar_section = data.get("calendar", {})
    if not isinstance(calendar_section, dict):
        raise ConfigError("[calendar] must be a table")
    try:
        calendar = CalendarConfig.model_validate(calendar_section)
    except ValidationError as exc:
        raise ConfigError(f"Invalid [calendar] section in {toml_path}: {exc}") from exc

    return ServerConfig(
        name=name,
        logging=_parse_logging(data),
        calendar=calendar,
    )
