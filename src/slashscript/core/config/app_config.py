from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import Field, ValidationError

from slashscript.core.common.exceptions import ConfigurationError
from slashscript.core.interfaces.model_bases import DomainModel

logger = logging.getLogger(__name__)

ENV_PREFIX = "SLASHSCRIPT_"


def _env_to_bool(name: str, default: bool, env: Mapping[str, str]) -> bool:
    """Return an environment variable parsed as a boolean flag."""
    value = env.get(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigurationError(
        f"Invalid boolean value for {name}: {value!r}",
        details={"variable": name, "value": value},
    )


class LogLevel(str, Enum):
    """Log levels for configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_logging_level(self) -> int:
        return int(logging.getLevelName(self.value))


class ParserConfig(DomainModel):
    """Defaults applied when parsing scripts."""

    strict_escaping: bool = False
    replace_getvar: bool = False
    verify_command_names: bool = True
    allow_nested_closures: bool = True


class ExecutionConfig(DomainModel):
    """Defaults for the script execution entry point."""

    handle_parser_errors: bool = True
    handle_execution_errors: bool = False


class LoggingConfig(DomainModel):
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    log_file: str | None = None


class EngineConfig(DomainModel):
    """Complete engine configuration."""

    parser: ParserConfig = Field(default_factory=ParserConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, *, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Create an EngineConfig from ``SLASHSCRIPT_*`` environment variables."""
        env: Mapping[str, str] = environ if environ is not None else os.environ
        try:
            return cls.model_validate(_env_overrides(cls(), env))
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid engine configuration: {exc.error_count()} error(s)",
                details={"errors": exc.errors(include_url=False)},
            ) from exc

    def save(self, path: str | Path) -> None:
        """Save the configuration as YAML."""
        import yaml

        p = Path(path)
        with p.open("w", encoding="utf-8") as f:
            yaml.safe_dump(
                self.model_dump(mode="json", exclude_none=True), f, sort_keys=False
            )


def _env_overrides(base: EngineConfig, env: Mapping[str, str]) -> dict[str, Any]:
    data = base.model_dump()
    parser = data["parser"]
    parser["strict_escaping"] = _env_to_bool(
        f"{ENV_PREFIX}STRICT_ESCAPING", parser["strict_escaping"], env
    )
    parser["replace_getvar"] = _env_to_bool(
        f"{ENV_PREFIX}REPLACE_GETVAR", parser["replace_getvar"], env
    )
    parser["verify_command_names"] = _env_to_bool(
        f"{ENV_PREFIX}VERIFY_COMMAND_NAMES", parser["verify_command_names"], env
    )

    execution = data["execution"]
    execution["handle_parser_errors"] = _env_to_bool(
        f"{ENV_PREFIX}HANDLE_PARSER_ERRORS", execution["handle_parser_errors"], env
    )
    execution["handle_execution_errors"] = _env_to_bool(
        f"{ENV_PREFIX}HANDLE_EXECUTION_ERRORS",
        execution["handle_execution_errors"],
        env,
    )

    level = env.get(f"{ENV_PREFIX}LOG_LEVEL")
    if level:
        data["logging"]["level"] = level.strip().upper()
    log_file = env.get(f"{ENV_PREFIX}LOG_FILE")
    if log_file:
        data["logging"]["log_file"] = log_file
    return data


def _merge_dicts(d1: dict[str, Any], d2: dict[str, Any]) -> dict[str, Any]:
    for key, value in d2.items():
        if key in d1 and isinstance(d1[key], dict) and isinstance(value, dict):
            _merge_dicts(d1[key], value)
        else:
            d1[key] = value
    return d1


def load_config(
    config_path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> EngineConfig:
    """
    Load configuration from file and environment.

    Args:
        config_path: Optional path to a YAML configuration file
        environ: Optional environment mapping; defaults to ``os.environ``
            after loading a ``.env`` file if present

    Returns:
        EngineConfig instance
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    config_data: dict[str, Any] = EngineConfig().model_dump()

    if config_path:
        import yaml

        path = Path(config_path)
        if not path.exists():
            logger.warning("Configuration file not found: %s", config_path)
        else:
            if path.suffix.lower() not in [".yaml", ".yml"]:
                raise ConfigurationError(
                    f"Unsupported configuration file format: {path.suffix}. Use YAML (.yaml/.yml)."
                )
            with open(path, encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}
            if not isinstance(file_config, dict):
                raise ConfigurationError(
                    f"Configuration file {path} must contain a mapping"
                )
            _merge_dicts(config_data, file_config)

    try:
        merged = EngineConfig.model_validate(config_data)
        return EngineConfig.model_validate(_env_overrides(merged, environ))
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid engine configuration: {exc.error_count()} error(s)",
            details={"errors": exc.errors(include_url=False)},
        ) from exc
