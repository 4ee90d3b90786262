"""Frozen dataclasses for configuration and YAML loader with env-var interpolation."""

from __future__ import annotations

import dataclasses
import logging
import os
import re
import typing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

DEFAULT_TAGS = "Role=bastion,Function=port-forward"

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")

# Checked in order when no region is given on the command line or in the file
_REGION_ENV_VARS = ("AWS_DEFAULT_REGION", "AWS_REGION")


def _interpolate_env(value: str) -> str:
    """Replace ${ENV_VAR} placeholders with environment variable values."""

    def _replace(match: re.Match) -> str:
        env_key = match.group(1)
        env_val = os.environ.get(env_key)
        if env_val is None:
            raise ConfigError(f"Environment variable '{env_key}' is not set")
        return env_val

    return _ENV_PATTERN.sub(_replace, value)


def _walk_and_interpolate(obj: Any) -> Any:
    """Recursively interpolate env vars in strings throughout a nested structure."""
    if isinstance(obj, str):
        return _interpolate_env(obj)
    if isinstance(obj, dict):
        return {k: _walk_and_interpolate(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_walk_and_interpolate(v) for v in obj]
    return obj


@dataclass(frozen=True)
class AWSConfig:
    region: str = ""
    credential_profile: str = ""  # empty = use default boto3 credential chain


@dataclass(frozen=True)
class TagsConfig:
    default: str = DEFAULT_TAGS


@dataclass(frozen=True)
class ResolverConfig:
    pool_size: int = 8


@dataclass(frozen=True)
class SessionConfig:
    aws_cli: str = "aws"
    ping_interval_seconds: float = 300.0
    ping_timeout_seconds: float = 5.0
    ping_initial_delay_seconds: float = 5.0


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "text"  # "json" or "text"


@dataclass(frozen=True)
class AppConfig:
    aws: AWSConfig = field(default_factory=AWSConfig)
    tags: TagsConfig = field(default_factory=TagsConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _build_nested(cls: type, data: dict[str, Any]) -> Any:
    """Construct a frozen dataclass, recursively building nested dataclass fields.

    Unknown keys are ignored.
    """
    hints = typing.get_type_hints(cls)
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in hints:
            continue
        ft = hints[key]
        if dataclasses.is_dataclass(ft):
            if value is None:
                continue
            if not isinstance(value, dict):
                raise ConfigError(f"Section '{key}' must be a mapping")
            kwargs[key] = _build_nested(ft, value)
        else:
            kwargs[key] = value
    return cls(**kwargs)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate configuration from a YAML file.

    With no path the built-in defaults are returned (still validated).
    """
    if path is None:
        config = AppConfig()
        _validate(config)
        return config

    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must be a YAML mapping")

    raw = _walk_and_interpolate(raw)
    config = _build_nested(AppConfig, raw)
    _validate(config)
    return config


def resolve_region(config: AppConfig, override: str | None = None) -> str:
    """Pick the AWS region: explicit override, then config file, then environment."""
    if override:
        return override
    if config.aws.region:
        return config.aws.region
    for env_key in _REGION_ENV_VARS:
        value = os.environ.get(env_key)
        if value:
            return value
    raise ConfigError(
        "AWS region required: pass --region, set aws.region in the config file, "
        "or export AWS_DEFAULT_REGION"
    )


def _validate(config: AppConfig) -> None:
    """Validate configuration values."""
    if not isinstance(config.resolver.pool_size, int) or config.resolver.pool_size < 1:
        raise ConfigError("resolver.pool_size must be an integer >= 1")

    if config.session.ping_interval_seconds <= 0:
        raise ConfigError("session.ping_interval_seconds must be > 0")

    if config.session.ping_timeout_seconds <= 0:
        raise ConfigError("session.ping_timeout_seconds must be > 0")

    if config.session.ping_initial_delay_seconds < 0:
        raise ConfigError("session.ping_initial_delay_seconds must be >= 0")

    if not config.session.aws_cli:
        raise ConfigError("session.aws_cli must not be empty")

    if config.logging.format not in ("json", "text"):
        raise ConfigError("logging.format must be 'json' or 'text'")

    if not isinstance(logging.getLevelName(str(config.logging.level).upper()), int):
        raise ConfigError(f"logging.level '{config.logging.level}' is not a valid level")
