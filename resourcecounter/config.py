#!/usr/bin/env python3
"""
Configuration management for the resource counter.

This module handles loading, merging, and validating configuration from:
1. Default values
2. User config file (~/.rescount/config.toml)
3. Environment variables (prefixed with RESCOUNT_)
4. Explicit overrides (command-line options)
"""
from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import tomli
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from resourcecounter.errors import ConfigError
from resourcecounter.models.resource import ResourceKey, UpdateMode

ENV_PREFIX = "RESCOUNT_"
ENV_NESTED_DELIMITER = "__"
DEFAULT_CONFIG_FILE = Path.home() / ".rescount" / "config.toml"


class StorageType(str, Enum):
    """Supported store backends."""
    DYNAMODB = "dynamodb"
    MEMORY = "memory"


class LogLevel(str, Enum):
    """Log levels for application logging."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AWSConfig(BaseModel):
    """Settings for the boto3 DynamoDB client."""
    model_config = ConfigDict(extra="forbid")

    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    profile: Optional[str] = None
    connect_timeout: float = 5.0
    read_timeout: float = 5.0
    # The SDK retries on its own before an error reaches us; keep it at one
    # attempt so that throttling and timeouts show up in the worker stats.
    max_attempts: int = 1

    @field_validator("connect_timeout", "read_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Timeouts must be positive, got {v}")
        return v

    @field_validator("max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_attempts must be at least 1, got {v}")
        return v


class BackoffConfig(BaseModel):
    """Jittered exponential back-off between failed attempts."""
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    base_delay: float = 0.01
    max_delay: float = 0.5
    jitter: float = 0.1

    @model_validator(mode="after")
    def check_delays(self) -> "BackoffConfig":
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("Back-off delays must be non-negative")
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must not be smaller than base_delay ({self.base_delay})"
            )
        if not 0 <= self.jitter <= 1:
            raise ValueError(f"jitter must be a fraction between 0 and 1, got {self.jitter}")
        return self


class ResourceCounterConfig(BaseModel):
    """Main configuration model for the resource counter."""
    model_config = ConfigDict(extra="forbid")

    # Table settings
    table_name: str = "resources"
    account_id: str = "10001"
    resource_id: str = "100"

    # Driver settings
    workers: int = Field(5, ge=1)
    writes_per_worker: int = Field(10, ge=1)
    backoff: BackoffConfig = BackoffConfig()

    # Loader settings
    seed_start: int = Field(100, ge=0)
    seed_count: int = Field(5, ge=1)

    # Store settings
    storage_type: StorageType = StorageType.DYNAMODB
    memory_latency_ms: float = Field(0.0, ge=0)
    aws: AWSConfig = AWSConfig()

    # Logging settings
    log_level: LogLevel = LogLevel.INFO
    log_file: Optional[Path] = None
    color_output: bool = True

    @field_validator("table_name", "account_id", "resource_id")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class RunSettings(BaseModel):
    """Everything the driver needs for one run."""
    key: ResourceKey
    workers: int
    writes_per_worker: int
    mode: UpdateMode

    @property
    def expected_commits(self) -> int:
        return self.workers * self.writes_per_worker

    @classmethod
    def from_config(cls, config: ResourceCounterConfig, mode: UpdateMode) -> "RunSettings":
        return cls(
            key=ResourceKey(config.resource_id, config.account_id),
            workers=config.workers,
            writes_per_worker=config.writes_per_worker,
            mode=mode,
        )


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with values from override taking precedence.

    If both values are dictionaries, they are deep-merged recursively.
    Otherwise, the value from override is used.
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_toml_config(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from a TOML file.

    A missing file yields an empty dict; an unreadable or malformed one is a
    ConfigError.
    """
    path = Path(file_path)
    if not path.exists():
        return {}

    try:
        with open(path, "rb") as f:
            return tomli.load(f)
    except (tomli.TOMLDecodeError, PermissionError, IsADirectoryError) as e:
        raise ConfigError(f"Error loading config file {file_path}: {e}") from e


def env_to_config_dict(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Convert environment variables with the RESCOUNT_ prefix to a nested config dictionary.

    Example: RESCOUNT_AWS__REGION=eu-west-1 becomes {'aws': {'region': 'eu-west-1'}}
    """
    if environ is None:
        environ = dict(os.environ)

    config_dict: Dict[str, Any] = {}
    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        config_key = key[len(ENV_PREFIX):].lower()
        # Logging switches read directly by the logging module
        if config_key in ("debug", "loglevel"):
            continue

        parts = config_key.split(ENV_NESTED_DELIMITER)
        current = config_dict
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        current[parts[-1]] = value

    return config_dict


def load_config(
    config_file: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> ResourceCounterConfig:
    """
    Load and merge configuration from all sources.

    Order of precedence (highest to lowest):
    1. Explicit overrides (None values are ignored)
    2. Environment variables
    3. User config file
    4. Default values from ResourceCounterConfig

    Raises:
        ConfigError: If the configuration is invalid or contains unknown fields.
    """
    if config_file is None:
        config_file = DEFAULT_CONFIG_FILE

    merged: Dict[str, Any] = {}
    merged = deep_merge(merged, load_toml_config(config_file))
    merged = deep_merge(merged, env_to_config_dict(environ))
    if overrides:
        merged = deep_merge(merged, _drop_none(overrides))

    try:
        return ResourceCounterConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def _drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    result = {}
    for key, value in values.items():
        if isinstance(value, dict):
            nested = _drop_none(value)
            if nested:
                result[key] = nested
        elif value is not None:
            result[key] = value
    return result
