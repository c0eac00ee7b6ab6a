"""Configuration for an embedded ClickHouse server."""

import os
from collections.abc import Mapping
from datetime import timedelta
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .version import ClickHouseVersion

# Top-level key used when the embedded server config lives in a shared YAML file
CONFIG_SECTION = "embedded_clickhouse"


class Config(BaseModel):
    """Immutable configuration for an embedded ClickHouse server.

    Every ``with_*`` method returns a new instance and leaves the receiver
    untouched:

        >>> cfg = Config().with_version(ClickHouseVersion.V25_3).with_tcp_port(19000)

    A port of ``0`` means "allocate a free port on start".
    """

    model_config = ConfigDict(
        frozen=True, arbitrary_types_allowed=True, extra="forbid"
    )

    version: ClickHouseVersion = ClickHouseVersion.DEFAULT
    tcp_port: int = 0
    http_port: int = 0
    cache_path: str | None = None
    data_path: str | None = None
    binary_path: str | None = None
    binary_repository_url: str | None = None
    start_timeout: timedelta = timedelta(seconds=30)
    stop_timeout: timedelta = timedelta(seconds=10)
    # Sink for the server's combined stdout/stderr; None means sys.stdout
    output: Any = Field(default=None, exclude=True)
    settings: Mapping[str, str] = Field(
        default_factory=lambda: MappingProxyType({})
    )

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise ConfigurationError(f"invalid configuration: {e}") from e

    @field_validator("version", mode="before")
    @classmethod
    def validate_version(cls, v: Any) -> ClickHouseVersion:
        """Accept plain version strings as well as ClickHouseVersion objects."""
        if isinstance(v, ClickHouseVersion):
            return v
        if v is None:
            raise ValueError("version must not be empty")
        return ClickHouseVersion(str(v))

    @field_validator("tcp_port", "http_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Ensure port is 0 (auto) or a valid TCP port."""
        if not 0 <= v <= 65535:
            raise ValueError(f"port must be between 0 and 65535 (got {v})")
        return v

    @field_validator("start_timeout", "stop_timeout")
    @classmethod
    def validate_timeout(cls, v: timedelta) -> timedelta:
        """Ensure timeouts are positive."""
        if v.total_seconds() <= 0:
            raise ValueError(f"timeout must be positive (got {v})")
        return v

    @field_validator("settings", mode="before")
    @classmethod
    def copy_settings(cls, v: Any) -> Any:
        """Copy the caller's mapping so later mutations are not visible."""
        if v is None:
            return {}
        if isinstance(v, Mapping):
            return {str(key): str(value) for key, value in v.items()}
        return v

    @field_validator("settings")
    @classmethod
    def freeze_settings(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(v))

    def replace(self, **changes: Any) -> "Config":
        """Return a copy of this config with the given fields replaced."""
        values = {name: getattr(self, name) for name in type(self).model_fields}
        values.update(changes)
        return type(self)(**values)

    def with_version(self, version: ClickHouseVersion | str) -> "Config":
        return self.replace(version=version)

    def with_tcp_port(self, port: int) -> "Config":
        return self.replace(tcp_port=port)

    def with_http_port(self, port: int) -> "Config":
        return self.replace(http_port=port)

    def with_cache_path(self, path: str | Path | None) -> "Config":
        return self.replace(cache_path=_optional_str(path))

    def with_data_path(self, path: str | Path | None) -> "Config":
        return self.replace(data_path=_optional_str(path))

    def with_binary_path(self, path: str | Path | None) -> "Config":
        return self.replace(binary_path=_optional_str(path))

    def with_binary_repository_url(self, url: str | None) -> "Config":
        return self.replace(binary_repository_url=url)

    def with_start_timeout(self, timeout: timedelta | float) -> "Config":
        return self.replace(start_timeout=timeout)

    def with_stop_timeout(self, timeout: timedelta | float) -> "Config":
        return self.replace(stop_timeout=timeout)

    def with_output(self, output: Any) -> "Config":
        return self.replace(output=output)

    def with_settings(self, settings: Mapping[str, Any]) -> "Config":
        """Set arbitrary ClickHouse server settings.

        The mapping is copied; subsequent caller mutations do not affect
        the returned config.
        """
        return self.replace(settings=settings)


def default_config() -> Config:
    """Return a Config with sensible defaults."""
    return Config()


def _optional_str(value: str | Path | None) -> str | None:
    if value is None:
        return None
    return str(value)


def load_config(path: str | Path) -> Config:
    """Load and validate an embedded ClickHouse configuration from YAML.

    The document may either contain the fields at top level or nest them
    under an ``embedded_clickhouse:`` key. Timeouts are given in seconds and
    ``$VAR`` references are expanded from the environment.

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationError: If the content is not a valid configuration
    """
    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigurationError(
            f"configuration in {config_path} must be a mapping, "
            f"got {type(raw_config).__name__}"
        )

    if CONFIG_SECTION in raw_config:
        raw_config = raw_config[CONFIG_SECTION] or {}

    return Config(**_expand_env_vars(raw_config))


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration."""
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj
