"""Disposable local ClickHouse servers for tests."""

from .config import Config, default_config, load_config
from .embedded import ConnectionInfo, EmbeddedClickHouse
from .errors import (
    BinaryNotFoundError,
    ChecksumMismatchError,
    ConfigurationError,
    DownloadError,
    EmbeddedClickHouseError,
    ExtractionError,
    InvalidSettingKeyError,
    LifecycleError,
    ProcessError,
    ReadinessTimeoutError,
    ServerAlreadyStartedError,
    ServerNotStartedError,
    StopTimeoutError,
    UnsupportedPlatformError,
)
from .version import ClickHouseVersion

__version__ = "0.1.0"

__all__ = [
    "BinaryNotFoundError",
    "ChecksumMismatchError",
    "ClickHouseVersion",
    "Config",
    "ConfigurationError",
    "ConnectionInfo",
    "DownloadError",
    "EmbeddedClickHouse",
    "EmbeddedClickHouseError",
    "ExtractionError",
    "InvalidSettingKeyError",
    "LifecycleError",
    "ProcessError",
    "ReadinessTimeoutError",
    "ServerAlreadyStartedError",
    "ServerNotStartedError",
    "StopTimeoutError",
    "UnsupportedPlatformError",
    "default_config",
    "load_config",
]
