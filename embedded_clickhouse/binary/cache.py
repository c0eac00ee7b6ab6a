"""OS-appropriate cache directory for downloaded ClickHouse binaries."""

import os
from pathlib import Path

from platformdirs import user_cache_path

from ..version import ClickHouseVersion
from .platforms import detect_arch, detect_os

CACHE_SUBDIR = "embedded-clickhouse"
CACHE_ENV_VAR = "XDG_CACHE_HOME"


def cache_dir(override: str | Path | None = None) -> Path:
    """Return the directory used to store cached ClickHouse binaries.

    Priority: explicit override > $XDG_CACHE_HOME/embedded-clickhouse >
    the per-user cache directory of the OS (``~/.cache`` on Linux,
    ``~/Library/Caches`` on macOS).
    """
    if override:
        return Path(override)

    xdg = os.environ.get(CACHE_ENV_VAR)
    if xdg:
        return Path(xdg) / CACHE_SUBDIR

    return user_cache_path(CACHE_SUBDIR, appauthor=False)


def cached_binary_path(
    directory: str | Path,
    version: ClickHouseVersion,
    os_name: str | None = None,
    arch: str | None = None,
) -> Path:
    """Return the cache location of the binary for a version and platform."""
    safe_version = str(version).replace(os.sep, "_")
    os_name = os_name or detect_os()
    arch = arch or detect_arch()
    return Path(directory) / f"clickhouse-{safe_version}-{os_name}-{arch}"
