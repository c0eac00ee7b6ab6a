"""Trace binary resolution and server launches when debugging is on."""

from __future__ import annotations

import os
import shlex
import sys
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .binary.platforms import PlatformAsset

DEBUG_ENV_VAR = "EMBEDDED_CLICKHOUSE_DEBUG"

_debug_enabled = False


def set_debug(enabled: bool) -> None:
    """Set global debug state, mirrored into the environment for child processes."""
    global _debug_enabled
    _debug_enabled = enabled

    if enabled:
        os.environ[DEBUG_ENV_VAR] = "1"
    else:
        os.environ.pop(DEBUG_ENV_VAR, None)


def is_debug_enabled() -> bool:
    global _debug_enabled

    if not _debug_enabled and os.getenv(DEBUG_ENV_VAR, "").lower() in (
        "1",
        "true",
        "yes",
    ):
        _debug_enabled = True

    return _debug_enabled


def _trace(line: str) -> None:
    # stderr, so `fetch` keeps printing only the binary path on stdout
    print(f"[DEBUG] {line}", file=sys.stderr)


def debug_log_download(asset: PlatformAsset, url: str, checksum_url: str) -> None:
    """Trace the release asset chosen for this platform and where it comes from."""
    if is_debug_enabled():
        _trace(f"Asset: {asset.filename} ({asset.asset_type.value})")
        _trace(f"URL: {url}")
        _trace(f"Checksum URL: {checksum_url}")


def debug_log_command(command: Sequence[str]) -> None:
    """Trace the ClickHouse server command line."""
    if is_debug_enabled():
        _trace(f"Command: {shlex.join(str(part) for part in command)}")
