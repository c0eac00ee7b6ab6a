"""Binary acquisition: platform resolution, caching, download and extraction."""

from .archive import extract_clickhouse_binary, is_clickhouse_binary_path
from .cache import cache_dir, cached_binary_path
from .downloader import ensure_binary, parse_sha512, verify_sha512
from .platforms import (
    DEFAULT_BASE_URL,
    PlatformAsset,
    detect_arch,
    detect_os,
    download_url,
    resolve_asset,
    resolve_current_platform_asset,
    sha512_url,
)

__all__ = [
    "DEFAULT_BASE_URL",
    "PlatformAsset",
    "cache_dir",
    "cached_binary_path",
    "detect_arch",
    "detect_os",
    "download_url",
    "ensure_binary",
    "extract_clickhouse_binary",
    "is_clickhouse_binary_path",
    "parse_sha512",
    "resolve_asset",
    "resolve_current_platform_asset",
    "sha512_url",
    "verify_sha512",
]
