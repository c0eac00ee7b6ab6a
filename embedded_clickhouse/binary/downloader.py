"""Acquire ClickHouse binaries: explicit path, cache, or GitHub release download."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import TYPE_CHECKING

import requests

from ..common.enums import AssetType
from ..common.file_management import (
    CONNECT_TIMEOUT_S,
    READ_TIMEOUT_S,
    download_file,
    file_sha512,
)
from ..debug import debug_log_download
from ..errors import (
    BinaryNotFoundError,
    ChecksumMismatchError,
    DownloadError,
    EmbeddedClickHouseError,
)
from ..util import Timer
from .archive import extract_clickhouse_binary
from .cache import cache_dir, cached_binary_path
from .platforms import (
    PlatformAsset,
    download_url,
    resolve_current_platform_asset,
    sha512_url,
)

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)

# Serializes downloads across all engine instances in this process
_DOWNLOAD_LOCK = threading.Lock()


def ensure_binary(config: Config) -> Path:
    """
    Return the path to a ClickHouse binary, downloading it if necessary.

    An explicit ``binary_path`` is used as-is. Otherwise the per-version
    cache entry is returned, and on a cache miss the release asset is
    downloaded, verified against its SHA-512 sidecar and installed into
    the cache.

    Args:
        config: Embedded server configuration

    Returns:
        Path to an executable ClickHouse binary

    Raises:
        BinaryNotFoundError: If the explicit binary path does not exist
        UnsupportedPlatformError: If no release asset exists for this platform
        DownloadError: On network failures or checksum mismatch
        ExtractionError: If the archive does not contain the binary
    """
    if config.binary_path:
        explicit = Path(config.binary_path)
        if not explicit.exists():
            raise BinaryNotFoundError(
                f"specified binary not found: {config.binary_path}"
            )
        return explicit

    bin_path = cached_binary_path(cache_dir(config.cache_path), config.version)

    if bin_path.exists():
        logger.debug(f"Using cached ClickHouse binary: {bin_path}")
        return bin_path

    with _DOWNLOAD_LOCK:
        # Another engine may have populated the cache while we waited
        if bin_path.exists():
            return bin_path

        asset = resolve_current_platform_asset(config.version)
        url = download_url(config.binary_repository_url, config.version, asset)
        checksum_url = sha512_url(config.binary_repository_url, config.version, asset)

        debug_log_download(asset, url, checksum_url)
        logger.info(f"Downloading ClickHouse v{config.version} from {url}")

        with Timer(f"Download of ClickHouse v{config.version}") as timer:
            if asset.asset_type is AssetType.ARCHIVE:
                _download_and_extract(url, checksum_url, asset, bin_path)
            else:
                _download_raw_binary(url, checksum_url, asset, bin_path)

        logger.info(f"{timer}, installed at {bin_path}")
        return bin_path


def _create_cache_dir(bin_path: Path) -> None:
    try:
        bin_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise EmbeddedClickHouseError(f"create cache dir: {e}") from e


def _download_and_extract(
    url: str, checksum_url: str, asset: PlatformAsset, bin_path: Path
) -> None:
    _create_cache_dir(bin_path)

    archive_path = bin_path.parent / f"{asset.filename}.tmp"
    try:
        download_file(url, archive_path)
        verify_sha512(archive_path, checksum_url, asset.filename)
        extract_clickhouse_binary(archive_path, bin_path)
    finally:
        archive_path.unlink(missing_ok=True)


def _download_raw_binary(
    url: str, checksum_url: str, asset: PlatformAsset, bin_path: Path
) -> None:
    _create_cache_dir(bin_path)

    tmp = bin_path.with_name(bin_path.name + ".tmp")
    try:
        download_file(url, tmp)
        verify_sha512(tmp, checksum_url, asset.filename)
        try:
            tmp.chmod(0o755)
            os.replace(tmp, bin_path)
        except OSError as e:
            raise EmbeddedClickHouseError(f"install binary {bin_path}: {e}") from e
    finally:
        # No-op after a successful os.replace
        tmp.unlink(missing_ok=True)


def verify_sha512(file_path: Path | str, checksum_url: str, expected_filename: str) -> None:
    """
    Verify a downloaded file against a published ``sha512sum`` listing.

    If the checksum resource is not available (non-200 response) the
    verification is skipped with a warning.

    Raises:
        ChecksumMismatchError: If the digests differ (the file is deleted)
        DownloadError: If the checksum cannot be fetched or has no entry
            for ``expected_filename``
    """
    file_path = Path(file_path)

    try:
        with requests.get(
            checksum_url,
            allow_redirects=True,
            timeout=(CONNECT_TIMEOUT_S, READ_TIMEOUT_S),
        ) as response:
            status = response.status_code
            body = response.text
    except requests.RequestException as e:
        file_path.unlink(missing_ok=True)
        raise DownloadError(f"download SHA512: {e}") from e

    if status != 200:
        logger.warning(
            f"SHA512 not available for {expected_filename} (HTTP {status}), "
            "skipping verification"
        )
        return

    expected = parse_sha512(body, expected_filename)
    actual = file_sha512(file_path)

    if actual != expected:
        file_path.unlink(missing_ok=True)
        raise ChecksumMismatchError(
            f"SHA512 mismatch: {expected_filename}: "
            f"expected {expected}, got {actual}"
        )


def parse_sha512(content: str, filename: str) -> str:
    """Return the lower-case hex digest listed for ``filename``.

    The content uses the ``sha512sum`` format: ``<hash>  <filename>`` per
    line. A line holding only a hash never matches.
    """
    for line in content.strip().splitlines():
        parts = line.split()
        # sha512sum marks binary mode with a leading "*"
        if len(parts) >= 2 and parts[1].lstrip("*") == filename:
            return parts[0].lower()

    raise DownloadError(f"SHA512 hash not found: {filename}")
