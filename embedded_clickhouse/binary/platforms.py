"""Map the current OS/architecture to ClickHouse release assets."""

import platform
from dataclasses import dataclass

from ..common.enums import AssetType
from ..errors import UnsupportedPlatformError
from ..version import ClickHouseVersion

DEFAULT_BASE_URL = "https://github.com/ClickHouse/ClickHouse/releases/download"

# Python platform names -> release naming conventions
OS_MAP = {"linux": "linux", "darwin": "darwin", "windows": "windows"}
ARCH_MAP = {"x86_64": "amd64", "amd64": "amd64", "aarch64": "arm64", "arm64": "arm64"}

LINUX_ARCHES = {"amd64", "arm64"}
DARWIN_ASSETS = {
    "amd64": "clickhouse-macos",
    "arm64": "clickhouse-macos-aarch64",
}


@dataclass(frozen=True)
class PlatformAsset:
    """A downloadable release artifact for one platform."""

    filename: str
    asset_type: AssetType


def detect_os() -> str:
    """Return the normalized OS name (``linux``, ``darwin``, ``windows``)."""
    system = platform.system().lower()
    return OS_MAP.get(system, system)


def detect_arch() -> str:
    """Return the normalized CPU architecture (``amd64`` or ``arm64``)."""
    machine = platform.machine().lower()
    return ARCH_MAP.get(machine, machine)


def resolve_asset(version: ClickHouseVersion, os_name: str, arch: str) -> PlatformAsset:
    """
    Resolve the release asset for a version on the given platform.

    Linux releases ship the server inside the ``clickhouse-common-static``
    tarball; macOS releases ship a bare executable.

    Args:
        version: ClickHouse version
        os_name: Normalized OS name (see detect_os)
        arch: Normalized architecture (see detect_arch)

    Returns:
        The matching PlatformAsset

    Raises:
        UnsupportedPlatformError: If no asset is published for the platform
    """
    if os_name == "linux":
        if arch not in LINUX_ARCHES:
            raise UnsupportedPlatformError(os_name, arch)
        return PlatformAsset(
            filename=f"clickhouse-common-static-{version.numeric_version}-{arch}.tgz",
            asset_type=AssetType.ARCHIVE,
        )
    if os_name == "darwin":
        if arch not in DARWIN_ASSETS:
            raise UnsupportedPlatformError(os_name, arch)
        return PlatformAsset(
            filename=DARWIN_ASSETS[arch], asset_type=AssetType.RAW_BINARY
        )
    raise UnsupportedPlatformError(os_name, arch)


def resolve_current_platform_asset(version: ClickHouseVersion) -> PlatformAsset:
    return resolve_asset(version, detect_os(), detect_arch())


def download_url(
    base_url: str | None, version: ClickHouseVersion, asset: PlatformAsset
) -> str:
    """Build the download URL of an asset: ``<base>/v<version>/<filename>``."""
    base = (base_url or DEFAULT_BASE_URL).rstrip("/")
    return f"{base}/v{version}/{asset.filename}"


def sha512_url(
    base_url: str | None, version: ClickHouseVersion, asset: PlatformAsset
) -> str:
    """Build the URL of the asset's ``.sha512`` checksum sidecar."""
    return download_url(base_url, version, asset) + ".sha512"
