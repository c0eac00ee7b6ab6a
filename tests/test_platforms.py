import pytest

from embedded_clickhouse import ClickHouseVersion, UnsupportedPlatformError
from embedded_clickhouse.binary import platforms
from embedded_clickhouse.binary.platforms import (
    PlatformAsset,
    download_url,
    resolve_asset,
    sha512_url,
)
from embedded_clickhouse.common import AssetType

VERSION = ClickHouseVersion.V25_8


@pytest.mark.parametrize(
    "os_name,arch,filename,asset_type",
    [
        (
            "linux",
            "amd64",
            "clickhouse-common-static-25.8.16.34-amd64.tgz",
            AssetType.ARCHIVE,
        ),
        (
            "linux",
            "arm64",
            "clickhouse-common-static-25.8.16.34-arm64.tgz",
            AssetType.ARCHIVE,
        ),
        ("darwin", "amd64", "clickhouse-macos", AssetType.RAW_BINARY),
        ("darwin", "arm64", "clickhouse-macos-aarch64", AssetType.RAW_BINARY),
    ],
)
def test_resolve_supported_platforms(os_name, arch, filename, asset_type):
    asset = resolve_asset(VERSION, os_name, arch)
    assert asset == PlatformAsset(filename, asset_type)
    # deterministic
    assert resolve_asset(VERSION, os_name, arch) == asset


@pytest.mark.parametrize(
    "os_name,arch",
    [
        ("windows", "amd64"),
        ("freebsd", "amd64"),
        ("linux", "riscv64"),
        ("darwin", "ppc64le"),
    ],
)
def test_resolve_unsupported_platforms(os_name, arch):
    with pytest.raises(UnsupportedPlatformError) as e:
        resolve_asset(VERSION, os_name, arch)
    assert e.value.os_name == os_name
    assert e.value.arch == arch
    assert f"unsupported platform: {os_name}/{arch}" in str(e.value)


@pytest.mark.parametrize(
    "system,machine,expected",
    [
        ("Linux", "x86_64", ("linux", "amd64")),
        ("Linux", "aarch64", ("linux", "arm64")),
        ("Darwin", "arm64", ("darwin", "arm64")),
        ("Windows", "AMD64", ("windows", "amd64")),
    ],
)
def test_detect_platform(monkeypatch, system, machine, expected):
    monkeypatch.setattr(platforms.platform, "system", lambda: system)
    monkeypatch.setattr(platforms.platform, "machine", lambda: machine)
    assert (platforms.detect_os(), platforms.detect_arch()) == expected


def test_download_urls():
    asset = resolve_asset(VERSION, "linux", "amd64")

    assert download_url(None, VERSION, asset) == (
        "https://github.com/ClickHouse/ClickHouse/releases/download/"
        "v25.8.16.34-lts/clickhouse-common-static-25.8.16.34-amd64.tgz"
    )
    assert sha512_url("https://mirror.example.com/ch/", VERSION, asset) == (
        "https://mirror.example.com/ch/"
        "v25.8.16.34-lts/clickhouse-common-static-25.8.16.34-amd64.tgz.sha512"
    )
