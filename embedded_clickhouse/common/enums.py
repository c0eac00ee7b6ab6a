"""Common enums used across embedded ClickHouse."""

from enum import Enum


class AssetType(str, Enum):
    """Kind of release asset published for a platform.

    - ARCHIVE: gzip tarball containing the server binary (Linux)
    - RAW_BINARY: the executable itself (macOS)
    """

    ARCHIVE = "archive"
    RAW_BINARY = "raw_binary"

    def __str__(self) -> str:
        return self.value
