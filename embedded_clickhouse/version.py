"""ClickHouse release version identifiers."""

from __future__ import annotations

from typing import ClassVar

from .errors import ConfigurationError

# Release channel suffixes stripped to build asset filenames
CHANNEL_SUFFIXES = ("lts", "stable", "testing")


class ClickHouseVersion:
    """A ClickHouse release tag such as ``25.8.16.34-lts``.

    The full string is the GitHub release tag (``v<version>``); the numeric
    form without the channel suffix is what appears in asset filenames.
    """

    V26_1: ClassVar[ClickHouseVersion]
    V25_8: ClassVar[ClickHouseVersion]
    V25_3: ClassVar[ClickHouseVersion]
    DEFAULT: ClassVar[ClickHouseVersion]

    __slots__ = ("_version",)

    def __init__(self, version: str):
        if not isinstance(version, str) or not version.strip():
            raise ConfigurationError("version must not be empty")
        self._version = version

    @property
    def numeric_version(self) -> str:
        """Return the version without its channel suffix.

        Examples:
            >>> ClickHouseVersion("25.8.16.34-lts").numeric_version
            '25.8.16.34'
            >>> ClickHouseVersion("24.1.1.1").numeric_version
            '24.1.1.1'
        """
        head, sep, suffix = self._version.rpartition("-")
        if sep and suffix in CHANNEL_SUFFIXES:
            return head
        return self._version

    def __str__(self) -> str:
        return self._version

    def __repr__(self) -> str:
        return f"ClickHouseVersion({self._version!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClickHouseVersion):
            return NotImplemented
        return self._version == other._version

    def __hash__(self) -> int:
        return hash(self._version)


ClickHouseVersion.V26_1 = ClickHouseVersion("26.1.3.52-stable")
ClickHouseVersion.V25_8 = ClickHouseVersion("25.8.16.34-lts")
ClickHouseVersion.V25_3 = ClickHouseVersion("25.3.14.14-lts")
ClickHouseVersion.DEFAULT = ClickHouseVersion.V25_8
