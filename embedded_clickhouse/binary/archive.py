"""Extract the ClickHouse server binary from release tarballs."""

import os
import posixpath
import shutil
import tarfile
from pathlib import Path
from typing import BinaryIO

from ..errors import ExtractionError

BINARY_NAME = "clickhouse"


def is_clickhouse_binary_path(name: str) -> bool:
    """Return True if a tar entry path looks like the main server binary.

    Matches ``clickhouse``, ``bin/clickhouse`` and ``usr/bin/clickhouse``
    with or without a leading directory such as
    ``clickhouse-common-static-25.8.16.34/``. Sibling tools like
    ``clickhouse-client`` never match.
    """
    clean = posixpath.normpath(name.replace("\\", "/"))
    return (
        clean == BINARY_NAME
        or clean == f"bin/{BINARY_NAME}"
        or clean.endswith(f"/bin/{BINARY_NAME}")
    )


def extract_clickhouse_binary(archive_path: str | Path, dest_path: str | Path) -> Path:
    """
    Extract the clickhouse binary from a .tgz archive.

    The archive is read as a stream, so only the entries up to the binary
    are decompressed.

    Args:
        archive_path: Path to the gzip-compressed tarball
        dest_path: Where to place the executable

    Returns:
        Path to the extracted binary

    Raises:
        ExtractionError: If the archive is unreadable or holds no binary
    """
    try:
        with tarfile.open(archive_path, mode="r|gz") as tar:
            for member in tar:
                if not member.isfile() or not is_clickhouse_binary_path(member.name):
                    continue
                source = tar.extractfile(member)
                if source is None:
                    continue
                with source:
                    return write_executable(source, dest_path)
    except (tarfile.TarError, EOFError, OSError) as e:
        raise ExtractionError(f"read archive {archive_path}: {e}") from e

    raise ExtractionError(f"binary not found in archive: {archive_path}")


def write_executable(source: BinaryIO, dest_path: str | Path) -> Path:
    """Write stream content to ``dest_path`` atomically and mark it executable."""
    dest = Path(dest_path)
    if ".." in dest.parts:
        raise ExtractionError(f"invalid destination path: {dest_path}")

    tmp = dest.with_name(dest.name + ".tmp")
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "wb") as out:
            shutil.copyfileobj(source, out)
        tmp.chmod(0o755)
        os.replace(tmp, dest)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise ExtractionError(f"write binary {dest}: {e}") from e

    return dest
