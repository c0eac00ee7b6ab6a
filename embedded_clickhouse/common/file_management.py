from __future__ import annotations

import hashlib
from pathlib import Path

import requests

from ..errors import DownloadError

# Network timeouts (seconds) for release asset downloads
CONNECT_TIMEOUT_S = 30
READ_TIMEOUT_S = 600

CHUNK_SIZE = 8192


def download_file(
    url: str,
    target: Path | str,
    timeout: tuple[float, float] = (CONNECT_TIMEOUT_S, READ_TIMEOUT_S),
) -> None:
    """Stream the resource at ``url`` into ``target``.

    A partially written target is deleted on any failure.

    Args:
        url: Resource to fetch (redirects are followed)
        target: Destination file, overwritten if it exists
        timeout: (connect, read) timeouts in seconds

    Raises:
        DownloadError: On connection failures, timeouts or a non-200 status
        OSError: If the target cannot be written
    """
    target = Path(target)

    try:
        with requests.get(
            url, allow_redirects=True, stream=True, timeout=timeout
        ) as response:
            if response.status_code != 200:
                raise DownloadError(
                    f"download failed: {url}: HTTP {response.status_code}"
                )
            with open(target, "wb") as file:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    file.write(chunk)
    except DownloadError:
        target.unlink(missing_ok=True)
        raise
    except requests.RequestException as e:
        target.unlink(missing_ok=True)
        raise DownloadError(f"download {url}: {e}") from e
    except OSError:
        target.unlink(missing_ok=True)
        raise


def file_sha512(path: Path | str) -> str:
    """Return the lower-case hex SHA-512 digest of a file."""
    digest = hashlib.sha512()
    with open(path, "rb") as file:
        for chunk in iter(lambda: file.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()
