"""Readiness polling against the server's /ping endpoint."""

import logging
import subprocess
import time
from datetime import timedelta

import requests

from ..errors import ProcessError, ReadinessTimeoutError
from ..util import format_duration
from .ports import LOCALHOST

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 0.1
REQUEST_TIMEOUT_S = 2.0


def ping_url(http_port: int) -> str:
    return f"http://{LOCALHOST}:{http_port}/ping"


def ping(url: str) -> bool:
    """Return True if ``url`` answers HTTP 200; connection failures are False."""
    try:
        with requests.get(url, timeout=REQUEST_TIMEOUT_S) as response:
            # Drain so the connection can be reused
            _ = response.content
            return response.status_code == 200
    except requests.RequestException:
        return False


def wait_for_ready(
    http_port: int,
    timeout: timedelta | float,
    process: subprocess.Popen | None = None,
) -> None:
    """
    Block until the server answers its liveness endpoint.

    Args:
        http_port: HTTP port of the server
        timeout: Maximum time to wait
        process: Server process; if it exits the wait fails immediately

    Raises:
        ProcessError: If ``process`` exits before the server became ready
        ReadinessTimeoutError: If the deadline passes
    """
    if isinstance(timeout, timedelta):
        timeout = timeout.total_seconds()

    url = ping_url(http_port)
    deadline = time.monotonic() + timeout

    if ping(url):
        return

    while time.monotonic() < deadline:
        if process is not None:
            exit_code = process.poll()
            if exit_code is not None:
                raise ProcessError(
                    f"server process exited prematurely with code {exit_code}",
                    exit_code=exit_code,
                )

        time.sleep(POLL_INTERVAL_S)

        if ping(url):
            logger.debug(f"ClickHouse ready on port {http_port}")
            return

    raise ReadinessTimeoutError(
        f"server did not become ready within {format_duration(timeout)}"
    )
