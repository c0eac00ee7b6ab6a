"""Launch and stop the ClickHouse server child process."""

import io
import logging
import signal
import subprocess
import sys
import threading
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path
from typing import IO, Any, Union

from ..debug import debug_log_command
from ..errors import ProcessError, StopTimeoutError

logger = logging.getLogger(__name__)

KILL_GRACE_S = 5.0
READER_THREAD_NAME = "clickhouse-output-reader"

# A shell reports death-by-SIGTERM as 128 + 15
SIGTERM_EXIT_CODE = 128 + signal.SIGTERM
SUCCESS_EXIT_CODES = frozenset({0, -signal.SIGTERM, SIGTERM_EXIT_CODE})

OutputSink = Union[IO[str], IO[bytes], Callable[[str], Any]]


def start_process(
    binary_path: str | Path,
    config_path: str | Path,
    output: OutputSink | None = None,
) -> subprocess.Popen:
    """
    Start ``clickhouse server`` with the given config file.

    Standard error is merged into standard output, and the combined stream
    is copied to ``output`` by a daemon thread until the child closes it.
    ``None`` copies to ``sys.stdout``.

    Raises:
        ProcessError: If the executable cannot be started
    """
    command = [str(binary_path), "server", f"--config-file={config_path}"]
    debug_log_command(command)

    try:
        process = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as e:
        raise ProcessError(f"start clickhouse: {e}") from e

    sink = output if output is not None else sys.stdout
    reader = threading.Thread(
        target=_copy_output,
        args=(process.stdout, sink),
        name=READER_THREAD_NAME,
        daemon=True,
    )
    reader.start()

    logger.debug(f"Started ClickHouse process (pid {process.pid})")
    return process


def _copy_output(pipe: IO[bytes], sink: OutputSink) -> None:
    write = _sink_writer(sink)
    try:
        for raw_line in iter(pipe.readline, b""):
            try:
                write(raw_line)
            except (OSError, ValueError) as e:
                # Sink closed under us; keep draining so the child never blocks
                logger.debug(f"Dropping server output: {e}")
    finally:
        pipe.close()


def _sink_writer(sink: OutputSink) -> Callable[[bytes], None]:
    if callable(sink) and not hasattr(sink, "write"):

        def write_line(raw: bytes) -> None:
            sink(raw.decode("utf-8", errors="replace").rstrip("\r\n"))

        return write_line

    if isinstance(sink, io.TextIOBase) or hasattr(sink, "encoding"):

        def write_text(raw: bytes) -> None:
            sink.write(raw.decode("utf-8", errors="replace"))
            sink.flush()

        return write_text

    def write_bytes(raw: bytes) -> None:
        sink.write(raw)
        if hasattr(sink, "flush"):
            sink.flush()

    return write_bytes


def stop_process(
    process: subprocess.Popen | None, timeout: timedelta | float
) -> None:
    """
    Stop the server gracefully, killing it if it exceeds ``timeout``.

    Does nothing for ``None`` or an already exited process.

    Raises:
        StopTimeoutError: If the process had to be killed
        ProcessError: If the process exited with an unexpected code
    """
    if process is None or process.poll() is not None:
        return

    if isinstance(timeout, timedelta):
        timeout = timeout.total_seconds()

    process.terminate()
    try:
        exit_code = process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning(
            f"ClickHouse (pid {process.pid}) did not stop within {timeout}s, killing"
        )
        process.kill()
        try:
            process.wait(timeout=KILL_GRACE_S)
        except subprocess.TimeoutExpired:
            logger.warning(f"ClickHouse (pid {process.pid}) still alive after kill")
        raise StopTimeoutError() from None

    if exit_code not in SUCCESS_EXIT_CODES:
        raise ProcessError(
            f"server exited with code {exit_code}", exit_code=exit_code
        )
