"""Lifecycle engine for a disposable local ClickHouse server."""

from __future__ import annotations

import logging
import subprocess
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType

from .binary.downloader import ensure_binary
from .config import Config
from .errors import (
    EmbeddedClickHouseError,
    ServerAlreadyStartedError,
    ServerNotStartedError,
)
from .server.config_writer import write_server_config
from .server.health import wait_for_ready
from .server.ports import LOCALHOST, allocate_port
from .server.process import start_process, stop_process
from .util import ReadWriteLock, Timer, remove_directory

logger = logging.getLogger(__name__)

HOST = LOCALHOST
TEMP_DIR_PREFIX = "embedded-clickhouse-"


@dataclass(frozen=True)
class ConnectionInfo:
    """Endpoints of a running embedded server."""

    host: str
    tcp_port: int
    http_port: int

    @property
    def tcp_addr(self) -> str:
        return f"{self.host}:{self.tcp_port}"

    @property
    def http_addr(self) -> str:
        return f"{self.host}:{self.http_port}"

    @property
    def dsn(self) -> str:
        return f"clickhouse://{self.host}:{self.tcp_port}/default"

    @property
    def http_url(self) -> str:
        return f"http://{self.host}:{self.http_port}"

    @property
    def jdbc_url(self) -> str:
        return f"jdbc:clickhouse://{self.host}:{self.http_port}/default"


class _Rollback:
    """Undo actions registered during start, run in reverse order."""

    def __init__(self) -> None:
        self._actions: list[tuple[str, Callable[[], None]]] = []

    def push(self, description: str, action: Callable[[], None]) -> None:
        self._actions.append((description, action))

    def run(self) -> None:
        while self._actions:
            description, action = self._actions.pop()
            try:
                action()
            except Exception as e:
                logger.warning(f"Rollback step '{description}' failed: {e}")


class EmbeddedClickHouse:
    """
    A ClickHouse server running as a child process of the current process.

    ``start()`` acquires the binary, writes a config into a working
    directory, launches the server on free (or configured) ports and waits
    until it answers ``/ping``. ``stop()`` shuts it down and removes the
    working directory unless it was supplied as ``data_path``.

    The endpoint accessors are safe to call from other threads while a
    start or stop is in progress; they block until the transition has
    settled.

        with EmbeddedClickHouse(Config().with_tcp_port(19000)) as server:
            client = clickhouse_connect.get_client(port=server.http_port)
    """

    def __init__(self, config: Config | None = None):
        self.config = config if config is not None else Config()
        self._lock = ReadWriteLock()
        self._process: subprocess.Popen | None = None
        self._work_dir: Path | None = None
        self._owns_work_dir = False
        self._tcp_port = 0
        self._http_port = 0
        self._running = False

    @classmethod
    def create(cls, config: Config | None = None) -> EmbeddedClickHouse:
        """Create an engine for ``config`` (defaults if omitted)."""
        return cls(config)

    def start(self) -> None:
        """
        Start the server and block until it is ready.

        Everything allocated by a failed start is released again before the
        error propagates.

        Raises:
            ServerAlreadyStartedError: If the server is already running
            EmbeddedClickHouseError: If any startup step fails
        """
        with self._lock.write_locked():
            if self._running:
                raise ServerAlreadyStartedError()

            try:
                self._start_locked()
            except OSError as e:
                raise EmbeddedClickHouseError(f"startup failed: {e}") from e

    def _start_locked(self) -> None:
        config = self.config
        rollback = _Rollback()
        success = False

        try:
            with Timer("ClickHouse startup") as timer:
                binary_path = ensure_binary(config)

                tcp_port = config.tcp_port or allocate_port()
                http_port = config.http_port or allocate_port()

                if config.data_path:
                    work_dir = Path(config.data_path)
                    work_dir.mkdir(parents=True, exist_ok=True)
                    owns_work_dir = False
                else:
                    work_dir = Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX))
                    owns_work_dir = True
                    rollback.push(
                        f"remove {work_dir}", lambda: remove_directory(work_dir)
                    )

                config_path = write_server_config(
                    work_dir, tcp_port, http_port, config.settings
                )

                process = start_process(binary_path, config_path, config.output)
                rollback.push(
                    "stop clickhouse",
                    lambda: stop_process(process, config.stop_timeout),
                )

                wait_for_ready(http_port, config.start_timeout, process)

            self._process = process
            self._work_dir = work_dir
            self._owns_work_dir = owns_work_dir
            self._tcp_port = tcp_port
            self._http_port = http_port
            self._running = True
            success = True
        finally:
            if not success:
                rollback.run()

        logger.info(
            f"ClickHouse {config.version} started (pid {process.pid}): "
            f"tcp={HOST}:{tcp_port} http={HOST}:{http_port}, {timer}"
        )

    def stop(self) -> None:
        """
        Stop the server and clean up its working directory.

        The engine always returns to the not-started state, even when a
        step fails, so it can be started again.

        Raises:
            ServerNotStartedError: If the server is not running
            EmbeddedClickHouseError: The first shutdown failure, with any
                further failures in its ``suppressed`` list
        """
        with self._lock.write_locked():
            if not self._running:
                raise ServerNotStartedError()

            errors: list[BaseException] = []

            try:
                stop_process(self._process, self.config.stop_timeout)
            except Exception as e:
                errors.append(e)

            if self._owns_work_dir and self._work_dir is not None:
                try:
                    remove_directory(self._work_dir)
                except OSError as e:
                    errors.append(
                        EmbeddedClickHouseError(
                            f"remove temp dir {self._work_dir}: {e}"
                        )
                    )

            self._process = None
            self._work_dir = None
            self._owns_work_dir = False
            self._tcp_port = 0
            self._http_port = 0
            self._running = False

            if errors:
                raise _aggregate(errors)

            logger.info("ClickHouse stopped")

    @property
    def tcp_port(self) -> int:
        with self._lock.read_locked():
            return self._tcp_port

    @property
    def http_port(self) -> int:
        with self._lock.read_locked():
            return self._http_port

    @property
    def is_running(self) -> bool:
        with self._lock.read_locked():
            return self._running

    def connection_info(self) -> ConnectionInfo:
        """Snapshot of host and both ports, taken under a single lock."""
        with self._lock.read_locked():
            return ConnectionInfo(HOST, self._tcp_port, self._http_port)

    @property
    def tcp_addr(self) -> str:
        """Native protocol address, e.g. ``127.0.0.1:9000``."""
        return self.connection_info().tcp_addr

    @property
    def http_addr(self) -> str:
        """HTTP interface address, e.g. ``127.0.0.1:8123``."""
        return self.connection_info().http_addr

    @property
    def dsn(self) -> str:
        """Native protocol DSN, e.g. ``clickhouse://127.0.0.1:9000/default``."""
        return self.connection_info().dsn

    @property
    def http_url(self) -> str:
        """HTTP base URL, e.g. ``http://127.0.0.1:8123``."""
        return self.connection_info().http_url

    @property
    def jdbc_url(self) -> str:
        """JDBC URL, e.g. ``jdbc:clickhouse://127.0.0.1:8123/default``."""
        return self.connection_info().jdbc_url

    def __enter__(self) -> EmbeddedClickHouse:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.stop()

    def __repr__(self) -> str:
        info = self.connection_info()
        return (
            f"EmbeddedClickHouse(version={self.config.version}, "
            f"tcp_port={info.tcp_port}, http_port={info.http_port})"
        )


def _aggregate(errors: list[BaseException]) -> EmbeddedClickHouseError:
    first = errors[0]
    if isinstance(first, EmbeddedClickHouseError):
        primary = first
    else:
        primary = EmbeddedClickHouseError(f"stop failed: {first}")
        primary.__cause__ = first
    for error in errors[1:]:
        primary.add_suppressed(error)
    return primary
