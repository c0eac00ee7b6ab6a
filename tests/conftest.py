"""Shared fixtures for embedded ClickHouse tests.

Integration tests download and run a real ClickHouse server and are NOT run
by default. Use --integration to enable them:
    pytest tests/integration/ --integration
"""

from __future__ import annotations

import stat
import sys
import threading
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

# Minimal stand-in for ``clickhouse server --config-file=...``: serves /ping
# on the configured HTTP port and exits cleanly on SIGTERM.
FAKE_SERVER_SCRIPT = """\
#!{python}
import re
import signal
import sys
from http.server import BaseHTTPRequestHandler, HTTPServer

config_file = sys.argv[2].split("=", 1)[1]
with open(config_file, encoding="utf-8") as f:
    config = f.read()

if "<fail_on_start>1</fail_on_start>" in config:
    print("fake clickhouse: refusing to start", flush=True)
    sys.exit(3)

http_port = int(re.search(r"<http_port>(\\d+)</http_port>", config).group(1))


class Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        body = b"Ok.\\n"
        self.send_response(200 if self.path == "/ping" else 404)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


def handle_sigterm(signum, frame):
    sys.exit(0)


signal.signal(signal.SIGTERM, handle_sigterm)
server = HTTPServer(("127.0.0.1", http_port), Handler)
print(f"fake clickhouse listening on {{http_port}}", flush=True)
sys.stderr.write("fake clickhouse stderr line\\n")
sys.stderr.flush()
server.serve_forever(poll_interval=0.05)
"""


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "integration: downloads and runs a real ClickHouse server",
    )


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="Run tests against a real ClickHouse server",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Skip integration tests unless --integration flag is provided."""
    if config.getoption("--integration", default=False):
        return
    skip_integration = pytest.mark.skip(
        reason="Integration tests require --integration flag"
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def fake_clickhouse(tmp_path: Path) -> Path:
    """Executable that behaves like ``clickhouse server`` for lifecycle tests."""
    if sys.platform == "win32":
        pytest.skip("fake server script needs a POSIX shebang")
    script = tmp_path / "bin" / "clickhouse"
    script.parent.mkdir()
    script.write_text(FAKE_SERVER_SCRIPT.format(python=sys.executable))
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


class FileServer:
    """Local HTTP server answering from a ``path -> (status, body)`` table."""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes]] = {}
        self.requests: list[str] = []
        routes = self.routes
        requests = self.requests

        class Handler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:
                requests.append(self.path)
                status, body = routes.get(self.path, (404, b"not found"))
                self.send_response(status)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, format: str, *args: object) -> None:
                pass

        self._server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
        self.port = self._server.server_address[1]
        self.url = f"http://127.0.0.1:{self.port}"
        self._thread = threading.Thread(
            target=self._server.serve_forever, daemon=True
        )

    def add(self, path: str, body: bytes | str, status: int = 200) -> None:
        if isinstance(body, str):
            body = body.encode()
        self.routes[path] = (status, body)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()


@pytest.fixture
def file_server() -> Iterator[FileServer]:
    server = FileServer()
    server.start()
    try:
        yield server
    finally:
        server.stop()
