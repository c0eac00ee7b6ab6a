import threading
import time

import pytest

from embedded_clickhouse.binary.platforms import PlatformAsset
from embedded_clickhouse.common.enums import AssetType
from embedded_clickhouse.debug import (
    DEBUG_ENV_VAR,
    debug_log_command,
    debug_log_download,
    is_debug_enabled,
    set_debug,
)
from embedded_clickhouse.util import (
    ReadWriteLock,
    Timer,
    format_duration,
    remove_directory,
)

ASSET = PlatformAsset("clickhouse-macos-aarch64", AssetType.RAW_BINARY)


@pytest.fixture
def debug_off(monkeypatch):
    monkeypatch.delenv(DEBUG_ENV_VAR, raising=False)
    set_debug(False)
    yield
    set_debug(False)


class TestDebug:
    def test_disabled_prints_nothing(self, debug_off, capsys):
        debug_log_download(ASSET, "http://x/a", "http://x/a.sha512")
        debug_log_command(["clickhouse", "server"])

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""

    def test_set_debug(self, debug_off, capsys, monkeypatch):
        set_debug(True)

        assert is_debug_enabled()
        debug_log_download(ASSET, "http://x/a", "http://x/a.sha512")
        debug_log_command(["/opt/click house", "server", "--config-file=/tmp/c.xml"])

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "[DEBUG] Asset: clickhouse-macos-aarch64 (raw_binary)" in captured.err
        assert "[DEBUG] URL: http://x/a\n" in captured.err
        assert "[DEBUG] Checksum URL: http://x/a.sha512" in captured.err
        assert (
            "[DEBUG] Command: '/opt/click house' server --config-file=/tmp/c.xml"
            in captured.err
        )

    def test_env_var_enables_debug(self, debug_off, monkeypatch):
        monkeypatch.setenv(DEBUG_ENV_VAR, "true")
        assert is_debug_enabled()


class TestTimer:
    def test_elapsed(self):
        with Timer("Download") as timer:
            time.sleep(0.01)

        assert timer.elapsed >= 0.01
        assert str(timer).startswith("Download took ")

    def test_not_started(self):
        assert Timer().elapsed == 0.0


@pytest.mark.parametrize(
    "seconds,expected",
    [(0.25, "250.0ms"), (12.34, "12.3s"), (125.0, "2m 5.0s")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_remove_directory(tmp_path):
    target = tmp_path / "work"
    (target / "data").mkdir(parents=True)
    (target / "config.xml").write_text("<clickhouse/>")

    remove_directory(target)
    remove_directory(target)

    assert not target.exists()


class TestReadWriteLock:
    def test_readers_share(self):
        lock = ReadWriteLock()
        inside = threading.Barrier(2, timeout=5)

        def reader():
            with lock.read_locked():
                inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert not any(t.is_alive() for t in threads)

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        events = []

        lock.acquire_write()

        def reader():
            with lock.read_locked():
                events.append("read")

        t = threading.Thread(target=reader)
        t.start()
        time.sleep(0.1)
        events.append("write-done")
        lock.release_write()
        t.join(timeout=5)

        assert events == ["write-done", "read"]

    def test_waiting_writer_blocks_new_readers(self):
        lock = ReadWriteLock()
        events = []

        lock.acquire_read()

        def writer():
            with lock.write_locked():
                events.append("write")

        def late_reader():
            with lock.read_locked():
                events.append("read")

        w = threading.Thread(target=writer)
        w.start()
        time.sleep(0.1)
        r = threading.Thread(target=late_reader)
        r.start()
        time.sleep(0.1)

        assert events == []
        lock.release_read()
        w.join(timeout=5)
        r.join(timeout=5)

        assert events == ["write", "read"]
