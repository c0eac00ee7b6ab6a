"""Error classes for embedded ClickHouse."""

PREFIX = "embedded-clickhouse: "


class EmbeddedClickHouseError(RuntimeError):
    """Base exception class for all embedded ClickHouse errors.

    Every message starts with ``embedded-clickhouse: `` so failures are easy
    to grep for in test logs.

    Attributes:
        suppressed: Secondary errors that occurred while handling the
            primary one (e.g. during a best-effort shutdown).
    """

    def __init__(self, msg: str = "") -> None:
        if not msg.startswith(PREFIX):
            msg = PREFIX + msg
        super().__init__(msg)
        self.msg = msg
        self.suppressed: list[BaseException] = []

    def add_suppressed(self, error: BaseException) -> None:
        """Attach a secondary error to this one."""
        self.suppressed.append(error)

    def __str__(self) -> str:
        if not self.suppressed:
            return self.msg
        extra = "; ".join(str(e) for e in self.suppressed)
        return f"{self.msg} (suppressed: {extra})"


class ConfigurationError(EmbeddedClickHouseError, ValueError):
    """Invalid configuration value (version string, port, timeout, ...)."""


class InvalidSettingKeyError(ConfigurationError):
    """A server setting key is not a valid XML element name."""

    def __init__(self, key: str) -> None:
        super().__init__(
            f'invalid setting key: "{key}" '
            "(must match ^[a-zA-Z][a-zA-Z0-9_]*$)"
        )
        self.key = key


class UnsupportedPlatformError(EmbeddedClickHouseError):
    """No release asset exists for the detected OS/architecture."""

    def __init__(self, os_name: str, arch: str) -> None:
        super().__init__(f"unsupported platform: {os_name}/{arch}")
        self.os_name = os_name
        self.arch = arch


class BinaryNotFoundError(EmbeddedClickHouseError):
    """An explicitly configured binary path does not exist."""


class DownloadError(EmbeddedClickHouseError):
    """Network or remote failure while fetching a release asset."""


class ChecksumMismatchError(DownloadError):
    """Downloaded file does not match its published SHA-512 digest."""


class ExtractionError(EmbeddedClickHouseError):
    """Release archive is unreadable or does not contain the server binary."""


class LifecycleError(EmbeddedClickHouseError):
    """Operation is not valid in the current server state."""


class ServerAlreadyStartedError(LifecycleError):
    def __init__(self) -> None:
        super().__init__("server is already started")


class ServerNotStartedError(LifecycleError):
    def __init__(self) -> None:
        super().__init__("server has not been started")


class ProcessError(EmbeddedClickHouseError):
    """Server process failed to launch or exited abnormally."""

    def __init__(self, msg: str, exit_code: int | None = None) -> None:
        super().__init__(msg)
        self.exit_code = exit_code


class StopTimeoutError(ProcessError):
    """Server did not exit within the stop timeout and was killed."""

    def __init__(self) -> None:
        super().__init__("server did not stop within timeout, killed")


class ReadinessTimeoutError(EmbeddedClickHouseError):
    """Server did not answer its liveness endpoint within the start timeout."""
