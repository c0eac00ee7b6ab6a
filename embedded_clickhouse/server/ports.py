import socket

from ..errors import EmbeddedClickHouseError

LOCALHOST = "127.0.0.1"


def allocate_port() -> int:
    """Find a free TCP port by binding to 127.0.0.1:0 and immediately closing.

    The port is only known to be free at the time of the call; another
    process may grab it before the server binds it.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind((LOCALHOST, 0))
            port: int = sock.getsockname()[1]
            return port
    except OSError as e:
        raise EmbeddedClickHouseError(f"allocate port: {e}") from e
