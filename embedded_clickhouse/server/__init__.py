from .config_writer import (
    DEFAULT_SERVER_SETTINGS,
    merge_settings,
    write_server_config,
    xml_escape,
)
from .health import ping, wait_for_ready
from .ports import LOCALHOST, allocate_port
from .process import start_process, stop_process

__all__ = [
    "DEFAULT_SERVER_SETTINGS",
    "LOCALHOST",
    "allocate_port",
    "merge_settings",
    "ping",
    "start_process",
    "stop_process",
    "wait_for_ready",
    "write_server_config",
    "xml_escape",
]
