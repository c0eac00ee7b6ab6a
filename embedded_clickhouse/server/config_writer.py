"""Generate the ClickHouse server configuration for an embedded instance."""

import re
from collections.abc import Mapping
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from ..errors import InvalidSettingKeyError

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
TEMPLATE_NAME = "config.xml.j2"
CONFIG_FILENAME = "config.xml"

VALID_SETTING_KEY = re.compile(r"[a-zA-Z][a-zA-Z0-9_]*")
SERVER_LOG_LEVEL = "warning"

# Memory ceiling for a test server, overridable through settings
DEFAULT_SERVER_SETTINGS: dict[str, str] = {
    "max_server_memory_usage": "1073741824",
}

WORK_SUBDIRS = ("data", "tmp", "user_files", "format_schemas")

_XML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&apos;",
}


def xml_escape(value: object) -> str:
    """Escape the five reserved XML characters."""
    return "".join(_XML_ESCAPES.get(ch, ch) for ch in str(value))


def validate_setting_keys(settings: Mapping[str, str]) -> None:
    for key in settings:
        if not VALID_SETTING_KEY.fullmatch(key):
            raise InvalidSettingKeyError(key)


def merge_settings(settings: Mapping[str, str] | None) -> dict[str, str]:
    """Overlay user settings on the default server settings."""
    merged = dict(DEFAULT_SERVER_SETTINGS)
    if settings:
        merged.update(settings)
    return merged


def _create_environment() -> Environment:
    jinja_env = Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    jinja_env.filters["xml_escape"] = xml_escape
    return jinja_env


def write_server_config(
    work_dir: str | Path,
    tcp_port: int,
    http_port: int,
    settings: Mapping[str, str] | None = None,
) -> Path:
    """
    Write ``config.xml`` and the server's working subdirectories.

    Setting keys are validated before anything touches the filesystem.

    Args:
        work_dir: Per-instance working directory
        tcp_port: Native protocol port
        http_port: HTTP interface port
        settings: Extra top-level server settings

    Returns:
        Path to the generated config file

    Raises:
        InvalidSettingKeyError: If a setting key is not a valid element name
        OSError: If a directory or the config file cannot be written
    """
    settings = settings or {}
    validate_setting_keys(settings)

    work_dir = Path(work_dir)
    dirs: dict[str, Path] = {}
    for name in WORK_SUBDIRS:
        dirs[name] = work_dir / name
        dirs[name].mkdir(parents=True, exist_ok=True)

    merged = merge_settings(settings)
    template = _create_environment().get_template(TEMPLATE_NAME)
    content = template.render(
        log_level=SERVER_LOG_LEVEL,
        tcp_port=tcp_port,
        http_port=http_port,
        data_dir=dirs["data"],
        tmp_dir=dirs["tmp"],
        user_files_dir=dirs["user_files"],
        format_schema_dir=dirs["format_schemas"],
        settings=sorted(merged.items()),
    )

    config_path = work_dir / CONFIG_FILENAME
    with open(config_path, "w", encoding="utf-8") as f:
        f.write(content)

    return config_path
