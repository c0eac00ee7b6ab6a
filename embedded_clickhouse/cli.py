"""Command line interface for embedded ClickHouse."""

import logging
import time

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .binary.cache import cache_dir as resolve_cache_dir
from .binary.downloader import ensure_binary
from .config import Config, load_config
from .debug import set_debug
from .embedded import EmbeddedClickHouse
from .errors import EmbeddedClickHouseError

# .env values take precedence, e.g. XDG_CACHE_HOME for a project-local cache
load_dotenv(override=True)

app = typer.Typer(
    name="embedded-clickhouse",
    help="Download and run a disposable local ClickHouse server",
    no_args_is_help=True,
)

console = Console()


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _build_config(
    config_file: str | None,
    version: str | None = None,
    cache_path: str | None = None,
    repository_url: str | None = None,
) -> Config:
    cfg = load_config(config_file) if config_file else Config()
    if version:
        cfg = cfg.with_version(version)
    if cache_path:
        cfg = cfg.with_cache_path(cache_path)
    if repository_url:
        cfg = cfg.with_binary_repository_url(repository_url)
    return cfg


def parse_settings(values: list[str] | None) -> dict[str, str]:
    """Parse ``key=value`` pairs given on the command line."""
    settings: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(
                f"expected key=value, got '{item}'", param_hint="--setting"
            )
        settings[key.strip()] = value
    return settings


@app.command()
def fetch(
    version: str | None = typer.Option(
        None, "--version", "-v", help="ClickHouse version, e.g. 25.8.16.34-lts"
    ),
    cache_path: str | None = typer.Option(
        None, "--cache-path", help="Directory for cached binaries"
    ),
    repository_url: str | None = typer.Option(
        None, "--repository-url", help="Alternate release download base URL"
    ),
    config: str | None = typer.Option(
        None, "--config", "-c", help="Path to config YAML file"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug output"),
) -> None:
    """Download the ClickHouse binary into the cache and print its path."""
    set_debug(debug)
    _configure_logging(debug)

    try:
        cfg = _build_config(config, version, cache_path, repository_url)
        binary = ensure_binary(cfg)
    except (EmbeddedClickHouseError, FileNotFoundError) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    console.print(str(binary), highlight=False, soft_wrap=True)


@app.command()
def run(
    version: str | None = typer.Option(
        None, "--version", "-v", help="ClickHouse version, e.g. 25.8.16.34-lts"
    ),
    tcp_port: int | None = typer.Option(
        None, "--tcp-port", help="Native protocol port (default: free port)"
    ),
    http_port: int | None = typer.Option(
        None, "--http-port", help="HTTP port (default: free port)"
    ),
    data_path: str | None = typer.Option(
        None, "--data-path", help="Persistent working directory"
    ),
    setting: list[str] | None = typer.Option(
        None, "--setting", "-s", help="Server setting as key=value (repeatable)"
    ),
    config: str | None = typer.Option(
        None, "--config", "-c", help="Path to config YAML file"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug output"),
) -> None:
    """Start a ClickHouse server and keep it running until interrupted."""
    set_debug(debug)
    _configure_logging(debug)

    try:
        cfg = _build_config(config, version)
        if tcp_port is not None:
            cfg = cfg.with_tcp_port(tcp_port)
        if http_port is not None:
            cfg = cfg.with_http_port(http_port)
        if data_path:
            cfg = cfg.with_data_path(data_path)
        if setting:
            cfg = cfg.with_settings({**cfg.settings, **parse_settings(setting)})

        server = EmbeddedClickHouse.create(cfg)
        server.start()
    except (EmbeddedClickHouseError, FileNotFoundError) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    info = server.connection_info()
    table = Table(title=f"ClickHouse {cfg.version}", show_header=False)
    table.add_column("Endpoint", style="cyan")
    table.add_column("Value")
    table.add_row("TCP", info.tcp_addr)
    table.add_row("HTTP", info.http_addr)
    table.add_row("DSN", info.dsn)
    table.add_row("HTTP URL", info.http_url)
    table.add_row("JDBC URL", info.jdbc_url)
    console.print(table)
    console.print("[dim]Press Ctrl+C to stop[/dim]")

    try:
        while server.is_running:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("[yellow]Stopping ClickHouse...[/yellow]")

    try:
        server.stop()
    except EmbeddedClickHouseError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    console.print("[green]✓ ClickHouse stopped[/green]")


@app.command("cache-dir")
def cache_dir_command(
    cache_path: str | None = typer.Option(
        None, "--cache-path", help="Explicit cache directory"
    ),
) -> None:
    """Print the directory used for cached ClickHouse binaries."""
    console.print(str(resolve_cache_dir(cache_path)), highlight=False, soft_wrap=True)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
