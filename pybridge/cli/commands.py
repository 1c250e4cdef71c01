"""CLI commands for pybridge.

`run` starts the worker against a host node; `fetch-runtime` downloads the
sandbox runtime image once.
"""

import asyncio
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console

from pybridge import __logo__, __version__
from pybridge.cli.shared.logging_utils import ensure_rotating_log_file
from pybridge.utils.exceptions import BridgeError

app = typer.Typer(
    name="pybridge",
    help=f"{__logo__} pybridge - out-of-process Python runner for host nodes",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} pybridge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", callback=version_callback, is_eager=True
    ),
):
    """pybridge - out-of-process Python runner for host nodes."""
    pass


@app.command()
def run(
    port: int = typer.Option(..., "--port", "-p", help="Host node port"),
    home: str = typer.Option(..., "--home", "-H", help="Host node home directory (packages live under <home>/vfs)"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file (default ~/.pybridge/config.json)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Connect to the host node and serve script requests until the channel closes."""
    from pybridge.bridge.worker import run_worker
    from pybridge.config.loader import load_config

    if verbose:
        logger.remove()
        logger.add(sys.stderr, level="DEBUG", format="<dim>{time:HH:mm:ss.SSS}</dim> | <level>{level: <8}</level> | <level>{message}</level>")
    log_path = ensure_rotating_log_file("worker", level="DEBUG" if verbose else "INFO")

    try:
        config = load_config(config_path)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    config.worker.port = port
    config.native.home = str(Path(home).expanduser())

    console.print(f"{__logo__} Starting pybridge worker for {config.url}")
    console.print(f"[dim]Logs: {log_path}[/dim]")
    try:
        asyncio.run(run_worker(config))
    except BridgeError as e:
        logger.error("worker stopped: {}", e)
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\nGoodbye!")


@app.command("fetch-runtime")
def fetch_runtime(
    dest: Path = typer.Option(None, "--dest", "-d", help="Where to store python.wasm (default: package assets)"),
    url: str = typer.Option(None, "--url", help="Download URL (default from config)"),
):
    """Download the sandbox runtime image if it is not present yet."""
    from pybridge.config.loader import load_config
    from pybridge.runtime_image import fetch_runtime_image

    config = load_config()
    target = dest or (Path(config.sandbox.runtime_image) if config.sandbox.runtime_image else None)
    try:
        path = fetch_runtime_image(target, url=url or config.sandbox.runtime_url)
    except BridgeError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Runtime image at {path}")


if __name__ == "__main__":
    app()
