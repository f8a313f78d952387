"""
zoomvault – CLI entrypoint (Click group)

Subcommands:
- run: chat bot plus web server
- serve: web server only
- recordings: list or search the catalogue
- grant: allow a Telegram user to submit recordings
- parse: show what a share message parses to
"""

import asyncio
import logging
import sys

import rich_click as click
from rich.console import Console

from zoomvault import __version__
from zoomvault.access import AccessGate
from zoomvault.config import Config
from zoomvault.exceptions import ZoomVaultError
from zoomvault.logger import setup_logging
from zoomvault.output import OutputFormatter
from zoomvault.parser import LinkParser
from zoomvault.service import open_store, run_all, serve_web

click.rich_click.TEXT_MARKUP = "rich"
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True

console = Console()
logger = logging.getLogger(__name__)


def _autoload_dotenv() -> None:
    """Load a local .env file for CLI usage.

    Skipped when ZOOMVAULT_NO_DOTENV is set (e.g., tests). Does not override
    existing environment variables.
    """
    import os

    if os.getenv("ZOOMVAULT_NO_DOTENV"):
        return
    from dotenv import find_dotenv, load_dotenv

    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path, override=False)


def _setup(cfg: Config | None, verbose: bool, debug: bool) -> None:
    default_level = cfg.log_level if cfg else "WARNING"
    log_level = "DEBUG" if debug else ("INFO" if verbose else default_level)
    setup_logging(level=log_level, verbose=debug)


def _load_config(config: str | None) -> Config:
    return Config(env_file=config) if config else Config()


def common_options(func):  # type: ignore[no-untyped-def]
    func = click.option("--config", type=click.Path(exists=True), help="Path to config file")(func)
    func = click.option("--debug", "-d", is_flag=True, help="Debug output")(func)
    func = click.option("--verbose", "-v", is_flag=True, help="Verbose output")(func)
    return func


@click.group(help="zoomvault – collect Zoom share links from chat and keep the recordings")
@click.version_option(version=__version__)
def cli() -> None:
    """Top-level Click group."""
    _autoload_dotenv()


@cli.command(name="run", help="Run the Telegram bot together with the web server")
@click.option("--no-web", is_flag=True, help="Run the bot without the web server")
@common_options
def run_cmd(no_web: bool, verbose: bool, debug: bool, config: str | None) -> None:
    try:
        cfg = _load_config(config)
        _setup(cfg, verbose, debug)
        cfg.validate()
        console.print(f"[green]🤖 Bot starting[/green] (downloads: {cfg.downloads_dir})")
        asyncio.run(run_all(cfg, with_web=not no_web))
    except ZoomVaultError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("Stopped.")


@cli.command(name="serve", help="Serve the recordings web API only")
@click.option("--host", help="Bind address (default from config)")
@click.option("--port", type=int, help="Port (default from config)")
@common_options
def serve_cmd(
    host: str | None, port: int | None, verbose: bool, debug: bool, config: str | None
) -> None:
    try:
        cfg = _load_config(config)
        _setup(cfg, verbose, debug)
        store = open_store(cfg)
        asyncio.run(serve_web(store, host or cfg.web_host, port or cfg.web_port))
    except ZoomVaultError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("Stopped.")


@cli.command(name="recordings", help="List recent recordings or search by title")
@click.option("--query", "-q", help="Title substring to search for")
@click.option("--limit", type=int, default=20, show_default=True, help="Max results (0 = all)")
@click.option("--json", "-j", "json_mode", is_flag=True, help="JSON output mode")
@common_options
def recordings_cmd(
    query: str | None,
    limit: int,
    json_mode: bool,
    verbose: bool,
    debug: bool,
    config: str | None,
) -> None:
    formatter = OutputFormatter("json" if json_mode else "human")
    try:
        cfg = _load_config(config)
        _setup(cfg, verbose, debug)
        store = open_store(cfg)
        effective_limit = limit if limit > 0 else None
        if query is not None:
            records = asyncio.run(store.search(query, limit=effective_limit))
        else:
            records = asyncio.run(store.list_recent(limit=effective_limit))
    except ZoomVaultError as e:
        formatter.output_error(e.message, e.code)
        sys.exit(1)
    formatter.output_recordings(records)


@cli.command(name="grant", help="Allow a Telegram user to submit recordings")
@click.argument("telegram_id", type=int)
@common_options
def grant_cmd(telegram_id: int, verbose: bool, debug: bool, config: str | None) -> None:
    formatter = OutputFormatter()
    try:
        cfg = _load_config(config)
        _setup(cfg, verbose, debug)
        gate = AccessGate(open_store(cfg), cfg)
        asyncio.run(gate.grant(telegram_id))
    except ZoomVaultError as e:
        formatter.output_error(e.message)
        sys.exit(1)
    formatter.output_success(f"User {telegram_id} can now upload recordings")


@cli.command(name="parse", help="Parse a Zoom share message from FILE or stdin")
@click.argument("source", type=click.File("r"), default="-")
@click.option("--json", "-j", "json_mode", is_flag=True, help="JSON output mode")
def parse_cmd(source, json_mode: bool) -> None:  # type: ignore[no-untyped-def]
    formatter = OutputFormatter("json" if json_mode else "human")
    descriptor = LinkParser().parse(source.read())
    if descriptor is None:
        formatter.output_error("Not a Zoom share message (needs a zoom.us link and a passcode)")
        sys.exit(1)
    formatter.output_descriptor(descriptor)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
