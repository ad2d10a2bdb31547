"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from ffspot import __version__
from ffspot.core.profiles import ProfileResolver
from ffspot.core.session import DownloadSession
from ffspot.exceptions import FfspotError
from ffspot.media.source import ManifestTrackSource
from ffspot.media.transcoder import Transcoder, find_transcoder
from ffspot.storage.config_manager import ConfigManager, get_config_file

from .formatters import (
    format_error_with_suggestions,
    print_profiles_table,
    print_summary_panel,
    print_validation_table,
    print_wildcard_help,
)
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("ffspot")

app = typer.Typer(
    name="ffspot",
    help=(
        "Download tracks and encode them with FFmpeg using configurable"
        " encoding profiles. Use 'ffspot <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def _configure_file_logging() -> None:
    """Adds a debug log file when $FFSPOT_LOG names a file or directory."""
    location = os.getenv("FFSPOT_LOG")
    if not location:
        return
    path = Path(location).expanduser()
    if path.is_dir():
        path = path / "ffspot.log"
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    logger = logging.getLogger("ffspot")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


def _load_config_or_exit(cli_options: dict | None = None):
    config_file = get_config_file()
    config_manager = ConfigManager(config_file)
    if config_manager.ensure_exists():
        console.print(
            f"[bright_green]A new configuration file has been created in[/] "
            f"{config_file}\n[bright_magenta]Adjust it and run ffspot again.[/]"
        )
        raise typer.Exit()
    return config_manager, config_manager.load_config(cli_options)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    output_help: bool = typer.Option(
        False,
        "--output-help",
        help="Show the wildcards available in templates and exit.",
        is_eager=True,
    ),
):
    """ffspot: templated downloads encoded through FFmpeg."""
    if output_help:
        print_wildcard_help()
        raise typer.Exit()

    if version:
        console.print(f"[bold]ffspot[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    logging.getLogger("ffspot").setLevel("DEBUG" if verbose >= 1 else "INFO")
    _configure_file_logging()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command(name="download")
def download_command(
    manifest: Path = typer.Argument(  # noqa: B008
        ..., help="JSON manifest listing the tracks to download."
    ),
    output: str | None = typer.Option(
        None,
        "-o",
        "--output",
        help="Use a different output path template than in the config.",
    ),
    profile: str | None = typer.Option(
        None,
        "-e",
        "--profile",
        help="Encoding profile from the config to use.",
    ),
    skip_existing: bool | None = typer.Option(
        None,
        "-s",
        "--skip-existing/--overwrite",
        help="Skip tracks whose output file already exists.",
    ),
    workers: int | None = typer.Option(
        None,
        "-w",
        "--workers",
        help="Number of transcoders running at the same time.",
    ),
):
    """Download and encode every track listed in a manifest."""
    cli_options = {
        "output": output,
        "skip_existing": skip_existing,
        "max_workers": workers,
    }
    _, config = _load_config_or_exit(cli_options)

    # Operator mistakes abort before any job runs
    resolved_profile = ProfileResolver(config).resolve(profile)
    transcoder = Transcoder(
        find_transcoder(config.ffpath),
        timeout=config.transcode_timeout,
        seekable_input=config.seekable_input,
        verify_output=config.verify_output,
    )

    async def _download_async():
        session = None
        progress_stats = None
        async with ManifestTrackSource(manifest) as source:
            async with ProgressManager(console=console) as progress_manager:
                session = DownloadSession(
                    config, resolved_profile, source, transcoder, progress_manager
                )
                await session.execute()
                progress_stats = progress_manager.get_statistics()
        return session, progress_stats

    session, progress_stats = asyncio.run(_download_async())
    print_summary_panel(session.stats, progress_stats)

    if session.stats.exit_code:
        console.print(
            f"[bold red]{session.stats.tracks_failed} track(s) failed.[/bold red]"
        )
        raise typer.Exit(code=session.stats.exit_code)


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config_manager, config = _load_config_or_exit()
        ProfileResolver(config).resolve()
        print_validation_table(
            config, config_manager.config_file_path, ConfigManager.lint(config)
        )
    except FfspotError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e


@app.command()
def profiles():
    """List the encoding profiles defined in the configuration."""
    _, config = _load_config_or_exit()
    print_profiles_table(config)
