"""
Rich renderables for errors, settings, profiles and the session summary.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ffspot.models.config import AppConfig, get_quality_info
from ffspot.models.stats import SessionStats
from ffspot.utils.formatting import format_duration, format_size
from ffspot.utils.template import WILDCARDS

# Looked up along the exception's MRO, most specific class first
SUGGESTIONS: dict[str, list[str]] = {
    "MissingCredentialError": [
        "Fill in 'username' and 'password' in the configuration file.",
        "Run `ffspot validate` to check the file.",
    ],
    "UnknownProfileError": [
        "Check the profile name passed with -e/--profile.",
        "Run `ffspot profiles` to list the configured profiles.",
    ],
    "InvalidQualityError": ["A profile's quality must be one of 320, 160 or 96."],
    "ConfigurationError": [
        "Check the configuration file for typos.",
        "Make sure FFmpeg is installed or set 'ffpath'.",
    ],
    "PathError": ["Check the 'output' template and 'max_filename_len'."],
    "SourceError": [
        "Check that the manifest file exists and is valid JSON.",
        "The audio host might be temporarily unavailable.",
    ],
}
DEFAULT_SUGGESTIONS = ["Run the command with -v for detailed logs."]


def _suggestions_for(error: Exception) -> list[str]:
    for cls in type(error).__mro__:
        if cls.__name__ in SUGGESTIONS:
            return SUGGESTIONS[cls.__name__]
    return DEFAULT_SUGGESTIONS


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Wraps an error and what to try next in a red panel."""
    headline = Text.assemble(
        (f"{type(error).__name__}: ", "bold red"), str(error)
    )
    hints = Text("\n".join(f"• {s}" for s in _suggestions_for(error)))
    body = [headline, Text(""), Text("What to try", style="bold yellow"), hints]
    if context:
        body += [Text(""), Text(f"Context: {context}", style="dim")]
    return Panel(
        Group(*body),
        title="[bold red]ffspot failed[/bold red]",
        border_style="red",
        expand=False,
    )


def _key_value_table() -> Table:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column()
    return table


def print_validation_table(
    config: AppConfig, config_path: Path, warnings: list[str] | None = None
):
    """Shows the effective settings followed by any lint warnings."""
    console = Console()
    rows = {
        "Config File": f"[dim]{escape(str(config_path))}[/dim]",
        "Username": escape(config.username),
        "Output Template": escape(config.output),
        "Output Directory": escape(config.output_dir),
        "Default Profile": escape(config.default_profile),
        "Workers": str(config.max_workers),
        "Max Filename Length": (
            f"{config.max_filename_len} bytes"
            if config.max_filename_len
            else "unlimited"
        ),
        "Transcoder": escape(config.ffpath or "ffmpeg (from PATH)"),
        "Timeout": (
            f"{config.transcode_timeout:g}s" if config.transcode_timeout else "none"
        ),
        "Skip Existing": "yes" if config.skip_existing else "no",
    }
    table = _key_value_table()
    for key, value in rows.items():
        table.add_row(f"{key}:", value)

    console.print(
        Panel(table, title="[bold green]✓ Validated Settings[/bold green]",
              border_style="green")
    )
    for warning in warnings or []:
        console.print(f"[yellow]⚠ {escape(warning)}[/yellow]")


def print_profiles_table(config: AppConfig):
    """Lists every encoding profile, marking the default one."""
    table = Table(title="Encoding Profiles", box=box.ROUNDED)
    table.add_column("Name", style="bold magenta", no_wrap=True)
    table.add_column("Quality")
    table.add_column("Cover", justify="center")
    table.add_column("Ext")
    table.add_column("Arguments", style="dim")

    for name in sorted(config.profiles):
        profile = config.profiles[name]
        info = get_quality_info(profile.quality)
        marker = " [green](default)[/green]" if name == config.default_profile else ""
        table.add_row(
            f"{escape(name)}{marker}",
            f"[{info['color']}]{info['short']}[/] [dim]{info['name']}[/dim]",
            "✓" if profile.cover_art else "-",
            escape(profile.extension),
            escape(" ".join(profile.args)),
        )
    Console().print(table)


def print_wildcard_help():
    """Explains the wildcards accepted by 'output' and profile arguments."""
    table = Table(box=box.SIMPLE_HEAVY, show_header=False)
    table.add_column(style="bold magenta", no_wrap=True)
    table.add_column()
    for key, description in WILDCARDS.items():
        table.add_row(f"%{key}", description)
    table.add_row("%%", "a literal percent sign")

    console = Console()
    console.print("[bold]Wildcards for 'output' and profile 'args'[/bold]")
    console.print(table)
    console.print(
        "[dim]Unknown sequences are kept as written. The profile extension is "
        "appended to the output path automatically.[/dim]"
    )


def print_summary_panel(
    stats: SessionStats, progress_stats: dict[str, Any] | None = None
):
    """Prints the end-of-session totals and one line per failed job."""
    table = _key_value_table()
    table.add_row("✓ Completed:", f"[bold green]{stats.tracks_completed}[/]")
    if stats.tracks_skipped:
        table.add_row("○ Skipped:", f"[yellow]{stats.tracks_skipped} (exists)[/]")
    if stats.tracks_with_warnings:
        table.add_row("⚠ Warnings:", f"[yellow]{stats.tracks_with_warnings}[/]")
    if stats.tracks_failed:
        table.add_row("✗ Failed:", f"[bold red]{stats.tracks_failed}[/]")
    table.add_row("Written:", f"[cyan]{format_size(stats.total_size_written)}[/]")
    table.add_row("Elapsed:", f"[blue]{format_duration(stats.elapsed)}[/]")
    if progress_stats:
        table.add_row("Peak Transcoders:", str(progress_stats.get("peak_concurrent", 0)))

    failed = bool(stats.tracks_failed)
    console = Console()
    console.print(
        Panel(
            table,
            title="⚠ [bold]Finished with errors[/bold]" if failed else "🎵 [bold]Done![/bold]",
            border_style="red" if failed else "green",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    for job in stats.failed_jobs:
        console.print(
            f"[red]✗ [{job.position}] {escape(job.display_name)}[/red] "
            f"[dim]({escape(job.track_id)})[/dim]: {escape(str(job.error))}"
        )
