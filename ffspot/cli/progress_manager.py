"""
Live console view of a session: one spinner row per running transcoder
above an overall progress bar and the running counters.
"""

import asyncio
import time
from collections import Counter

from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from ffspot.models.track import Job, JobState

MAX_LABEL = 55


class ProgressManager:
    """Tracks running jobs and finished-job counters for the Live display."""

    def __init__(self, console: Console):
        self.console = console
        self.jobs_view = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            TimeElapsedColumn(),
            console=console,
        )
        self.overall_view = Progress(
            TextColumn("[bold blue]Overall"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
        )
        self._overall: TaskID | None = None
        self._running: set[TaskID] = set()
        self._outcomes: Counter = Counter()
        self._total = 0
        self._peak = 0
        self._started: float | None = None
        self._live: Live | None = None

    def initialize_session(self, total_tracks: int):
        self._total = total_tracks
        self._started = time.monotonic()
        self._overall = self.overall_view.add_task("overall", total=total_tracks)
        self._refresh()

    def add_job_task(self, job: Job) -> TaskID:
        label = job.display_name
        if len(label) > MAX_LABEL:
            label = label[: MAX_LABEL - 3] + "..."
        position = f"{job.position:0{job.context.position_width}d}"
        task_id = self.jobs_view.add_task(
            f"[dim]{position}[/dim] {escape(label)}", total=None
        )
        self._running.add(task_id)
        self._peak = max(self._peak, len(self._running))
        self._refresh()
        return task_id

    def remove_task(self, task_id: TaskID):
        if task_id not in self._running:
            return
        self._running.discard(task_id)
        self.jobs_view.remove_task(task_id)
        self._refresh()

    def record_job(self, job: Job):
        """Counts a job that reached a final state."""
        outcome = job.state if job.state.is_final else JobState.FAILED
        self._outcomes[outcome] += 1
        if job.warnings:
            self._outcomes["warnings"] += 1
        if self._overall is not None:
            self.overall_view.advance(self._overall)
        self._refresh()

    def get_statistics(self) -> dict:
        finished = sum(self._outcomes[state] for state in JobState if state.is_final)
        return {
            "total_tracks": self._total,
            "completed": self._outcomes[JobState.COMPLETED],
            "skipped": self._outcomes[JobState.SKIPPED],
            "failed": self._outcomes[JobState.FAILED],
            "warnings": self._outcomes["warnings"],
            "remaining": self._total - finished,
            "active_jobs": len(self._running),
            "peak_concurrent": self._peak,
            "elapsed": time.monotonic() - self._started if self._started else 0.0,
        }

    def _counters(self) -> Table:
        stats = self.get_statistics()
        grid = Table.grid(padding=(0, 2))
        for _ in range(4):
            grid.add_column()
        grid.add_row(
            "[bold cyan]Completed[/]", f"[green]{stats['completed']}[/]",
            "[bold cyan]Failed[/]", f"[red]{stats['failed']}[/]",
        )
        grid.add_row(
            "[bold cyan]Skipped[/]", f"[yellow]{stats['skipped']}[/]",
            "[bold cyan]Remaining[/]", f"[cyan]{stats['remaining']}[/]",
        )
        grid.add_row(
            "[bold cyan]Running[/]", f"[cyan]{stats['active_jobs']}[/]",
            "[bold cyan]Peak[/]", f"[magenta]{stats['peak_concurrent']}[/]",
        )
        return grid

    def _render(self) -> Panel:
        parts = [self._counters()]
        if self._overall is not None:
            parts.append(self.overall_view)
        if self._running:
            parts.append(self.jobs_view)
        return Panel(
            Group(*parts), title="[bold]🎵 ffspot[/bold]", border_style="cyan"
        )

    def _refresh(self):
        if self._live:
            self._live.update(self._render())

    async def __aenter__(self):
        self._live = Live(
            self._render(),
            console=self.console,
            refresh_per_second=8,
            vertical_overflow="visible",
        )
        self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._live:
            # Let the last frame render before stopping
            await asyncio.sleep(0.2)
            self._live.update(self._render())
            self._live.stop()
            self._live = None
