"""
Dataclass for tracking output session statistics.
"""

import time
from dataclasses import dataclass, field

from ffspot.models.track import Job, JobState


@dataclass
class SessionStats:
    """Aggregates per-job outcomes for the final report."""

    tracks_completed: int = 0
    tracks_skipped: int = 0
    tracks_failed: int = 0
    tracks_with_warnings: int = 0
    total_size_written: int = 0
    failed_jobs: list[Job] = field(default_factory=list, repr=False)
    _start_time: float = field(default_factory=time.monotonic, repr=False)

    def record(self, job: Job) -> None:
        """Counts a job that reached a final state."""
        if job.state is JobState.COMPLETED:
            self.tracks_completed += 1
            self.total_size_written += job.bytes_written
        elif job.state is JobState.SKIPPED:
            self.tracks_skipped += 1
        elif job.state is JobState.FAILED:
            self.tracks_failed += 1
            self.failed_jobs.append(job)
        if job.warnings:
            self.tracks_with_warnings += 1

    @property
    def total(self) -> int:
        return self.tracks_completed + self.tracks_skipped + self.tracks_failed

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._start_time

    @property
    def exit_code(self) -> int:
        """Zero only when no job failed."""
        return 1 if self.tracks_failed else 0
