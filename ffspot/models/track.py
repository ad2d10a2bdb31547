"""
Data models for per-track metadata, wildcard context and queued jobs.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, AsyncIterator

if TYPE_CHECKING:
    from ffspot.core.profiles import ResolvedProfile


@dataclass(frozen=True)
class TrackMetadata:
    """Metadata reported by a track source for a single track."""

    artists: tuple[str, ...] = ()
    title: str = ""
    album: str = ""
    track_number: int | None = None
    disc_number: int | None = None
    language: str = ""
    year: int | None = None
    publisher: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackMetadata":
        """Builds metadata from a loosely-typed mapping, ignoring unknown keys."""
        artists = data.get("artists") or ()
        if isinstance(artists, str):
            artists = (artists,)
        language = data.get("language") or ""
        if isinstance(language, (list, tuple)):
            language = ", ".join(language)
        return cls(
            artists=tuple(str(a) for a in artists),
            title=str(data.get("title") or ""),
            album=str(data.get("album") or ""),
            track_number=_optional_int(data.get("track_number")),
            disc_number=_optional_int(data.get("disc_number")),
            language=str(language),
            year=_optional_int(data.get("year")),
            publisher=str(data.get("publisher") or ""),
        )


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


@dataclass(frozen=True)
class TrackContext:
    """
    Everything a wildcard may refer to. The queue position is fixed when the
    job is enqueued and never changes afterwards.
    """

    metadata: TrackMetadata
    queue_position: int
    position_width: int = 1


class JobState(str, Enum):
    CREATED = "created"
    RESOLVED = "resolved"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_final(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED, JobState.SKIPPED)


@dataclass(eq=False)
class Job:
    """A single track moving through the output pipeline."""

    track_id: str
    context: TrackContext
    profile: "ResolvedProfile"
    state: JobState = JobState.CREATED
    audio: AsyncIterator[bytes] | bytes | None = field(default=None, repr=False)
    cover_art: bytes | None = field(default=None, repr=False)
    output_path: Path | None = None
    argv: list[str] = field(default_factory=list, repr=False)
    error: Exception | None = None
    warnings: list[str] = field(default_factory=list)
    bytes_written: int = 0
    cancel_requested: bool = field(default=False, repr=False)

    @property
    def position(self) -> int:
        return self.context.queue_position

    @property
    def display_name(self) -> str:
        meta = self.context.metadata
        if meta.title and meta.artists:
            return f"{', '.join(meta.artists)} - {meta.title}"
        return meta.title or self.track_id

    def mark_resolved(self, output_path: Path, argv: list[str]) -> None:
        self.output_path = output_path
        self.argv = argv
        self.state = JobState.RESOLVED

    def mark_running(self) -> None:
        self.state = JobState.RUNNING

    def complete(self, bytes_written: int = 0) -> None:
        self.bytes_written = bytes_written
        self.state = JobState.COMPLETED

    def skip(self) -> None:
        self.state = JobState.SKIPPED

    def fail(self, error: Exception) -> None:
        self.error = error
        self.state = JobState.FAILED

    def warn(self, message: str) -> None:
        self.warnings.append(message)
