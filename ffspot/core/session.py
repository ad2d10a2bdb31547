"""
The session orchestrator: lists tracks, queues them and collects the outcome.
"""

import logging
from typing import Optional

from ffspot.cli.progress_manager import ProgressManager
from ffspot.core.profiles import ResolvedProfile
from ffspot.core.queue import QueueCoordinator
from ffspot.media.source import TrackSource
from ffspot.media.transcoder import Transcoder
from ffspot.models.config import AppConfig
from ffspot.models.stats import SessionStats
from ffspot.models.track import Job

from .track_processor import TrackProcessor

log = logging.getLogger(__name__)


class DownloadSession:
    """Runs every track of a source through the output pipeline."""

    def __init__(
        self,
        config: AppConfig,
        profile: ResolvedProfile,
        source: TrackSource,
        transcoder: Transcoder,
        progress_manager: Optional[ProgressManager] = None,
    ):
        self.config = config
        self.profile = profile
        self.source = source
        self.progress_manager = progress_manager
        self.stats = SessionStats()
        self.processor = TrackProcessor(
            config, profile, source, transcoder, progress_manager
        )
        self.coordinator: Optional[QueueCoordinator] = None

    async def execute(self) -> SessionStats:
        """Processes all tracks and returns the session statistics."""
        tracks = await self.source.list_tracks()
        if not tracks:
            log.info("No tracks to process. Nothing to do.")
            return self.stats

        log.info(
            f"[bold cyan]▶ {len(tracks)} track(s)[/] with profile "
            f"'{self.profile.name}' ({self.profile.quality.value} kbps)"
        )
        if self.progress_manager:
            self.progress_manager.initialize_session(total_tracks=len(tracks))

        self.coordinator = QueueCoordinator(
            self.processor,
            max_workers=self.config.max_workers,
            position_width=len(str(len(tracks))),
            on_job_done=self._on_job_done,
        )
        for track in tracks:
            self.coordinator.enqueue(track.track_id, track.metadata, self.profile)

        await self.coordinator.run()
        return self.stats

    def _on_job_done(self, job: Job) -> None:
        self.stats.record(job)
        if self.progress_manager:
            self.progress_manager.record_job(job)
