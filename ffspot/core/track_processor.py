"""
Handles the processing of a single job, from path resolution to transcoding.
"""

import asyncio
import logging
from typing import Optional

from rich.markup import escape

from ffspot.cli.progress_manager import ProgressManager
from ffspot.core.profiles import ResolvedProfile
from ffspot.exceptions import SourceError
from ffspot.media.command import CommandBuilder
from ffspot.media.source import TrackSource
from ffspot.media.transcoder import Transcoder
from ffspot.models.config import AppConfig
from ffspot.models.track import Job
from ffspot.utils.path import PathResolver, create_dir

log = logging.getLogger(__name__)


class TrackProcessor:
    """
    Resolves, fetches and transcodes a single job. The queue coordinator calls
    `prepare` first, then `execute` once no other job is writing to the same
    output path.
    """

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
        self.transcoder = transcoder
        self.progress_manager = progress_manager
        self.path_resolver = PathResolver(
            config.output,
            separator=config.artists_separator,
            output_dir=config.output_dir,
            max_filename_len=config.max_filename_len,
        )
        self.command_builder = CommandBuilder(profile, config.artists_separator)

    async def prepare(self, job: Job) -> None:
        """Computes the job's output path."""
        job.output_path = self.path_resolver.resolve(
            job.context, self.profile.extension
        )

    async def execute(self, job: Job) -> None:
        """
        Fetches the audio and runs the transcoder. Raises on failure; the
        coordinator records the error on the job.
        """
        final_path = job.output_path
        if self.config.skip_existing and final_path.is_file():
            log.info(
                f"  [yellow]○ Skipping:[/] [dim]{escape(final_path.name)}[/dim]"
                " (already exists)"
            )
            job.skip()
            return

        await asyncio.to_thread(create_dir, final_path.parent)

        job.audio = await self.source.open_audio(
            job.track_id, self.profile.fallback_tiers
        )
        if self.profile.cover_art:
            job.cover_art = await self._fetch_cover_art(job)

        task_id = None
        if self.progress_manager:
            task_id = self.progress_manager.add_job_task(job)

        try:
            async with self.transcoder.stage_inputs(
                job.audio, job.cover_art
            ) as inputs:
                argv = self.command_builder.build(job.context, final_path, inputs)
                job.mark_resolved(final_path, argv)
                job.mark_running()
                size = await self.transcoder.run(
                    argv, inputs, final_path, audio=job.audio
                )
            job.complete(size)
            log.info(
                f"  [green]✓ Done:[/] [{job.position}] {escape(final_path.name)}"
            )
        finally:
            if hasattr(job.audio, "aclose"):
                await job.audio.aclose()
            if task_id is not None:
                self.progress_manager.remove_task(task_id)

    async def _fetch_cover_art(self, job: Job) -> Optional[bytes]:
        """Cover art is optional: any failure becomes a warning on the job."""
        reason = "the source has no cover art for this track"
        try:
            cover = await self.source.fetch_cover_art(job.track_id)
        except SourceError as e:
            cover = None
            reason = str(e)
        if cover is None:
            message = f"Cover art unavailable ({reason}); continuing without it."
            job.warn(message)
            log.warning(
                f"  [yellow]⚠ [{job.position}] {escape(job.display_name)}:[/] "
                f"{escape(message)}"
            )
        return cover
