"""
Queue coordination: stable queue positions, a bounded worker pool and
per-path serialization of transcoder runs.
"""

import asyncio
import itertools
import logging
import os
import threading
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable, Optional, Protocol

from rich.markup import escape

from ffspot.core.profiles import ResolvedProfile
from ffspot.exceptions import FfspotError, TranscodeCancelledError
from ffspot.models.track import Job, TrackContext, TrackMetadata

log = logging.getLogger(__name__)


class JobRunner(Protocol):
    async def prepare(self, job: Job) -> None:
        """Resolves the job's output path."""

    async def execute(self, job: Job) -> None:
        """Produces the artifact at the job's output path."""


class PositionCounter:
    """Hands out 1-based queue positions; safe to call from any thread."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            return next(self._counter)


class QueueCoordinator:
    """
    Assigns each job its queue position at enqueue time and dispatches jobs to
    a bounded pool of workers. Jobs that resolve to the same output path never
    run at the same time. A failing job never stops its siblings.
    """

    def __init__(
        self,
        runner: JobRunner,
        max_workers: int = 4,
        position_width: int = 1,
        on_job_done: Optional[Callable[[Job], None]] = None,
    ):
        self.runner = runner
        self.max_workers = max_workers
        self.position_width = position_width
        self.on_job_done = on_job_done
        self._positions = PositionCounter()
        self._enqueue_lock = threading.Lock()
        self._queue: asyncio.Queue[Job] = asyncio.Queue()
        self._jobs: list[Job] = []
        self._running: dict[int, asyncio.Task] = {}
        # Only touched from the event loop thread
        self._path_locks: dict[str, tuple[asyncio.Lock, int]] = {}

    @property
    def jobs(self) -> list[Job]:
        """All jobs in enqueue order."""
        return list(self._jobs)

    def enqueue(
        self, track_id: str, metadata: TrackMetadata, profile: ResolvedProfile
    ) -> Job:
        """Creates a job with the next queue position and queues it."""
        with self._enqueue_lock:
            position = self._positions.next()
            context = TrackContext(metadata, position, self.position_width)
            job = Job(track_id=track_id, context=context, profile=profile)
            self._jobs.append(job)
            self._queue.put_nowait(job)
        log.debug(f"Enqueued track '{track_id}' at position {position}")
        return job

    def cancel(self, job: Job) -> bool:
        """
        Cancels a job. A pending job is dropped when a worker reaches it; a
        running job has its task cancelled, which kills the transcoder.
        Returns False if the job had already finished.
        """
        if job.state.is_final:
            return False
        job.cancel_requested = True
        if task := self._running.get(job.position):
            task.cancel()
        return True

    async def run(self) -> list[Job]:
        """Processes every queued job and returns all jobs in enqueue order."""
        workers = [
            asyncio.create_task(self._worker(), name=f"ffspot-worker-{i}")
            for i in range(self.max_workers)
        ]
        try:
            await self._queue.join()
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
        return self.jobs

    async def _worker(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self._process(job)
            finally:
                self._queue.task_done()

    async def _process(self, job: Job) -> None:
        if job.cancel_requested:
            job.fail(TranscodeCancelledError("Cancelled before it started"))
            self._finish(job)
            return

        task = asyncio.create_task(self._run_job(job))
        self._running[job.position] = task
        try:
            await task
        except asyncio.CancelledError:
            job.fail(TranscodeCancelledError("Cancelled while running"))
            self._finish(job)
            if not job.cancel_requested:
                # The worker itself is shutting down
                raise
            return
        finally:
            self._running.pop(job.position, None)
        self._finish(job)

    async def _run_job(self, job: Job) -> None:
        try:
            await self.runner.prepare(job)
            async with self._claim_path(job.output_path):
                await self.runner.execute(job)
        except FfspotError as e:
            job.fail(e)
            log.error(
                f"[red]  ✗ Failed:[/] [{job.position}] {escape(job.display_name)}"
                f" ({escape(str(e))})"
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            job.fail(e)
            log.error(
                f"[red]  ✗ An unexpected error occurred for "
                f"'{escape(job.display_name)}': {escape(str(e))}[/red]",
                exc_info=log.getEffectiveLevel() == logging.DEBUG,
            )

    @asynccontextmanager
    async def _claim_path(self, path: Path) -> AsyncIterator[None]:
        """Holds the per-path lock so two writers never target the same file."""
        key = os.path.normcase(str(path))
        lock, users = self._path_locks.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._path_locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._path_locks[key]
            if users <= 1:
                del self._path_locks[key]
            else:
                self._path_locks[key] = (lock, users - 1)

    def _finish(self, job: Job) -> None:
        if self.on_job_done:
            self.on_job_done(job)
