"""
Runs the external transcoder for a single job and reclaims everything it used.
"""

import asyncio
import logging
import os
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles

from ffspot.exceptions import (
    ConfigurationError,
    NonZeroExitError,
    OutputIntegrityError,
    SpawnFailureError,
    TranscodeTimeoutError,
)
from ffspot.media.command import STDIN_INPUT, StagedInputs
from ffspot.media.integrity import FileIntegrityChecker

log = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "ffmpeg"

AudioInput = AsyncIterator[bytes] | bytes


def find_transcoder(ffpath: Optional[str] = None) -> str:
    """
    Resolves the transcoder executable, falling back to `ffmpeg` on PATH.

    Raises:
        ConfigurationError: If the executable cannot be found.
    """
    candidate = ffpath or DEFAULT_EXECUTABLE
    resolved = shutil.which(candidate)
    if resolved is None:
        raise ConfigurationError(
            f"{candidate!r} binary not found. Make sure FFmpeg is installed, or if "
            "you set a custom ffpath, that the path is correct."
        )
    return resolved


def _image_suffix(data: bytes) -> str:
    if data.startswith(b"\x89PNG"):
        return ".png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return ".webp"
    return ".jpg"


async def _iter_audio(audio: AudioInput) -> AsyncIterator[bytes]:
    if isinstance(audio, (bytes, bytearray)):
        yield bytes(audio)
        return
    async for chunk in audio:
        yield chunk


class Transcoder:
    """
    Spawns the transcoder executable and supervises it until it exits.

    Audio is written to the process's stdin unless `seekable_input` is set, in
    which case it is staged in a temporary file first. Cover art is always
    staged in a temporary file since it is the second input.
    """

    def __init__(
        self,
        executable: str,
        timeout: Optional[float] = None,
        seekable_input: bool = False,
        verify_output: bool = False,
    ):
        self.executable = executable
        self.timeout = timeout
        self.seekable_input = seekable_input
        self.verify_output = verify_output

    @asynccontextmanager
    async def stage_inputs(
        self, audio: AudioInput, cover_art: Optional[bytes] = None
    ) -> AsyncIterator[StagedInputs]:
        """Writes inputs that need a file to a temporary directory for the block."""
        if not self.seekable_input and cover_art is None:
            yield StagedInputs()
            return

        temp_dir = tempfile.mkdtemp(prefix="ffspot-")
        try:
            audio_input = STDIN_INPUT
            if self.seekable_input:
                audio_input = os.path.join(temp_dir, "audio")
                async with aiofiles.open(audio_input, "wb") as f:
                    async for chunk in _iter_audio(audio):
                        await f.write(chunk)

            cover_input = None
            if cover_art is not None:
                cover_input = os.path.join(temp_dir, f"cover{_image_suffix(cover_art)}")
                async with aiofiles.open(cover_input, "wb") as f:
                    await f.write(cover_art)

            yield StagedInputs(audio=audio_input, cover_art=cover_input)
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

    async def run(
        self,
        args: list[str],
        inputs: StagedInputs,
        output_path: Path,
        audio: Optional[AudioInput] = None,
    ) -> int:
        """
        Runs the transcoder to completion and returns the artifact size.

        Any failure, including cancellation, kills the process if it is still
        running and deletes whatever was written to `output_path`.

        Raises:
            SpawnFailureError, NonZeroExitError, TranscodeTimeoutError,
            OutputIntegrityError
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                stdin=(
                    asyncio.subprocess.PIPE
                    if inputs.audio_from_stdin
                    else asyncio.subprocess.DEVNULL
                ),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise SpawnFailureError(
                f"Could not start transcoder {self.executable!r}: {e}"
            ) from e

        log.debug(f"Transcoder started (pid {process.pid}) for '{output_path.name}'")

        try:
            stderr = await asyncio.wait_for(
                self._communicate(process, audio if inputs.audio_from_stdin else None),
                self.timeout,
            )
        except asyncio.TimeoutError:
            await self._kill(process)
            await self._remove_partial(output_path)
            raise TranscodeTimeoutError(
                f"Transcoder did not finish within {self.timeout:g}s"
            ) from None
        except BaseException:
            await self._kill(process)
            await self._remove_partial(output_path)
            raise

        if process.returncode != 0:
            await self._remove_partial(output_path)
            raise NonZeroExitError(process.returncode, stderr)

        if not await asyncio.to_thread(output_path.is_file):
            raise OutputIntegrityError(
                f"Transcoder exited successfully but wrote nothing to '{output_path}'",
                stderr,
            )
        if self.verify_output and not await asyncio.to_thread(
            FileIntegrityChecker.check, str(output_path)
        ):
            await self._remove_partial(output_path)
            raise OutputIntegrityError(
                f"'{output_path.name}' failed the integrity check", stderr
            )
        stat = await asyncio.to_thread(output_path.stat)
        return stat.st_size

    async def _communicate(
        self, process: asyncio.subprocess.Process, audio: Optional[AudioInput]
    ) -> str:
        """Feeds stdin and drains stderr concurrently, then waits for exit."""
        _, stderr = await asyncio.gather(
            self._feed(process, audio), process.stderr.read()
        )
        await process.wait()
        return stderr.decode("utf-8", errors="replace").strip()

    async def _feed(
        self, process: asyncio.subprocess.Process, audio: Optional[AudioInput]
    ) -> None:
        if process.stdin is None:
            return
        try:
            if audio is not None:
                async for chunk in _iter_audio(audio):
                    process.stdin.write(chunk)
                    await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            # The exit code tells the real story
            log.debug("Transcoder closed its input early.")
        finally:
            process.stdin.close()
            try:
                await process.stdin.wait_closed()
            except (BrokenPipeError, ConnectionResetError):
                pass

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
            log.debug(f"Transcoder (pid {process.pid}) killed.")

    @staticmethod
    async def _remove_partial(output_path: Path) -> None:
        try:
            await asyncio.to_thread(output_path.unlink, missing_ok=True)
        except OSError as e:
            log.warning(f"Could not remove partial output '{output_path}': {e}")
