"""
Track sources: where raw audio, metadata and cover art come from.

The streaming protocol itself lives behind the `TrackSource` protocol. The
bundled `ManifestTrackSource` reads a JSON manifest that lists tracks with
their metadata and the location of their audio and cover art, either as
HTTP(S) URLs or local files.
"""

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Protocol, Sequence

import aiofiles
import aiohttp

from ffspot.exceptions import SourceError, TrackUnavailableError, UnauthorizedError
from ffspot.models.config import Quality
from ffspot.models.track import TrackMetadata

log = logging.getLogger(__name__)

CHUNK_SIZE = 131072  # 128 KB


@dataclass(frozen=True)
class SourceTrack:
    """A track as announced by a source, before any audio is retrieved."""

    track_id: str
    metadata: TrackMetadata


class TrackSource(Protocol):
    """What the output pipeline needs from a music source."""

    async def list_tracks(self) -> list[SourceTrack]:
        ...

    async def open_audio(
        self, track_id: str, qualities: Sequence[Quality]
    ) -> AsyncIterator[bytes]:
        ...

    async def fetch_cover_art(self, track_id: str) -> Optional[bytes]:
        ...


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


class ManifestTrackSource:
    """Serves tracks listed in a JSON manifest file."""

    def __init__(self, manifest_path: Path, request_timeout: float = 90):
        self.manifest_path = Path(manifest_path)
        self.request_timeout = request_timeout
        self._entries: dict[str, dict[str, Any]] = {}
        self._metadata: dict[str, TrackMetadata] = {}
        self._order: list[str] = []
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    async def __aenter__(self) -> "ManifestTrackSource":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Closes the shared HTTP session, if one was opened."""
        async with self._session_lock:
            if self._session and not self._session.closed:
                await self._session.close()
                log.debug("Track source HTTP session closed.")
            self._session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        async with self._session_lock:
            if self._session is None or self._session.closed:
                timeout = aiohttp.ClientTimeout(
                    total=None, sock_connect=15, sock_read=self.request_timeout
                )
                self._session = aiohttp.ClientSession(timeout=timeout)
            return self._session

    async def _load(self) -> None:
        if self._order:
            return
        try:
            async with aiofiles.open(self.manifest_path, "r", encoding="utf-8") as f:
                data = json.loads(await f.read())
        except FileNotFoundError as e:
            raise SourceError(f"Manifest not found: '{self.manifest_path}'") from e
        except (OSError, json.JSONDecodeError) as e:
            raise SourceError(f"Could not read manifest '{self.manifest_path}': {e}") from e

        tracks = data.get("tracks") if isinstance(data, dict) else data
        if not isinstance(tracks, list):
            raise SourceError("Manifest must contain a list of tracks.")

        entries: dict[str, dict[str, Any]] = {}
        metadata_by_id: dict[str, TrackMetadata] = {}
        for index, entry in enumerate(tracks, 1):
            if not isinstance(entry, dict):
                raise SourceError(f"Manifest entry #{index} is not an object.")
            track_id = str(entry.get("id") or index)
            if track_id in entries:
                log.warning(f"Duplicate track id '{track_id}' in manifest; ignoring.")
                continue
            try:
                metadata = TrackMetadata.from_dict(entry)
            except (TypeError, ValueError) as e:
                raise SourceError(
                    f"Manifest entry '{track_id}' has invalid metadata: {e}"
                ) from e
            entries[track_id] = entry
            metadata_by_id[track_id] = metadata

        self._entries = entries
        self._metadata = metadata_by_id
        self._order = list(entries)

    async def list_tracks(self) -> list[SourceTrack]:
        """Returns every track in manifest order."""
        await self._load()
        return [
            SourceTrack(track_id, self._metadata[track_id])
            for track_id in self._order
        ]

    def _entry(self, track_id: str) -> dict[str, Any]:
        try:
            return self._entries[track_id]
        except KeyError:
            raise TrackUnavailableError(f"Unknown track id '{track_id}'") from None

    def _local_path(self, location: str) -> Path:
        path = Path(location).expanduser()
        if not path.is_absolute():
            path = self.manifest_path.parent / path
        return path

    async def open_audio(
        self, track_id: str, qualities: Sequence[Quality]
    ) -> AsyncIterator[bytes]:
        """
        Opens the audio of a track in the best acceptable quality.

        Raises:
            TrackUnavailableError: No acceptable quality or no audio location.
        """
        await self._load()
        entry = self._entry(track_id)
        offered = {int(q) for q in entry.get("qualities") or [q.value for q in Quality]}
        chosen = next((q for q in qualities if q.value in offered), None)
        if chosen is None:
            wanted = ", ".join(str(q.value) for q in qualities)
            raise TrackUnavailableError(
                f"Track '{track_id}' is not available in any of: {wanted} kbps"
            )
        location = entry.get("audio")
        if not location:
            raise TrackUnavailableError(f"Track '{track_id}' has no audio location.")

        log.debug(f"Streaming track '{track_id}' at {chosen.value} kbps")
        if _is_url(location):
            return self._stream_url(location)

        path = self._local_path(location)
        if not await asyncio.to_thread(os.path.isfile, path):
            raise TrackUnavailableError(f"Audio file not found: '{path}'")
        return self._stream_file(path)

    async def fetch_cover_art(self, track_id: str) -> Optional[bytes]:
        """Returns the cover image bytes, or None if the track has none."""
        await self._load()
        location = self._entry(track_id).get("cover")
        if not location:
            return None
        chunks = []
        if _is_url(location):
            async for chunk in self._stream_url(location):
                chunks.append(chunk)
        else:
            path = self._local_path(location)
            if not await asyncio.to_thread(os.path.isfile, path):
                raise TrackUnavailableError(f"Cover art not found: '{path}'")
            async for chunk in self._stream_file(path):
                chunks.append(chunk)
        return b"".join(chunks) or None

    async def _stream_file(self, path: Path) -> AsyncIterator[bytes]:
        try:
            async with aiofiles.open(path, "rb") as f:
                while chunk := await f.read(CHUNK_SIZE):
                    yield chunk
        except OSError as e:
            raise SourceError(f"Could not read '{path}': {e}") from e

    async def _stream_url(self, url: str) -> AsyncIterator[bytes]:
        session = await self._get_session()
        try:
            async with session.get(url, allow_redirects=True) as response:
                if response.status in (401, 403):
                    raise UnauthorizedError(
                        f"Source refused access to '{url}' (HTTP {response.status})"
                    )
                if response.status == 404:
                    raise TrackUnavailableError(f"'{url}' was not found (HTTP 404)")
                response.raise_for_status()
                async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                    yield chunk
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SourceError(f"Network error while fetching '{url}': {e}") from e
