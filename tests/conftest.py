"""
Shared fixtures for the ffspot test suite.
"""

import os
import stat
import sys
from pathlib import Path

import pytest

from ffspot.core.profiles import ProfileResolver
from ffspot.models.config import AppConfig, Quality
from ffspot.models.track import TrackContext, TrackMetadata
from ffspot.media.source import SourceTrack
from ffspot.exceptions import SourceError

FAKE_TRANSCODER = f"""#!{sys.executable}
import json
import os
import sys
import time

args = sys.argv[1:]
out = args[-1]
inputs = [args[i + 1] for i, arg in enumerate(args[:-1]) if arg == "-i"]

log_path = os.environ.get("FAKE_TRANSCODER_LOG")
if log_path:
    with open(log_path, "a") as log:
        log.write(json.dumps(args) + "\\n")

lock = out + ".lock"
try:
    fd = os.open(lock, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
except FileExistsError:
    sys.stderr.write("another writer is using " + out + "\\n")
    sys.exit(3)

try:
    if inputs[0] == "-":
        data = sys.stdin.buffer.read()
    else:
        with open(inputs[0], "rb") as f:
            data = f.read()
    with open(out, "wb") as f:
        f.write(data)
        for extra in inputs[1:]:
            with open(extra, "rb") as g:
                f.write(g.read())
    time.sleep(float(os.environ.get("FAKE_TRANSCODER_SLEEP", "0")))
    code = int(os.environ.get("FAKE_TRANSCODER_EXIT", "0"))
    if code:
        sys.stderr.write("encoder exploded\\n")
    sys.exit(code)
finally:
    os.close(fd)
    os.remove(lock)
"""

MP3_ARGS = [
    "-c:a", "libmp3lame",
    "-c:v", "copy",
    "-metadata:s:v", "title=Album Cover",
    "-metadata", "artist=%a",
    "-metadata", "title=%t",
    "-map", "0:0",
    "-map", "1:0",
]

posix_only = pytest.mark.skipif(
    sys.platform == "win32", reason="fake transcoder relies on a shebang script"
)


@pytest.fixture
def fake_transcoder(tmp_path: Path) -> str:
    """An executable that copies its inputs to the output path."""
    script = tmp_path / "fake-ffmpeg"
    script.write_text(FAKE_TRANSCODER)
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(script)


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    path = tmp_path / "music"
    path.mkdir()
    return path


@pytest.fixture
def make_config(output_dir: Path):
    """Builds a valid AppConfig with overridable fields."""

    def _make(**overrides) -> AppConfig:
        data = {
            "username": "listener",
            "password": "hunter2",
            "output": "%s. %a - %t",
            "output_dir": str(output_dir),
            "default_profile": "mp3",
            "profiles": {
                "mp3": {
                    "quality": 320,
                    "cover_art": True,
                    "extension": "mp3",
                    "args": MP3_ARGS,
                },
                "ogg": {
                    "quality": 160,
                    "cover_art": False,
                    "extension": "ogg",
                    "args": ["-c", "copy", "-metadata", "title=%t"],
                },
            },
        }
        data.update(overrides)
        return AppConfig(**data)

    return _make


@pytest.fixture
def mp3_profile(make_config):
    return ProfileResolver(make_config()).resolve("mp3")


@pytest.fixture
def ogg_profile(make_config):
    return ProfileResolver(make_config()).resolve("ogg")


def make_context(position: int = 1, width: int = 1, **meta) -> TrackContext:
    defaults = {
        "artists": ("A", "B"),
        "title": "X",
        "album": "Album",
        "track_number": 3,
        "disc_number": 1,
        "language": "en",
        "year": 2001,
        "publisher": "Label",
    }
    defaults.update(meta)
    return TrackContext(TrackMetadata(**defaults), position, width)


class FakeSource:
    """In-memory track source."""

    def __init__(self, tracks, audio=b"AUDIO", cover=b"\xff\xd8COVER"):
        self.tracks = [
            SourceTrack(track_id, metadata) for track_id, metadata in tracks
        ]
        self.audio = audio
        self.cover = cover
        self.opened: list[str] = []

    async def list_tracks(self):
        return list(self.tracks)

    async def open_audio(self, track_id, qualities):
        self.opened.append(track_id)
        if Quality.HIGH not in qualities and Quality.NORMAL not in qualities:
            raise SourceError("no such quality")

        async def _chunks():
            yield self.audio[: len(self.audio) // 2]
            yield self.audio[len(self.audio) // 2 :]

        return _chunks()

    async def fetch_cover_art(self, track_id):
        if isinstance(self.cover, Exception):
            raise self.cover
        return self.cover


@pytest.fixture(autouse=True)
def _clean_fake_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("FAKE_TRANSCODER_"):
            monkeypatch.delenv(name)
