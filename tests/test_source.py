"""
Tests for the manifest-backed track source.
"""

import json

import pytest

from ffspot.exceptions import SourceError, TrackUnavailableError
from ffspot.media.source import ManifestTrackSource
from ffspot.models.config import Quality


@pytest.fixture
def manifest(tmp_path):
    (tmp_path / "one.ogg").write_bytes(b"first track")
    (tmp_path / "cover.jpg").write_bytes(b"\xff\xd8image")
    data = {
        "tracks": [
            {
                "id": "one",
                "audio": "one.ogg",
                "cover": "cover.jpg",
                "qualities": [160, 96],
                "artists": ["A", "B"],
                "title": "First",
                "album": "Album",
                "track_number": "1",
                "year": 1999,
                "language": ["en", "de"],
            },
            {"id": "two", "audio": "missing.ogg", "title": "Second", "artists": "C"},
            {"id": "one", "audio": "dup.ogg"},
        ]
    }
    path = tmp_path / "manifest.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


async def _read(stream) -> bytes:
    return b"".join([chunk async for chunk in stream])


@pytest.mark.asyncio
async def test_lists_tracks_in_order(manifest):
    async with ManifestTrackSource(manifest) as source:
        tracks = await source.list_tracks()
    assert [t.track_id for t in tracks] == ["one", "two"]
    first = tracks[0].metadata
    assert first.artists == ("A", "B")
    assert first.track_number == 1
    assert first.language == "en, de"
    assert first.disc_number is None
    assert tracks[1].metadata.artists == ("C",)


@pytest.mark.asyncio
async def test_opens_best_offered_quality(manifest):
    async with ManifestTrackSource(manifest) as source:
        stream = await source.open_audio("one", Quality.HIGH.fallback_tiers())
        assert await _read(stream) == b"first track"


@pytest.mark.asyncio
async def test_no_acceptable_quality(manifest):
    async with ManifestTrackSource(manifest) as source:
        with pytest.raises(TrackUnavailableError, match="320"):
            await source.open_audio("one", (Quality.HIGH,))


@pytest.mark.asyncio
async def test_missing_audio_file(manifest):
    async with ManifestTrackSource(manifest) as source:
        with pytest.raises(TrackUnavailableError):
            await source.open_audio("two", Quality.HIGH.fallback_tiers())


@pytest.mark.asyncio
async def test_cover_art(manifest):
    async with ManifestTrackSource(manifest) as source:
        assert await source.fetch_cover_art("one") == b"\xff\xd8image"
        assert await source.fetch_cover_art("two") is None


@pytest.mark.asyncio
async def test_unknown_track(manifest):
    async with ManifestTrackSource(manifest) as source:
        with pytest.raises(TrackUnavailableError):
            await source.fetch_cover_art("nope")


@pytest.mark.asyncio
async def test_missing_manifest(tmp_path):
    async with ManifestTrackSource(tmp_path / "nope.json") as source:
        with pytest.raises(SourceError, match="not found"):
            await source.list_tracks()


@pytest.mark.parametrize(
    "tracks, message",
    [
        ([{"id": "x", "audio": "a.ogg", "year": "2020-05-01"}], "invalid metadata"),
        ([{"id": "x", "audio": "a.ogg", "track_number": [1]}], "invalid metadata"),
        (["just-a-string"], "not an object"),
    ],
)
@pytest.mark.asyncio
async def test_malformed_entries_raise_source_error(tmp_path, tracks, message):
    path = tmp_path / "manifest.json"
    path.write_text(json.dumps({"tracks": tracks}), encoding="utf-8")
    async with ManifestTrackSource(path) as source:
        with pytest.raises(SourceError, match=message):
            await source.list_tracks()


@pytest.mark.asyncio
async def test_failed_load_is_not_cached(tmp_path):
    path = tmp_path / "manifest.json"
    path.write_text(
        json.dumps({"tracks": [{"id": "ok", "title": "Fine"}, {"id": "bad", "year": "x"}]}),
        encoding="utf-8",
    )
    async with ManifestTrackSource(path) as source:
        with pytest.raises(SourceError):
            await source.list_tracks()
        path.write_text(json.dumps({"tracks": [{"id": "ok", "title": "Fine"}]}))
        tracks = await source.list_tracks()
    assert [t.track_id for t in tracks] == ["ok"]
