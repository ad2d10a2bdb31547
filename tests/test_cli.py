"""
Tests for the command-line interface.
"""

import json

import pytest
from typer.testing import CliRunner

from conftest import posix_only
from ffspot.cli.app import app

runner = CliRunner()


def _write_config(path, output_dir, ffpath="ffmpeg"):
    path.write_text(
        f"""\
username = "listener"
password = "hunter2"
output = "%s - %t"
output_dir = "{output_dir}"
ffpath = "{ffpath}"

[profiles.copy]
quality = 160
extension = "ogg"
args = ["-c", "copy", "-metadata", "title=%t"]

[profiles.mp3]
quality = 320
cover_art = true
extension = "mp3"
args = ["-c:a", "libmp3lame", "-map", "0:0", "-map", "1:0"]
""",
        encoding="utf-8",
    )


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    path = tmp_path / "config.toml"
    monkeypatch.setenv("FFSPOT_CONFIG", str(path))
    monkeypatch.delenv("FFSPOT_LOG", raising=False)
    return path


def test_output_help():
    result = runner.invoke(app, ["--output-help"])
    assert result.exit_code == 0
    assert "%a" in result.output
    assert "%%" in result.output


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "ffspot" in result.output


def test_first_run_creates_config(config_path):
    result = runner.invoke(app, ["validate"])
    assert result.exit_code == 0
    assert config_path.is_file()
    assert "created" in result.output


def test_validate_default_config_reports_credentials(config_path):
    runner.invoke(app, ["validate"])
    result = runner.invoke(app, ["validate"])
    assert result.exit_code == 1
    assert "MissingCredentialError" in result.output


def test_validate(config_path, output_dir):
    _write_config(config_path, output_dir)
    result = runner.invoke(app, ["validate"])
    assert result.exit_code == 0, result.output
    assert "Validated Settings" in result.output


def test_validate_unknown_default_profile(config_path, output_dir):
    _write_config(config_path, output_dir)
    text = config_path.read_text(encoding="utf-8")
    config_path.write_text('default_profile = "flac"\n' + text, encoding="utf-8")
    result = runner.invoke(app, ["validate"])
    assert result.exit_code == 1
    assert "UnknownProfileError" in result.output


def test_profiles(config_path, output_dir):
    _write_config(config_path, output_dir)
    result = runner.invoke(app, ["profiles"])
    assert result.exit_code == 0
    assert "copy" in result.output
    assert "mp3" in result.output


@posix_only
def test_download(config_path, output_dir, tmp_path, fake_transcoder):
    _write_config(config_path, output_dir, ffpath=fake_transcoder)
    (tmp_path / "a.ogg").write_bytes(b"aaa")
    (tmp_path / "b.ogg").write_bytes(b"bbb")
    manifest = tmp_path / "tracks.json"
    manifest.write_text(
        json.dumps(
            {
                "tracks": [
                    {"id": "a", "audio": "a.ogg", "title": "Alpha"},
                    {"id": "b", "audio": "b.ogg", "title": "Beta"},
                ]
            }
        ),
        encoding="utf-8",
    )
    result = runner.invoke(app, ["download", str(manifest), "-e", "copy", "-w", "2"])
    assert result.exit_code == 0, result.output
    assert (output_dir / "1 - Alpha.ogg").read_bytes() == b"aaa"
    assert (output_dir / "2 - Beta.ogg").read_bytes() == b"bbb"


@posix_only
def test_download_unknown_profile_runs_nothing(config_path, output_dir, tmp_path, fake_transcoder):
    _write_config(config_path, output_dir, ffpath=fake_transcoder)
    manifest = tmp_path / "tracks.json"
    manifest.write_text('{"tracks": [{"id": "a", "audio": "a.ogg"}]}', encoding="utf-8")
    result = runner.invoke(app, ["download", str(manifest), "-e", "flac"])
    assert result.exit_code != 0
    assert isinstance(result.exception, Exception)
    assert list(output_dir.iterdir()) == []


@posix_only
def test_download_reports_failed_tracks(
    config_path, output_dir, tmp_path, fake_transcoder, monkeypatch
):
    _write_config(config_path, output_dir, ffpath=fake_transcoder)
    monkeypatch.setenv("FAKE_TRANSCODER_EXIT", "1")
    (tmp_path / "a.ogg").write_bytes(b"aaa")
    (tmp_path / "b.ogg").write_bytes(b"bbb")
    manifest = tmp_path / "tracks.json"
    manifest.write_text(
        json.dumps(
            {
                "tracks": [
                    {"id": "a", "audio": "a.ogg", "title": "Alpha"},
                    {"id": "b", "audio": "b.ogg", "title": "Beta"},
                ]
            }
        ),
        encoding="utf-8",
    )
    result = runner.invoke(app, ["download", str(manifest), "-e", "copy"])
    assert result.exit_code == 1, result.output
    assert "2 track(s) failed." in result.output
    assert list(output_dir.iterdir()) == []
