"""
Tests for transcoder argument construction.
"""

from pathlib import Path

import pytest

from conftest import make_context
from ffspot.media.command import (
    BASE_ARGS,
    CommandBuilder,
    StagedInputs,
    is_cover_art_option,
    strip_cover_art_args,
)

OUTPUT = Path("/music/1. A, B - X.mp3")


def test_cover_art_is_second_input(mp3_profile):
    args = CommandBuilder(mp3_profile).build(
        make_context(), OUTPUT, StagedInputs(cover_art="/tmp/cover.jpg")
    )
    assert args[: len(BASE_ARGS)] == list(BASE_ARGS)
    assert args[len(BASE_ARGS) : len(BASE_ARGS) + 4] == [
        "-i", "-", "-i", "/tmp/cover.jpg",
    ]
    assert args[-1] == str(OUTPUT)
    assert "1:0" in args
    assert "-c:v" in args


def test_values_are_expanded_per_argument(mp3_profile):
    args = CommandBuilder(mp3_profile, " & ").build(
        make_context(), OUTPUT, StagedInputs(cover_art="/tmp/cover.jpg")
    )
    assert "artist=A & B" in args
    assert "title=X" in args


def test_missing_cover_drops_its_arguments(mp3_profile):
    args = CommandBuilder(mp3_profile).build(make_context(), OUTPUT, StagedInputs())
    assert args.count("-i") == 1
    assert "1:0" not in args
    assert "-c:v" not in args
    assert "-metadata:s:v" not in args
    assert "title=Album Cover" not in args
    assert ["-map", "0:0"] == args[args.index("-map") : args.index("-map") + 2]
    assert args[-1] == str(OUTPUT)


def test_profile_without_cover_ignores_staged_image(ogg_profile):
    args = CommandBuilder(ogg_profile).build(
        make_context(), OUTPUT, StagedInputs(cover_art="/tmp/cover.jpg")
    )
    assert args == list(BASE_ARGS) + [
        "-i", "-", "-c", "copy", "-metadata", "title=X", str(OUTPUT),
    ]


def test_seekable_audio_input(ogg_profile):
    args = CommandBuilder(ogg_profile).build(
        make_context(), OUTPUT, StagedInputs(audio="/tmp/audio")
    )
    assert args[len(BASE_ARGS) : len(BASE_ARGS) + 2] == ["-i", "/tmp/audio"]


def test_metadata_with_spaces_stays_one_argument(ogg_profile):
    context = make_context(title="Two Words; rm -rf")
    args = CommandBuilder(ogg_profile).build(context, OUTPUT, StagedInputs())
    assert "title=Two Words; rm -rf" in args


@pytest.mark.parametrize(
    "option, value, expected",
    [
        ("-map", "1:0", True),
        ("-map", "1", True),
        ("-map", "[1:v]", True),
        ("-map", "0:0", False),
        ("-map", "10:0", False),
        ("-c:v", "copy", True),
        ("-metadata:s:v", "title=Cover", True),
        ("-disposition:v:0", "attached_pic", True),
        ("-vcodec", "png", True),
        ("-c:a", "libmp3lame", False),
        ("-metadata", "title=v", False),
    ],
)
def test_is_cover_art_option(option, value, expected):
    assert is_cover_art_option(option, value) is expected


def test_strip_cover_art_args():
    args = ["-c:a", "aac", "-c:v", "copy", "-map", "0:0", "-map", "1:0"]
    assert strip_cover_art_args(args) == ["-c:a", "aac", "-map", "0:0"]
