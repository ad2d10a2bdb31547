"""
Tests for encoding profile selection.
"""

import pytest
from pydantic import ValidationError

from ffspot.core.profiles import ProfileResolver
from ffspot.exceptions import InvalidQualityError, UnknownProfileError
from ffspot.models.config import EncodingProfile, Quality


def test_default_profile(make_config):
    profile = ProfileResolver(make_config()).resolve()
    assert profile.name == "mp3"
    assert profile.quality is Quality.HIGH
    assert profile.cover_art is True
    assert profile.extension == "mp3"


def test_explicit_profile(make_config):
    profile = ProfileResolver(make_config()).resolve("ogg")
    assert profile.name == "ogg"
    assert profile.quality is Quality.NORMAL
    assert profile.args == ("-c", "copy", "-metadata", "title=%t")


def test_unknown_profile(make_config):
    with pytest.raises(UnknownProfileError, match="flac"):
        ProfileResolver(make_config()).resolve("flac")


def test_unknown_default_profile(make_config):
    with pytest.raises(UnknownProfileError):
        ProfileResolver(make_config(default_profile="missing")).resolve()


def test_invalid_quality_is_rejected_on_use(make_config):
    config = make_config(
        profiles={"odd": {"quality": 256, "extension": "mp3"}},
        default_profile="odd",
    )
    with pytest.raises(InvalidQualityError, match="256"):
        ProfileResolver(config).resolve()


def test_fallback_tiers():
    assert Quality.HIGH.fallback_tiers() == (Quality.HIGH, Quality.NORMAL, Quality.LOW)
    assert Quality.LOW.fallback_tiers() == (Quality.LOW,)


@pytest.mark.parametrize(
    "extension, expected", [("mp3", "mp3"), (".ogg", "ogg"), (" m4a ", "m4a")]
)
def test_extension_is_normalized(extension, expected):
    assert EncodingProfile(quality=320, extension=extension).extension == expected


@pytest.mark.parametrize("extension", ["", ".", "a/b"])
def test_bad_extension(extension):
    with pytest.raises(ValidationError):
        EncodingProfile(quality=320, extension=extension)
