"""
Builds the transcoder argument list for a job.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from ffspot.core.profiles import ResolvedProfile
from ffspot.models.track import TrackContext
from ffspot.utils.template import expand

log = logging.getLogger(__name__)

BASE_ARGS = ("-y", "-hide_banner", "-loglevel", "error")
STDIN_INPUT = "-"

# "-map 1:0", "-map [1:v]", "-map -1"
_SECOND_INPUT_MAP = re.compile(r"^-?\[?1(?:[:\]?]|$)")
# "-c:v copy", "-metadata:s:v title=...", "-disposition:v:0 attached_pic"
_VIDEO_STREAM_OPTION = re.compile(r"^-[\w]+:(?:s:)?v(?::|$)")
_VIDEO_OPTIONS = {"-vcodec", "-vf", "-vframes"}


@dataclass(frozen=True)
class StagedInputs:
    """Where the transcoder reads its inputs from."""

    audio: str = STDIN_INPUT
    cover_art: Optional[str] = None

    @property
    def audio_from_stdin(self) -> bool:
        return self.audio == STDIN_INPUT


def is_cover_art_option(option: str, value: str) -> bool:
    """True if an option/value pair only makes sense with a second, image input."""
    if option == "-map":
        return bool(_SECOND_INPUT_MAP.match(value))
    return option in _VIDEO_OPTIONS or bool(_VIDEO_STREAM_OPTION.match(option))


def strip_cover_art_args(args: Sequence[str]) -> list[str]:
    """Removes option/value pairs that refer to the cover art stream."""
    stripped = []
    i = 0
    while i < len(args):
        if i + 1 < len(args) and is_cover_art_option(args[i], args[i + 1]):
            i += 2
            continue
        stripped.append(args[i])
        i += 1
    return stripped


class CommandBuilder:
    """Expands a profile's argument templates into a concrete argument list."""

    def __init__(self, profile: ResolvedProfile, separator: str = ", "):
        self.profile = profile
        self.separator = separator

    def build(
        self,
        context: TrackContext,
        output_path: Path,
        inputs: StagedInputs,
    ) -> list[str]:
        """
        Returns the arguments, without the executable itself.

        The audio is always input 0. The cover image becomes input 1 only when
        the profile asks for it and an image was staged; otherwise every
        argument that refers to it is dropped so the remaining stream mapping
        stays valid.
        """
        args = list(BASE_ARGS)
        args += ["-i", inputs.audio]

        profile_args: Sequence[str] = self.profile.args
        if self.profile.cover_art and inputs.cover_art is not None:
            args += ["-i", inputs.cover_art]
        elif self.profile.cover_art:
            profile_args = strip_cover_art_args(profile_args)

        for arg in profile_args:
            args.append(expand(arg, context, self.separator))

        args.append(str(output_path))
        log.debug(f"Transcoder args built: {args}")
        return args
