"""
Wildcard expansion for output path templates and transcoder arguments.

A wildcard is a percent sign followed by a single letter:

    %a  artists, joined with the configured separator
    %t  track title
    %b  album
    %s  position in the download queue (zero-padded)
    %n  track number in the album
    %d  disc number
    %l  language
    %y  year
    %p  publisher (label)
    %%  a literal percent sign

Anything else after a percent sign is left untouched. Expansion is a single
pass, so text produced by a substitution is never scanned for wildcards again.
"""

import re
from typing import Callable, Optional

from ffspot.models.track import TrackContext

WILDCARDS = {
    "a": "artists",
    "t": "track title",
    "b": "album",
    "s": "position in download queue",
    "n": "track number in the album",
    "d": "disc number",
    "l": "language",
    "y": "year",
    "p": "publisher (label)",
}

_TOKEN = re.compile(r"%(.)", re.DOTALL)


def _number(value: Optional[int]) -> str:
    return "" if value is None else str(value)


def wildcard_values(context: TrackContext, separator: str) -> dict[str, str]:
    """Returns the textual form of every wildcard for a track."""
    meta = context.metadata
    return {
        "a": separator.join(meta.artists),
        "t": meta.title,
        "b": meta.album,
        "s": f"{context.queue_position:0{max(context.position_width, 1)}d}",
        "n": _number(meta.track_number),
        "d": _number(meta.disc_number),
        "l": meta.language,
        "y": _number(meta.year),
        "p": meta.publisher,
    }


def expand(
    template: str,
    context: TrackContext,
    separator: str = ", ",
    transform: Optional[Callable[[str], str]] = None,
) -> str:
    """
    Substitutes every recognized wildcard in `template`.

    Args:
        template: The template string.
        context: Track metadata and queue position.
        separator: Placed between artist names.
        transform: Applied to each substituted value (not to literal text),
            e.g. to make values safe for use in a filename.
    """
    values = wildcard_values(context, separator)

    def replacer(match: re.Match) -> str:
        key = match.group(1)
        if key == "%":
            return "%"
        if key not in values:
            return match.group(0)
        value = values[key]
        return transform(value) if transform else value

    return _TOKEN.sub(replacer, template)


def find_unknown_wildcards(template: str) -> list[str]:
    """Lists percent sequences that expansion will leave unchanged."""
    unknown = []
    consumed = 0
    for match in _TOKEN.finditer(template):
        key = match.group(1)
        if key != "%" and key not in WILDCARDS:
            unknown.append(match.group(0))
        consumed = match.end()
    # A lone trailing percent sign is not part of any match
    if "%" in template[consumed:]:
        unknown.append("%")
    return unknown


def first_wildcard_index(template: str) -> int:
    """Index of the first recognized wildcard, or the template length if none."""
    for match in _TOKEN.finditer(template):
        if match.group(1) in WILDCARDS:
            return match.start()
    return len(template)
