"""
Utilities for turning output templates into safe, bounded file paths.
"""

import os
import re
from pathlib import Path
from typing import Optional

from pathvalidate import sanitize_filename

from ffspot.exceptions import (
    EmptyPathError,
    TraversalAttemptError,
    TruncationImpossibleError,
)
from ffspot.models.track import TrackContext
from ffspot.utils.template import expand, first_wildcard_index

PLACEHOLDER = "_"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def sanitize_value(value: str) -> str:
    """Makes a single substituted value safe to use inside one path segment."""
    if not value:
        return value
    value = _CONTROL_CHARS.sub(PLACEHOLDER, value)
    value = value.replace("/", PLACEHOLDER).replace("\\", PLACEHOLDER)
    # Length is bounded per segment by PathResolver, not per value
    sanitized = sanitize_filename(
        value,
        replacement_text=PLACEHOLDER,
        platform="auto",
        max_len=len(value.encode("utf-8")) + len(PLACEHOLDER),
    )
    if sanitized in ("", ".", ".."):
        return PLACEHOLDER * max(len(sanitized), 1)
    return sanitized


def truncate_utf8(name: str, max_bytes: int) -> str:
    """Cuts `name` to at most `max_bytes` UTF-8 bytes on a character boundary."""
    encoded = name.encode("utf-8")
    if len(encoded) <= max_bytes:
        return name
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


class PathResolver:
    """
    Formats an output path template into a concrete file path.

    Wildcard values are sanitized so that metadata can never introduce new
    directories. The directory part of the template that precedes the first
    wildcard, joined to `output_dir`, is the root every resolved path must stay
    inside.
    """

    def __init__(
        self,
        template: str,
        separator: str = ", ",
        output_dir: str | Path = ".",
        max_filename_len: Optional[int] = None,
    ) -> None:
        self.template = template
        self.separator = separator
        self.output_dir = Path(output_dir)
        self.max_filename_len = max_filename_len

    @property
    def root(self) -> Path:
        """The directory that resolved paths may not escape."""
        static_prefix = self.template[: first_wildcard_index(self.template)]
        static_dir = os.path.dirname(static_prefix)
        return Path(os.path.abspath(os.path.join(self.output_dir, static_dir)))

    def resolve(self, context: TrackContext, extension: str) -> Path:
        """
        Generates the final, sanitized file path for a track.

        Raises:
            TruncationImpossibleError: The length budget cannot hold the extension.
            EmptyPathError: The expanded template has no usable filename.
            TraversalAttemptError: The path would land outside the output root.
        """
        if self.max_filename_len is not None and self.max_filename_len < len(
            extension
        ):
            raise TruncationImpossibleError(
                f"max_filename_len ({self.max_filename_len}) is shorter than the "
                f"extension {extension!r}"
            )

        expanded = expand(self.template, context, self.separator, sanitize_value)
        if not os.path.isabs(self.template):
            # An empty leading value must not turn the path absolute
            expanded = expanded.lstrip("/" + os.sep)
        directory, name = os.path.split(expanded)

        if self.max_filename_len is not None:
            name = truncate_utf8(name, self.max_filename_len)

        if name.strip() in ("", ".", ".."):
            raise EmptyPathError(
                f"Template {self.template!r} produced no filename for track "
                f"#{context.queue_position}"
            )

        root = self.root
        candidate = Path(
            os.path.abspath(os.path.join(self.output_dir, directory, name))
        )
        try:
            inside = os.path.commonpath([root, candidate]) == str(root)
        except ValueError:
            # Different drives on Windows
            inside = False
        if not inside:
            raise TraversalAttemptError(
                f"Resolved path {str(candidate)!r} is outside {str(root)!r}"
            )

        return candidate.with_name(f"{candidate.name}.{extension}")
