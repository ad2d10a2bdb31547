"""
Manages loading, creation and validation of the TOML configuration file.
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ffspot.exceptions import ConfigurationError
from ffspot.models.config import AppConfig, Quality
from ffspot.utils.template import find_unknown_wildcards

log = logging.getLogger(__name__)

DEFAULT_CONFIG = """\
# Streaming service username or e-mail
username = "<your username here>"

# Streaming service password
password = "<your password here>"

# Default output path
# The following wildcards can be used:
#   %a - artists
#   %t - track name
#   %b - album
#   %s - position in download queue
#   %n - track number in the album
#   %d - disc number
#   %l - language
#   %y - year
#   %p - publisher (label)
#   %% - a literal percent sign
# The extension from the encoding profile will be appended to this path.
output = "./%s. %a - %t"

# OPTIONAL: Directory the output path is resolved against
#output_dir = "."

# Separator between artist names when there are multiple artists
artists_separator = ", "

# OPTIONAL: Maximum filename length in bytes, excluding the extension
#max_filename_len = 128

# OPTIONAL: Path to the FFmpeg binary (searched on PATH when unset)
#ffpath = "/usr/bin/ffmpeg"

# OPTIONAL: Number of tracks transcoded at the same time
#max_workers = 4

# OPTIONAL: Kill a transcoder that runs longer than this many seconds
#transcode_timeout = 600

# OPTIONAL: Pass the audio as a temporary file instead of through a pipe
#seekable_input = false

# OPTIONAL: Skip tracks whose output file already exists
#skip_existing = false

# OPTIONAL: Check every output file with mutagen after transcoding
#verify_output = false

# Encoding profiles
#
# Here you can define the command-line arguments for ffmpeg to use
# The "ogg" and "mp3" profiles below are ready to use, but you can add your
# custom profiles if you want

default_profile = "mp3"

[profiles.mp3]
# Source bitrate, i.e. the quality of the *input*
# Possible options: 320, 160, 96
quality = 320

# Whether to include the cover art image as the 2nd stream in FFmpeg
cover_art = true

# Extension of the output file
extension = "mp3"

# FFmpeg command-line arguments
# You can use the same wildcards as with `output`.
args = [
    "-c:a", "libmp3lame",  # MP3 codec
    "-c:v", "copy",  # don't convert the cover art to JPEG
    "-b:a", "320k",  # 320kbps bitrate
    "-metadata:s:v", "title=Album Cover",  # cover art metadata
    "-metadata:s:v", "comment=Cover (front)",  # cover art metadata
    "-metadata", "artist=%a",
    "-metadata", "title=%t",
    "-metadata", "album=%b",
    "-metadata", "track=%n",
    "-metadata", "disc=%d",
    "-metadata", "language=%l",
    "-metadata", "date=%y",
    "-metadata", "publisher=%p",
    "-map", "0:0",  # include the audio stream
    "-map", "1:0",  # include the video stream (cover art)
]

# 320kbps OGG straight from the source, without transcoding.
[profiles.ogg]
quality = 320
cover_art = false
extension = "ogg"
args = [
    "-c", "copy",  # no transcoding
    "-metadata", "title=%t",
    "-metadata", "artist=%a",
    "-metadata", "language=%l",
    "-metadata", "album=%b",
    "-metadata", "tracknumber=%n",
    "-metadata", "organization=%p",
    "-metadata", "date=%y",
]
"""


def get_config_file() -> Path:
    """Returns the config file location, honouring $FFSPOT_CONFIG."""
    if override := os.getenv("FFSPOT_CONFIG"):
        return Path(override).expanduser()
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "ffspot" / "config.toml"


class ConfigManager:
    """Handles all operations related to the application's TOML config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path

    def ensure_exists(self) -> bool:
        """
        Writes the default configuration if the file does not exist yet.

        Returns:
            True if a new file was created.
        """
        if self.config_file_path.is_file():
            return False
        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as f:
                f.write(DEFAULT_CONFIG)
        except OSError as e:
            raise ConfigurationError(f"Failed to create configuration file: {e}") from e
        log.debug(f"Created default configuration at '{self.config_file_path}'")
        return True

    def read_raw(self) -> dict[str, Any]:
        """Parses the TOML file without validating it."""
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'."
            )
        try:
            with open(self.config_file_path, "rb") as f:
                return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Could not read configuration file: {e}") from e

    def load_config(self, cli_options: dict[str, Any] | None = None) -> AppConfig:
        """
        Loads configuration from the TOML file, applies CLI overrides, and validates it.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated, immutable AppConfig object.

        Raises:
            ConfigurationError: If the config file is missing, invalid, or validation
            fails. MissingCredentialError is raised unchanged.
        """
        config_from_file = self.read_raw()

        unknown_keys = set(config_from_file) - AppConfig.get_file_keys()
        for key in sorted(unknown_keys):
            log.warning(f"[yellow]Ignoring unknown configuration key '{key}'.[/yellow]")
            config_from_file.pop(key)

        if cli_options:
            config_from_file.update(
                {k: v for k, v in cli_options.items() if v is not None}
            )

        try:
            return AppConfig(**config_from_file)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    @staticmethod
    def lint(config: AppConfig) -> list[str]:
        """Returns human-readable warnings for settings that load but look wrong."""
        warnings = []
        for token in find_unknown_wildcards(config.output):
            warnings.append(f"Unknown wildcard {token!r} in 'output' is kept as-is.")
        if config.default_profile not in config.profiles:
            warnings.append(
                f"Default profile {config.default_profile!r} is not defined."
            )
        allowed = {q.value for q in Quality}
        for name, profile in config.profiles.items():
            if profile.quality not in allowed:
                warnings.append(
                    f"Profile {name!r} has invalid quality {profile.quality}."
                )
            for arg in profile.args:
                for token in find_unknown_wildcards(arg):
                    warnings.append(
                        f"Unknown wildcard {token!r} in profile {name!r} "
                        f"argument {arg!r} is kept as-is."
                    )
        return warnings
