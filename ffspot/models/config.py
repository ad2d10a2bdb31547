"""
Pydantic models for application configuration and encoding profiles.
Provides robust validation for all settings.
"""

from enum import IntEnum

from pydantic import BaseModel, Field, field_validator, model_validator

from ffspot.exceptions import MissingCredentialError

PLACEHOLDER_USERNAME = "<your username here>"
PLACEHOLDER_PASSWORD = "<your password here>"


class Quality(IntEnum):
    """Source bitrate tiers offered by the streaming service, in kbps."""

    HIGH = 320
    NORMAL = 160
    LOW = 96

    def fallback_tiers(self) -> tuple["Quality", ...]:
        """Acceptable source tiers for this quality, best first."""
        return tuple(q for q in Quality if q <= self)


QUALITY_MAP = {
    320: {"name": "OGG Vorbis 320kbps", "short": "320k", "color": "magenta"},
    160: {"name": "OGG Vorbis 160kbps", "short": "160k", "color": "cyan"},
    96: {"name": "OGG Vorbis 96kbps", "short": "96k", "color": "yellow"},
}


def get_quality_info(quality: int) -> dict[str, str]:
    """Gets display information for a given quality tier."""
    return QUALITY_MAP.get(
        quality, {"name": "Unknown", "short": "Unknown", "color": "white"}
    )


class EncodingProfile(BaseModel):
    """A named bundle of quality tier, cover-art policy, extension and arguments."""

    # Validated against Quality by ProfileResolver, not at load time
    quality: int
    cover_art: bool = False
    extension: str
    args: tuple[str, ...] = ()

    class Config:
        """Pydantic model configuration."""

        frozen = True

    @field_validator("extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        """Strips a leading dot and rejects extensions that are not a plain suffix."""
        v = v.strip().lstrip(".")
        if not v:
            raise ValueError("Profile extension cannot be empty.")
        if "/" in v or "\\" in v:
            raise ValueError(f"Profile extension cannot contain separators: {v!r}")
        return v


class AppConfig(BaseModel):
    """A validated, immutable configuration shared read-only by all workers."""

    # Authentication
    username: str = ""
    password: str = Field("", repr=False)

    # Output Settings
    output: str = "./%s. %a - %t"
    output_dir: str = "."
    artists_separator: str = ", "
    max_filename_len: int | None = None
    skip_existing: bool = False

    # Transcoder Settings
    ffpath: str | None = None
    max_workers: int = 4
    transcode_timeout: float | None = None
    seekable_input: bool = False
    verify_output: bool = False

    # Profiles
    default_profile: str = "mp3"
    profiles: dict[str, EncodingProfile] = Field(default_factory=dict)

    class Config:
        """Pydantic model configuration."""

        frozen = True

    @field_validator("output")
    @classmethod
    def validate_output(cls, v: str) -> str:
        """Validates the output path template."""
        if not v.strip():
            raise ValueError("Output template cannot be empty.")
        return v

    @field_validator("max_filename_len")
    @classmethod
    def validate_max_filename_len(cls, v: int | None) -> int | None:
        """Ensures the filename budget is positive when set."""
        if v is not None and v < 1:
            raise ValueError("max_filename_len must be a positive integer.")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Ensures a reasonable number of workers."""
        if v < 1 or v > 32:
            raise ValueError("Max workers must be between 1 and 32.")
        return v

    @field_validator("transcode_timeout")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("transcode_timeout must be greater than zero.")
        return v

    @model_validator(mode="after")
    def validate_credentials(self) -> "AppConfig":
        """Validates that both credentials are present and were edited."""
        if not self.username.strip() or self.username == PLACEHOLDER_USERNAME:
            raise MissingCredentialError(
                "Username is not configured. Set 'username' in the config file."
            )
        if not self.password.strip() or self.password == PLACEHOLDER_PASSWORD:
            raise MissingCredentialError(
                "Password is not configured. Set 'password' in the config file."
            )
        return self

    @classmethod
    def get_file_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the config file."""
        return set(cls.model_fields)
