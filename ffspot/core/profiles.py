"""
Looks up and validates encoding profiles from the configuration.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ffspot.exceptions import InvalidQualityError, UnknownProfileError
from ffspot.models.config import AppConfig, Quality

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedProfile:
    """An encoding profile whose quality tier has been validated."""

    name: str
    quality: Quality
    cover_art: bool
    extension: str
    args: tuple[str, ...]

    @property
    def fallback_tiers(self) -> tuple[Quality, ...]:
        return self.quality.fallback_tiers()


class ProfileResolver:
    """Selects a profile by explicit name or the configured default."""

    def __init__(self, config: AppConfig):
        self.config = config

    def resolve(self, name: Optional[str] = None) -> ResolvedProfile:
        """
        Returns the named profile, or the default profile when `name` is empty.

        Raises:
            UnknownProfileError: No profile with that name exists.
            InvalidQualityError: The profile's quality tier is not offered.
        """
        profile_name = name or self.config.default_profile
        profile = self.config.profiles.get(profile_name)
        if profile is None:
            available = ", ".join(sorted(self.config.profiles)) or "none"
            raise UnknownProfileError(
                f"Encoding profile {profile_name!r} not found "
                f"(available: {available})"
            )

        try:
            quality = Quality(profile.quality)
        except ValueError:
            allowed = ", ".join(str(q.value) for q in Quality)
            raise InvalidQualityError(
                f"Invalid quality '{profile.quality}' in profile {profile_name!r}. "
                f"Possible options: {allowed}"
            ) from None

        log.debug(f"Using encoding profile '{profile_name}' ({quality.value} kbps)")
        return ResolvedProfile(
            name=profile_name,
            quality=quality,
            cover_art=profile.cover_art,
            extension=profile.extension,
            args=tuple(profile.args),
        )
