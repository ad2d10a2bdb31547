"""
Provides methods for checking the integrity of transcoded media files.
"""

import logging

import mutagen
from mutagen import MutagenError

log = logging.getLogger(__name__)


class FileIntegrityChecker:
    """A collection of static methods for validating transcoder output."""

    @staticmethod
    def check(filepath: str) -> bool:
        """
        Performs a basic integrity check on a transcoded file.

        Formats mutagen does not recognize pass as long as the file is not
        empty; recognized formats must parse and report a positive duration.

        Args:
            filepath: Path to the audio file.

        Returns:
            True if the file appears to be valid, False otherwise.
        """
        try:
            audio = mutagen.File(filepath)
        except MutagenError as e:
            log.warning(f"Integrity check failed for '{filepath}': {e}")
            return False
        except Exception as e:
            log.debug(f"Integrity check failed for '{filepath}' with unexpected error: {e}")
            return False

        if audio is None:
            log.debug(f"'{filepath}' is not a format mutagen knows; skipping checks.")
            return FileIntegrityChecker._is_non_empty(filepath)

        if audio.info and getattr(audio.info, "length", 0) > 0:
            return True
        log.warning(f"Integrity check failed for '{filepath}': No valid stream info.")
        return False

    @staticmethod
    def _is_non_empty(filepath: str) -> bool:
        try:
            with open(filepath, "rb") as f:
                return bool(f.read(1))
        except OSError:
            return False
