"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class FfspotError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(FfspotError):
    """Raised for issues related to configuration loading or validation."""


class UnknownProfileError(ConfigurationError):
    """Raised when the requested encoding profile is not defined."""


class InvalidQualityError(ConfigurationError):
    """Raised when a profile asks for a quality tier the source cannot provide."""


class MissingCredentialError(ConfigurationError):
    """Raised when the username or password is missing from the configuration."""


class PathError(FfspotError):
    """Raised when a usable output path cannot be built from the template."""


class EmptyPathError(PathError):
    """Raised when the resolved path has no usable filename."""


class TraversalAttemptError(PathError):
    """Raised when the resolved path escapes the output directory."""


class TruncationImpossibleError(PathError):
    """Raised when the filename length budget cannot even hold the extension."""


class TranscodeError(FfspotError):
    """Base class for failures of a single transcoder run."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


class SpawnFailureError(TranscodeError):
    """Raised when the transcoder process could not be started."""


class NonZeroExitError(TranscodeError):
    """Raised when the transcoder exits with a non-zero status."""

    def __init__(self, returncode: int, stderr: str = ""):
        if returncode < 0:
            message = f"Transcoder was terminated by signal {-returncode}"
        else:
            message = f"Transcoder exited with a non-zero exit code: {returncode}"
        if stderr:
            message = f"{message}\n{stderr}"
        super().__init__(message, stderr)
        self.returncode = returncode


class TranscodeTimeoutError(TranscodeError):
    """Raised when the transcoder exceeds the configured duration ceiling."""


class TranscodeCancelledError(TranscodeError):
    """Raised when a running or pending job is cancelled."""


class OutputIntegrityError(TranscodeError):
    """Raised when the transcoder succeeded but its artifact is missing or unreadable."""


class SourceError(FfspotError):
    """Raised by a track source when a track cannot be retrieved."""


class TrackUnavailableError(SourceError):
    """Raised when a track is not available in any acceptable quality."""


class UnauthorizedError(SourceError):
    """Raised when the source rejects the supplied credentials."""
