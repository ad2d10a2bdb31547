"""
Media Processing Layer.

This package is responsible for all media operations: reading tracks from a
source, building transcoder command lines, running the transcoder and
validating its output.
"""

from .command import CommandBuilder, StagedInputs
from .integrity import FileIntegrityChecker
from .source import ManifestTrackSource, SourceTrack, TrackSource
from .transcoder import Transcoder, find_transcoder

__all__ = [
    "CommandBuilder",
    "FileIntegrityChecker",
    "ManifestTrackSource",
    "SourceTrack",
    "StagedInputs",
    "TrackSource",
    "Transcoder",
    "find_transcoder",
]
