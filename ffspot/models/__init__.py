"""
Data Models Layer.

This package contains the Pydantic configuration models and the dataclasses
that describe tracks, jobs and session statistics.
"""

from .config import AppConfig, EncodingProfile, Quality
from .stats import SessionStats
from .track import Job, JobState, TrackContext, TrackMetadata

__all__ = [
    "AppConfig",
    "EncodingProfile",
    "Job",
    "JobState",
    "Quality",
    "SessionStats",
    "TrackContext",
    "TrackMetadata",
]
