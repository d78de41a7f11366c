"""Data models for Release Ingest."""

from release_ingest.models.release import CanonicalTrack, ReleaseMetadata
from release_ingest.models.track_match import CandidateFile, MatchResult, TrackInfo, TrackMatch
from release_ingest.models.outcome import (
    OrganizationResult,
    OrganizedFile,
    ProcessedFile,
    ProcessingOutcome,
    ReprocessOptions,
    ReprocessOutcome,
    ValidationResult,
)
from release_ingest.models.config import AppConfig

__all__ = [
    "CanonicalTrack",
    "ReleaseMetadata",
    "CandidateFile",
    "MatchResult",
    "TrackInfo",
    "TrackMatch",
    "OrganizationResult",
    "OrganizedFile",
    "ProcessedFile",
    "ProcessingOutcome",
    "ReprocessOptions",
    "ReprocessOutcome",
    "ValidationResult",
    "AppConfig",
]
