"""
Custom exceptions for Release Ingest.
"""


class IngestError(Exception):
    """Base exception for Release Ingest."""
    pass


class ValidationError(IngestError):
    """Raised when an ingestion request is invalid (missing directory, files or metadata)."""
    pass


class MatchingDegradation(IngestError):
    """Raised inside a matching strategy that cannot produce a complete, unique assignment."""
    pass


class AiMatchingError(MatchingDegradation):
    """Raised when the AI matcher fails or returns an unusable response."""
    pass


class PerFileProcessingError(IngestError):
    """Raised when renaming or tagging a single file fails."""
    pass


class TaggingError(PerFileProcessingError):
    """Raised when audio tags cannot be written."""
    pass


class OrganizationError(IngestError):
    """Raised when moving files into the library layout fails."""
    pass


class PersistenceError(IngestError):
    """Raised when the catalog cannot be written."""
    pass


class SidecarError(IngestError):
    """Raised when the sidecar metadata file cannot be written."""
    pass
