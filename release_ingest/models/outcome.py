"""Result models produced by ingestion and reprocessing."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ProcessedFile:
    """A file whose rename and tag stage succeeded."""

    original_path: Path
    new_path: Path
    track_title: str
    track_artist: str
    track_number: int


@dataclass
class OrganizedFile:
    """A processed file at its final location, as handed to the catalog."""

    old_path: Path
    new_path: Path
    track_title: str
    track_artist: str
    track_number: int

    @classmethod
    def from_processed(cls, processed: ProcessedFile, new_path: Path | None = None) -> OrganizedFile:
        return cls(
            old_path=processed.new_path,
            new_path=new_path or processed.new_path,
            track_title=processed.track_title,
            track_artist=processed.track_artist,
            track_number=processed.track_number,
        )


@dataclass
class OrganizationResult:
    """Where the organizer put a release.

    Attributes:
        directory_path: Final release directory.
        cover_path: Path to ``cover.jpg`` in that directory, if one exists.
        files: Every input file with its updated path.
    """

    directory_path: Path
    cover_path: Path | None
    files: list[OrganizedFile] = field(default_factory=list)


@dataclass
class ValidationResult:
    """Outcome of validating an ingestion request.

    ``warnings`` holds problems with individual files that did not make
    the request invalid.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def error_message(self) -> str:
        return "; ".join(self.errors)


@dataclass
class ProcessingOutcome:
    """Result of one ingestion batch.

    ``success`` is True iff at least one file was processed; ``errors`` may
    be non-empty either way.
    """

    success: bool
    message: str
    directory_path: Path | None = None
    processed_files: list[ProcessedFile] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @classmethod
    def succeeded(
        cls,
        directory_path: Path,
        processed_files: list[ProcessedFile],
        errors: list[str],
    ) -> ProcessingOutcome:
        message = f"Successfully processed {len(processed_files)} files"
        if errors:
            message += f" (with {len(errors)} errors)"
        return cls(True, message, directory_path, list(processed_files), list(errors))

    @classmethod
    def failed(cls, message: str, errors: list[str] | None = None) -> ProcessingOutcome:
        return cls(False, message, errors=list(errors or []))

    def to_dict(self) -> dict:
        """Serialize for command-line output."""
        return {
            "success": self.success,
            "message": self.message,
            "directory_path": str(self.directory_path) if self.directory_path else None,
            "processed_files": [
                {
                    "original_path": str(f.original_path),
                    "new_path": str(f.new_path),
                    "track_number": f.track_number,
                    "track_artist": f.track_artist,
                    "track_title": f.track_title,
                }
                for f in self.processed_files
            ],
            "errors": list(self.errors),
        }


@dataclass
class ReprocessOptions:
    """Options for reprocessing an organized release directory.

    Attributes:
        skip_retag: Only refresh the sidecar and catalog, leave tags alone.
        force: Reprocess even if the sidecar already records the new version.
    """

    skip_retag: bool = False
    force: bool = False


@dataclass
class ReprocessOutcome:
    """Result of reprocessing one release directory."""

    success: bool
    message: str
    files_processed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "files_processed": self.files_processed,
            "errors": list(self.errors),
        }
