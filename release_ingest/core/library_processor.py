"""Library processor -- orchestrates validation, matching, renaming, tagging,
organizing, cataloging and sidecar writing for one ingestion task."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from release_ingest.core.catalog import ReleaseCatalog
from release_ingest.core.cover_art import CoverArtFetcher
from release_ingest.core.exceptions import IngestError, OrganizationError, ValidationError
from release_ingest.core.file_organizer import FileOrganizer
from release_ingest.core.file_renamer import FileRenamer
from release_ingest.core.file_validator import FileValidator
from release_ingest.core.metadata_writer import ReleaseMetadataWriter
from release_ingest.core.tag_editor import TagEditor
from release_ingest.core.track_matcher import TrackMatcher, build_candidates
from release_ingest.models.outcome import (
    OrganizedFile,
    ProcessedFile,
    ProcessingOutcome,
)
from release_ingest.models.release import ReleaseMetadata
from release_ingest.models.track_match import CandidateFile, TrackMatch
from release_ingest.utils.logger import get_logger
from release_ingest.utils.constants import COVER_FILENAME, DEFAULT_PROCESSING_VERSION

logger = get_logger("core.library_processor")


@dataclass
class IngestTask:
    """One batch of downloaded files belonging to a single release.

    Attributes:
        directory_path: Directory the files were downloaded into.
        files: Files to ingest, in the caller's order.
        metadata: Release metadata; None makes the task invalid.
    """

    directory_path: Path
    files: list[Path] = field(default_factory=list)
    metadata: ReleaseMetadata | None = None

    @classmethod
    def from_dict(cls, data: dict) -> IngestTask:
        """Build a task from its JSON form.

        Raises:
            ValidationError: If the directory is missing or the metadata
                block is present but incomplete.
        """
        directory = data.get("directory_path") or data.get("directory")
        if not directory:
            raise ValidationError("Task has no directory_path")

        raw_metadata = data.get("metadata")
        try:
            metadata = ReleaseMetadata.from_dict(raw_metadata) if raw_metadata else None
        except ValueError as e:
            raise ValidationError(f"Invalid release metadata: {e}") from e

        return cls(
            directory_path=Path(directory),
            files=[Path(f) for f in data.get("files") or []],
            metadata=metadata,
        )


class LibraryProcessor:
    """Runs the ingestion pipeline for one release.

    Pipeline steps:
    1. Validate: directory, file list and metadata
    2. Cover art: reuse or download ``cover.jpg``
    3. Match: assign every file a track number, artist and title
    4. Rename and tag each file (failures are per file)
    5. Organize into the library layout (optional)
    6. Record the release in the catalog
    7. Write the sidecar metadata file

    Only validation ends a batch early. Every later failure is recorded as
    an error string and processing continues.
    """

    def __init__(
        self,
        catalog: ReleaseCatalog,
        library_root: Path | None = None,
        organization_enabled: bool = True,
        processing_version: int = DEFAULT_PROCESSING_VERSION,
        tag_editor: TagEditor | None = None,
        matcher: TrackMatcher | None = None,
        organizer: FileOrganizer | None = None,
        cover_fetcher: CoverArtFetcher | None = None,
        metadata_writer: ReleaseMetadataWriter | None = None,
        renamer: FileRenamer | None = None,
        validator: FileValidator | None = None,
    ) -> None:
        """Initialize the processor with its collaborators.

        Args:
            catalog: Catalog the release is recorded in.
            library_root: Root of the organized library. Organization is
                skipped when None.
            organization_enabled: If False, files stay in the task directory.
            processing_version: Version written to the catalog and sidecar.
            tag_editor: Tag reader/writer.
            matcher: Matching engine (filename/tag only when None).
            organizer: File organizer.
            cover_fetcher: Cover art provider.
            metadata_writer: Sidecar writer.
            renamer: File renamer.
            validator: Task validator.
        """
        self._catalog = catalog
        self._library_root = Path(library_root) if library_root else None
        self._organization_enabled = organization_enabled
        self._processing_version = processing_version
        self._tag_editor = tag_editor or TagEditor()
        self._matcher = matcher or TrackMatcher()
        self._organizer = organizer or FileOrganizer()
        self._cover_fetcher = cover_fetcher or CoverArtFetcher()
        self._metadata_writer = metadata_writer or ReleaseMetadataWriter()
        self._renamer = renamer or FileRenamer()
        self._validator = validator or FileValidator()

    def process(self, task: IngestTask) -> ProcessingOutcome:
        """Process one ingestion task.

        Args:
            task: Directory, files and release metadata.

        Returns:
            The outcome. Successful iff at least one file was renamed and
            tagged; never raises.
        """
        directory = Path(task.directory_path)
        metadata = task.metadata
        logger.info("Processing %d files in %s", len(task.files), directory)

        # Step 1: Validate
        validation, audio_files = self._validator.validate(directory, task.files, metadata)
        if not validation.is_valid:
            logger.error("Validation failed: %s", validation.error_message)
            return ProcessingOutcome.failed(
                f"Validation failed: {validation.error_message}", validation.errors
            )
        errors: list[str] = list(validation.warnings)

        # Step 2: Cover art
        cover_art = self._cover_fetcher.get_cover_art(metadata, directory)

        # Step 3: Match
        candidates = build_candidates(audio_files, self._tag_editor)
        matches = self._matcher.match(candidates, metadata)

        # Step 4: Rename and tag
        processed: list[ProcessedFile] = []
        for candidate in candidates:
            match = matches.get(candidate.key)
            if match is None:
                errors.append(f"Failed to process {candidate.filename}: no track match")
                continue
            try:
                processed.append(self._process_file(candidate, match, metadata, cover_art))
            except Exception as e:
                logger.error("Failed to process %s: %s", candidate.filename, e)
                errors.append(f"Failed to process {candidate.filename}: {e}")

        if not processed:
            logger.error("No files processed in %s", directory)
            return ProcessingOutcome.failed("No files were processed successfully", errors)

        # Step 5: Organize
        final_directory = directory
        cover_path: Path | None = directory / COVER_FILENAME
        organized = [OrganizedFile.from_processed(p) for p in processed]
        if self._organization_enabled and self._library_root is not None:
            try:
                result = self._organizer.organize(
                    metadata, directory, processed, self._library_root
                )
                final_directory = result.directory_path
                cover_path = result.cover_path
                organized = result.files
                processed = [
                    ProcessedFile(
                        original_path=p.original_path,
                        new_path=o.new_path,
                        track_title=p.track_title,
                        track_artist=p.track_artist,
                        track_number=p.track_number,
                    )
                    for p, o in zip(processed, organized)
                ]
            except OrganizationError as e:
                logger.error("Organization failed: %s", e)
                errors.append(str(e))
        if cover_path is not None and not cover_path.exists():
            cover_path = None

        # Step 6: Catalog
        try:
            self._catalog.save(
                metadata, final_directory, cover_path, organized, self._processing_version
            )
        except IngestError as e:
            logger.error("Failed to save release to catalog: %s", e)
            errors.append(f"Failed to save release to catalog: {e}")

        # Step 7: Sidecar
        try:
            self._metadata_writer.write(final_directory, metadata, self._processing_version)
        except IngestError as e:
            logger.error("Failed to write metadata file: %s", e)
            errors.append(f"Failed to write metadata file: {e}")

        outcome = ProcessingOutcome.succeeded(final_directory, processed, errors)
        logger.info(outcome.message)
        return outcome

    def _process_file(
        self,
        candidate: CandidateFile,
        match: TrackMatch,
        metadata: ReleaseMetadata,
        cover_art: bytes | None,
    ) -> ProcessedFile:
        new_path = self._renamer.rename(candidate.path, match)
        self._tag_editor.write_release_tags(new_path, metadata, match, cover_art)
        logger.info(
            "Processed: %s -> %02d. %s - %s",
            candidate.filename, match.track_number, match.artist, match.track_title,
        )
        return ProcessedFile(
            original_path=candidate.path,
            new_path=new_path,
            track_title=match.track_title,
            track_artist=match.artist,
            track_number=match.track_number,
        )
