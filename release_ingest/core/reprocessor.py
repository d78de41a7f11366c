"""Reprocessor -- re-applies matching and tagging to an organized release directory."""

from __future__ import annotations

from pathlib import Path

from release_ingest.core.catalog import ReleaseCatalog
from release_ingest.core.cover_art import CoverArtFetcher
from release_ingest.core.exceptions import IngestError
from release_ingest.core.metadata_writer import ReleaseMetadataWriter
from release_ingest.core.tag_editor import TagEditor
from release_ingest.core.track_matcher import TrackMatcher, build_candidates
from release_ingest.models.outcome import ReprocessOptions, ReprocessOutcome
from release_ingest.models.release import ReleaseMetadata
from release_ingest.utils.file_utils import list_audio_files
from release_ingest.utils.logger import get_logger
from release_ingest.utils.constants import COVER_FILENAME

logger = get_logger("core.reprocessor")


class Reprocessor:
    """Brings an already organized release up to a new processing version.

    Files are re-tagged in place (never renamed or moved), the sidecar is
    rewritten and the catalog entry is replaced as a whole.
    """

    def __init__(
        self,
        catalog: ReleaseCatalog,
        tag_editor: TagEditor | None = None,
        matcher: TrackMatcher | None = None,
        cover_fetcher: CoverArtFetcher | None = None,
        metadata_writer: ReleaseMetadataWriter | None = None,
    ) -> None:
        self._catalog = catalog
        self._tag_editor = tag_editor or TagEditor()
        self._matcher = matcher or TrackMatcher()
        self._cover_fetcher = cover_fetcher or CoverArtFetcher()
        self._metadata_writer = metadata_writer or ReleaseMetadataWriter()

    def reprocess(
        self,
        directory: Path,
        metadata: ReleaseMetadata,
        new_version: int,
        options: ReprocessOptions | None = None,
    ) -> ReprocessOutcome:
        """Reprocess one release directory.

        Args:
            directory: Organized release directory.
            metadata: Current release metadata.
            new_version: Processing version to record.
            options: Reprocessing options.

        Returns:
            The outcome; never raises.
        """
        directory = Path(directory)
        options = options or ReprocessOptions()

        if not directory.is_dir():
            return ReprocessOutcome(False, f"Directory does not exist: {directory}")

        existing = self._metadata_writer.read(directory)
        if (
            not options.force
            and existing is not None
            and existing.get("metadata_version") == new_version
        ):
            logger.info("%s is already at version %d, skipping", directory, new_version)
            return ReprocessOutcome(True, f"Already at version {new_version}")

        audio_files = list_audio_files(directory)
        if not audio_files:
            return ReprocessOutcome(False, f"No audio files found in {directory}")

        logger.info(
            "Reprocessing %d files in %s to version %d",
            len(audio_files), directory, new_version,
        )

        errors: list[str] = []
        if options.skip_retag:
            files_processed = len(audio_files)
        else:
            files_processed = self._retag(directory, metadata, audio_files, errors)
            if files_processed == 0:
                return ReprocessOutcome(False, "No files were re-tagged successfully", 0, errors)

        try:
            self._metadata_writer.write(directory, metadata, new_version)
        except IngestError as e:
            logger.error("Failed to write metadata file: %s", e)
            errors.append(f"Failed to write metadata file: {e}")

        cover_path = directory / COVER_FILENAME
        try:
            self._catalog.replace(
                metadata,
                directory,
                cover_path if cover_path.exists() else None,
                new_version,
                audio_files,
            )
        except IngestError as e:
            logger.error("Failed to replace catalog entry: %s", e)
            errors.append(f"Failed to replace catalog entry: {e}")

        message = f"Reprocessed {files_processed} files to version {new_version}"
        if errors:
            message += f" (with {len(errors)} errors)"
        logger.info(message)
        return ReprocessOutcome(True, message, files_processed, errors)

    def _retag(
        self,
        directory: Path,
        metadata: ReleaseMetadata,
        audio_files: list[Path],
        errors: list[str],
    ) -> int:
        cover_art = self._cover_fetcher.get_cover_art(metadata, directory)
        candidates = build_candidates(audio_files, self._tag_editor)
        matches = self._matcher.match(candidates, metadata)

        retagged = 0
        for candidate in candidates:
            match = matches.get(candidate.key)
            if match is None:
                errors.append(f"Failed to re-tag {candidate.filename}: no track match")
                continue
            try:
                self._tag_editor.write_release_tags(candidate.path, metadata, match, cover_art)
                retagged += 1
            except Exception as e:
                logger.error("Failed to re-tag %s: %s", candidate.filename, e)
                errors.append(f"Failed to re-tag {candidate.filename}: {e}")
        return retagged
