"""File organizer -- places a processed release into the library layout."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from release_ingest.core.exceptions import OrganizationError
from release_ingest.models.outcome import OrganizationResult, OrganizedFile, ProcessedFile
from release_ingest.models.release import ReleaseMetadata
from release_ingest.utils.file_utils import (
    safe_copy,
    safe_move,
    sanitize_folder_name,
    unique_path,
)
from release_ingest.utils.logger import get_logger
from release_ingest.utils.constants import (
    ARCHIVE_PREFIX,
    ARCHIVE_TIMESTAMP_FORMAT,
    COVER_FILENAME,
    DIGITAL_FORMAT,
    MIXED_FORMAT,
    SUPPORTED_EXTENSIONS,
)

logger = get_logger("core.file_organizer")


def detect_format(files: list[ProcessedFile]) -> str:
    """Return the shared audio extension of the files, or ``"mixed"``."""
    return format_of_paths([f.new_path for f in files])


def format_of_paths(paths: list[Path]) -> str:
    """Return the shared audio extension of the paths, or ``"mixed"``.

    Args:
        paths: Audio file paths.

    Returns:
        Extension without the dot when all files share one, ``"digital"``
        for an unrecognized shared extension, ``"mixed"`` otherwise.
    """
    extensions = {Path(p).suffix.lower() for p in paths}
    if len(extensions) != 1:
        return MIXED_FORMAT
    ext = extensions.pop()
    if ext not in SUPPORTED_EXTENSIONS:
        return DIGITAL_FORMAT
    return ext.lstrip(".")


def release_folder_name(title: str | None, year: int | None, fmt: str) -> str:
    """Build ``"{title} ({year}) [{format}]"`` (year omitted when unknown)."""
    name = sanitize_folder_name(title)
    if year is not None:
        return f"{name} ({year}) [{fmt}]".lower()
    return f"{name} [{fmt}]".lower()


class FileOrganizer:
    """Moves a processed release into the library.

    Structure:
        /Library/artist/title (year) [format]/01. artist - title.ext

    If the target folder already holds an earlier version, its contents are
    first moved into an ``old_<YYYYmmdd_HHMMSS>/`` subfolder, so nothing is
    overwritten. Files are copied first; sources are removed only after
    every copy succeeded, so a failure never loses a file.
    """

    def __init__(self, keep_originals: bool = False) -> None:
        """Initialize the file organizer.

        Args:
            keep_originals: If True, source files stay where they are after
                being copied into the library.
        """
        self._keep_originals = keep_originals

    def target_directory(
        self,
        metadata: ReleaseMetadata,
        processed_files: list[ProcessedFile],
        library_root: Path,
    ) -> Path:
        """Compute the release directory inside the library."""
        fmt = detect_format(processed_files)
        return (
            Path(library_root)
            / sanitize_folder_name(metadata.artist)
            / release_folder_name(metadata.title, metadata.year, fmt)
        )

    def organize(
        self,
        metadata: ReleaseMetadata,
        current_directory: Path,
        processed_files: list[ProcessedFile],
        library_root: Path,
    ) -> OrganizationResult:
        """Copy processed files (and cover art) into the library layout.

        Args:
            metadata: Release metadata (artist, title, year).
            current_directory: Directory the files currently live in.
            processed_files: Files that were renamed and tagged.
            library_root: Root of the music library.

        Returns:
            The new directory, cover path and every file's new location.

        Raises:
            OrganizationError: If the files could not be placed. Any partial
                copies are removed and the source files are left untouched.
        """
        current_directory = Path(current_directory)
        target_dir = self.target_directory(metadata, processed_files, library_root)

        if self._same_directory(target_dir, current_directory):
            logger.info("Release already organized at %s", target_dir)
            cover = current_directory / COVER_FILENAME
            return OrganizationResult(
                directory_path=current_directory,
                cover_path=cover if cover.exists() else None,
                files=[OrganizedFile.from_processed(f) for f in processed_files],
            )

        copied: list[Path] = []
        try:
            self._archive_existing(target_dir)
            target_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Created/verified directory: %s", target_dir)

            organized: list[OrganizedFile] = []
            for processed in processed_files:
                dest = unique_path(target_dir / processed.new_path.name)
                safe_copy(processed.new_path, dest)
                copied.append(dest)
                organized.append(OrganizedFile.from_processed(processed, dest))

            cover_path = None
            source_cover = current_directory / COVER_FILENAME
            if source_cover.exists():
                cover_path = safe_copy(source_cover, target_dir / COVER_FILENAME)
                copied.append(cover_path)
                logger.info("Copied cover art to: %s", cover_path)
        except OSError as e:
            logger.error("Failed to organize files into %s: %s", target_dir, e)
            self._remove_partial_copies(copied)
            raise OrganizationError(f"Failed to organize files into library structure: {e}") from e

        if not self._keep_originals:
            self._remove_sources(processed_files)

        logger.info("Organized %d files into %s", len(organized), target_dir)
        return OrganizationResult(directory_path=target_dir, cover_path=cover_path, files=organized)

    def _archive_existing(self, target_dir: Path) -> Path | None:
        """Move existing contents of the target into ``old_<timestamp>/``.

        Earlier ``old_*`` folders stay where they are.

        Returns:
            The archive folder, or None if there was nothing to archive.
        """
        if not target_dir.is_dir():
            return None

        contents = [p for p in target_dir.iterdir() if not p.name.startswith(ARCHIVE_PREFIX)]
        if not contents:
            return None

        timestamp = datetime.now().strftime(ARCHIVE_TIMESTAMP_FORMAT)
        archive_dir = unique_path(target_dir / f"{ARCHIVE_PREFIX}{timestamp}")
        logger.warning(
            "Target directory is not empty: %s. Moving existing files to '%s'.",
            target_dir, archive_dir.name,
        )
        archive_dir.mkdir(parents=True)
        for item in contents:
            safe_move(item, archive_dir / item.name)

        logger.info("Moved %d items to %s", len(contents), archive_dir.name)
        return archive_dir

    @staticmethod
    def _same_directory(a: Path, b: Path) -> bool:
        try:
            return a.resolve() == b.resolve()
        except OSError:
            return False

    @staticmethod
    def _remove_partial_copies(copied: list[Path]) -> None:
        for path in copied:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove partial copy %s: %s", path, e)

    @staticmethod
    def _remove_sources(processed_files: list[ProcessedFile]) -> None:
        for processed in processed_files:
            try:
                processed.new_path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove source file %s: %s", processed.new_path, e)
