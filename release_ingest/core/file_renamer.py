"""File renamer -- gives a matched file its canonical track filename."""

from __future__ import annotations

from pathlib import Path

from release_ingest.core.exceptions import PerFileProcessingError
from release_ingest.models.track_match import TrackMatch
from release_ingest.utils.file_utils import sanitize_filename_part
from release_ingest.utils.logger import get_logger
from release_ingest.utils.constants import TRACK_FILENAME_TEMPLATE

logger = get_logger("core.file_renamer")


def track_filename(match: TrackMatch, suffix: str) -> str:
    """Build ``"{nn}. {artist} - {title}{suffix}"``, sanitized and lower-cased.

    Args:
        match: The file's track assignment.
        suffix: Original file extension including the dot.

    Returns:
        The new filename.
    """
    return TRACK_FILENAME_TEMPLATE.format(
        number=match.track_number,
        artist=sanitize_filename_part(match.artist),
        title=sanitize_filename_part(match.track_title),
        suffix=suffix.lower(),
    )


class FileRenamer:
    """Renames audio files in place according to their track match."""

    def rename(self, path: Path, match: TrackMatch) -> Path:
        """Rename a file to its canonical track filename.

        The file is left alone when it already has that name or when another
        file occupies the target name.

        Args:
            path: Current file path.
            match: The file's track assignment.

        Returns:
            The file's path after renaming.

        Raises:
            PerFileProcessingError: If the rename itself fails.
        """
        new_path = path.with_name(track_filename(match, path.suffix))

        if new_path == path:
            logger.debug("File already has correct name: %s", path.name)
            return path

        if new_path.exists():
            logger.warning("File already exists: %s, skipping rename", new_path.name)
            return path

        try:
            path.rename(new_path)
        except OSError as e:
            raise PerFileProcessingError(f"Cannot rename {path.name}: {e}") from e

        logger.info("Renamed: %s -> %s", path.name, new_path.name)
        return new_path
