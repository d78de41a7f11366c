"""Release catalog -- records organized releases in the sqlite library database."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from release_ingest.core.exceptions import PersistenceError
from release_ingest.core.file_organizer import format_of_paths
from release_ingest.core.tag_editor import TagEditor
from release_ingest.db.repositories import ReleaseRepository, StoredTrack
from release_ingest.models.outcome import OrganizedFile
from release_ingest.models.release import ReleaseMetadata
from release_ingest.utils.logger import get_logger

logger = get_logger("core.catalog")


class ReleaseCatalog:
    """Writes a release, its artists, tags, label and tracks to the catalog.

    Each call is a single transaction. Failures surface as
    ``PersistenceError`` and leave the database as it was.
    """

    def __init__(self, connection: sqlite3.Connection, tag_editor: TagEditor | None = None) -> None:
        self._repo = ReleaseRepository(connection)
        self._tag_editor = tag_editor or TagEditor()

    @property
    def repository(self) -> ReleaseRepository:
        return self._repo

    def save(
        self,
        metadata: ReleaseMetadata,
        directory: Path,
        cover_path: Path | None,
        files: list[OrganizedFile],
        version: int,
    ) -> int:
        """Store a freshly ingested release.

        Args:
            metadata: Release metadata.
            directory: Final release directory.
            cover_path: Path of ``cover.jpg``, if any.
            files: Files at their final locations.
            version: Processing version to record.

        Returns:
            Database ID of the release.

        Raises:
            PersistenceError: If the catalog could not be written.
        """
        tracks = [
            StoredTrack(
                title=f.track_title,
                track_number=f.track_number,
                local_path=str(f.new_path),
                artist=f.track_artist or metadata.artist,
                tags=self._tag_editor.extract_all_tags(f.new_path),
            )
            for f in sorted(files, key=lambda f: f.track_number)
        ]
        return self._repo.save_release(
            metadata,
            str(directory),
            str(cover_path) if cover_path else None,
            tracks,
            version,
            release_format=format_of_paths([f.new_path for f in files]),
        )

    def replace(
        self,
        metadata: ReleaseMetadata,
        directory: Path,
        cover_path: Path | None,
        version: int,
        files: list[Path],
    ) -> int:
        """Replace the stored release with what is currently on disk.

        Track data is re-read from each file's tags; files without a track
        number and title are left out.

        Raises:
            PersistenceError: If the catalog could not be written.
        """
        tracks: list[StoredTrack] = []
        for path in files:
            info = self._tag_editor.read_track_info(path)
            if info is None:
                logger.warning("Skipping %s: no track number or title in tags", path.name)
                continue
            tracks.append(
                StoredTrack(
                    title=info.title,
                    track_number=info.track_number,
                    local_path=str(path),
                    artist=info.artist or metadata.artist,
                    tags=self._tag_editor.extract_all_tags(path),
                )
            )

        if not tracks and files:
            raise PersistenceError(f"No readable track tags in {directory}")

        return self._repo.replace_release(
            metadata,
            str(directory),
            str(cover_path) if cover_path else None,
            tracks,
            version,
            release_format=format_of_paths(files),
        )
