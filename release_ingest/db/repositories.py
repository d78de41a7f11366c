"""Data access layer -- repository for the release/track graph."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from release_ingest.core.exceptions import PersistenceError
from release_ingest.models.release import ReleaseMetadata
from release_ingest.utils.logger import get_logger

logger = get_logger("db.repositories")

# First matching keyword (in order) decides the release type
_RELEASE_TYPE_KEYWORDS = (
    ("EP", "ep"),
    ("SINGLE", "single"),
    ("COMPILATION", "compilation"),
    ("ALBUM", "album"),
)


def map_release_type(raw_type: str | None) -> str | None:
    """Map a free-form type string (e.g. "LP, Album") to a release type."""
    if not raw_type:
        return None
    normalized = raw_type.upper().strip()
    for keyword, release_type in _RELEASE_TYPE_KEYWORDS:
        if keyword in normalized:
            return release_type
    return None


@dataclass
class StoredTrack:
    """A track as written to the catalog.

    Attributes:
        title: Track title.
        track_number: Track number within the release.
        local_path: Path of the audio file.
        artist: Performing artist.
        tags: Raw file tags keyed by frame name.
    """

    title: str
    track_number: int | None
    local_path: str
    artist: str
    tags: dict[str, str] = field(default_factory=dict)


class ReleaseRepository:
    """Data access layer for releases and their tracks.

    Every write method runs in a single transaction: either the whole
    release graph is written or nothing is.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize with an active database connection.

        Args:
            connection: SQLite connection (with Row factory enabled).
        """
        self._conn = connection

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_release(
        self,
        metadata: ReleaseMetadata,
        directory_path: str,
        cover_path: str | None,
        tracks: list[StoredTrack],
        metadata_version: int | None = None,
        release_format: str | None = None,
    ) -> int:
        """Insert or update a release together with its tracks.

        The release is found by source id (or created). Its track list is
        replaced by ``tracks``; artist and tag links are added.

        Args:
            metadata: Release metadata.
            directory_path: Directory holding the release's files.
            cover_path: Path of ``cover.jpg``, if any.
            tracks: Tracks to store.
            metadata_version: Processing version; keeps the stored value when None.
            release_format: Shared file format (e.g. "flac"); keeps the stored
                value when None.

        Returns:
            The database ID of the release.

        Raises:
            PersistenceError: If the write fails; nothing is committed.
        """
        try:
            release_id = self._upsert_release(
                metadata, directory_path, cover_path, metadata_version, release_format
            )
            self._link_release(release_id, metadata)
            self._conn.execute("DELETE FROM tracks WHERE release_id = ?", (release_id,))
            for track in sorted(tracks, key=lambda t: t.track_number or 0):
                self._insert_track(release_id, track, metadata.artist)
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            logger.error("Failed to save release %s: %s", metadata.id, e)
            raise PersistenceError(f"Failed to save release {metadata.id}: {e}") from e

        logger.info("Saved release %s ('%s') with %d tracks", metadata.id, metadata.title, len(tracks))
        return release_id

    def replace_release(
        self,
        metadata: ReleaseMetadata,
        directory_path: str,
        cover_path: str | None,
        tracks: list[StoredTrack],
        metadata_version: int | None = None,
        release_format: str | None = None,
    ) -> int:
        """Delete any stored release with the same source id, then save anew.

        Both steps share one transaction.

        Raises:
            PersistenceError: If the write fails; the old entry is kept.
        """
        try:
            self._conn.execute("DELETE FROM releases WHERE source_id = ?", (metadata.id,))
            release_id = self._upsert_release(
                metadata, directory_path, cover_path, metadata_version, release_format
            )
            self._link_release(release_id, metadata)
            for track in sorted(tracks, key=lambda t: t.track_number or 0):
                self._insert_track(release_id, track, metadata.artist)
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            logger.error("Failed to replace release %s: %s", metadata.id, e)
            raise PersistenceError(f"Failed to replace release {metadata.id}: {e}") from e

        logger.info("Replaced release %s with %d tracks", metadata.id, len(tracks))
        return release_id

    def clear_release_data(self, source_id: str) -> bool:
        """Remove tracks, artist links and tag links of a release, keeping the row.

        Returns:
            True if a release with that source id exists.
        """
        row = self._conn.execute(
            "SELECT id FROM releases WHERE source_id = ?", (source_id,)
        ).fetchone()
        if row is None:
            return False
        try:
            for table in ("tracks", "release_artists", "release_tags"):
                self._conn.execute(f"DELETE FROM {table} WHERE release_id = ?", (row["id"],))
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            raise PersistenceError(f"Failed to clear release {source_id}: {e}") from e
        logger.info("Cleared tracks, artists and tags of release %s", source_id)
        return True

    def delete_by_source_id(self, source_id: str) -> bool:
        """Delete a release and everything that belongs to it.

        Returns:
            True if a row was deleted.
        """
        try:
            cursor = self._conn.execute("DELETE FROM releases WHERE source_id = ?", (source_id,))
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            raise PersistenceError(f"Failed to delete release {source_id}: {e}") from e
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_source_id(self, source_id: str) -> dict[str, Any] | None:
        """Get a release with its artists, tags, label and tracks.

        Returns:
            Release dict, or None if not found.
        """
        row = self._conn.execute(
            "SELECT * FROM releases WHERE source_id = ?", (source_id,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_release(row)

    def find_by_master_id(self, master_id: str) -> list[dict[str, Any]]:
        """Get every release that belongs to a master release."""
        rows = self._conn.execute(
            "SELECT * FROM releases WHERE master_id = ? ORDER BY id", (master_id,)
        ).fetchall()
        return [self._row_to_release(row) for row in rows]

    def count_releases(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM releases").fetchone()[0]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _upsert_release(
        self,
        metadata: ReleaseMetadata,
        directory_path: str,
        cover_path: str | None,
        metadata_version: int | None,
        release_format: str | None,
    ) -> int:
        label_id = self._find_or_create("labels", metadata.label) if metadata.label else None
        values = {
            "master_id": metadata.master_id,
            "source": metadata.source,
            "title": metadata.title,
            "release_type": map_release_type(metadata.types[0]) if metadata.types else None,
            "initial_release": metadata.year,
            "types": json.dumps(list(metadata.types)),
            "cover_path": cover_path,
            "directory_path": directory_path,
            "last_processed": datetime.now().isoformat(sep=" ", timespec="seconds"),
            "label_id": label_id,
        }
        if metadata_version is not None:
            values["metadata_version"] = metadata_version
        if release_format is not None:
            values["release_format"] = release_format

        existing = self._conn.execute(
            "SELECT id FROM releases WHERE source_id = ?", (metadata.id,)
        ).fetchone()
        if existing:
            set_clause = ", ".join(f"{k} = ?" for k in values)
            self._conn.execute(
                f"UPDATE releases SET {set_clause} WHERE id = ?",
                [*values.values(), existing["id"]],
            )
            return existing["id"]

        values["source_id"] = metadata.id
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        cursor = self._conn.execute(
            f"INSERT INTO releases ({columns}) VALUES ({placeholders})",
            list(values.values()),
        )
        return cursor.lastrowid

    def _link_release(self, release_id: int, metadata: ReleaseMetadata) -> None:
        artist_id = self._find_or_create("artists", metadata.artist)
        self._conn.execute(
            "INSERT OR IGNORE INTO release_artists (release_id, artist_id) VALUES (?, ?)",
            (release_id, artist_id),
        )
        for tag_name in metadata.genre_tags:
            if not tag_name:
                continue
            tag_id = self._find_or_create("tags", tag_name)
            self._conn.execute(
                "INSERT OR IGNORE INTO release_tags (release_id, tag_id) VALUES (?, ?)",
                (release_id, tag_id),
            )

    def _insert_track(self, release_id: int, track: StoredTrack, release_artist: str) -> None:
        cursor = self._conn.execute(
            "INSERT INTO tracks (release_id, title, track_number, local_path) VALUES (?, ?, ?, ?)",
            (release_id, track.title, track.track_number, track.local_path),
        )
        track_id = cursor.lastrowid

        artist_id = self._find_or_create("artists", track.artist or release_artist)
        self._conn.execute(
            "INSERT OR IGNORE INTO track_artists (track_id, artist_id) VALUES (?, ?)",
            (track_id, artist_id),
        )
        for name, value in track.tags.items():
            self._conn.execute(
                "INSERT OR REPLACE INTO track_tags (track_id, tag_name, tag_value) VALUES (?, ?, ?)",
                (track_id, name, value),
            )

    # Table names are fixed by callers, never user input
    def _find_or_create(self, table: str, name: str) -> int:
        row = self._conn.execute(f"SELECT id FROM {table} WHERE name = ?", (name,)).fetchone()
        if row:
            return row["id"]
        return self._conn.execute(f"INSERT INTO {table} (name) VALUES (?)", (name,)).lastrowid

    def _row_to_release(self, row: sqlite3.Row) -> dict[str, Any]:
        release = dict(row)
        release_id = release["id"]
        release["types"] = json.loads(release["types"] or "[]")

        label = self._conn.execute(
            "SELECT name FROM labels WHERE id = ?", (release["label_id"],)
        ).fetchone()
        release["label"] = label["name"] if label else None

        release["artists"] = [
            r["name"] for r in self._conn.execute(
                "SELECT a.name FROM artists a JOIN release_artists ra ON ra.artist_id = a.id "
                "WHERE ra.release_id = ? ORDER BY a.name",
                (release_id,),
            )
        ]
        release["tags"] = [
            r["name"] for r in self._conn.execute(
                "SELECT t.name FROM tags t JOIN release_tags rt ON rt.tag_id = t.id "
                "WHERE rt.release_id = ? ORDER BY t.name",
                (release_id,),
            )
        ]

        tracks = []
        for track_row in self._conn.execute(
            "SELECT * FROM tracks WHERE release_id = ? ORDER BY track_number, id", (release_id,)
        ).fetchall():
            track = dict(track_row)
            track["artists"] = [
                r["name"] for r in self._conn.execute(
                    "SELECT a.name FROM artists a JOIN track_artists ta ON ta.artist_id = a.id "
                    "WHERE ta.track_id = ? ORDER BY a.name",
                    (track["id"],),
                )
            ]
            track["tags"] = {
                r["tag_name"]: r["tag_value"] for r in self._conn.execute(
                    "SELECT tag_name, tag_value FROM track_tags WHERE track_id = ?",
                    (track["id"],),
                )
            }
            tracks.append(track)
        release["tracks"] = tracks
        return release
