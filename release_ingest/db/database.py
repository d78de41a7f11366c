"""SQLite catalog database for releases, tracks, artists and tags."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from release_ingest.utils.constants import DEFAULT_DB_FILENAME
from release_ingest.utils.logger import get_logger

logger = get_logger("db.database")

SCHEMA_VERSION = 1

CREATE_TABLES_SQL = """
-- Artists: shared by releases and tracks, unique by name
CREATE TABLE IF NOT EXISTS artists (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

-- Labels: record labels, unique by name
CREATE TABLE IF NOT EXISTS labels (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

-- Tags: genre/style tags, unique by name
CREATE TABLE IF NOT EXISTS tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

-- Releases: one row per source release
CREATE TABLE IF NOT EXISTS releases (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source_id TEXT NOT NULL UNIQUE,
    master_id TEXT,
    source TEXT,
    title TEXT NOT NULL,
    release_type TEXT,
    release_format TEXT NOT NULL DEFAULT 'digital',
    initial_release INTEGER,
    types TEXT NOT NULL DEFAULT '[]',
    cover_path TEXT,
    directory_path TEXT NOT NULL,
    metadata_version INTEGER,
    last_processed TIMESTAMP,
    label_id INTEGER,
    FOREIGN KEY (label_id) REFERENCES labels(id)
);

CREATE TABLE IF NOT EXISTS release_artists (
    release_id INTEGER NOT NULL,
    artist_id INTEGER NOT NULL,
    PRIMARY KEY (release_id, artist_id),
    FOREIGN KEY (release_id) REFERENCES releases(id) ON DELETE CASCADE,
    FOREIGN KEY (artist_id) REFERENCES artists(id)
);

CREATE TABLE IF NOT EXISTS release_tags (
    release_id INTEGER NOT NULL,
    tag_id INTEGER NOT NULL,
    PRIMARY KEY (release_id, tag_id),
    FOREIGN KEY (release_id) REFERENCES releases(id) ON DELETE CASCADE,
    FOREIGN KEY (tag_id) REFERENCES tags(id)
);

-- Tracks: one row per audio file of a release
CREATE TABLE IF NOT EXISTS tracks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    release_id INTEGER NOT NULL,
    title TEXT NOT NULL,
    track_number INTEGER,
    local_path TEXT,
    FOREIGN KEY (release_id) REFERENCES releases(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS track_artists (
    track_id INTEGER NOT NULL,
    artist_id INTEGER NOT NULL,
    PRIMARY KEY (track_id, artist_id),
    FOREIGN KEY (track_id) REFERENCES tracks(id) ON DELETE CASCADE,
    FOREIGN KEY (artist_id) REFERENCES artists(id)
);

-- Track tags: raw file tags snapshot, keyed by frame name (TIT2, TXXX:RELEASEID...)
CREATE TABLE IF NOT EXISTS track_tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    track_id INTEGER NOT NULL,
    tag_name TEXT NOT NULL,
    tag_value TEXT NOT NULL,
    last_synced_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (track_id, tag_name),
    FOREIGN KEY (track_id) REFERENCES tracks(id) ON DELETE CASCADE
);

-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);

-- Indexes for common queries
CREATE INDEX IF NOT EXISTS idx_releases_master ON releases(master_id);
CREATE INDEX IF NOT EXISTS idx_tracks_release ON tracks(release_id);
CREATE INDEX IF NOT EXISTS idx_track_tags_track ON track_tags(track_id);
"""


class Database:
    """SQLite database manager for the release catalog.

    Handles connection management and schema creation.
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file, or ``":memory:"``.
                If None, uses the default filename in the current directory.
        """
        self._db_path = str(db_path) if db_path else DEFAULT_DB_FILENAME
        self._connection: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Open a connection to the database and ensure schema is created.

        Returns:
            Active SQLite connection.
        """
        if self._connection is not None:
            return self._connection

        if self._db_path != ":memory:":
            Path(self._db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)

        self._connection = sqlite3.connect(
            self._db_path,
            detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
        )
        self._connection.row_factory = sqlite3.Row
        self._connection.execute("PRAGMA journal_mode=WAL")
        self._connection.execute("PRAGMA foreign_keys=ON")

        self._ensure_schema()
        logger.info("Database connected: %s", self._db_path)
        return self._connection

    def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.debug("Database connection closed")

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the active connection, connecting if necessary."""
        if self._connection is None:
            return self.connect()
        return self._connection

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist and record the schema version."""
        conn = self._connection
        if conn is None:
            return

        conn.executescript(CREATE_TABLES_SQL)

        cursor = conn.execute("SELECT COUNT(*) FROM schema_version")
        count = cursor.fetchone()[0]

        if count == 0:
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
            logger.info("Database schema created (version %d)", SCHEMA_VERSION)
        else:
            current_version = conn.execute("SELECT version FROM schema_version").fetchone()[0]
            if current_version > SCHEMA_VERSION:
                logger.warning(
                    "Database schema v%d is newer than supported v%d",
                    current_version, SCHEMA_VERSION,
                )

    def __enter__(self) -> Database:
        """Open the database connection for use as a context manager."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the database connection when exiting the context."""
        self.close()
