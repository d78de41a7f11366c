"""Sidecar metadata -- ``.release-metadata.json`` next to the organized files.

External tooling reads this file to decide whether a release needs
reprocessing, so it is always replaced atomically.
"""

from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path

from release_ingest.core.exceptions import SidecarError
from release_ingest.models.release import ReleaseMetadata
from release_ingest.utils.logger import get_logger
from release_ingest.utils.constants import SIDECAR_FILENAME, SIDECAR_TEMP_SUFFIX

logger = get_logger("core.metadata_writer")


def sidecar_document(metadata: ReleaseMetadata, version: int) -> dict:
    """Build the sidecar JSON document for a release."""
    return {
        "metadata_version": version,
        "source_id": metadata.id,
        "master_id": metadata.master_id,
        "source": metadata.source,
        "artist": metadata.artist,
        "title": metadata.title,
        "year": metadata.year,
        "processed_at": datetime.now().isoformat(timespec="seconds"),
        "track_count": metadata.track_count,
        "label": metadata.label or "",
        "tags": list(metadata.genre_tags),
        "types": list(metadata.types),
    }


class ReleaseMetadataWriter:
    """Writes and reads the sidecar metadata file of a release directory."""

    def write(self, directory: Path, metadata: ReleaseMetadata, version: int) -> Path:
        """Write the sidecar file, atomically replacing any previous one.

        Args:
            directory: Release directory.
            metadata: Release metadata.
            version: Processing version to record.

        Returns:
            Path of the written sidecar file.

        Raises:
            SidecarError: If the file cannot be written.
        """
        directory = Path(directory)
        target = directory / SIDECAR_FILENAME
        temp = directory / f"{SIDECAR_FILENAME}{SIDECAR_TEMP_SUFFIX}"

        try:
            temp.write_text(
                json.dumps(sidecar_document(metadata, version), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            os.replace(temp, target)
        except OSError as e:
            logger.error("Failed to write metadata file %s: %s", target, e)
            try:
                temp.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning("Failed to clean up temp file %s: %s", temp, cleanup_error)
            raise SidecarError(f"Failed to write release metadata file: {e}") from e

        logger.info("Wrote metadata file: %s", target)
        return target

    def read(self, directory: Path) -> dict | None:
        """Read the sidecar file of a directory.

        Returns:
            The parsed document, or None if it is missing or invalid.
        """
        path = Path(directory) / SIDECAR_FILENAME
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read metadata file %s: %s", path, e)
            return None
        return data if isinstance(data, dict) else None
