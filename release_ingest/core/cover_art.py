"""Cover art -- reuses or downloads the front cover of a release."""

from __future__ import annotations

from pathlib import Path

import requests

from release_ingest.models.release import ReleaseMetadata
from release_ingest.utils.logger import get_logger
from release_ingest.utils.constants import (
    COVER_ART_TIMEOUT_SECONDS,
    COVER_FILENAME,
    HTTP_USER_AGENT,
    JPEG_MAGIC,
    PNG_MAGIC,
)

logger = get_logger("core.cover_art")


def is_valid_image(data: bytes | None) -> bool:
    """True if the bytes start with a JPEG or PNG signature."""
    if not data:
        return False
    return data.startswith(JPEG_MAGIC) or data.startswith(PNG_MAGIC)


class CoverArtFetcher:
    """Provides cover art for a release directory.

    An existing ``cover.jpg`` in the directory is reused; otherwise the
    release's cover URL is downloaded and saved there. Cover art is
    best-effort: every failure results in None.
    """

    def __init__(
        self,
        timeout: float = COVER_ART_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": HTTP_USER_AGENT})

    def get_cover_art(self, metadata: ReleaseMetadata, directory: Path) -> bytes | None:
        """Return cover image bytes for the release, downloading if needed.

        Args:
            metadata: Release metadata (``cover_url`` is used for downloads).
            directory: Release directory where ``cover.jpg`` lives.

        Returns:
            Image bytes, or None if no cover is available.
        """
        cover_path = Path(directory) / COVER_FILENAME

        if cover_path.exists():
            logger.debug("Cover art already exists at %s, skipping download", cover_path)
            try:
                return cover_path.read_bytes()
            except OSError as e:
                logger.error("Error reading existing cover art from %s: %s", cover_path, e)

        data = self.download(metadata.cover_url)
        if data is None:
            return None

        try:
            cover_path.write_bytes(data)
        except OSError as e:
            logger.error("Error saving cover art to %s: %s", cover_path, e)
            return data

        logger.info("Cover art saved: %s (%d bytes)", cover_path, len(data))
        return data

    def download(self, url: str | None) -> bytes | None:
        """Download an image, returning None unless it is a JPEG or PNG.

        Args:
            url: Image URL.

        Returns:
            Raw image bytes, or None.
        """
        if not url:
            logger.warning("No cover URL provided, skipping cover art download")
            return None

        logger.info("Downloading cover art from: %s", url)
        try:
            response = self._session.get(url, timeout=self._timeout, allow_redirects=True)
        except requests.RequestException as e:
            logger.error("Cover art download failed: %s", e)
            return None

        if response.status_code == 404:
            logger.debug("No cover art found at %s", url)
            return None
        if response.status_code != 200:
            logger.warning("Cover art request returned %d for %s", response.status_code, url)
            return None

        data = response.content
        if not is_valid_image(data):
            logger.error(
                "Downloaded data is not a valid image (first bytes: %s)",
                data[:8].hex(" ").upper() if data else "",
            )
            return None
        return data
