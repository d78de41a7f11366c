"""Typed configuration model for Release Ingest.

All configuration values have explicit types, defaults, and documentation.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from release_ingest.utils.constants import (
    AI_TIMEOUT_SECONDS,
    COVER_ART_TIMEOUT_SECONDS,
    DEFAULT_AI_API_URL,
    DEFAULT_AI_MODEL,
    DEFAULT_DB_FILENAME,
    DEFAULT_PROCESSING_VERSION,
)


@dataclass
class AppConfig:
    """Strongly-typed configuration for the Release Ingest application.

    Attributes:
        library_root: Root directory of the organized music library. When
            empty, releases stay in the directory they were ingested from.
        organization_enabled: Whether processed releases are moved into
            the library layout.
        keep_originals: If True, the organizer copies files into the library
            and leaves the source files in place.
        processing_version: Version recorded in the sidecar and catalog
            for newly ingested releases.
        ai_enabled: Whether to use the AI batch matcher.
        ai_api_url: Chat-completions endpoint of the AI matcher.
        ai_api_key: Bearer token for the AI matcher.
        ai_model: Model name sent to the AI matcher.
        ai_timeout_seconds: Upper bound for one AI matching call.
        cover_art_timeout_seconds: Cover art download timeout.
        db_path: Path to the sqlite catalog.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to log file (None = console only).
    """

    # --- Library ---
    library_root: str = ""
    organization_enabled: bool = True
    keep_originals: bool = False
    processing_version: int = DEFAULT_PROCESSING_VERSION

    # --- AI Matcher ---
    ai_enabled: bool = False
    ai_api_url: str = DEFAULT_AI_API_URL
    ai_api_key: str = ""
    ai_model: str = DEFAULT_AI_MODEL
    ai_timeout_seconds: float = AI_TIMEOUT_SECONDS

    # --- Network ---
    cover_art_timeout_seconds: float = COVER_ART_TIMEOUT_SECONDS

    # --- Catalog ---
    db_path: str = DEFAULT_DB_FILENAME

    # --- Logging ---
    log_level: str = "INFO"
    log_file: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> AppConfig:
        """Create an AppConfig from a raw dictionary (e.g., from YAML).

        Unknown keys are silently ignored so YAML files with extra comments
        or future keys don't break older code.

        Args:
            data: Dictionary of configuration values.

        Returns:
            Populated AppConfig instance.
        """
        known_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in known_fields and v is not None}
        return cls(**filtered)

    def to_dict(self) -> dict:
        """Serialize the config to a dictionary.

        Returns:
            Dictionary of all configuration values.
        """
        from dataclasses import asdict
        return asdict(self)

    @property
    def library_root_resolved(self) -> Path | None:
        """Return the library_root as a resolved Path, or None if not set."""
        if not self.library_root:
            return None
        return Path(self.library_root).expanduser().resolve()

    @property
    def ai_configured(self) -> bool:
        """True if the AI matcher is enabled and has an endpoint."""
        return self.ai_enabled and bool(self.ai_api_url)
