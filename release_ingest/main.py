"""Release Ingest -- command-line entry point and application initialization."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import yaml

from release_ingest.utils.constants import (
    AI_TIMEOUT_SECONDS,
    APP_NAME,
    APP_VERSION,
    COVER_ART_TIMEOUT_SECONDS,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_PROCESSING_VERSION,
)
from release_ingest.utils.logger import get_logger, setup_logger

# Directories that should never be used as a library root (exact matches).
_DANGEROUS_PATHS = frozenset(
    {
        "/",
        "c:",
        "c:/windows",
        "c:/windows/system32",
        "c:/program files",
        "c:/program files (x86)",
        "/usr",
        "/usr/bin",
        "/etc",
        "/var",
        "/tmp",
        "/system",
        "/library",
        "/applications",
        "/bin",
        "/sbin",
        "/lib",
        "/opt",
    }
)

# Minimum number of path components below the root/drive for a library root.
# "/srv/music" is too shallow to be safe; "/srv/media/music" is fine.
_MIN_PATH_DEPTH = 2

# Config keys that must hold a positive number, with their defaults
_POSITIVE_NUMBERS = {
    "processing_version": DEFAULT_PROCESSING_VERSION,
    "ai_timeout_seconds": AI_TIMEOUT_SECONDS,
    "cover_art_timeout_seconds": COVER_ART_TIMEOUT_SECONDS,
}


def _library_root_problem(raw: str) -> str | None:
    """Explain why a library root is unsafe, or return None if it is fine.

    Windows-style paths (``D:\\Music``) are checked on the raw string so the
    check behaves the same on every platform; anything else is resolved
    first.

    Args:
        raw: Library root as written in the config.

    Returns:
        A human-readable reason, or None.
    """
    normalized = raw.replace("\\", "/").rstrip("/")
    is_windows = len(normalized) >= 2 and normalized[1] == ":"
    if not is_windows:
        normalized = Path(raw).expanduser().resolve().as_posix().rstrip("/") or "/"

    if normalized.lower() in _DANGEROUS_PATHS:
        return f"resolves to a known system directory ({normalized}). This could overwrite critical files."

    parts = [p for p in normalized.split("/") if p]
    depth = len(parts) - 1 if is_windows else len(parts)
    if depth < _MIN_PATH_DEPTH:
        return (
            f"is only {depth} level(s) deep from the filesystem root. "
            f"Library roots should be at least {_MIN_PATH_DEPTH} levels "
            f"deep to prevent accidental damage (e.g. '/srv/media/music')."
        )
    return None


def validate_config(config: dict) -> list[str]:
    """Validate configuration values and return a list of warnings.

    Checks:
    - library_root is not a dangerous system directory or too shallow
      (organization is disabled when it is)
    - processing_version and the timeouts are positive numbers

    Invalid values are repaired in place.

    Args:
        config: Configuration dictionary.

    Returns:
        List of human-readable warning strings. Empty if all checks pass.
    """
    warnings: list[str] = []

    library_root = config.get("library_root", "")
    if library_root:
        reason = _library_root_problem(str(library_root))
        if reason:
            warnings.append(f"library_root '{library_root}' {reason} Organization disabled.")
            config["organization_enabled"] = False

    for key, default in _POSITIVE_NUMBERS.items():
        if key not in config:
            continue
        value = config[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            warnings.append(f"{key} must be a positive number, got {value!r}. Using default ({default}).")
            config[key] = default

    return warnings


def load_config(path: Path | str | None = None) -> dict:
    """Load configuration from a YAML file.

    Args:
        path: Config file. Defaults to ``config/config.yaml`` next to the
            package; a missing file yields an empty config.

    Returns:
        Configuration dictionary (suitable for ``AppConfig.from_dict()``).
    """
    config_path = (
        Path(path) if path else Path(__file__).parent.parent / "config" / DEFAULT_CONFIG_FILENAME
    )
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def build_components(config, connection):
    """Wire up the shared collaborators for ingestion and reprocessing.

    Args:
        config: AppConfig instance.
        connection: Open catalog connection.

    Returns:
        Dict with ``tag_editor``, ``matcher``, ``cover_fetcher`` and ``catalog``.
    """
    from release_ingest.core.ai_matcher import HttpAiMatcher
    from release_ingest.core.catalog import ReleaseCatalog
    from release_ingest.core.cover_art import CoverArtFetcher
    from release_ingest.core.tag_editor import TagEditor
    from release_ingest.core.track_matcher import TrackMatcher

    ai_matcher = None
    if config.ai_configured:
        ai_matcher = HttpAiMatcher(
            api_url=config.ai_api_url,
            api_key=config.ai_api_key,
            model=config.ai_model,
            timeout=config.ai_timeout_seconds,
        )

    tag_editor = TagEditor()
    return {
        "tag_editor": tag_editor,
        "matcher": TrackMatcher(ai_matcher),
        "cover_fetcher": CoverArtFetcher(timeout=config.cover_art_timeout_seconds),
        "catalog": ReleaseCatalog(connection, tag_editor),
    }


def build_processor(config, connection):
    """Create a LibraryProcessor configured from an AppConfig."""
    from release_ingest.core.file_organizer import FileOrganizer
    from release_ingest.core.library_processor import LibraryProcessor

    components = build_components(config, connection)
    return LibraryProcessor(
        catalog=components["catalog"],
        library_root=config.library_root_resolved,
        organization_enabled=config.organization_enabled,
        processing_version=config.processing_version,
        tag_editor=components["tag_editor"],
        matcher=components["matcher"],
        organizer=FileOrganizer(keep_originals=config.keep_originals),
        cover_fetcher=components["cover_fetcher"],
    )


def build_reprocessor(config, connection):
    """Create a Reprocessor configured from an AppConfig."""
    from release_ingest.core.reprocessor import Reprocessor

    components = build_components(config, connection)
    return Reprocessor(
        catalog=components["catalog"],
        tag_editor=components["tag_editor"],
        matcher=components["matcher"],
        cover_fetcher=components["cover_fetcher"],
    )


def _read_json(path: Path | str) -> dict:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="release-ingest",
        description=f"{APP_NAME}: match, tag and organize downloaded releases.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    parser.add_argument("--config", type=Path, help="Path to config YAML")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")

    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Ingest one release from a task JSON file")
    ingest.add_argument("task", type=Path, help="Task JSON: directory_path, files, metadata")

    reprocess = sub.add_parser("reprocess", help="Re-apply matching and tags to an organized release")
    reprocess.add_argument("directory", type=Path, help="Organized release directory")
    reprocess.add_argument("metadata", type=Path, help="Release metadata JSON")
    reprocess.add_argument("--version", dest="new_version", type=int, required=True,
                           help="Processing version to record")
    reprocess.add_argument("--skip-retag", action="store_true",
                           help="Only refresh the sidecar and catalog")
    reprocess.add_argument("--force", action="store_true",
                           help="Reprocess even if already at this version")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Application entry point. Loads config, sets up logging, and runs a command.

    Returns:
        Process exit code: 0 on success, 1 on failure, 2 on bad input.
    """
    from release_ingest.db.database import Database
    from release_ingest.models.config import AppConfig
    from release_ingest.models.outcome import ReprocessOptions
    from release_ingest.models.release import ReleaseMetadata

    args = _build_parser().parse_args(argv)

    raw_config = load_config(args.config)

    # Validate the raw dict first (mutates to fix invalid values)
    config_warnings = validate_config(raw_config)
    config = AppConfig.from_dict(raw_config)

    setup_logger(log_level=args.log_level or config.log_level, log_file=config.log_file)
    logger = get_logger("main")
    logger.info("%s v%s starting", APP_NAME, APP_VERSION)

    for warning in config_warnings:
        logger.warning("Config: %s", warning)

    if config.ai_enabled and not config.ai_api_key:
        logger.warning("AI matching is enabled but ai_api_key is not set.")

    with Database(config.db_path) as db:
        if args.command == "ingest":
            from release_ingest.core.exceptions import ValidationError
            from release_ingest.core.library_processor import IngestTask

            try:
                task = IngestTask.from_dict(_read_json(args.task))
            except (OSError, ValueError, ValidationError) as e:
                logger.error("Cannot read task %s: %s", args.task, e)
                return 2
            outcome = build_processor(config, db.connection).process(task)
        else:
            try:
                metadata = ReleaseMetadata.from_dict(_read_json(args.metadata))
            except (OSError, ValueError) as e:
                logger.error("Cannot read metadata %s: %s", args.metadata, e)
                return 2
            options = ReprocessOptions(skip_retag=args.skip_retag, force=args.force)
            outcome = build_reprocessor(config, db.connection).reprocess(
                args.directory, metadata, args.new_version, options
            )

    print(json.dumps(outcome.to_dict(), indent=2))
    return 0 if outcome.success else 1


if __name__ == "__main__":
    sys.exit(main())
