"""Request validation -- the only stage allowed to fail a batch outright."""

from __future__ import annotations

from pathlib import Path

from release_ingest.models.outcome import ValidationResult
from release_ingest.models.release import ReleaseMetadata
from release_ingest.utils.file_utils import is_audio_file
from release_ingest.utils.logger import get_logger

logger = get_logger("core.file_validator")


class FileValidator:
    """Checks an ingestion request before anything touches the filesystem."""

    def validate(
        self,
        directory: Path,
        files: list[Path],
        metadata: ReleaseMetadata | None,
    ) -> tuple[ValidationResult, list[Path]]:
        """Validate the directory, the file list and the metadata.

        Files that are missing, not regular files or not audio are skipped;
        the request is valid as long as one usable audio file remains.

        Args:
            directory: Release directory.
            files: Files supplied by the caller, in order.
            metadata: Release metadata (may be None).

        Returns:
            Tuple of (validation result, usable audio files in input order).
            Missing files are listed in the result's ``warnings`` when the
            request is otherwise valid.
        """
        directory = Path(directory)
        if not directory.exists():
            return ValidationResult([f"Directory does not exist: {directory}"]), []
        if not directory.is_dir():
            return ValidationResult([f"Path is not a directory: {directory}"]), []
        if not files:
            return ValidationResult(["No files provided for processing"]), []

        logger.info("Validating %d files from task", len(files))

        audio_files: list[Path] = []
        missing: list[str] = []
        for file_path in files:
            path = Path(file_path)
            if not path.exists():
                logger.error("File not found: %s", path)
                missing.append(f"File does not exist: {path}")
                continue
            if not path.is_file():
                logger.warning("Skipping non-file: %s", path)
                continue
            if not is_audio_file(path):
                logger.warning("Skipping non-audio file: %s", path)
                continue
            audio_files.append(path)

        errors: list[str] = []
        if not audio_files:
            errors.extend(missing)
            errors.append("No valid audio files found in the provided list")
        if metadata is None:
            errors.append("No release metadata provided")

        if errors:
            logger.warning("Validation failed with %d errors", len(errors))
            return ValidationResult(errors), []

        logger.info("Validation passed: %d audio files ready for processing", len(audio_files))
        return ValidationResult(warnings=missing), audio_files
