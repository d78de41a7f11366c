"""Path helpers and safe file operations for Release Ingest."""

from __future__ import annotations

import re
import shutil
from pathlib import Path

from release_ingest.utils.logger import get_logger
from release_ingest.utils.constants import (
    SUPPORTED_EXTENSIONS,
    MAX_FOLDER_NAME_LENGTH,
    UNKNOWN_FOLDER_NAME,
)

logger = get_logger("utils.file_utils")

# Characters that are invalid in a path component on at least one major OS
_ILLEGAL_CHARS_RE = re.compile(r'[/\\:*?"<>|]')


def strip_illegal_chars(text: str) -> str:
    """Remove characters that cannot appear in a file or folder name.

    Args:
        text: Raw name.

    Returns:
        The name without ``/ \\ : * ? " < > |``, trimmed.
    """
    return _ILLEGAL_CHARS_RE.sub("", text).strip()


def sanitize_folder_name(name: str | None) -> str:
    """Turn an artist or release title into a library folder name.

    Illegal characters are dropped, the result is trimmed, capped at
    ``MAX_FOLDER_NAME_LENGTH`` characters and lower-cased.

    Args:
        name: Raw folder name, possibly None.

    Returns:
        A safe folder name, or ``"unknown"`` when nothing usable remains.
    """
    if name is None:
        return UNKNOWN_FOLDER_NAME

    sanitized = strip_illegal_chars(name)
    if len(sanitized) > MAX_FOLDER_NAME_LENGTH:
        sanitized = sanitized[:MAX_FOLDER_NAME_LENGTH].strip()

    sanitized = sanitized.lower()
    return sanitized or UNKNOWN_FOLDER_NAME


def sanitize_filename_part(text: str | None) -> str:
    """Sanitize an artist or title for use inside a track filename.

    Args:
        text: Raw artist or title.

    Returns:
        Lower-cased text without illegal characters (may be empty).
    """
    if not text:
        return ""
    return strip_illegal_chars(text).lower()


def is_audio_file(path: Path) -> bool:
    """Check if a file has a supported audio extension.

    Args:
        path: Path to check.

    Returns:
        True if the file extension is a supported audio format.
    """
    return path.suffix.lower() in SUPPORTED_EXTENSIONS


def list_audio_files(directory: Path) -> list[Path]:
    """List the audio files directly inside a directory, sorted by name.

    Args:
        directory: Directory to list (not recursed).

    Returns:
        Sorted list of audio file paths. Empty if the directory is missing.
    """
    if not directory.is_dir():
        return []
    return sorted(
        (p for p in directory.iterdir() if p.is_file() and is_audio_file(p)),
        key=lambda p: p.name,
    )


def safe_copy(src: Path, dst: Path) -> Path:
    """Copy a file, creating parent directories as needed.

    Args:
        src: Source file path.
        dst: Destination file path.

    Returns:
        The destination path.

    Raises:
        FileNotFoundError: If source does not exist.
        OSError: If copy fails.
    """
    if not src.exists():
        raise FileNotFoundError(f"Source file not found: {src}")

    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dst)
    logger.debug("Copied: %s -> %s", src, dst)
    return dst


def safe_move(src: Path, dst: Path) -> Path:
    """Move a file or directory, creating parent directories as needed.

    For cross-device moves (where ``rename()`` fails), a file is copied
    first and the source deleted only after the destination has been
    verified to exist with the same size.

    Args:
        src: Source path.
        dst: Destination path.

    Returns:
        The destination path.

    Raises:
        FileNotFoundError: If source does not exist.
        OSError: If move fails or integrity check fails after copy.
    """
    if not src.exists():
        raise FileNotFoundError(f"Source file not found: {src}")

    dst.parent.mkdir(parents=True, exist_ok=True)

    try:
        src.rename(dst)
    except OSError:
        if src.is_dir():
            shutil.move(str(src), str(dst))
            logger.debug("Moved directory: %s -> %s", src, dst)
            return dst

        src_size = src.stat().st_size
        shutil.copy2(src, dst)

        if not dst.exists():
            raise OSError(
                f"Cross-device move failed: destination not created: {dst}"
            )
        dst_size = dst.stat().st_size
        if dst_size != src_size:
            dst.unlink(missing_ok=True)
            raise OSError(
                f"Cross-device move failed: size mismatch "
                f"(src={src_size}, dst={dst_size}): {dst}"
            )
        src.unlink()

    logger.debug("Moved: %s -> %s", src, dst)
    return dst


def unique_path(path: Path) -> Path:
    """Return a unique path by appending a counter if the file already exists.

    Args:
        path: Desired file path.

    Returns:
        A path that does not collide with existing files.
    """
    if not path.exists():
        return path

    stem = path.stem
    suffix = path.suffix
    parent = path.parent
    counter = 1

    while True:
        candidate = parent / f"{stem} ({counter}){suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
