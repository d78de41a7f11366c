"""Filename and tag parsing helpers used by the matching engine.

Every function here is pure: it takes a string (plus the canonical track
count where needed) and never touches the filesystem.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from release_ingest.models.release import CanonicalTrack
from release_ingest.utils.constants import DEFAULT_TRACKS_PER_SIDE, NO_TRACKLIST_TEXT

# "A1", "B12 ..." -- side letter followed by the number on that side
_VINYL_RE = re.compile(r"^([A-Z])([0-9]+)")
_LEADING_DIGITS_RE = re.compile(r"^[0-9]+")
_TAG_NUMBER_RE = re.compile(r"[0-9]+")
_TAG_SEPARATOR_RE = re.compile(r"[/\\]")

_EXTENSION_RE = re.compile(r"\.[^.]+$")
# "05. ", "A1 ", "01 - "
_NUMBER_PREFIX_RE = re.compile(r"^[A-Z]?[0-9]+[\s.\-]+")
# "Die Welt, by Amygdala" (download-store suffix)
_BY_ARTIST_SUFFIX_RE = re.compile(r",\s*by\s+[^,]+$")
_ARTIST_TITLE_SEPARATOR = " - "


def parse_tag_track_number(raw: str | None) -> int | None:
    """Parse an embedded track-number tag.

    Accepts ``"5"``, ``"05"``, ``"5/12"`` and ``"5\\12"``.

    Args:
        raw: Raw tag value.

    Returns:
        The leading integer, or None if the tag is absent or not numeric.
    """
    if raw is None:
        return None
    first = _TAG_SEPARATOR_RE.split(str(raw), maxsplit=1)[0].strip()
    # ASCII digits only; int() would also accept "٣" and "1_0"
    if not _TAG_NUMBER_RE.fullmatch(first):
        return None
    return int(first)


def tracks_per_side(total_tracks: int) -> int:
    """Number of tracks assumed on each vinyl side."""
    if total_tracks <= 0:
        return DEFAULT_TRACKS_PER_SIDE
    return (total_tracks + 1) // 2


def extract_track_number(filename: str, total_tracks: int) -> int | None:
    """Extract a track number from a filename.

    Vinyl notation (``B2``) is converted to an absolute number using
    :func:`tracks_per_side`; otherwise the leading digits are used.

    Args:
        filename: Bare filename (no directory).
        total_tracks: Length of the canonical tracklist (0 if unknown).

    Returns:
        The extracted number, or None if the filename carries none.
    """
    vinyl = _VINYL_RE.match(filename)
    if vinyl:
        side_index = ord(vinyl.group(1)) - ord("A")
        return side_index * tracks_per_side(total_tracks) + int(vinyl.group(2))

    digits = _LEADING_DIGITS_RE.match(filename)
    if digits:
        return int(digits.group(0))
    return None


def _strip_decorations(filename: str) -> str:
    name = _EXTENSION_RE.sub("", filename)
    name = _NUMBER_PREFIX_RE.sub("", name)
    return _BY_ARTIST_SUFFIX_RE.sub("", name)


def extract_title(filename: str) -> str:
    """Derive a track title from a filename.

    Strips the extension, a leading track-number or side prefix and a
    trailing ``", by <artist>"`` suffix. If ``"artist - title"`` remains,
    only the title part is returned.

    Args:
        filename: Bare filename.

    Returns:
        The derived title; the filename stem if nothing is left.
    """
    name = _strip_decorations(filename)
    if _ARTIST_TITLE_SEPARATOR in name:
        _, title = name.split(_ARTIST_TITLE_SEPARATOR, 1)
        if title.strip():
            return title.strip()

    name = name.strip()
    if name:
        return name
    return _EXTENSION_RE.sub("", filename).strip() or filename


def extract_artist(filename: str) -> str | None:
    """Return the artist part of an ``"artist - title"`` filename, if any."""
    name = _strip_decorations(filename)
    if _ARTIST_TITLE_SEPARATOR not in name:
        return None
    artist, title = name.split(_ARTIST_TITLE_SEPARATOR, 1)
    if not title.strip():
        return None
    return artist.strip() or None


def format_tracklist(tracks: Iterable[CanonicalTrack]) -> str:
    """Format a canonical tracklist as ``"{position}. {artist} - {title}"`` lines."""
    lines = [f"{t.position}. {t.artist} - {t.title}" for t in tracks]
    if not lines:
        return NO_TRACKLIST_TEXT
    return "\n".join(lines)


def format_files(filenames: Iterable[str]) -> str:
    """Format filenames as ``"{ordinal}. {filename}"`` lines (1-based)."""
    return "\n".join(f"{i}. {name}" for i, name in enumerate(filenames, start=1))
