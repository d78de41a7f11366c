"""Matching models -- candidate files and the track each one is assigned."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CandidateFile:
    """An input audio file as seen by the matching engine.

    Attributes:
        path: Path to the audio file.
        ordinal_position: Index of the file in the caller-supplied list.
        embedded_track_tag: Raw track-number tag read from the file, if any.
        embedded_artist: Raw artist tag read from the file, if any.
    """

    path: Path
    ordinal_position: int
    embedded_track_tag: str | None = None
    embedded_artist: str | None = None

    @property
    def key(self) -> str:
        """Identity of the file inside a match result."""
        return str(self.path)

    @property
    def filename(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class TrackMatch:
    """The definitive track assignment for one file.

    Attributes:
        track_number: Positive track number, unique within a batch.
        artist: Performing artist.
        track_title: Track title.
    """

    track_number: int
    artist: str
    track_title: str


# File key (CandidateFile.key) -> assigned track
MatchResult = dict[str, TrackMatch]


@dataclass(frozen=True)
class TrackInfo:
    """Track identity read back from a file's own tags.

    Attributes:
        track_number: Track number tag, parsed.
        title: Title tag.
        artist: Artist tag, if present.
    """

    track_number: int
    title: str
    artist: str | None = None
