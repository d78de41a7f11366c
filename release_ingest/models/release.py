"""Release metadata models -- the canonical description of one music release."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CanonicalTrack:
    """One entry of the official tracklist.

    Attributes:
        position: 1-based position in the tracklist.
        artist: Performing artist of this track.
        title: Official track title.
    """

    position: int
    artist: str
    title: str


@dataclass
class ReleaseMetadata:
    """Externally supplied metadata for the release being ingested.

    Attributes:
        id: Source identifier of the release (e.g. a Discogs release id).
        artist: Release (album) artist.
        title: Release title.
        years: Known release years, earliest first.
        label: Record label, if known.
        genre_tags: Genre and style tags.
        types: Release types (e.g. "album", "ep", "vinyl").
        tracks: Ordered canonical tracklist.
        master_id: Identifier of the master release grouping, if any.
        source: Name of the metadata source (e.g. "discogs").
        cover_url: URL of the front cover image, if any.
    """

    id: str
    artist: str
    title: str
    years: list[int] = field(default_factory=list)
    label: str | None = None
    genre_tags: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)
    tracks: list[CanonicalTrack] = field(default_factory=list)
    master_id: str | None = None
    source: str | None = None
    cover_url: str | None = None

    @property
    def year(self) -> int | None:
        """The primary (first) release year, or None if unknown."""
        return self.years[0] if self.years else None

    @property
    def track_count(self) -> int:
        return len(self.tracks)

    def canonical_track(self, number: int) -> CanonicalTrack | None:
        """Return the canonical track at a 1-based position, if in range."""
        if 1 <= number <= len(self.tracks):
            return self.tracks[number - 1]
        return None

    @classmethod
    def from_dict(cls, data: dict) -> ReleaseMetadata:
        """Build release metadata from a task payload (e.g. parsed JSON).

        ``tracks`` is a list of ``{"artist", "title"}`` mappings; positions
        are assigned from list order. Either ``years`` (list) or a single
        ``year`` is accepted. A track without its own artist inherits the
        release artist.

        Args:
            data: Raw dictionary.

        Returns:
            Populated ReleaseMetadata instance.

        Raises:
            ValueError: If ``id``, ``artist`` or ``title`` is missing.
        """
        missing = [k for k in ("id", "artist", "title") if not data.get(k)]
        if missing:
            raise ValueError(f"Release metadata is missing: {', '.join(missing)}")

        artist = str(data["artist"])

        raw_years = data.get("years")
        if raw_years is None and data.get("year") is not None:
            raw_years = [data["year"]]
        years = [int(y) for y in raw_years or []]

        tracks = [
            CanonicalTrack(
                position=index + 1,
                artist=str(entry.get("artist") or artist),
                title=str(entry.get("title") or ""),
            )
            for index, entry in enumerate(data.get("tracks") or [])
        ]

        master_id = data.get("master_id")
        return cls(
            id=str(data["id"]),
            artist=artist,
            title=str(data["title"]),
            years=years,
            label=data.get("label") or None,
            genre_tags=list(data.get("genre_tags") or data.get("tags") or []),
            types=list(data.get("types") or []),
            tracks=tracks,
            master_id=str(master_id) if master_id is not None else None,
            source=data.get("source") or None,
            cover_url=data.get("cover_url") or None,
        )
