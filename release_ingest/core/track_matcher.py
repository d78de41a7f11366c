"""Matching engine -- assigns every input file a unique track number, artist and title.

Three strategies are tried in order and the first one that yields a
complete, unique assignment wins:

1. Embedded track-number tags.
2. The AI batch matcher (when one is configured).
3. Filename heuristics, which always succeed.

Strategies 1 and 2 return None instead of raising when they cannot cover
every file; the engine never returns a partial result.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from release_ingest.core.exceptions import AiMatchingError
from release_ingest.core.filename_parser import (
    extract_artist,
    extract_title,
    extract_track_number,
    format_files,
    format_tracklist,
    parse_tag_track_number,
)
from release_ingest.models.release import ReleaseMetadata
from release_ingest.models.track_match import CandidateFile, MatchResult, TrackMatch
from release_ingest.utils.logger import get_logger

if TYPE_CHECKING:
    from release_ingest.core.ai_matcher import AiMatcher
    from release_ingest.core.tag_editor import TagEditor

logger = get_logger("core.track_matcher")


def build_candidates(paths: list[Path], tag_editor: TagEditor) -> list[CandidateFile]:
    """Create one CandidateFile per path, reading its embedded tags once.

    Args:
        paths: Audio files in caller-supplied order.
        tag_editor: Reader for the embedded track number and artist.

    Returns:
        Candidates with ``ordinal_position`` set to the list index.
    """
    return [
        CandidateFile(
            path=path,
            ordinal_position=index,
            embedded_track_tag=tag_editor.read_track_number(path),
            embedded_artist=tag_editor.read_artist(path),
        )
        for index, path in enumerate(paths)
    ]


class TrackMatcher:
    """Composes the tag, AI and filename strategies with ordered fallback."""

    def __init__(self, ai_matcher: AiMatcher | None = None) -> None:
        """Initialize the engine.

        Args:
            ai_matcher: Optional AI batch matcher. When None the AI strategy
                is skipped.
        """
        self._ai_matcher = ai_matcher

    def match(self, files: list[CandidateFile], release: ReleaseMetadata) -> MatchResult:
        """Assign a track to every file.

        Args:
            files: Candidate files in ordinal order.
            release: Release metadata with the canonical tracklist.

        Returns:
            Mapping from ``CandidateFile.key`` to TrackMatch covering every
            file, with pairwise distinct track numbers.
        """
        if not files:
            return {}

        logger.info(
            "Matching %d files against %d canonical tracks for '%s - %s'",
            len(files), release.track_count, release.artist, release.title,
        )

        result = self.match_by_tags(files, release)
        if result is not None:
            logger.info("All %d files matched by embedded tags", len(result))
            return result

        result = self.match_by_ai(files, release)
        if result is not None:
            logger.info("All %d files matched by AI", len(result))
            return result

        result = self.match_by_filename(files, release)
        logger.info("Matched %d files by filename", len(result))
        return result

    # ------------------------------------------------------------------
    # Strategy 1: embedded tags
    # ------------------------------------------------------------------

    def match_by_tags(self, files: list[CandidateFile], release: ReleaseMetadata) -> MatchResult | None:
        """Match files by their embedded track-number tags.

        Every file must carry an in-range number that no other file claims;
        otherwise the strategy is abandoned entirely.
        """
        if not release.tracks:
            return None

        result: MatchResult = {}
        used: set[int] = set()

        for candidate in files:
            number = parse_tag_track_number(candidate.embedded_track_tag)
            if number is None:
                logger.debug("No usable track tag on '%s'", candidate.filename)
                return None

            if number in used:
                logger.warning(
                    "Duplicate track number %d in tags ('%s'); skipping tag matching",
                    number, candidate.filename,
                )
                return None

            canonical = release.canonical_track(number)
            if canonical is None:
                logger.debug(
                    "Track tag %d on '%s' is outside 1-%d",
                    number, candidate.filename, release.track_count,
                )
                return None

            used.add(number)
            result[candidate.key] = TrackMatch(number, canonical.artist, canonical.title)

        return result

    # ------------------------------------------------------------------
    # Strategy 2: AI batch matcher
    # ------------------------------------------------------------------

    def match_by_ai(self, files: list[CandidateFile], release: ReleaseMetadata) -> MatchResult | None:
        """Match all files with one AI call, validating count and uniqueness."""
        if self._ai_matcher is None:
            return None

        try:
            matches = self._ai_matcher.match_all(
                release.artist,
                release.title,
                format_tracklist(release.tracks),
                format_files(c.filename for c in files),
            )
        except AiMatchingError as e:
            logger.warning("AI matching failed: %s", e)
            return None
        except Exception as e:
            logger.error("Unexpected AI matcher error: %s", e)
            return None

        if len(matches) != len(files):
            logger.warning(
                "AI returned %d matches for %d files; falling back",
                len(matches), len(files),
            )
            return None

        result: MatchResult = {}
        used: set[int] = set()
        for candidate, match in zip(files, matches):
            match = self._normalize_to_canonical(match, release)
            if match.track_number <= 0 or match.track_number in used:
                logger.warning(
                    "AI returned invalid or duplicate track number %d for '%s'",
                    match.track_number, candidate.filename,
                )
                return None
            used.add(match.track_number)
            result[candidate.key] = match

        return result

    @staticmethod
    def _normalize_to_canonical(match: TrackMatch, release: ReleaseMetadata) -> TrackMatch:
        """Snap an AI answer onto the canonical entry with the same title."""
        wanted = match.track_title.strip().lower()
        if not wanted:
            return match
        for track in release.tracks:
            if track.title.strip().lower() == wanted:
                return TrackMatch(track.position, track.artist, track.title)
        return match

    # ------------------------------------------------------------------
    # Strategy 3: filename heuristics
    # ------------------------------------------------------------------

    def match_by_filename(self, files: list[CandidateFile], release: ReleaseMetadata) -> MatchResult:
        """Match files from their names; always returns a complete result.

        Falls back to numbering files 1..n by ordinal position when the
        derived numbers collide or no filename carries a number at all.
        """
        total = release.track_count
        numbers: list[int] = []
        result: MatchResult = {}
        any_extracted = False

        for candidate in files:
            number = extract_track_number(candidate.filename, total)
            if number is not None and number > 0:
                any_extracted = True
            else:
                number = max([total, *numbers]) + 1
                logger.debug(
                    "No track number in '%s', assigning %d", candidate.filename, number,
                )
            numbers.append(number)
            result[candidate.key] = self._filename_match(candidate, number, release)

        if len(set(numbers)) != len(numbers) or not any_extracted:
            logger.info("Filename track numbers are ambiguous; numbering files sequentially")
            return self.match_sequentially(files, release)

        return result

    def match_sequentially(self, files: list[CandidateFile], release: ReleaseMetadata) -> MatchResult:
        """Number files 1..n in ordinal order, pairing with the tracklist."""
        ordered = sorted(files, key=lambda c: c.ordinal_position)
        return {
            candidate.key: self._filename_match(candidate, position, release)
            for position, candidate in enumerate(ordered, start=1)
        }

    def _filename_match(self, candidate: CandidateFile, number: int, release: ReleaseMetadata) -> TrackMatch:
        canonical = release.canonical_track(number)
        if canonical is not None:
            return TrackMatch(number, canonical.artist, canonical.title)

        return TrackMatch(
            number,
            self._resolve_artist(candidate, release),
            extract_title(candidate.filename),
        )

    @staticmethod
    def _resolve_artist(candidate: CandidateFile, release: ReleaseMetadata) -> str:
        """Filename artist, then embedded artist tag, then release artist."""
        from_name = extract_artist(candidate.filename)
        if from_name:
            return from_name
        if candidate.embedded_artist and candidate.embedded_artist.strip():
            return candidate.embedded_artist.strip()
        return release.artist
