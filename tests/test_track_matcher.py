"""Tests for TrackMatcher -- strategy order, fallbacks and assignment invariants."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from release_ingest.core.exceptions import AiMatchingError
from release_ingest.core.track_matcher import TrackMatcher, build_candidates
from release_ingest.models.release import CanonicalTrack, ReleaseMetadata
from release_ingest.models.track_match import CandidateFile, TrackMatch


def _release(count: int, artist: str = "Artist") -> ReleaseMetadata:
    return ReleaseMetadata(
        id="r1",
        artist=artist,
        title="Album",
        tracks=[CanonicalTrack(i, artist, f"Song {i}") for i in range(1, count + 1)],
    )


def _candidates(names: list[str], tags: list[str | None] | None = None) -> list[CandidateFile]:
    tags = tags or [None] * len(names)
    return [
        CandidateFile(
            path=Path("/downloads") / name,
            ordinal_position=index,
            embedded_track_tag=tag,
            embedded_artist=None,
        )
        for index, (name, tag) in enumerate(zip(names, tags))
    ]


def _assert_complete_and_unique(result, files):
    assert set(result) == {c.key for c in files}
    numbers = [m.track_number for m in result.values()]
    assert len(numbers) == len(set(numbers))


class TestTagStrategy:
    def test_tags_win_without_calling_ai(self):
        ai = MagicMock()
        files = _candidates(["x.mp3", "y.mp3", "z.mp3"], ["2", "1/3", "3"])
        result = TrackMatcher(ai).match(files, _release(3))

        ai.match_all.assert_not_called()
        assert result[files[0].key] == TrackMatch(2, "Artist", "Song 2")
        assert result[files[1].key] == TrackMatch(1, "Artist", "Song 1")
        assert result[files[2].key].track_number == 3

    def test_duplicate_tags_abandon_strategy(self):
        files = _candidates(["01 a.mp3", "02 b.mp3"], ["1", "1"])
        matcher = TrackMatcher()
        assert matcher.match_by_tags(files, _release(2)) is None

        result = matcher.match(files, _release(2))
        assert [m.track_number for m in result.values()] == [1, 2]

    def test_out_of_range_tag_abandons_strategy(self):
        files = _candidates(["a.mp3"], ["9"])
        assert TrackMatcher().match_by_tags(files, _release(3)) is None

    def test_missing_tag_abandons_strategy(self):
        files = _candidates(["a.mp3", "b.mp3"], ["1", None])
        assert TrackMatcher().match_by_tags(files, _release(3)) is None

    def test_no_tracklist_skips_tags(self):
        files = _candidates(["a.mp3"], ["1"])
        assert TrackMatcher().match_by_tags(files, _release(0)) is None


class TestAiStrategy:
    def test_ai_result_used_when_valid(self):
        ai = MagicMock()
        ai.match_all.return_value = [
            TrackMatch(2, "Artist", "Song 2"),
            TrackMatch(1, "Artist", "Song 1"),
        ]
        files = _candidates(["foo.mp3", "bar.mp3"])
        result = TrackMatcher(ai).match(files, _release(2))

        assert result[files[0].key].track_number == 2
        assert result[files[1].key].track_number == 1
        tracklist = ai.match_all.call_args[0][2]
        assert tracklist.startswith("1. Artist - Song 1")

    def test_ai_titles_snap_to_canonical(self):
        ai = MagicMock()
        ai.match_all.return_value = [TrackMatch(7, "someone", "song 2")]
        files = _candidates(["foo.mp3"])
        result = TrackMatcher(ai).match(files, _release(2))
        assert result[files[0].key] == TrackMatch(2, "Artist", "Song 2")

    def test_count_mismatch_falls_back_to_filenames(self):
        ai = MagicMock()
        ai.match_all.return_value = [TrackMatch(1, "Artist", "Song 1")]
        files = _candidates(["01 a.mp3", "02 b.mp3"])
        result = TrackMatcher(ai).match(files, _release(2))
        assert [m.track_number for m in result.values()] == [1, 2]

    def test_duplicate_ai_numbers_fall_back(self):
        ai = MagicMock()
        ai.match_all.return_value = [TrackMatch(1, "A", "X"), TrackMatch(1, "A", "Y")]
        files = _candidates(["a.mp3", "b.mp3"])
        assert TrackMatcher(ai).match_by_ai(files, _release(2)) is None

    def test_ai_error_is_a_miss(self):
        ai = MagicMock()
        ai.match_all.side_effect = AiMatchingError("timeout")
        files = _candidates(["01 a.mp3"])
        result = TrackMatcher(ai).match(files, _release(1))
        assert result[files[0].key].track_number == 1


class TestFilenameStrategy:
    def test_vinyl_positions(self):
        files = _candidates(["A1 x.mp3", "B2 y.mp3"])
        result = TrackMatcher().match(files, _release(12))
        assert result[files[0].key].track_number == 1
        assert result[files[1].key] == TrackMatch(8, "Artist", "Song 8")

    def test_vinyl_side_c_with_odd_count(self):
        files = _candidates(["A1.mp3", "C1.mp3"])
        result = TrackMatcher().match(files, _release(7))
        assert result[files[1].key].track_number == 9

    def test_bonus_file_gets_next_number(self):
        files = _candidates(["01 a.mp3", "02 b.mp3", "03 c.mp3", "04 d.mp3", "Hidden Gem.mp3"])
        result = TrackMatcher().match(files, _release(4))

        _assert_complete_and_unique(result, files)
        bonus = result[files[4].key]
        assert bonus.track_number == 5
        assert bonus.track_title == "Hidden Gem"
        assert bonus.artist == "Artist"

    def test_no_numbers_numbers_sequentially(self):
        files = _candidates(["intro.mp3", "outro.mp3", "middle.mp3"])
        result = TrackMatcher().match(files, _release(3))
        assert [result[c.key].track_number for c in files] == [1, 2, 3]
        assert result[files[2].key].track_title == "Song 3"

    def test_colliding_numbers_number_sequentially(self):
        files = _candidates(["01 a.mp3", "01 b.mp3", "zz.mp3"])
        result = TrackMatcher().match(files, _release(2))

        _assert_complete_and_unique(result, files)
        assert [result[c.key].track_number for c in files] == [1, 2, 3]
        assert result[files[0].key] == TrackMatch(1, "Artist", "Song 1")
        assert result[files[1].key] == TrackMatch(2, "Artist", "Song 2")
        assert result[files[2].key] == TrackMatch(3, "Artist", "zz")

    def test_out_of_range_number_uses_filename_title(self):
        files = _candidates(["01 a.mp3", "15 - Guest - Extra.mp3"])
        result = TrackMatcher().match(files, _release(2))
        assert result[files[1].key] == TrackMatch(15, "Guest", "Extra")

    def test_embedded_artist_used_when_filename_has_none(self):
        files = [
            CandidateFile(Path("/d/01 a.mp3"), 0, None, None),
            CandidateFile(Path("/d/09 Extra.mp3"), 1, None, "Tag Artist"),
        ]
        result = TrackMatcher().match(files, _release(1))
        assert result[files[1].key].artist == "Tag Artist"

    def test_zero_tracks(self):
        files = _candidates(["03 x.mp3", "01 y.mp3"])
        result = TrackMatcher().match(files, _release(0))
        assert result[files[0].key] == TrackMatch(3, "Artist", "x")
        assert result[files[1].key].track_number == 1

    def test_empty_file_list(self):
        assert TrackMatcher().match([], _release(3)) == {}


class TestBuildCandidates:
    def test_reads_tags_once_per_file(self):
        editor = MagicMock()
        editor.read_track_number.side_effect = ["1", None]
        editor.read_artist.side_effect = ["A", None]
        paths = [Path("/d/a.mp3"), Path("/d/b.mp3")]

        candidates = build_candidates(paths, editor)

        assert [c.ordinal_position for c in candidates] == [0, 1]
        assert candidates[0].embedded_track_tag == "1"
        assert candidates[1].embedded_artist is None
        assert candidates[0].key == str(paths[0])
