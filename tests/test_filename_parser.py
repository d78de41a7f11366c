"""Tests for filename_parser -- track numbers, titles and artists from filenames."""

from __future__ import annotations

import pytest

from release_ingest.core.filename_parser import (
    extract_artist,
    extract_title,
    extract_track_number,
    format_files,
    format_tracklist,
    parse_tag_track_number,
    tracks_per_side,
)
from release_ingest.models.release import CanonicalTrack


class TestParseTagTrackNumber:
    @pytest.mark.parametrize(
        "raw, expected",
        [("5", 5), ("05", 5), ("5/12", 5), ("5\\12", 5), (" 7 ", 7)],
    )
    def test_numeric_forms(self, raw, expected):
        assert parse_tag_track_number(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "A1", "five", "\u0663", "1_0"])
    def test_unusable_values(self, raw):
        assert parse_tag_track_number(raw) is None


class TestTracksPerSide:
    def test_even_total(self):
        assert tracks_per_side(12) == 6

    def test_odd_total_rounds_up(self):
        assert tracks_per_side(7) == 4

    def test_unknown_total_uses_default(self):
        assert tracks_per_side(0) == 10


class TestExtractTrackNumber:
    def test_leading_digits(self):
        assert extract_track_number("05 - Song.mp3", 12) == 5

    def test_vinyl_side_b(self):
        assert extract_track_number("B2 Something.flac", 12) == 8

    def test_vinyl_side_c_odd_total(self):
        assert extract_track_number("C1.mp3", 7) == 9

    def test_vinyl_side_a(self):
        assert extract_track_number("A1 Intro.mp3", 4) == 1

    def test_no_number(self):
        assert extract_track_number("Bonus Track.mp3", 4) is None

    def test_lowercase_letter_is_not_vinyl(self):
        assert extract_track_number("b2 song.mp3", 12) is None

    def test_non_ascii_digits_are_not_numbers(self):
        assert extract_track_number("\u0663 track.mp3", 4) is None
        assert extract_title("\u0663 track.mp3") == "\u0663 track"


class TestExtractTitle:
    def test_strips_number_and_extension(self):
        assert extract_title("05. Song Name.mp3") == "Song Name"

    def test_takes_title_after_artist(self):
        assert extract_title("01 - Artist - Song Name.flac") == "Song Name"

    def test_strips_by_suffix(self):
        assert extract_title("03 Die Welt, by Amygdala.mp3") == "Die Welt"

    def test_vinyl_prefix(self):
        assert extract_title("A2 Deep Space.wav") == "Deep Space"

    def test_keeps_case(self):
        assert extract_title("Hello World.mp3") == "Hello World"

    def test_falls_back_to_stem(self):
        assert extract_title("01.mp3") == "01"


class TestExtractArtist:
    def test_artist_title_pattern(self):
        assert extract_artist("02 - Moodymann - Misled.mp3") == "Moodymann"

    def test_no_separator(self):
        assert extract_artist("02 Misled.mp3") is None


class TestFormatting:
    def test_tracklist_lines(self):
        tracks = [CanonicalTrack(1, "A", "One"), CanonicalTrack(2, "B", "Two")]
        assert format_tracklist(tracks) == "1. A - One\n2. B - Two"

    def test_empty_tracklist(self):
        assert format_tracklist([]) == "No tracklist available"

    def test_files_are_numbered_from_one(self):
        assert format_files(["x.mp3", "y.mp3"]) == "1. x.mp3\n2. y.mp3"
