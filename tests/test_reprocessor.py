"""Tests for Reprocessor -- in-place re-tagging, version skipping and catalog replacement."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from release_ingest.core.catalog import ReleaseCatalog
from release_ingest.core.exceptions import TaggingError
from release_ingest.core.metadata_writer import ReleaseMetadataWriter
from release_ingest.core.reprocessor import Reprocessor
from release_ingest.db.database import Database
from release_ingest.models.outcome import ReprocessOptions
from release_ingest.models.release import CanonicalTrack, ReleaseMetadata
from release_ingest.models.track_match import TrackInfo


@pytest.fixture
def db():
    database = Database(":memory:")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def metadata() -> ReleaseMetadata:
    return ReleaseMetadata(
        id="r7",
        artist="Artist",
        title="Album",
        tracks=[CanonicalTrack(1, "Artist", "One"), CanonicalTrack(2, "Artist", "Two")],
    )


@pytest.fixture
def tag_editor() -> MagicMock:
    editor = MagicMock()
    editor.read_track_number.side_effect = ["1", "2"]
    editor.read_artist.return_value = None
    editor.extract_all_tags.return_value = {}
    editor.read_track_info.side_effect = [TrackInfo(1, "One", "Artist"), TrackInfo(2, "Two", "Artist")]
    return editor


@pytest.fixture
def release_dir(tmp_path: Path) -> Path:
    d = tmp_path / "artist" / "album [mp3]"
    d.mkdir(parents=True)
    for name in ("02. artist - two.mp3", "01. artist - one.mp3", "notes.txt"):
        (d / name).write_bytes(b"\x00" * 64)
    return d


def _reprocessor(db, tag_editor) -> Reprocessor:
    cover_fetcher = MagicMock()
    cover_fetcher.get_cover_art.return_value = None
    return Reprocessor(
        catalog=ReleaseCatalog(db.connection, tag_editor),
        tag_editor=tag_editor,
        cover_fetcher=cover_fetcher,
    )


class TestReprocessor:
    def test_retags_in_place_and_replaces_catalog(self, db, metadata, tag_editor, release_dir):
        outcome = _reprocessor(db, tag_editor).reprocess(release_dir, metadata, 2)

        assert outcome.success
        assert outcome.files_processed == 2
        assert outcome.errors == []
        written = [c.args[0].name for c in tag_editor.write_release_tags.call_args_list]
        assert written == ["01. artist - one.mp3", "02. artist - two.mp3"]
        assert (release_dir / "01. artist - one.mp3").exists()
        assert ReleaseMetadataWriter().read(release_dir)["metadata_version"] == 2

        stored = ReleaseCatalog(db.connection).repository.find_by_source_id("r7")
        assert stored["metadata_version"] == 2
        assert [t["title"] for t in stored["tracks"]] == ["One", "Two"]

    def test_skip_retag(self, db, metadata, tag_editor, release_dir):
        outcome = _reprocessor(db, tag_editor).reprocess(
            release_dir, metadata, 3, ReprocessOptions(skip_retag=True)
        )

        assert outcome.success
        assert outcome.files_processed == 2
        tag_editor.write_release_tags.assert_not_called()
        assert ReleaseMetadataWriter().read(release_dir)["metadata_version"] == 3

    def test_same_version_is_skipped(self, db, metadata, tag_editor, release_dir):
        ReleaseMetadataWriter().write(release_dir, metadata, 2)

        outcome = _reprocessor(db, tag_editor).reprocess(release_dir, metadata, 2)

        assert outcome.success
        assert outcome.files_processed == 0
        tag_editor.write_release_tags.assert_not_called()

    def test_force_reprocesses_same_version(self, db, metadata, tag_editor, release_dir):
        ReleaseMetadataWriter().write(release_dir, metadata, 2)

        outcome = _reprocessor(db, tag_editor).reprocess(
            release_dir, metadata, 2, ReprocessOptions(force=True)
        )

        assert outcome.files_processed == 2

    def test_unexpected_writer_error_is_recorded_per_file(
        self, db, metadata, tag_editor, release_dir
    ):
        def write(path, *args):
            if path.name.startswith("02"):
                raise RuntimeError("codec crashed")
            return True

        tag_editor.write_release_tags.side_effect = write

        outcome = _reprocessor(db, tag_editor).reprocess(release_dir, metadata, 2)

        assert outcome.success
        assert outcome.files_processed == 1
        assert len(outcome.errors) == 1
        assert "02. artist - two.mp3" in outcome.errors[0]
        assert "codec crashed" in outcome.errors[0]

    def test_no_successful_retag_fails(self, db, metadata, tag_editor, release_dir):
        tag_editor.write_release_tags.side_effect = TaggingError("locked")

        outcome = _reprocessor(db, tag_editor).reprocess(release_dir, metadata, 2)

        assert not outcome.success
        assert len(outcome.errors) == 2
        assert ReleaseMetadataWriter().read(release_dir) is None

    def test_catalog_failure_is_reported(self, db, metadata, tag_editor, release_dir):
        tag_editor.read_track_info.side_effect = None
        tag_editor.read_track_info.return_value = None

        outcome = _reprocessor(db, tag_editor).reprocess(release_dir, metadata, 2)

        assert outcome.success
        assert any("catalog" in e for e in outcome.errors)

    def test_missing_directory(self, db, metadata, tag_editor, tmp_path):
        outcome = _reprocessor(db, tag_editor).reprocess(tmp_path / "nope", metadata, 2)
        assert not outcome.success

    def test_directory_without_audio(self, db, metadata, tag_editor, tmp_path):
        outcome = _reprocessor(db, tag_editor).reprocess(tmp_path, metadata, 2)
        assert not outcome.success
