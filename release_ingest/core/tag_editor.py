"""Tag editor -- reads and writes release tags on audio files via mutagen."""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Any

import mutagen
from mutagen.flac import FLAC, Picture
from mutagen.id3 import (
    APIC,
    COMM,
    ID3,
    TALB,
    TCON,
    TDRC,
    TIT1,
    TIT2,
    TPE1,
    TPE2,
    TPUB,
    TRCK,
    TXXX,
    ID3NoHeaderError,
)
from mutagen.mp4 import MP4, MP4Cover, MP4FreeForm
from mutagen.oggopus import OggOpus
from mutagen.oggvorbis import OggVorbis
from mutagen.wave import WAVE

from release_ingest.core.exceptions import TaggingError
from release_ingest.core.filename_parser import parse_tag_track_number
from release_ingest.models.release import ReleaseMetadata
from release_ingest.models.track_match import TrackInfo, TrackMatch
from release_ingest.utils.logger import get_logger
from release_ingest.utils.constants import (
    COMMENT_SEPARATOR,
    GENRE_SEPARATOR,
    ID3_ENCODING_UTF8,
    ID3_EXTENSIONS,
    ID3_PICTURE_TYPE_COVER_FRONT,
    MP4_EXTENSIONS,
    PNG_MAGIC,
    TAG_LABEL,
    TAG_RELEASE_ID,
    TAG_RELEASE_YEARS,
    TAG_SOURCE,
    VORBIS_EXTENSIONS,
    WAVE_EXTENSIONS,
)

logger = get_logger("core.tag_editor")

_CUSTOM_FIELDS = (TAG_RELEASE_ID, TAG_SOURCE, TAG_RELEASE_YEARS)

# --- Read mappings: format-specific key -> internal field name ---

_ID3_READ_MAP = {
    "TIT2": "title",
    "TPE1": "artist",
    "TPE2": "albumartist",
    "TALB": "album",
    "TDRC": "date",
    "TCON": "genre",
    "TIT1": "grouping",
    "TBPM": "bpm",
    "TKEY": "key",
    "TRCK": "tracknumber",
    "TPOS": "discnumber",
    "TPUB": "label",
    "TSRC": "isrc",
}

_VORBIS_READ_MAP = {
    "title": "title",
    "artist": "artist",
    "albumartist": "albumartist",
    "album": "album",
    "date": "date",
    "genre": "genre",
    "grouping": "grouping",
    "bpm": "bpm",
    "initialkey": "key",
    "key": "key",
    "tracknumber": "tracknumber",
    "discnumber": "discnumber",
    "organization": "label",
    "label": "label",
    "comment": "comment",
    "isrc": "isrc",
}

_MP4_FREEFORM = "----:com.apple.iTunes:"

_MP4_READ_MAP = {
    "\xa9nam": "title",
    "\xa9ART": "artist",
    "aART": "albumartist",
    "\xa9alb": "album",
    "\xa9day": "date",
    "\xa9gen": "genre",
    "\xa9grp": "grouping",
    "\xa9cmt": "comment",
    "tmpo": "bpm",
    f"{_MP4_FREEFORM}initialkey": "key",
    f"{_MP4_FREEFORM}{TAG_LABEL}": "label",
    f"{_MP4_FREEFORM}ISRC": "isrc",
}

# Internal field name -> frame name used by extract_all_tags()
_EXPORT_NAMES = {
    "title": "TIT2",
    "artist": "TPE1",
    "albumartist": "TPE2",
    "album": "TALB",
    "date": "TDRC",
    "genre": "TCON",
    "comment": "COMM",
    "grouping": "TIT1",
    "bpm": "TBPM",
    "key": "TKEY",
    "label": "TPUB",
    "tracknumber": "TRCK",
    "discnumber": "TPOS",
    "isrc": "TSRC",
}


def _image_mime(image_data: bytes) -> str:
    return "image/png" if image_data.startswith(PNG_MAGIC) else "image/jpeg"


class TagEditor:
    """Reads and writes release tags on audio files.

    Supports MP3, AAC and WAV (ID3 frames), FLAC, OGG Vorbis and OGG Opus
    (Vorbis comments) and M4A (MP4 atoms). Every written field replaces
    the previous value, so writing the same data twice leaves the file
    unchanged. BPM and musical key already present in a file are kept.
    """

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read_fields(self, path: Path) -> dict[str, str]:
        """Read the known tag fields of a file into a flat dictionary.

        Keys are format-independent field names (``title``, ``artist``,
        ``tracknumber``...); custom text fields keep their upper-case
        name (``RELEASEID``). Unreadable files yield an empty dict.

        Args:
            path: Audio file path.

        Returns:
            Mapping of field name to first value.
        """
        path = Path(path)
        if not path.is_file():
            logger.warning("File not found for tag reading: %s", path)
            return {}

        suffix = path.suffix.lower()
        try:
            if suffix in ID3_EXTENSIONS or suffix in WAVE_EXTENSIONS:
                tags = self._load_id3(path)
                return self._read_id3(tags) if tags is not None else {}
            if suffix in VORBIS_EXTENSIONS:
                return self._read_vorbis(self._open_vorbis(path))
            if suffix in MP4_EXTENSIONS:
                return self._read_mp4(MP4(path))
        except (mutagen.MutagenError, OSError, ValueError) as e:
            logger.warning("Error reading tags from %s: %s", path.name, e)
            return {}

        logger.debug("Unsupported format for tag reading: %s", path.name)
        return {}

    def read_track_number(self, path: Path) -> str | None:
        """Return the raw track-number tag (e.g. ``"5/12"``), if any."""
        return self.read_fields(path).get("tracknumber")

    def read_artist(self, path: Path) -> str | None:
        """Return the artist tag, if any."""
        return self.read_fields(path).get("artist")

    def read_track_info(self, path: Path) -> TrackInfo | None:
        """Read track number, title and artist back from a file.

        Returns:
            TrackInfo, or None unless both a numeric track number and a
            non-empty title are present.
        """
        fields = self.read_fields(path)
        number = parse_tag_track_number(fields.get("tracknumber"))
        title = (fields.get("title") or "").strip()
        if number is None or not title:
            logger.debug("Incomplete track info in %s", Path(path).name)
            return None
        return TrackInfo(track_number=number, title=title, artist=fields.get("artist"))

    def extract_all_tags(self, path: Path) -> dict[str, str]:
        """Return every known tag, keyed by ID3 frame name.

        Custom fields are returned as ``TXXX:<NAME>`` for every format.
        """
        exported: dict[str, str] = {}
        for name, value in self.read_fields(path).items():
            if name in _EXPORT_NAMES:
                exported[_EXPORT_NAMES[name]] = value
            else:
                exported[f"TXXX:{name}"] = value
        return exported

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write_release_tags(
        self,
        path: Path,
        metadata: ReleaseMetadata,
        match: TrackMatch,
        cover_art: bytes | None = None,
    ) -> bool:
        """Write the release and track tags to one file.

        Args:
            path: Audio file path.
            metadata: Release-level metadata.
            match: The file's track assignment.
            cover_art: Optional front cover image bytes.

        Returns:
            True when the tags were written.

        Raises:
            TaggingError: If the file is missing, unsupported or cannot be written.
        """
        path = Path(path)
        if not path.is_file():
            raise TaggingError(f"File not found: {path}")

        suffix = path.suffix.lower()
        values = self._tag_values(metadata, match)

        try:
            if suffix in ID3_EXTENSIONS:
                self._write_id3(path, values, cover_art)
            elif suffix in WAVE_EXTENSIONS:
                self._write_wave(path, values, cover_art)
            elif suffix in VORBIS_EXTENSIONS:
                self._write_vorbis(path, values, cover_art)
            elif suffix in MP4_EXTENSIONS:
                self._write_mp4(path, values, cover_art)
            else:
                raise TaggingError(f"Unsupported audio format: {suffix}")
        except (mutagen.MutagenError, OSError, ValueError) as e:
            raise TaggingError(f"Failed to write tags to {path.name}: {e}") from e

        logger.debug(
            "Tagged %s: %02d. %s - %s",
            path.name, match.track_number, match.artist, match.track_title,
        )
        return True

    @staticmethod
    def _tag_values(metadata: ReleaseMetadata, match: TrackMatch) -> dict[str, str | None]:
        """Compute every field value once, independent of the container."""
        years = [str(y) for y in metadata.years]
        genres = [t for t in metadata.genre_tags if t]
        return {
            "artist": match.artist,
            "albumartist": metadata.artist,
            "album": metadata.title,
            "title": match.track_title,
            "tracknumber": str(match.track_number),
            "date": years[0] if years else None,
            "genre": GENRE_SEPARATOR.join(genres) or None,
            "grouping": GENRE_SEPARATOR.join(t for t in metadata.types if t) or None,
            "label": metadata.label or None,
            "comment": COMMENT_SEPARATOR.join(genres) or None,
            TAG_RELEASE_ID: metadata.id,
            TAG_SOURCE: metadata.source or None,
            TAG_RELEASE_YEARS: GENRE_SEPARATOR.join(years) if len(years) > 1 else None,
        }

    # --- ID3 (MP3, AAC, WAV) ---

    def _load_id3(self, path: Path) -> ID3 | None:
        if path.suffix.lower() in WAVE_EXTENSIONS:
            return WAVE(path).tags
        try:
            return ID3(path)
        except ID3NoHeaderError:
            return None

    def _read_id3(self, tags: ID3) -> dict[str, str]:
        fields: dict[str, str] = {}
        for frame_id, name in _ID3_READ_MAP.items():
            frame = tags.get(frame_id)
            if frame is not None and frame.text:
                fields[name] = str(frame.text[0]).strip()
        comments = tags.getall("COMM")
        if comments and comments[0].text:
            fields["comment"] = str(comments[0].text[0]).strip()
        for frame in tags.getall("TXXX"):
            if frame.desc and frame.text:
                fields[frame.desc.upper()] = str(frame.text[0]).strip()
        return {k: v for k, v in fields.items() if v}

    def _apply_id3(self, tags: ID3, values: dict[str, str | None], cover_art: bytes | None) -> None:
        preserved = {key: tags.getall(key) for key in ("TBPM", "TKEY")}

        text_frames = {
            "TPE1": (TPE1, values["artist"]),
            "TPE2": (TPE2, values["albumartist"]),
            "TALB": (TALB, values["album"]),
            "TIT2": (TIT2, values["title"]),
            "TRCK": (TRCK, values["tracknumber"]),
            "TDRC": (TDRC, values["date"]),
            "TCON": (TCON, values["genre"]),
            "TIT1": (TIT1, values["grouping"]),
            "TPUB": (TPUB, values["label"]),
        }
        for frame_id, (frame_cls, value) in text_frames.items():
            if value:
                tags.setall(frame_id, [frame_cls(encoding=ID3_ENCODING_UTF8, text=[value])])
            else:
                tags.delall(frame_id)

        tags.delall("COMM")
        if values["comment"]:
            tags.add(COMM(encoding=ID3_ENCODING_UTF8, lang="eng", desc="", text=[values["comment"]]))

        for name in _CUSTOM_FIELDS:
            key = f"TXXX:{name}"
            if values[name]:
                tags.setall(key, [TXXX(encoding=ID3_ENCODING_UTF8, desc=name, text=[values[name]])])
            else:
                tags.delall(key)

        if cover_art:
            tags.delall("APIC")
            tags.add(
                APIC(
                    encoding=ID3_ENCODING_UTF8,
                    mime=_image_mime(cover_art),
                    type=ID3_PICTURE_TYPE_COVER_FRONT,
                    desc="Cover",
                    data=cover_art,
                )
            )

        for key, frames in preserved.items():
            if frames:
                tags.setall(key, frames)

    def _write_id3(self, path: Path, values: dict[str, str | None], cover_art: bytes | None) -> None:
        tags = self._load_id3(path)
        if tags is None:
            tags = ID3()
        self._apply_id3(tags, values, cover_art)
        tags.save(path)

    def _write_wave(self, path: Path, values: dict[str, str | None], cover_art: bytes | None) -> None:
        audio = WAVE(path)
        if audio.tags is None:
            audio.add_tags()
        self._apply_id3(audio.tags, values, cover_art)
        audio.save()

    # --- Vorbis comments (FLAC, OGG, Opus) ---

    def _open_vorbis(self, path: Path) -> Any:
        suffix = path.suffix.lower()
        if suffix == ".flac":
            audio = FLAC(path)
        elif suffix == ".opus":
            audio = OggOpus(path)
        else:
            audio = OggVorbis(path)
        if audio.tags is None:
            audio.add_tags()
        return audio

    def _read_vorbis(self, audio: Any) -> dict[str, str]:
        fields: dict[str, str] = {}
        for key, values in audio.tags.as_dict().items():
            if not values:
                continue
            key = key.lower()
            value = str(values[0]).strip()
            if key in _VORBIS_READ_MAP:
                fields.setdefault(_VORBIS_READ_MAP[key], value)
            elif key.upper() in _CUSTOM_FIELDS:
                fields[key.upper()] = value
        return {k: v for k, v in fields.items() if v}

    def _write_vorbis(self, path: Path, values: dict[str, str | None], cover_art: bytes | None) -> None:
        audio = self._open_vorbis(path)
        tags = audio.tags
        preserved = {key: tags[key] for key in ("bpm", "initialkey", "key") if key in tags}

        fields = {
            "artist": values["artist"],
            "albumartist": values["albumartist"],
            "album": values["album"],
            "title": values["title"],
            "tracknumber": values["tracknumber"],
            "date": values["date"],
            "genre": values["genre"],
            "grouping": values["grouping"],
            "organization": values["label"],
            "comment": values["comment"],
        }
        fields.update({name.lower(): values[name] for name in _CUSTOM_FIELDS})

        # The label lives in ORGANIZATION; a stale LABEL field would shadow it
        if "label" in tags:
            del tags["label"]

        for key, value in fields.items():
            if value:
                tags[key] = [value]
            elif key in tags:
                del tags[key]

        if cover_art:
            picture = Picture()
            picture.type = ID3_PICTURE_TYPE_COVER_FRONT
            picture.mime = _image_mime(cover_art)
            picture.desc = "Cover"
            picture.data = cover_art
            if isinstance(audio, FLAC):
                audio.clear_pictures()
                audio.add_picture(picture)
            else:
                tags["metadata_block_picture"] = [base64.b64encode(picture.write()).decode("ascii")]

        for key, value in preserved.items():
            tags[key] = value

        audio.save()

    # --- MP4 atoms (M4A) ---

    def _read_mp4(self, audio: MP4) -> dict[str, str]:
        fields: dict[str, str] = {}
        tags = audio.tags or {}
        for atom, name in _MP4_READ_MAP.items():
            values = tags.get(atom)
            if values:
                fields[name] = self._mp4_text(values[0])
        if tags.get("trkn"):
            number, total = tags["trkn"][0]
            fields["tracknumber"] = f"{number}/{total}" if total else str(number)
        for name in _CUSTOM_FIELDS:
            values = tags.get(f"{_MP4_FREEFORM}{name}")
            if values:
                fields[name] = self._mp4_text(values[0])
        return {k: v for k, v in fields.items() if v}

    @staticmethod
    def _mp4_text(value: Any) -> str:
        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace").strip()
        return str(value).strip()

    def _write_mp4(self, path: Path, values: dict[str, str | None], cover_art: bytes | None) -> None:
        audio = MP4(path)
        if audio.tags is None:
            audio.add_tags()
        tags = audio.tags

        atoms = {
            "\xa9ART": values["artist"],
            "aART": values["albumartist"],
            "\xa9alb": values["album"],
            "\xa9nam": values["title"],
            "\xa9day": values["date"],
            "\xa9gen": values["genre"],
            "\xa9grp": values["grouping"],
            "\xa9cmt": values["comment"],
        }
        for atom, value in atoms.items():
            if value:
                tags[atom] = [value]
            elif atom in tags:
                del tags[atom]

        tags["trkn"] = [(int(values["tracknumber"]), 0)]

        for name in (TAG_LABEL, *_CUSTOM_FIELDS):
            value = values["label"] if name == TAG_LABEL else values[name]
            atom = f"{_MP4_FREEFORM}{name}"
            if value:
                tags[atom] = [MP4FreeForm(value.encode("utf-8"))]
            elif atom in tags:
                del tags[atom]

        if cover_art:
            fmt = MP4Cover.FORMAT_PNG if cover_art.startswith(PNG_MAGIC) else MP4Cover.FORMAT_JPEG
            tags["covr"] = [MP4Cover(cover_art, imageformat=fmt)]

        audio.save()
