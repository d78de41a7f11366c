"""Named constants for Release Ingest. No magic numbers."""

# --- Application ---
APP_NAME = "Release Ingest"
APP_VERSION = "0.1.0"

# --- Supported Audio Extensions ---
SUPPORTED_EXTENSIONS = frozenset({
    ".mp3",
    ".flac",
    ".m4a",
    ".ogg",
    ".wav",
    ".opus",
    ".aac",
})

# Containers whose tags are written as ID3 frames
ID3_EXTENSIONS = frozenset({".mp3", ".aac"})
VORBIS_EXTENSIONS = frozenset({".flac", ".ogg", ".opus"})
MP4_EXTENSIONS = frozenset({".m4a"})
WAVE_EXTENSIONS = frozenset({".wav"})

# --- Matching ---
# Assumed tracks per vinyl side when the release has no canonical tracklist
DEFAULT_TRACKS_PER_SIDE = 10
NO_TRACKLIST_TEXT = "No tracklist available"

# --- AI Matcher ---
DEFAULT_AI_MODEL = "gpt-4o-mini"
DEFAULT_AI_API_URL = "https://api.openai.com/v1/chat/completions"
AI_TIMEOUT_SECONDS = 60
AI_TEMPERATURE = 0.0

# --- HTTP ---
COVER_ART_TIMEOUT_SECONDS = 15  # Cover art download timeout
HTTP_USER_AGENT = f"{APP_NAME.replace(' ', '')}/{APP_VERSION}"

# --- Image Signatures ---
JPEG_MAGIC = b"\xff\xd8\xff"
PNG_MAGIC = b"\x89PNG"

# --- File Organization ---
COVER_FILENAME = "cover.jpg"
ARCHIVE_PREFIX = "old_"
ARCHIVE_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
MAX_FOLDER_NAME_LENGTH = 200
UNKNOWN_FOLDER_NAME = "unknown"
MIXED_FORMAT = "mixed"
DIGITAL_FORMAT = "digital"
TRACK_FILENAME_TEMPLATE = "{number:02d}. {artist} - {title}{suffix}"

# --- Sidecar Metadata ---
SIDECAR_FILENAME = ".release-metadata.json"
SIDECAR_TEMP_SUFFIX = ".tmp"

# --- Processing ---
DEFAULT_PROCESSING_VERSION = 1

# --- ID3 Tag Constants ---
ID3_ENCODING_UTF8 = 3
ID3_PICTURE_TYPE_COVER_FRONT = 3

# --- Tag Values ---
GENRE_SEPARATOR = ";"
COMMENT_SEPARATOR = ", "
TAG_RELEASE_ID = "RELEASEID"
TAG_SOURCE = "SOURCE"
TAG_RELEASE_YEARS = "RELEASEYEARS"
TAG_LABEL = "LABEL"

# --- Paths ---
DEFAULT_CONFIG_FILENAME = "config.yaml"
DEFAULT_DB_FILENAME = "release_ingest.db"
