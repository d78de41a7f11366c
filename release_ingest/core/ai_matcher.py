"""AI batch matcher -- asks a chat-completion model to map files to tracks.

The model receives the whole file list and the canonical tracklist in one
request and must answer with a JSON array holding one
``{"trackNumber", "artist", "trackTitle"}`` object per file, in file order.
Any transport error, timeout or malformed answer raises
:class:`AiMatchingError`; the matching engine treats that as a miss.
"""

from __future__ import annotations

import json
from typing import Protocol

import requests

from release_ingest.core.exceptions import AiMatchingError
from release_ingest.models.track_match import TrackMatch
from release_ingest.utils.logger import get_logger
from release_ingest.utils.constants import (
    AI_TEMPERATURE,
    AI_TIMEOUT_SECONDS,
    DEFAULT_AI_API_URL,
    DEFAULT_AI_MODEL,
    HTTP_USER_AGENT,
)

logger = get_logger("core.ai_matcher")

SYSTEM_PROMPT = """\
You are a music librarian helping to match downloaded music files to official track titles.

Your task is to match ALL downloaded files (which may have messy or incorrect names)
to the correct tracks from an official album tracklist.

Consider:
- Track numbers in filenames:
  * Regular numeric: 01, 1, 02, 2, etc.
  * Vinyl notation: A1, A2, B1, B2, C1, etc.
    Side A contains the first half of the tracks, side B the second half.
- Similar track names (typos, different spelling, transliteration)
- File order in the list

Return ONLY a valid JSON array with one entry per file in the same order:
[
  {"trackNumber": 1, "artist": "Artist Name", "trackTitle": "Title 1"},
  {"trackNumber": 2, "artist": "Artist Name", "trackTitle": "Title 2"}
]

Rules:
- Return one match per file in the exact same order as files are listed
- trackNumber must be a valid integer from the tracklist (1, 2, 3, etc.)
- artist and trackTitle must exactly match the tracklist entry for that track
- The tracklist format is "Artist - Title" per line, extract both parts
- For vinyl notation (A1, B2): convert to sequential track numbers
- Use only straight quotes " in JSON, never typographic quotes
- Do not wrap JSON in markdown code blocks and never add explanations
"""

USER_PROMPT_TEMPLATE = """\
Album: {artist} - {album}

Official Tracklist:
{tracklist}

Downloaded files (match each one in order):
{files}

Return JSON array with matches in the same order.
"""

# Typographic quotes some models emit despite instructions
_QUOTE_REPLACEMENTS = {
    "“": '"',
    "”": '"',
    "„": '"',
    "«": '"',
    "»": '"',
}


class AiMatcher(Protocol):
    """Anything that can match a whole batch of files in one call."""

    def match_all(
        self,
        artist: str,
        title: str,
        tracklist: str,
        files: str,
    ) -> list[TrackMatch]:
        ...


def parse_matches(content: str) -> list[TrackMatch]:
    """Parse the model's answer into track matches.

    Markdown code fences and typographic quotes are tolerated.

    Args:
        content: Raw assistant message text.

    Returns:
        One TrackMatch per array element, in order.

    Raises:
        AiMatchingError: If the text is not a JSON array of match objects.
    """
    text = content.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0].strip()
    for fancy, plain in _QUOTE_REPLACEMENTS.items():
        text = text.replace(fancy, plain)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AiMatchingError(f"AI response is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise AiMatchingError("AI response is not a JSON array")

    matches: list[TrackMatch] = []
    for index, item in enumerate(data, start=1):
        if not isinstance(item, dict):
            raise AiMatchingError(f"AI match #{index} is not an object")
        number = item.get("trackNumber")
        if isinstance(number, bool) or not isinstance(number, int):
            raise AiMatchingError(f"AI match #{index} has no integer trackNumber")
        matches.append(TrackMatch(
            track_number=number,
            artist=str(item.get("artist") or ""),
            track_title=str(item.get("trackTitle") or ""),
        ))
    return matches


class HttpAiMatcher:
    """AI matcher backed by an OpenAI-compatible chat-completions endpoint."""

    def __init__(
        self,
        api_url: str = DEFAULT_AI_API_URL,
        api_key: str = "",
        model: str = DEFAULT_AI_MODEL,
        timeout: float = AI_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the matcher.

        Args:
            api_url: Full URL of the chat-completions endpoint.
            api_key: Bearer token (omitted from requests when empty).
            model: Model name.
            timeout: Request timeout in seconds. requests applies it to the
                connect and to each socket read, not to the total duration
                of the call.
            session: Optional pre-configured session (used by tests).
        """
        self._api_url = api_url
        self._model = model
        self._timeout = timeout

        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": HTTP_USER_AGENT})
        if api_key:
            self._session.headers.update({"Authorization": f"Bearer {api_key}"})

    def match_all(
        self,
        artist: str,
        title: str,
        tracklist: str,
        files: str,
    ) -> list[TrackMatch]:
        """Match every file of a release in a single request.

        Args:
            artist: Release artist.
            title: Release title.
            tracklist: Formatted canonical tracklist.
            files: Formatted, numbered file list.

        Returns:
            One TrackMatch per file, in file order.

        Raises:
            AiMatchingError: On any transport, HTTP or parsing failure.
        """
        payload = {
            "model": self._model,
            "temperature": AI_TEMPERATURE,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": USER_PROMPT_TEMPLATE.format(
                        artist=artist, album=title, tracklist=tracklist, files=files,
                    ),
                },
            ],
        }

        try:
            response = self._session.post(self._api_url, json=payload, timeout=self._timeout)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise AiMatchingError(f"AI request failed: {e}") from e
        except ValueError as e:
            raise AiMatchingError(f"AI endpoint returned invalid JSON: {e}") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise AiMatchingError("AI response has no message content") from e

        matches = parse_matches(content or "")
        logger.debug("AI matcher returned %d matches for '%s - %s'", len(matches), artist, title)
        return matches
