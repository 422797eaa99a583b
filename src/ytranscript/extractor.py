"""
extractor.py — Single-video transcript extraction.

This is the heart of ytranscript.  It turns whatever the user typed into a
transcript in four steps:

    1. Parse the YouTube URL / ID     → resolve_video_id()
    2. List available caption tracks  → innertube.fetch_catalog()
    3. Pick the best track            → select_track()
    4. Download and normalize it      → innertube.fetch_segments()

fetch_transcript() chains them.  It makes one attempt and never retries;
retry and pacing policy belong to the bulk processor or the caller.
"""

from __future__ import annotations

import contextlib
import logging
import re
from typing import Iterator, Sequence
from urllib.parse import parse_qs, urlsplit

import httpx

from ytranscript import innertube
from ytranscript.errors import (
    InvalidVideoIdError,
    NoCaptionsError,
    NoSuitableTrackError,
)
from ytranscript.models import (
    CaptionTrack,
    FetchOptions,
    Transcript,
    TrackKind,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# A bare video ID is exactly 11 characters from the base64url alphabet.
_BARE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")

# Hosts that serve the watch page (?v=ID) and the path-prefixed shapes.
_WATCH_HOSTS = frozenset({
    "youtube.com",
    "www.youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "youtube-nocookie.com",
    "www.youtube-nocookie.com",
})

# Short share links: https://youtu.be/ID
_SHORT_HOSTS = frozenset({"youtu.be", "www.youtu.be"})

# Path prefixes that are followed directly by the ID, e.g. /embed/ID.
_PATH_PREFIXES = frozenset({"embed", "shorts", "v", "live"})


# ---------------------------------------------------------------------------
# URL / ID parsing
# ---------------------------------------------------------------------------

def _id_from_url(value: str) -> str | None:
    # urlsplit only finds the host when there's a scheme or a leading "//".
    # Anything can be prefixed this way; the exact host match below is what
    # rejects look-alikes such as "youtube.com.evil.example".
    if "://" not in value and not value.startswith("//"):
        value = "https://" + value

    try:
        parts = urlsplit(value)
    except ValueError:
        return None

    host = (parts.hostname or "").lower()
    path_segments = [seg for seg in parts.path.split("/") if seg]

    if host in _SHORT_HOSTS:
        candidate = path_segments[0] if path_segments else None
    elif host in _WATCH_HOSTS:
        if parts.path.rstrip("/") == "/watch":
            candidate = parse_qs(parts.query).get("v", [None])[0]
        elif len(path_segments) >= 2 and path_segments[0] in _PATH_PREFIXES:
            candidate = path_segments[1]
        else:
            candidate = None
    else:
        return None

    if candidate and _BARE_ID_PATTERN.match(candidate):
        return candidate
    return None


def extract_video_id(value: str) -> str | None:
    """
    Return the video ID in `value`, or None if there isn't one.

    The non-raising twin of resolve_video_id(), for loaders that skip bad
    rows instead of failing.
    """
    value = value.strip()
    if _BARE_ID_PATTERN.match(value):
        return value
    return _id_from_url(value)


def resolve_video_id(value: str) -> str:
    """
    Extract a YouTube video ID from a URL string, or validate a raw 11-char ID.

    Accepts:
        - a bare ID:                     dQw4w9WgXcQ
        - watch pages:                   https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42
        - short links:                   https://youtu.be/dQw4w9WgXcQ
        - embed / shorts / v / live:     https://www.youtube.com/embed/dQw4w9WgXcQ

    The scheme is optional.  Resolving an already-canonical ID returns it
    unchanged.

    Args:
        value: A YouTube URL or a raw video ID.

    Returns:
        The 11-character video ID.

    Raises:
        InvalidVideoIdError: If the string isn't a recognisable YouTube reference.
    """
    video_id = extract_video_id(value)
    if video_id is None:
        raise InvalidVideoIdError(value)
    return video_id


# ---------------------------------------------------------------------------
# Track selection
# ---------------------------------------------------------------------------

def select_track(
    tracks: Sequence[CaptionTrack],
    languages: Sequence[str],
) -> CaptionTrack | None:
    """
    Choose which caption track to download.

    Languages are tried strictly in order, matching by prefix ("en" matches
    "en", "en-US", "en-GB").  Within the first language that matches
    anything, a manual track beats an auto-generated one.  A later language
    never wins over an earlier one, even if only the later one has a manual
    track.  If no language matches, the first listed track is returned
    regardless of kind.

    Args:
        tracks:    Tracks in the order YouTube listed them.
        languages: Preferred language codes, most preferred first.

    Returns:
        The chosen track, or None if `tracks` is empty.
    """
    if not tracks:
        return None

    for lang in languages:
        matching = [t for t in tracks if t.language_code.startswith(lang)]
        if not matching:
            continue
        for track in matching:
            if track.kind is TrackKind.MANUAL:
                return track
        return matching[0]

    return tracks[0]


# ---------------------------------------------------------------------------
# Transcript fetching
# ---------------------------------------------------------------------------

@contextlib.contextmanager
def _client_for(
    options: FetchOptions,
    client: httpx.Client | None,
) -> Iterator[httpx.Client]:
    # Borrowed clients are left open; ones we create are closed on exit.
    if client is not None:
        yield client
        return
    with innertube.open_client(options) as owned:
        yield owned


def list_tracks(
    value: str,
    options: FetchOptions | None = None,
    client: httpx.Client | None = None,
) -> list[CaptionTrack]:
    """
    List the caption tracks of a video without downloading any of them.

    Unlike fetch_transcript(), a video without captions is not an error
    here: the result is simply an empty list.

    Raises:
        InvalidVideoIdError: If `value` isn't a YouTube URL or ID.
        TranscriptError:     (or subclass) if the request fails.
    """
    options = options or FetchOptions()
    video_id = resolve_video_id(value)
    with _client_for(options, client) as http:
        return innertube.fetch_catalog(video_id, options, http)


def fetch_transcript(
    value: str,
    options: FetchOptions | None = None,
    client: httpx.Client | None = None,
) -> Transcript:
    """
    One-call interface: parse URL → list tracks → select → fetch segments.

    Args:
        value:   A YouTube URL or raw video ID.
        options: Languages, timeout and proxy.  Defaults to English, 30s,
                 no proxy.
        client:  Optional httpx client to reuse (the bulk processor shares
                 one across workers).  When omitted, a client is created
                 from `options` and closed before returning.

    Returns:
        The Transcript for the selected track.

    Raises:
        InvalidVideoIdError:  Bad input; no request was made.
        NoCaptionsError:      The video lists no caption tracks.
        NoSuitableTrackError: The selector declined every track.
        EmptyTrackError:      The selected track has no segments.
        RateLimitedError, AccessDeniedError, RequestTimeoutError,
        TransportError:       The upstream request failed.
    """
    options = options or FetchOptions()
    video_id = resolve_video_id(value)

    with _client_for(options, client) as http:
        tracks = innertube.fetch_catalog(video_id, options, http)
        if not tracks:
            raise NoCaptionsError(video_id)

        track = select_track(tracks, options.languages)
        if track is None:
            raise NoSuitableTrackError(video_id, list(options.languages))
        logger.debug(
            "Video %s: selected %s track '%s'",
            video_id, track.kind.name.lower(), track.language_code,
        )

        segments = innertube.fetch_segments(track, options, http, video_id=video_id)

    return Transcript(
        video_id=video_id,
        language_code=track.language_code,
        is_auto_generated=track.is_auto_generated,
        segments=tuple(segments),
    )
