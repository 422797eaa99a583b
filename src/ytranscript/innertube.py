"""
innertube.py — Thin client for YouTube's undocumented Innertube endpoints.

Two requests make up a transcript fetch:

    1. POST /youtubei/v1/player      → list of caption tracks  (fetch_catalog)
    2. GET  <track baseUrl>&fmt=json3 → timed caption events    (fetch_segments)

Both responses are parsed into the flat dataclasses in models.py right here,
so nothing outside this module ever sees the nested renderer JSON.

Every call makes exactly one request and never retries.  Transport problems
are mapped onto the TranscriptError hierarchy:

    HTTP 429              → RateLimitedError
    HTTP 401 / 403        → AccessDeniedError
    other non-2xx         → TransportError
    httpx timeout         → RequestTimeoutError
    other httpx failures  → TransportError
    body isn't JSON       → TransportError
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ytranscript.errors import (
    AccessDeniedError,
    EmptyTrackError,
    RateLimitedError,
    RequestTimeoutError,
    TransportError,
)
from ytranscript.models import (
    CaptionTrack,
    FetchOptions,
    TrackKind,
    TranscriptSegment,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PLAYER_URL = "https://www.youtube.com/youtubei/v1/player?prettyPrint=false"

# The player endpoint rejects requests that don't look like they come from
# the web client, so both the User-Agent and the client context matter.
_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
_CLIENT_NAME = "WEB"
_CLIENT_VERSION = "2.20240101.00.00"

_BASE_HEADERS = {
    "User-Agent": _USER_AGENT,
    "Accept-Language": "en-US,en;q=0.9",
}

# Timedtext format: json3 gives structured events instead of XML markup.
_TIMEDTEXT_FORMAT = "json3"


# ---------------------------------------------------------------------------
# Client setup
# ---------------------------------------------------------------------------

def open_client(options: FetchOptions) -> httpx.Client:
    """
    Build an httpx.Client configured from FetchOptions.

    Callers own the returned client and must close it (it's a context
    manager).  The bulk processor shares one client across its worker
    threads; httpx clients are safe to use that way.
    """
    return httpx.Client(
        timeout=options.timeout,
        proxy=options.proxy,
        headers=_BASE_HEADERS,
        follow_redirects=True,
    )


def _redact(url: str) -> str:
    """Drop the query string; timedtext URLs carry signatures we shouldn't log."""
    return url.split("?", 1)[0]


def _send(
    client: httpx.Client,
    method: str,
    url: str,
    timeout: float,
    **kwargs: Any,
) -> httpx.Response:
    """Issue one request and translate transport/status failures."""
    shown = _redact(url)
    logger.debug("%s %s", method, shown)

    try:
        response = client.request(method, url, headers=_BASE_HEADERS, timeout=timeout, **kwargs)
    except httpx.TimeoutException as exc:
        raise RequestTimeoutError(shown, timeout) from exc
    except httpx.HTTPError as exc:
        raise TransportError(shown, str(exc) or type(exc).__name__) from exc

    status = response.status_code
    if status == 429:
        raise RateLimitedError(shown)
    if status in (401, 403):
        raise AccessDeniedError(shown, status)
    if not response.is_success:
        raise TransportError(shown, f"HTTP {status}")
    return response


def _json_body(response: httpx.Response, url: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise TransportError(_redact(url), "response body is not valid JSON") from exc


# ---------------------------------------------------------------------------
# Caption catalog
# ---------------------------------------------------------------------------

def _track_name(raw: dict[str, Any]) -> str | None:
    # Display names come either as {"simpleText": ...} or {"runs": [{"text": ...}]}.
    name = raw.get("name")
    if not isinstance(name, dict):
        return None
    simple = name.get("simpleText")
    if isinstance(simple, str) and simple:
        return simple
    runs = name.get("runs")
    if not isinstance(runs, list):
        return None
    joined = "".join(
        run["text"] for run in runs
        if isinstance(run, dict) and isinstance(run.get("text"), str)
    )
    return joined or None


def parse_catalog(data: Any) -> list[CaptionTrack]:
    """
    Extract caption tracks from a player response.

    A response without the captions structure is a video with no captions,
    not an error, so this returns an empty list in that case.  Tracks
    missing a language code or URL, or carrying them as anything other
    than strings, are skipped.

    Args:
        data: The decoded JSON body of the player endpoint.

    Returns:
        Tracks in the order YouTube listed them.
    """
    if not isinstance(data, dict):
        return []

    captions = data.get("captions")
    if not isinstance(captions, dict):
        return []
    renderer = captions.get("playerCaptionsTracklistRenderer")
    if not isinstance(renderer, dict):
        return []
    raw_tracks = renderer.get("captionTracks")
    if not isinstance(raw_tracks, list):
        return []

    tracks: list[CaptionTrack] = []
    for raw in raw_tracks:
        if not isinstance(raw, dict):
            continue
        language_code = raw.get("languageCode")
        base_url = raw.get("baseUrl")
        if not isinstance(language_code, str) or not isinstance(base_url, str):
            logger.debug("Skipping caption track with malformed fields: %r", raw)
            continue
        if not language_code or not base_url:
            continue

        # "asr" marks speech-recognition tracks; no kind at all means manual.
        kind = TrackKind.AUTO_GENERATED if raw.get("kind") == "asr" else TrackKind.MANUAL
        tracks.append(CaptionTrack(
            language_code=language_code,
            kind=kind,
            name=_track_name(raw),
            base_url=base_url,
        ))
    return tracks


def fetch_catalog(
    video_id: str,
    options: FetchOptions,
    client: httpx.Client,
) -> list[CaptionTrack]:
    """
    List the caption tracks available for a video.

    Args:
        video_id: An already-validated 11-character video ID.
        options:  Fetch options (only `timeout` is read here; the proxy is
                  configured on the client).
        client:   The httpx client to send the request with.

    Returns:
        Available tracks, possibly empty.

    Raises:
        RateLimitedError, AccessDeniedError, RequestTimeoutError,
        TransportError: On any failure of the single request.
    """
    payload = {
        "context": {
            "client": {
                "clientName": _CLIENT_NAME,
                "clientVersion": _CLIENT_VERSION,
            },
        },
        "videoId": video_id,
    }
    response = _send(client, "POST", PLAYER_URL, options.timeout, json=payload)
    tracks = parse_catalog(_json_body(response, PLAYER_URL))
    logger.debug("Video %s lists %d caption track(s)", video_id, len(tracks))
    return tracks


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------

def _ms_to_secs(value: Any) -> float:
    # int / int is correctly rounded, so 1234 ms gives exactly 1.234.
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"malformed millisecond value: {value!r}")
    return int(value) / 1000


def _fragment_text(frag: Any) -> str:
    if not isinstance(frag, dict):
        return ""
    text = frag.get("utf8") or ""
    if not isinstance(text, str):
        raise ValueError(f"malformed caption fragment: {frag!r}")
    return text


def parse_segments(payload: Any) -> list[TranscriptSegment]:
    """
    Convert a json3 timedtext payload into transcript segments.

    Events without any `segs` fragments are timing/style markers and are
    dropped.  Fragment text is concatenated as-is, embedded newlines
    included.  An event with fragments that concatenate to "" is kept: it
    is an explicit empty caption, not missing data.  A null `utf8` counts
    as empty text.

    Args:
        payload: The decoded JSON body of the timedtext endpoint.

    Returns:
        Segments in upstream (chronological) order.

    Raises:
        ValueError: An event carries times or text of the wrong type.
    """
    if not isinstance(payload, dict):
        return []

    events = payload.get("events")
    if not isinstance(events, list):
        return []

    segments: list[TranscriptSegment] = []
    for event in events:
        if not isinstance(event, dict):
            continue
        fragments = event.get("segs")
        if not fragments:
            continue
        if not isinstance(fragments, list):
            raise ValueError(f"malformed segs in timedtext event: {fragments!r}")

        text = "".join(_fragment_text(frag) for frag in fragments)
        segments.append(TranscriptSegment(
            text=text,
            start=_ms_to_secs(event.get("tStartMs")),
            duration=_ms_to_secs(event.get("dDurationMs")),
        ))
    return segments


def fetch_segments(
    track: CaptionTrack,
    options: FetchOptions,
    client: httpx.Client,
    video_id: str = "",
) -> list[TranscriptSegment]:
    """
    Download and normalize the segments of one caption track.

    Args:
        track:    The track chosen by the selector.
        options:  Fetch options (`timeout` is read here).
        client:   The httpx client to send the request with.
        video_id: Used only for the EmptyTrackError message.

    Returns:
        A non-empty list of segments.

    Raises:
        EmptyTrackError: The track was fetched but contained no captions.
        RateLimitedError, AccessDeniedError, RequestTimeoutError,
        TransportError: On failure of the request itself, or when the body
                        is JSON but not a usable timedtext payload.
    """
    response = _send(
        client, "GET", track.base_url, options.timeout,
        params={"fmt": _TIMEDTEXT_FORMAT},
    )
    try:
        segments = parse_segments(_json_body(response, track.base_url))
    except ValueError as exc:
        raise TransportError(_redact(track.base_url), "malformed timedtext event") from exc
    if not segments:
        raise EmptyTrackError(video_id, track.language_code)
    return segments
