"""
errors.py — Exception hierarchy for ytranscript.

Every exception carries an `http_status` attribute so the FastAPI error
handler can translate library-level errors directly into the correct HTTP
response code without a separate mapping table.

Hierarchy:
    TranscriptError (base, 500)
    ├── InvalidVideoIdError (400)
    ├── NoCaptionsError (404)
    ├── NoSuitableTrackError (404)
    ├── EmptyTrackError (404)
    ├── RateLimitedError (429)
    ├── AccessDeniedError (403)
    ├── RequestTimeoutError (504)
    └── TransportError (502)
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class TranscriptError(Exception):
    """
    Root exception for all transcript-related errors.

    Attributes:
        message:     Human-readable description of what went wrong.
        http_status: Suggested HTTP status code for the API layer.
    """

    def __init__(self, message: str, http_status: int = 500) -> None:
        super().__init__(message)
        self.message = message
        self.http_status = http_status


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------

class InvalidVideoIdError(TranscriptError):
    """
    Raised when a string can't be resolved to an 11-character video ID.

    Raised before any network request is made.  Maps to HTTP 400.
    """

    def __init__(self, value: str) -> None:
        super().__init__(
            message=f"Invalid video ID or URL: {value!r}",
            http_status=400,
        )
        self.value = value


# ---------------------------------------------------------------------------
# Caption availability
# ---------------------------------------------------------------------------

class NoCaptionsError(TranscriptError):
    """
    Raised when the player response lists zero caption tracks.

    Happens for videos where the creator disabled captions and YouTube
    hasn't generated automatic ones.  Maps to HTTP 404.
    """

    def __init__(self, video_id: str) -> None:
        super().__init__(
            message=f"No captions available for video: {video_id}",
            http_status=404,
        )
        self.video_id = video_id


class NoSuitableTrackError(TranscriptError):
    """
    Raised when tracks exist but the selector picked none of them.

    Not reachable with the default selector (it falls back to the first
    track), but stricter selection policies can raise it.
    """

    def __init__(self, video_id: str, requested: list[str]) -> None:
        langs = ", ".join(requested)
        super().__init__(
            message=f"No suitable caption track in [{langs}] for video: {video_id}",
            http_status=404,
        )
        self.video_id = video_id
        self.requested = requested


class EmptyTrackError(TranscriptError):
    """Raised when a selected track was fetched but contained no segments."""

    def __init__(self, video_id: str, language_code: str) -> None:
        super().__init__(
            message=f"Caption track '{language_code}' for video {video_id} has no content",
            http_status=404,
        )
        self.video_id = video_id
        self.language_code = language_code


# ---------------------------------------------------------------------------
# Upstream / transport errors
# ---------------------------------------------------------------------------

class RateLimitedError(TranscriptError):
    """
    Raised when YouTube answers with HTTP 429 Too Many Requests.

    The bulk scheduler's batch pacing exists to keep this from happening;
    when it does, lowering concurrency or raising the pause usually helps.
    """

    def __init__(self, url: str) -> None:
        super().__init__(
            message=f"Rate limited by YouTube (HTTP 429) at {url}",
            http_status=429,
        )
        self.url = url


class AccessDeniedError(TranscriptError):
    """Raised on HTTP 401/403 (private, age-restricted, members-only)."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(
            message=f"Access denied by YouTube (HTTP {status_code}) at {url}",
            http_status=403,
        )
        self.url = url
        self.status_code = status_code


class RequestTimeoutError(TranscriptError):
    """Raised when a single request exceeds its timeout.  Maps to HTTP 504."""

    def __init__(self, url: str, timeout: float) -> None:
        super().__init__(
            message=f"Request timed out after {timeout:g}s: {url}",
            http_status=504,
        )
        self.url = url
        self.timeout = timeout


class TransportError(TranscriptError):
    """
    Raised for any other network-level failure.

    Covers DNS failures, connection resets, unexpected status codes and
    response bodies that aren't valid JSON.  Maps to HTTP 502 because the
    failure is upstream.
    """

    def __init__(self, url: str, reason: str = "") -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(
            message=f"Request to {url} failed{detail}",
            http_status=502,
        )
        self.url = url
