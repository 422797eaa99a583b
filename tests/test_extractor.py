"""
test_extractor.py — Tests for single-video extraction.

Unit tests (fast, no network):
    - resolve_video_id() for every supported URL shape + bare IDs
    - select_track() language order and manual/auto tie-break
    - fetch_transcript() end to end against a mocked Innertube API

Integration tests (need network, marked with @pytest.mark.integration):
    - Fetching a transcript from a real YouTube video
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest

from ytranscript.errors import (
    EmptyTrackError,
    InvalidVideoIdError,
    NoCaptionsError,
    RateLimitedError,
    TranscriptError,
)
from ytranscript.extractor import (
    extract_video_id,
    fetch_transcript,
    list_tracks,
    resolve_video_id,
    select_track,
)
from ytranscript.models import (
    CaptionTrack,
    FetchOptions,
    TrackKind,
    TranscriptSegment,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _track(lang: str, kind: TrackKind = TrackKind.MANUAL, url: str | None = None) -> CaptionTrack:
    return CaptionTrack(
        language_code=lang,
        kind=kind,
        name=None,
        base_url=url or f"https://www.youtube.com/api/timedtext?lang={lang}&kind={kind.value}",
    )


MANUAL = TrackKind.MANUAL
AUTO = TrackKind.AUTO_GENERATED


class FakeYouTube:
    """
    Minimal stand-in for the two Innertube endpoints.

    `tracks` is the raw captionTracks list the player returns; `events` maps
    a timedtext `lang` query value to the json3 events served for it.
    """

    def __init__(self, tracks: list[dict] | None, events: dict[str, list[dict]] | None = None) -> None:
        self.tracks = tracks
        self.events = events or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/youtubei/v1/player":
            if self.tracks is None:
                return httpx.Response(200, json={"playabilityStatus": {"status": "OK"}})
            return httpx.Response(200, json={
                "captions": {"playerCaptionsTracklistRenderer": {"captionTracks": self.tracks}},
            })
        if request.url.path == "/api/timedtext":
            lang = request.url.params["lang"]
            return httpx.Response(200, json={"events": self.events.get(lang, [])})
        return httpx.Response(404)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


def _raw_track(lang: str, asr: bool = False) -> dict:
    raw = {
        "languageCode": lang,
        "baseUrl": f"https://www.youtube.com/api/timedtext?v=dQw4w9WgXcQ&lang={lang}",
        "name": {"simpleText": lang},
    }
    if asr:
        raw["kind"] = "asr"
    return raw


# ---------------------------------------------------------------------------
# resolve_video_id — URL parsing
# ---------------------------------------------------------------------------

class TestResolveVideoId:
    """Tests for resolve_video_id covering every URL format + bare IDs."""

    def test_standard_watch_url(self) -> None:
        """Standard youtube.com/watch?v= URL."""
        assert resolve_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ") == "dQw4w9WgXcQ"

    def test_watch_url_with_extra_params(self) -> None:
        """Watch URL with additional query parameters like playlist or timestamp."""
        url = "https://www.youtube.com/watch?list=PLrAXtmErZgOeiKm4sgNOknGvNjby9efdf&v=dQw4w9WgXcQ&t=42"
        assert resolve_video_id(url) == "dQw4w9WgXcQ"

    def test_mobile_watch_url(self) -> None:
        """m.youtube.com watch pages are accepted."""
        assert resolve_video_id("https://m.youtube.com/watch?v=dQw4w9WgXcQ") == "dQw4w9WgXcQ"

    def test_short_url(self) -> None:
        """youtu.be short-link format."""
        assert resolve_video_id("https://youtu.be/dQw4w9WgXcQ") == "dQw4w9WgXcQ"

    def test_short_url_with_timestamp(self) -> None:
        """youtu.be link with a ?t= query."""
        assert resolve_video_id("https://youtu.be/dQw4w9WgXcQ?t=10") == "dQw4w9WgXcQ"

    def test_embed_url(self) -> None:
        """youtube.com/embed/ URL used in iframes."""
        assert resolve_video_id("https://www.youtube.com/embed/dQw4w9WgXcQ") == "dQw4w9WgXcQ"

    def test_shorts_url(self) -> None:
        """youtube.com/shorts/ URL."""
        assert resolve_video_id("https://www.youtube.com/shorts/dQw4w9WgXcQ") == "dQw4w9WgXcQ"

    def test_url_without_scheme(self) -> None:
        """URLs pasted without https:// still resolve."""
        assert resolve_video_id("youtube.com/watch?v=dQw4w9WgXcQ") == "dQw4w9WgXcQ"
        assert resolve_video_id("youtu.be/dQw4w9WgXcQ") == "dQw4w9WgXcQ"

    def test_http_without_www(self) -> None:
        """URL with http:// and no www prefix."""
        assert resolve_video_id("http://youtube.com/watch?v=dQw4w9WgXcQ") == "dQw4w9WgXcQ"

    def test_bare_id(self) -> None:
        """Raw 11-character video ID with no URL wrapper."""
        assert resolve_video_id("dQw4w9WgXcQ") == "dQw4w9WgXcQ"

    def test_bare_id_with_whitespace(self) -> None:
        """Bare ID with leading/trailing spaces should be trimmed."""
        assert resolve_video_id("  dQw4w9WgXcQ  ") == "dQw4w9WgXcQ"

    def test_id_with_hyphens_and_underscores(self) -> None:
        """IDs can contain hyphens and underscores (base64url alphabet)."""
        assert resolve_video_id("Ab_Cd-Ef_12") == "Ab_Cd-Ef_12"

    def test_idempotent(self) -> None:
        """Resolving an already-resolved ID returns it unchanged."""
        once = resolve_video_id("https://youtu.be/dQw4w9WgXcQ")
        assert resolve_video_id(once) == once

    @pytest.mark.parametrize("shape", [
        "https://www.youtube.com/watch?v={id}",
        "https://youtu.be/{id}",
        "https://www.youtube.com/embed/{id}",
    ])
    @pytest.mark.parametrize("video_id", ["dQw4w9WgXcQ", "_-_-_-_-_-_", "00000000000"])
    def test_url_shapes_match_bare_id(self, shape: str, video_id: str) -> None:
        """All accepted URL shapes resolve to the same ID as the bare string."""
        assert resolve_video_id(shape.format(id=video_id)) == resolve_video_id(video_id)

    @pytest.mark.parametrize("value", [
        "",
        "not-a-youtube-url",
        "dQw4w9WgXc",                                   # 10 chars
        "dQw4w9WgXcQQ",                                 # 12 chars
        "dQw4w9WgXc!",                                  # bad character
        "https://vimeo.com/watch?v=dQw4w9WgXcQ",        # wrong host
        "https://www.youtube.com/watch?x=dQw4w9WgXcQ",  # no v parameter
        "https://www.youtube.com/watch?v=short",        # malformed ID
        "https://youtu.be/",                            # no path segment
        "https://www.youtube.com/channel/UCuAXFkgsw1L7xaCfnd5JJOw",
        "https://notyoutube.com/embed/dQw4w9WgXcQ",
        "youtube.com.evil.example/watch?v=dQw4w9WgXcQ",  # look-alike host, no scheme
        "https://www.youtube.com.evil.example/embed/dQw4w9WgXcQ",
        "evil.example/youtu.be/dQw4w9WgXcQ",
    ])
    def test_invalid_inputs_raise(self, value: str) -> None:
        """Anything that isn't a YouTube video reference raises InvalidVideoIdError."""
        with pytest.raises(InvalidVideoIdError) as exc_info:
            resolve_video_id(value)
        assert exc_info.value.http_status == 400

    def test_extract_video_id_returns_none(self) -> None:
        """The non-raising variant returns None instead."""
        assert extract_video_id("https://vimeo.com/123") is None
        assert extract_video_id("https://youtu.be/dQw4w9WgXcQ") == "dQw4w9WgXcQ"


# ---------------------------------------------------------------------------
# select_track — language preference and tie-break
# ---------------------------------------------------------------------------

class TestSelectTrack:
    """Tests for the caption track selection rules."""

    def test_empty_catalog(self) -> None:
        """No tracks → None."""
        assert select_track([], ["en"]) is None

    @pytest.mark.parametrize("order", [0, 1])
    def test_manual_beats_auto_in_same_language(self, order: int) -> None:
        """Within one language the manual track wins, whatever the list order."""
        tracks = [_track("en", AUTO), _track("en", MANUAL)]
        if order:
            tracks.reverse()
        chosen = select_track(tracks, ["en"])
        assert chosen.kind is MANUAL

    def test_first_language_wins_over_later_manual(self) -> None:
        """An earlier language's auto track beats a later language's manual one."""
        tracks = [_track("es", AUTO), _track("en", MANUAL)]
        chosen = select_track(tracks, ["es", "en"])
        assert chosen == tracks[0]

    def test_fallback_to_first_track(self) -> None:
        """No preferred language matches → first track in the list."""
        tracks = [_track("fr", MANUAL)]
        assert select_track(tracks, ["de"]) == tracks[0]

    def test_fallback_ignores_kind(self) -> None:
        """The fallback takes the first track even if it's auto-generated."""
        tracks = [_track("ja", AUTO), _track("ko", MANUAL)]
        assert select_track(tracks, ["de"]) == tracks[0]

    def test_empty_language_list_uses_fallback(self) -> None:
        """With no preferences the first track is chosen."""
        tracks = [_track("pt", AUTO), _track("en", MANUAL)]
        assert select_track(tracks, []) == tracks[0]

    def test_prefix_match(self) -> None:
        """'en' matches regional variants like en-GB."""
        tracks = [_track("fr"), _track("en-GB")]
        assert select_track(tracks, ["en"]).language_code == "en-GB"

    def test_first_manual_in_list_order(self) -> None:
        """With several manual matches, the first listed one wins."""
        tracks = [_track("en-US", AUTO), _track("en-GB", MANUAL), _track("en", MANUAL)]
        assert select_track(tracks, ["en"]).language_code == "en-GB"

    def test_auto_only_language(self) -> None:
        """If the matched language has only auto tracks, the first one is used."""
        tracks = [_track("de", MANUAL), _track("en", AUTO), _track("en-US", AUTO)]
        assert select_track(tracks, ["en", "de"]).language_code == "en"

    def test_deterministic(self) -> None:
        """Same inputs always give the same track."""
        tracks = [_track("en", AUTO), _track("es", MANUAL), _track("en-US", MANUAL)]
        picks = {select_track(tracks, ["en", "es"]) for _ in range(20)}
        assert len(picks) == 1


# ---------------------------------------------------------------------------
# fetch_transcript — orchestration against a fake Innertube API
# ---------------------------------------------------------------------------

class TestFetchTranscript:
    """End-to-end tests for fetch_transcript with mocked HTTP."""

    def test_end_to_end(self) -> None:
        """Catalog with one manual track + two events → two normalized segments."""
        fake = FakeYouTube(
            tracks=[_raw_track("en")],
            events={"en": [
                {"tStartMs": 0, "dDurationMs": 5000, "segs": [{"utf8": "Hello "}, {"utf8": "world"}]},
                {"tStartMs": 5000, "dDurationMs": 3000, "segs": [{"utf8": "Welcome"}]},
            ]},
        )
        with fake.client() as client:
            transcript = fetch_transcript("https://youtu.be/dQw4w9WgXcQ", client=client)

        assert transcript.video_id == "dQw4w9WgXcQ"
        assert transcript.language_code == "en"
        assert transcript.is_auto_generated is False
        assert list(transcript.segments) == [
            TranscriptSegment("Hello world", 0.0, 5.0),
            TranscriptSegment("Welcome", 5.0, 3.0),
        ]
        assert len(fake.requests) == 2

    def test_respects_language_preference(self) -> None:
        """The track for the preferred language is the one downloaded."""
        fake = FakeYouTube(
            tracks=[_raw_track("en"), _raw_track("de", asr=True)],
            events={
                "en": [{"tStartMs": 0, "dDurationMs": 1, "segs": [{"utf8": "hello"}]}],
                "de": [{"tStartMs": 0, "dDurationMs": 1, "segs": [{"utf8": "hallo"}]}],
            },
        )
        options = FetchOptions(languages=("de", "en"))
        with fake.client() as client:
            transcript = fetch_transcript("dQw4w9WgXcQ", options, client=client)

        assert transcript.language_code == "de"
        assert transcript.is_auto_generated is True
        assert transcript.text == "hallo"

    def test_invalid_input_makes_no_request(self) -> None:
        """Bad input fails before any HTTP traffic."""
        fake = FakeYouTube(tracks=[])
        with fake.client() as client:
            with pytest.raises(InvalidVideoIdError):
                fetch_transcript("https://example.com/video", client=client)
        assert fake.requests == []

    def test_no_captions(self) -> None:
        """An empty catalog raises NoCaptionsError and skips the segment request."""
        fake = FakeYouTube(tracks=None)
        with fake.client() as client:
            with pytest.raises(NoCaptionsError):
                fetch_transcript("dQw4w9WgXcQ", client=client)
        assert len(fake.requests) == 1

    def test_empty_track(self) -> None:
        """A track whose events carry no fragments raises EmptyTrackError."""
        fake = FakeYouTube(
            tracks=[_raw_track("en")],
            events={"en": [{"tStartMs": 0, "dDurationMs": 1000}]},
        )
        with fake.client() as client:
            with pytest.raises(EmptyTrackError):
                fetch_transcript("dQw4w9WgXcQ", client=client)

    def test_propagates_upstream_errors(self) -> None:
        """Rate limiting on the catalog request propagates unchanged."""
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(429)))
        with client:
            with pytest.raises(RateLimitedError):
                fetch_transcript("dQw4w9WgXcQ", client=client)

    @pytest.mark.parametrize("tracks, events", [
        ([{"languageCode": 7, "baseUrl": "https://www.youtube.com/api/timedtext?lang=en"}], {}),
        ([_raw_track("en")], {"en": [{"tStartMs": "abc", "dDurationMs": 1, "segs": [{"utf8": "x"}]}]}),
        ([_raw_track("en")], {"en": [{"tStartMs": 0, "dDurationMs": 1, "segs": [{"utf8": 3}]}]}),
    ])
    def test_malformed_upstream_is_a_transcript_error(self, tracks: list, events: dict) -> None:
        """Wrongly typed upstream fields surface as TranscriptError subclasses."""
        fake = FakeYouTube(tracks=tracks, events=events)
        with fake.client() as client:
            with pytest.raises(TranscriptError):
                fetch_transcript("dQw4w9WgXcQ", client=client)

    def test_null_fragment_text(self) -> None:
        """utf8: null fragments are read as empty text."""
        fake = FakeYouTube(
            tracks=[_raw_track("en")],
            events={"en": [{"tStartMs": 0, "dDurationMs": 1000,
                            "segs": [{"utf8": None}, {"utf8": "hi"}]}]},
        )
        with fake.client() as client:
            transcript = fetch_transcript("dQw4w9WgXcQ", client=client)
        assert transcript.text == "hi"

    def test_creates_and_closes_own_client(self) -> None:
        """Without a client argument, one is opened from the options and closed."""
        fake = FakeYouTube(
            tracks=[_raw_track("en")],
            events={"en": [{"tStartMs": 0, "dDurationMs": 1, "segs": [{"utf8": "hi"}]}]},
        )
        client = fake.client()
        options = FetchOptions(timeout=7.0, proxy="http://proxy.local:8080")

        with patch("ytranscript.extractor.innertube.open_client", return_value=client) as mock_open:
            fetch_transcript("dQw4w9WgXcQ", options)

        mock_open.assert_called_once_with(options)
        assert client.is_closed

    def test_borrowed_client_stays_open(self) -> None:
        """A client passed in by the caller is not closed."""
        fake = FakeYouTube(
            tracks=[_raw_track("en")],
            events={"en": [{"tStartMs": 0, "dDurationMs": 1, "segs": [{"utf8": "hi"}]}]},
        )
        client = fake.client()
        fetch_transcript("dQw4w9WgXcQ", client=client)
        assert not client.is_closed
        client.close()


# ---------------------------------------------------------------------------
# list_tracks — catalog listing
# ---------------------------------------------------------------------------

class TestListTracks:
    """list_tracks treats a video without captions as an empty result."""

    def test_no_captions_is_not_an_error(self) -> None:
        fake = FakeYouTube(tracks=None)
        with fake.client() as client:
            assert list_tracks("dQw4w9WgXcQ", client=client) == []

    def test_lists_tracks(self) -> None:
        fake = FakeYouTube(tracks=[_raw_track("en"), _raw_track("en", asr=True)])
        with fake.client() as client:
            tracks = list_tracks("https://www.youtube.com/watch?v=dQw4w9WgXcQ", client=client)
        assert [t.is_auto_generated for t in tracks] == [False, True]

    def test_invalid_input(self) -> None:
        with pytest.raises(InvalidVideoIdError):
            list_tracks("nope", client=MagicMock())


# ---------------------------------------------------------------------------
# Integration — real network
# ---------------------------------------------------------------------------

@pytest.mark.integration
class TestIntegration:
    """Hits the real YouTube API.  Run with: pytest -m integration"""

    def test_fetch_real_transcript(self) -> None:
        transcript = fetch_transcript("dQw4w9WgXcQ")
        assert transcript.video_id == "dQw4w9WgXcQ"
        assert len(transcript) > 0
