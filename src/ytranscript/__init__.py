"""
ytranscript — Fetch YouTube transcripts, one video or a whole watch history.

Public API:
    fetch_transcript()      URL or ID → Transcript (one attempt, no retries).
    list_tracks()           URL or ID → available caption tracks.
    resolve_video_id()      Parse a YouTube URL or validate a bare video ID.
    select_track()          Pick a caption track by language preference.
    process_videos()        Bulk fetch; returns every result in input order.
    stream_videos()         Bulk fetch; yields results as they complete.
    load_watch_history()    Candidates from Takeout watch-history.json.
    load_watch_later()      Candidates from Takeout watch-later CSV.
    from_video_ids()        Candidates from IDs / URLs.
    merge_video_sources()   De-duplicate candidate lists (first one wins).
    load_processed_ids()    IDs already in a JSONL log, for resuming.

Exception hierarchy (all importable from this package):
    TranscriptError              Base exception for all transcript errors.
    ├── InvalidVideoIdError      Input isn't a YouTube URL or ID.
    ├── NoCaptionsError          Video lists no caption tracks.
    ├── NoSuitableTrackError     No track acceptable to the selector.
    ├── EmptyTrackError          Selected track has no captions in it.
    ├── RateLimitedError         YouTube answered 429.
    ├── AccessDeniedError        YouTube answered 401/403.
    ├── RequestTimeoutError      A request timed out.
    └── TransportError           Any other network or response failure.

Usage:
    from ytranscript import fetch_transcript, FetchOptions
    transcript = fetch_transcript("https://youtu.be/dQw4w9WgXcQ",
                                  FetchOptions(languages=("de", "en")))
    print(transcript.text)
"""

from ytranscript.errors import (
    AccessDeniedError,
    EmptyTrackError,
    InvalidVideoIdError,
    NoCaptionsError,
    NoSuitableTrackError,
    RateLimitedError,
    RequestTimeoutError,
    TranscriptError,
    TransportError,
)
from ytranscript.extractor import (
    extract_video_id,
    fetch_transcript,
    list_tracks,
    resolve_video_id,
    select_track,
)
from ytranscript.loaders import (
    from_video_ids,
    load_processed_ids,
    load_watch_history,
    load_watch_later,
    merge_video_sources,
)
from ytranscript.models import (
    BulkOptions,
    CandidateVideo,
    CaptionTrack,
    ChannelRef,
    FetchOptions,
    Provenance,
    TrackKind,
    Transcript,
    TranscriptResult,
    TranscriptSegment,
)
from ytranscript.outputs import JsonlWriter, write_csv, write_jsonl
from ytranscript.processor import process_videos, stream_videos

__all__ = [
    "fetch_transcript",
    "list_tracks",
    "resolve_video_id",
    "extract_video_id",
    "select_track",
    "process_videos",
    "stream_videos",
    "load_watch_history",
    "load_watch_later",
    "from_video_ids",
    "merge_video_sources",
    "load_processed_ids",
    "JsonlWriter",
    "write_jsonl",
    "write_csv",
    "BulkOptions",
    "CandidateVideo",
    "CaptionTrack",
    "ChannelRef",
    "FetchOptions",
    "Provenance",
    "TrackKind",
    "Transcript",
    "TranscriptResult",
    "TranscriptSegment",
    "TranscriptError",
    "InvalidVideoIdError",
    "NoCaptionsError",
    "NoSuitableTrackError",
    "EmptyTrackError",
    "RateLimitedError",
    "AccessDeniedError",
    "RequestTimeoutError",
    "TransportError",
]
