"""
formatters.py — Render a Transcript as text, JSON, markdown, SRT or WebVTT.

All formatters are pure functions of a Transcript (or anything iterable
yielding segments with .text, .start and .duration).
"""

from __future__ import annotations

from typing import Iterable

from ytranscript.models import Transcript, TranscriptSegment

FORMATS = ("text", "json", "doc", "srt", "vtt")

# Paragraph boundary interval for the "doc" format.  A new paragraph starts
# once a segment begins this many seconds after the paragraph's first one.
_DOC_PARAGRAPH_INTERVAL_SECS = 30


# ---------------------------------------------------------------------------
# Timestamp helpers
# ---------------------------------------------------------------------------

def _seconds_to_mmss(seconds: float) -> str:
    """
    Convert a timestamp in seconds to MM:SS.

    Values past an hour keep counting minutes (3661.0 → "61:01").
    """
    total = int(seconds)
    mins, secs = divmod(total, 60)
    return f"{mins:02d}:{secs:02d}"


def _clock(seconds: float, separator: str) -> str:
    """HH:MM:SS<sep>mmm, as used by SRT (",") and WebVTT (".")."""
    total_ms = round(seconds * 1000)
    hours, rest = divmod(total_ms, 3_600_000)
    mins, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return f"{hours:02d}:{mins:02d}:{secs:02d}{separator}{millis:03d}"


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------

def format_text(transcript: Iterable[TranscriptSegment], timestamps: bool = False) -> str:
    """
    One line per segment, optionally prefixed with a [MM:SS] timestamp.

    Args:
        transcript: A Transcript or any iterable of segments.
        timestamps: Prefix each line with its start time.

    Returns:
        The joined text; an empty string for an empty transcript.
    """
    if timestamps:
        return "\n".join(
            f"[{_seconds_to_mmss(seg.start)}] {seg.text}" for seg in transcript
        )
    return "\n".join(seg.text for seg in transcript)


def format_json(transcript: Transcript) -> dict:
    """
    Build a JSON-serialisable dict: video_id, language_code,
    is_auto_generated, segment_count and segments (text/start/duration).
    """
    return transcript.to_dict()


def format_doc(transcript: Iterable[TranscriptSegment]) -> str:
    """
    Convert segments into a readable markdown document.

    Segments are joined with spaces into flowing paragraphs, with a new
    paragraph starting every ~30 seconds.  Each paragraph is prefixed with
    a bold **[MM:SS]** timestamp marking its start, and paragraphs are
    separated by blank lines.

    Returns:
        Markdown text, or an empty string if there are no segments.
    """
    paragraphs: list[str] = []
    current_texts: list[str] = []
    paragraph_start: float | None = None

    for seg in transcript:
        if paragraph_start is None:
            paragraph_start = seg.start
            current_texts.append(seg.text)
        elif seg.start - paragraph_start >= _DOC_PARAGRAPH_INTERVAL_SECS:
            paragraphs.append(f"**[{_seconds_to_mmss(paragraph_start)}]** {' '.join(current_texts)}")
            paragraph_start = seg.start
            current_texts = [seg.text]
        else:
            current_texts.append(seg.text)

    if current_texts and paragraph_start is not None:
        paragraphs.append(f"**[{_seconds_to_mmss(paragraph_start)}]** {' '.join(current_texts)}")

    return "\n\n".join(paragraphs)


def format_srt(transcript: Iterable[TranscriptSegment]) -> str:
    """
    Render SubRip: numbered cues separated by blank lines.

        1
        00:00:00,000 --> 00:00:05,000
        Hello world
    """
    cues = []
    for index, seg in enumerate(transcript, start=1):
        start = _clock(seg.start, ",")
        end = _clock(seg.start + seg.duration, ",")
        cues.append(f"{index}\n{start} --> {end}\n{seg.text}")
    return "\n\n".join(cues) + ("\n" if cues else "")


def format_vtt(transcript: Iterable[TranscriptSegment]) -> str:
    """Render WebVTT: the WEBVTT header followed by un-numbered cues."""
    cues = ["WEBVTT"]
    for seg in transcript:
        start = _clock(seg.start, ".")
        end = _clock(seg.start + seg.duration, ".")
        cues.append(f"{start} --> {end}\n{seg.text}")
    return "\n\n".join(cues) + "\n"


def render(transcript: Transcript, fmt: str, timestamps: bool = False) -> str | dict:
    """
    Dispatch to the formatter named by `fmt`.

    Returns a dict for "json" and a string for everything else.

    Raises:
        ValueError: If fmt isn't one of FORMATS.
    """
    if fmt == "json":
        return format_json(transcript)
    if fmt == "doc":
        return format_doc(transcript)
    if fmt == "srt":
        return format_srt(transcript)
    if fmt == "vtt":
        return format_vtt(transcript)
    if fmt == "text":
        return format_text(transcript, timestamps=timestamps)
    raise ValueError(f"Unknown format {fmt!r}; expected one of {', '.join(FORMATS)}")
