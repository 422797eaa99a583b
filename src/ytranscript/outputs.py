"""
outputs.py — Persist bulk results as JSONL and CSV.

The JSONL log is the source of truth for a bulk run: one line per attempt,
success or failure, appended as soon as the attempt finishes.  Because
resume reads this file back (loaders.load_processed_ids), every line must
be a complete record; JsonlWriter writes each one with a single locked
write so concurrent callers can't interleave partial lines.

CSV export is a convenience for spreadsheets and is written in one go at
the end of a run.
"""

from __future__ import annotations

import csv
import json
import os
import threading
from typing import Iterable

from ytranscript.models import TranscriptResult


# ---------------------------------------------------------------------------
# JSONL
# ---------------------------------------------------------------------------

def _to_line(result: TranscriptResult) -> str:
    return json.dumps(result.to_dict(), ensure_ascii=False) + "\n"


class JsonlWriter:
    """
    Append-only JSONL sink, safe to share between threads.

    Usage:
        writer = JsonlWriter("transcripts.jsonl")
        for result in stream_videos(videos, options):
            writer.append(result)
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = path
        self._lock = threading.Lock()

    def append(self, result: TranscriptResult) -> None:
        """Write one result as one complete line and flush it to disk."""
        line = _to_line(result)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as fh:
                fh.write(line)
                fh.flush()


def write_jsonl(results: Iterable[TranscriptResult], path: str | os.PathLike[str]) -> None:
    """Write results to `path`, replacing any existing file."""
    with open(path, "w", encoding="utf-8") as fh:
        for result in results:
            fh.write(_to_line(result))


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

CSV_COLUMNS = [
    "video_id",
    "title",
    "url",
    "channel",
    "watched_at",
    "source",
    "language_code",
    "is_auto_generated",
    "text",
    "error",
]


def _to_row(result: TranscriptResult) -> dict[str, object]:
    candidate = result.candidate
    transcript = result.transcript
    return {
        "video_id": candidate.video_id,
        "title": candidate.title or "",
        "url": candidate.url or "",
        "channel": candidate.channel.name if candidate.channel and candidate.channel.name else "",
        "watched_at": candidate.watched_at or "",
        "source": candidate.provenance.value,
        "language_code": transcript.language_code if transcript else "",
        "is_auto_generated": transcript.is_auto_generated if transcript else "",
        "text": transcript.text if transcript else "",
        "error": result.error or "",
    }


def write_csv(
    results: Iterable[TranscriptResult],
    path: str | os.PathLike[str],
    append: bool = False,
) -> None:
    """
    Write results as CSV, one row per video with the transcript flattened.

    Args:
        results: Results to write.
        path:    Destination file.
        append:  Add rows to an existing file instead of replacing it.  The
                 header is only written when the file is new or empty.
    """
    write_header = not (append and os.path.exists(path) and os.path.getsize(path) > 0)
    mode = "a" if append else "w"
    with open(path, mode, encoding="utf-8", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=CSV_COLUMNS)
        if write_header:
            writer.writeheader()
        for result in results:
            writer.writerow(_to_row(result))
