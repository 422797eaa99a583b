"""
loaders.py — Turn Google Takeout exports and ad-hoc lists into candidate videos.

Supported inputs:
    load_watch_history()  Takeout "watch-history.json"
    load_watch_later()    Takeout "Watch later-videos.csv"
    from_video_ids()      IDs or URLs typed on the command line / read from a file

merge_video_sources() combines them (first source to mention a video wins),
and load_processed_ids() reads a previous run's JSONL log so a bulk run can
resume where it stopped.
"""

from __future__ import annotations

import csv
import json
import logging
import os
from typing import Iterable

from ytranscript.extractor import extract_video_id
from ytranscript.models import CandidateVideo, ChannelRef, Provenance

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Takeout prefixes every history title with this ("Watched Some Video").
_WATCHED_PREFIX = "Watched "

# Column names differ between Takeout versions and hand-made CSVs.
_VIDEO_ID_COLUMNS = ("Video ID", "video_id", "Video Id")
_ADDED_AT_COLUMNS = ("Playlist Video Creation Timestamp", "added_at", "Added At")


def _watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def _first_value(row: dict[str, str | None], columns: Iterable[str]) -> str | None:
    for column in columns:
        value = (row.get(column) or "").strip()
        if value:
            return value
    return None


# ---------------------------------------------------------------------------
# Takeout formats
# ---------------------------------------------------------------------------

def load_watch_history(path: str | os.PathLike[str]) -> list[CandidateVideo]:
    """
    Load videos from a Takeout watch-history JSON file.

    Entries without a YouTube video URL (ads, removed videos, YouTube Music
    searches) are skipped.  Duplicates are kept; merge_video_sources()
    removes them.

    Args:
        path: Path to watch-history.json.

    Returns:
        Candidate videos in file order (Takeout lists newest first).

    Raises:
        OSError:          The file can't be read.
        json.JSONDecodeError: The file isn't valid JSON.
    """
    with open(path, encoding="utf-8") as fh:
        items = json.load(fh)

    results: list[CandidateVideo] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        url = item.get("titleUrl")
        if not url:
            continue
        video_id = extract_video_id(url)
        if not video_id:
            continue

        title = item.get("title")
        if title and title.startswith(_WATCHED_PREFIX):
            title = title[len(_WATCHED_PREFIX):]

        subtitles = item.get("subtitles") or []
        channel = None
        if subtitles and isinstance(subtitles[0], dict):
            channel = ChannelRef(name=subtitles[0].get("name"), url=subtitles[0].get("url"))

        results.append(CandidateVideo(
            video_id=video_id,
            provenance=Provenance.HISTORY,
            title=title,
            url=url,
            channel=channel,
            watched_at=item.get("time"),
        ))

    logger.info("Loaded %d video(s) from watch history %s", len(results), path)
    return results


def load_watch_later(path: str | os.PathLike[str]) -> list[CandidateVideo]:
    """
    Load videos from a Takeout watch-later CSV file.

    The CSV only carries IDs and timestamps, so titles and channels are
    left empty.  Rows whose ID isn't a valid 11-character video ID are
    skipped.
    """
    results: list[CandidateVideo] = []
    with open(path, encoding="utf-8-sig", newline="") as fh:
        for row in csv.DictReader(fh):
            raw_id = _first_value(row, _VIDEO_ID_COLUMNS)
            video_id = extract_video_id(raw_id) if raw_id else None
            if not video_id:
                continue
            results.append(CandidateVideo(
                video_id=video_id,
                provenance=Provenance.WATCH_LATER,
                url=_watch_url(video_id),
                watched_at=_first_value(row, _ADDED_AT_COLUMNS),
            ))

    logger.info("Loaded %d video(s) from watch-later %s", len(results), path)
    return results


# ---------------------------------------------------------------------------
# Manual input
# ---------------------------------------------------------------------------

def from_video_ids(inputs: Iterable[str]) -> list[CandidateVideo]:
    """
    Build candidates from video IDs or URLs.

    Blank entries and lines starting with "#" are ignored, so the contents
    of a plain-text list file can be passed straight in.  Unparseable
    entries are skipped with a warning.
    """
    results: list[CandidateVideo] = []
    for raw in inputs:
        value = raw.strip()
        if not value or value.startswith("#"):
            continue
        video_id = extract_video_id(value)
        if not video_id:
            logger.warning("Skipping unrecognised video reference: %s", value)
            continue
        results.append(CandidateVideo(
            video_id=video_id,
            provenance=Provenance.MANUAL,
            url=value if value.startswith("http") else _watch_url(video_id),
        ))
    return results


def merge_video_sources(*sources: Iterable[CandidateVideo]) -> list[CandidateVideo]:
    """
    Merge candidate lists, dropping duplicate video IDs.

    Sources are read in the order given and the first occurrence of each
    video wins, so pass the richest source first (history, then
    watch-later, then manual).
    """
    seen: dict[str, CandidateVideo] = {}
    for source in sources:
        for candidate in source:
            if candidate.video_id not in seen:
                seen[candidate.video_id] = candidate
    return list(seen.values())


# ---------------------------------------------------------------------------
# Resume
# ---------------------------------------------------------------------------

def _record_video_id(record: object) -> str | None:
    if not isinstance(record, dict):
        return None
    meta = record.get("meta")
    if isinstance(meta, dict):
        # camelCase keys come from logs written by older releases.
        video_id = meta.get("video_id") or meta.get("videoId")
        if video_id:
            return video_id
    return record.get("video_id") or record.get("videoId")


def load_processed_ids(path: str | os.PathLike[str]) -> set[str]:
    """
    Collect the video IDs already present in a JSONL results log.

    Every attempt is logged, failed or not, so resuming skips failures too;
    delete their lines from the log to retry them.

    Args:
        path: The JSONL file written by a previous bulk run.

    Returns:
        The set of video IDs found.  A missing file gives an empty set.
    """
    ids: set[str] = set()
    if not os.path.exists(path):
        return ids

    with open(path, encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                # A run killed mid-write can leave a truncated last line.
                logger.debug("Skipping malformed line %d in %s", line_no, path)
                continue
            video_id = _record_video_id(record)
            if video_id:
                ids.add(video_id)

    return ids
