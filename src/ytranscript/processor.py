"""
processor.py — Bulk transcript fetching with concurrency, pacing and resume.

YouTube rate-limits the Innertube endpoints without documenting the limit;
once it trips, every request answers 429 for a while.  The processor keeps a
long run under it bluntly: videos are split into batches of `pause_after`,
each batch runs on a thread pool capped at `concurrency`, and the processor
idles `pause_ms` between batches.

Two entry points share the same machinery:

    process_videos()  Wait for everything; results in input order.
    stream_videos()   Lazy iterator; results in completion order.

A failing video never stops the run.  Every attempt produces exactly one
TranscriptResult, with either a transcript or an error message.  Videos in
`skip_ids` (typically loaded from a previous run's JSONL log) are never
attempted at all.
"""

from __future__ import annotations

import contextlib
import logging
import time
from concurrent import futures
from typing import Iterable, Iterator

import httpx

from ytranscript import innertube
from ytranscript.extractor import fetch_transcript
from ytranscript.models import (
    BulkOptions,
    CandidateVideo,
    FetchOptions,
    ProgressCallback,
    TranscriptResult,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _batches(items: list[CandidateVideo], size: int) -> list[list[CandidateVideo]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def _remaining(deadline_at: float | None) -> float | None:
    if deadline_at is None:
        return None
    return max(0.0, deadline_at - time.monotonic())


def _attempt(
    candidate: CandidateVideo,
    options: FetchOptions,
    client: httpx.Client,
) -> TranscriptResult:
    """Run one fetch, turning any failure into an error result."""
    try:
        transcript = fetch_transcript(candidate.video_id, options, client=client)
    except Exception as exc:
        message = str(exc) or type(exc).__name__
        logger.warning("%s failed: %s", candidate.video_id, message)
        return TranscriptResult(candidate=candidate, error=message)
    return TranscriptResult(candidate=candidate, transcript=transcript)


def _notify(
    callback: ProgressCallback | None,
    completed: int,
    total: int,
    result: TranscriptResult,
) -> None:
    # Progress reporting is observational; a broken callback must not
    # take the run down with it.
    if callback is None:
        return
    try:
        callback(completed, total, result)
    except Exception:
        logger.exception("Progress callback raised; continuing")


# ---------------------------------------------------------------------------
# Core loop
# ---------------------------------------------------------------------------

def _execute(
    candidates: Iterable[CandidateVideo],
    options: BulkOptions,
) -> Iterator[tuple[int, TranscriptResult]]:
    """
    Yield (input_index, result) pairs in completion order.

    Everything the two public entry points have in common lives here:
    skip filtering, batching, the concurrency cap, the inter-batch pause,
    progress callbacks and the optional run deadline.  The completion
    counter and the callback only ever run on the consuming thread.
    """
    pending = [c for c in candidates if c.video_id not in options.skip_ids]
    total = len(pending)
    if not pending:
        logger.info("Nothing to process")
        return

    batches = _batches(pending, options.pause_after)
    deadline_at = (
        time.monotonic() + options.deadline if options.deadline is not None else None
    )
    logger.info(
        "Processing %d video(s) in %d batch(es), concurrency %d",
        total, len(batches), options.concurrency,
    )

    client = innertube.open_client(options.fetch)
    pool = futures.ThreadPoolExecutor(
        max_workers=options.concurrency,
        thread_name_prefix="ytranscript",
    )
    finished = False
    completed = 0
    offset = 0
    try:
        for batch_no, batch in enumerate(batches, start=1):
            if _remaining(deadline_at) == 0:
                logger.warning(
                    "Run deadline reached; %d video(s) not attempted", total - completed,
                )
                return

            logger.info("Batch %d/%d: %d video(s)", batch_no, len(batches), len(batch))
            in_flight = {
                pool.submit(_attempt, candidate, options.fetch, client): offset + i
                for i, candidate in enumerate(batch)
            }
            offset += len(batch)

            try:
                for future in futures.as_completed(in_flight, timeout=_remaining(deadline_at)):
                    result = future.result()
                    completed += 1
                    _notify(options.on_progress, completed, total, result)
                    yield in_flight[future], result
            except futures.TimeoutError:
                abandoned = sum(1 for f in in_flight if not f.done())
                logger.warning(
                    "Run deadline reached; abandoning %d in-flight attempt(s)", abandoned,
                )
                return

            if batch_no < len(batches) and options.pause_ms > 0:
                pause = options.pause_ms / 1000
                remaining = _remaining(deadline_at)
                if remaining is not None and remaining <= pause:
                    logger.warning(
                        "Run deadline falls within the next pause; %d video(s) not attempted",
                        total - completed,
                    )
                    return
                logger.info("Pausing %.1fs before next batch", pause)
                time.sleep(pause)

        finished = True
    finally:
        # On early exit (deadline, consumer closed the stream) queued attempts
        # are cancelled; running ones fail once the client closes and their
        # results are never observed.
        pool.shutdown(wait=finished, cancel_futures=True)
        client.close()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def process_videos(
    candidates: Iterable[CandidateVideo],
    options: BulkOptions | None = None,
) -> list[TranscriptResult]:
    """
    Fetch transcripts for many videos and return all results.

    Args:
        candidates: Videos to process, typically from the loaders module.
        options:    Concurrency, pacing, skip set and per-fetch options.

    Returns:
        One TranscriptResult per candidate not in `options.skip_ids`, in
        input order.  If `options.deadline` expires, only the attempts that
        completed in time are returned.
    """
    options = options or BulkOptions()
    slots: dict[int, TranscriptResult] = {}
    for index, result in _execute(candidates, options):
        slots[index] = result
    return [slots[i] for i in sorted(slots)]


def stream_videos(
    candidates: Iterable[CandidateVideo],
    options: BulkOptions | None = None,
) -> Iterator[TranscriptResult]:
    """
    Fetch transcripts for many videos, yielding each result as it completes.

    Results arrive in completion order, not input order; sort afterwards if
    order matters.  The iterator is single-use.  Closing it early (or
    breaking out of the loop) cancels attempts that haven't started.

    Args:
        candidates: Videos to process.
        options:    Concurrency, pacing, skip set and per-fetch options.

    Yields:
        TranscriptResult objects, one per attempted video.
    """
    options = options or BulkOptions()
    with contextlib.closing(_execute(candidates, options)) as results:
        for _, result in results:
            yield result
