"""
cli.py — Command-line interface for ytranscript.

Provides the `ytranscript` command group (registered as a console script
in pyproject.toml).  Subcommands:

    get   Fetch the transcript of one video.
    bulk  Fetch transcripts for a Takeout export or a list of videos.
    info  List the caption tracks a video offers.

Usage examples:
    ytranscript get "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    ytranscript get dQw4w9WgXcQ --lang de,en --format srt -o talk.srt
    ytranscript bulk --history watch-history.json --resume
    ytranscript info dQw4w9WgXcQ
"""

from __future__ import annotations

import json
import logging
import sys
from typing import NoReturn

import click

from ytranscript.errors import TranscriptError
from ytranscript.extractor import fetch_transcript, list_tracks
from ytranscript.formatters import FORMATS, render
from ytranscript.loaders import (
    from_video_ids,
    load_processed_ids,
    load_watch_history,
    load_watch_later,
    merge_video_sources,
)
from ytranscript.models import BulkOptions, CandidateVideo, FetchOptions
from ytranscript.outputs import JsonlWriter, write_csv
from ytranscript.processor import stream_videos

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_DEFAULT_JSONL = "transcripts.jsonl"

# -v → INFO, -vv → DEBUG; without the flag only warnings are shown.
_VERBOSITY_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]

_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_languages(lang: str) -> tuple[str, ...]:
    """Split a comma-separated language list, dropping blanks."""
    return tuple(code.strip() for code in lang.split(",") if code.strip())


def _fail(message: str) -> NoReturn:
    """Print a clean error to stderr and exit non-zero (no traceback)."""
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


def _timeout_option(func):
    return click.option(
        "--timeout",
        type=click.FloatRange(min=0, min_open=True),
        default=30.0,
        show_default=True,
        help="Per-request timeout in seconds.",
    )(func)


def _proxy_option(func):
    return click.option(
        "--proxy",
        envvar="YTRANSCRIPT_PROXY",
        default=None,
        help="Proxy URL for all requests (also read from YTRANSCRIPT_PROXY).",
    )(func)


# ---------------------------------------------------------------------------
# CLI group — the top-level `ytranscript` command
# ---------------------------------------------------------------------------

@click.group()
@click.option("-v", "--verbose", count=True, help="Log progress (-v) or debug detail (-vv) to stderr.")
def main(verbose: int) -> None:
    """
    ytranscript — fetch YouTube transcripts, one video or thousands.
    """
    logging.basicConfig(
        level=_VERBOSITY_LEVELS[min(verbose, len(_VERBOSITY_LEVELS) - 1)],
        format=_LOG_FORMAT,
    )


# ---------------------------------------------------------------------------
# Subcommand: get — fetch a single transcript
# ---------------------------------------------------------------------------

@main.command()
@click.argument("video", metavar="URL_OR_ID")
@click.option(
    "--lang", "-l",
    default="en",
    show_default=True,
    help="Comma-separated language codes in priority order (e.g. 'de,en').",
)
@click.option(
    "--format", "-f",
    "fmt",                           # avoid shadowing the builtin "format"
    type=click.Choice(FORMATS, case_sensitive=False),
    default="text",
    show_default=True,
    help="Output format.",
)
@click.option("--timestamps", "-t", is_flag=True, help="Prefix text lines with [MM:SS].")
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write output to a file instead of stdout.",
)
@_timeout_option
@_proxy_option
def get(
    video: str,
    lang: str,
    fmt: str,
    timestamps: bool,
    output: str | None,
    timeout: float,
    proxy: str | None,
) -> None:
    """
    Fetch the transcript of one video.

    URL_OR_ID can be a full YouTube URL or an 11-character video ID.
    """
    options = FetchOptions(languages=_parse_languages(lang), timeout=timeout, proxy=proxy)

    try:
        transcript = fetch_transcript(video, options)
    except TranscriptError as exc:
        _fail(exc.message)

    result = render(transcript, fmt.lower(), timestamps=timestamps)
    if isinstance(result, dict):
        text = json.dumps(result, indent=2, ensure_ascii=False)
    else:
        text = result

    if output:
        with open(output, "w", encoding="utf-8") as fh:
            fh.write(text)
            if not text.endswith("\n"):
                fh.write("\n")
        click.echo(click.style(f"Written to {output}", fg="green"), err=True)
    else:
        click.echo(text)


# ---------------------------------------------------------------------------
# Subcommand: bulk — many videos with pacing and resume
# ---------------------------------------------------------------------------

def _load_sources(
    history: str | None,
    watch_later: str | None,
    videos: str | None,
    list_file: str | None,
) -> list[list[CandidateVideo]]:
    """
    Load every requested input source, in merge-priority order.

    A source that fails to load is reported and skipped so the others can
    still run.
    """
    sources: list[list[CandidateVideo]] = []

    if history:
        click.echo(click.style(f"Loading watch history from {history}...", dim=True))
        try:
            loaded = load_watch_history(history)
        except (OSError, ValueError) as exc:
            click.echo(click.style(f"Failed to load history: {exc}", fg="red"), err=True)
        else:
            sources.append(loaded)
            click.echo(f"  Found {len(loaded)} videos in history")

    if watch_later:
        click.echo(click.style(f"Loading watch-later from {watch_later}...", dim=True))
        try:
            loaded = load_watch_later(watch_later)
        except (OSError, ValueError) as exc:
            click.echo(click.style(f"Failed to load watch-later: {exc}", fg="red"), err=True)
        else:
            sources.append(loaded)
            click.echo(f"  Found {len(loaded)} videos in watch-later")

    if videos:
        loaded = from_video_ids(videos.split(","))
        sources.append(loaded)
        click.echo(f"  Added {len(loaded)} videos from --videos")

    if list_file:
        try:
            with open(list_file, encoding="utf-8") as fh:
                loaded = from_video_ids(fh.read().splitlines())
        except OSError as exc:
            click.echo(click.style(f"Failed to load file: {exc}", fg="red"), err=True)
        else:
            sources.append(loaded)
            click.echo(f"  Added {len(loaded)} videos from {list_file}")

    return sources


@main.command()
@click.option("--history", type=click.Path(dir_okay=False), help="Takeout watch-history.json.")
@click.option("--watch-later", type=click.Path(dir_okay=False), help="Takeout watch-later CSV.")
@click.option("--videos", help="Comma-separated video IDs or URLs.")
@click.option("--file", "list_file", type=click.Path(dir_okay=False), help="File with one video ID/URL per line.")
@click.option("--out-jsonl", "-o", default=_DEFAULT_JSONL, show_default=True, help="JSONL results log.")
@click.option("--out-csv", default=None, help="Also write results to this CSV file.")
@click.option("--concurrency", "-c", type=click.IntRange(min=1), default=4, show_default=True,
              help="Concurrent requests.")
@click.option("--pause-after", type=click.IntRange(min=1), default=10, show_default=True,
              help="Pause after this many videos.")
@click.option("--pause-ms", type=click.IntRange(min=0), default=5000, show_default=True,
              help="Pause duration in milliseconds.")
@click.option("--lang", "-l", default="en", show_default=True, help="Preferred languages (comma-separated).")
@click.option("--resume", is_flag=True, help="Skip videos already present in the JSONL log.")
@click.option("--deadline", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Stop the whole run after this many seconds.")
@_timeout_option
@_proxy_option
def bulk(
    history: str | None,
    watch_later: str | None,
    videos: str | None,
    list_file: str | None,
    out_jsonl: str,
    out_csv: str | None,
    concurrency: int,
    pause_after: int,
    pause_ms: int,
    lang: str,
    resume: bool,
    deadline: float | None,
    timeout: float,
    proxy: str | None,
) -> None:
    """
    Fetch transcripts for many videos.

    Inputs are merged in priority order (history, watch-later, --videos,
    --file) and de-duplicated.  Every attempt is appended to the JSONL log
    as soon as it finishes, so an interrupted run can be continued with
    --resume.
    """
    sources = _load_sources(history, watch_later, videos, list_file)
    if not sources:
        _fail("No input sources provided. Use --history, --watch-later, --videos, or --file")

    all_videos = merge_video_sources(*sources)
    click.echo(f"\n{click.style(str(len(all_videos)), fg='green')} unique videos to process")

    skip_ids: set[str] = set()
    if resume:
        skip_ids = load_processed_ids(out_jsonl)
        if skip_ids:
            click.echo(click.style(f"Resuming: {len(skip_ids)} already processed, skipping...", dim=True))

    remaining = sum(1 for v in all_videos if v.video_id not in skip_ids)
    if not remaining:
        click.echo(click.style("All videos already processed!", fg="green"))
        return
    click.echo(f"Processing {remaining} videos...\n")

    options = BulkOptions(
        concurrency=concurrency,
        pause_after=pause_after,
        pause_ms=pause_ms,
        skip_ids=frozenset(skip_ids),
        fetch=FetchOptions(languages=_parse_languages(lang), timeout=timeout, proxy=proxy),
        deadline=deadline,
    )

    writer = JsonlWriter(out_jsonl)
    csv_results = []
    succeeded = failed = 0

    for result in stream_videos(all_videos, options):
        if result.ok:
            succeeded += 1
            status = click.style("OK", fg="green")
        else:
            failed += 1
            status = click.style("FAIL", fg="red")
        label = (result.candidate.title or result.candidate.video_id)[:50]
        click.echo(f"[{result.candidate.video_id}] {status} {click.style(label, dim=True)}")

        writer.append(result)
        if out_csv:
            csv_results.append(result)

    if out_csv and csv_results:
        write_csv(csv_results, out_csv, append=resume)
        click.echo(click.style(f"\nCSV written to {out_csv}", dim=True))

    click.echo(f"\n{click.style('Done!', fg='green')} {succeeded} succeeded, {failed} failed")
    click.echo(f"Output: {out_jsonl}")


# ---------------------------------------------------------------------------
# Subcommand: info — list available caption tracks
# ---------------------------------------------------------------------------

@main.command()
@click.argument("video", metavar="URL_OR_ID")
@_timeout_option
@_proxy_option
def info(video: str, timeout: float, proxy: str | None) -> None:
    """
    Show which caption languages a video offers.

    A video without captions is reported, not treated as an error.
    """
    try:
        tracks = list_tracks(video, FetchOptions(timeout=timeout, proxy=proxy))
    except TranscriptError as exc:
        _fail(exc.message)

    if not tracks:
        click.echo(click.style("No captions available for this video", fg="yellow"))
        return

    click.echo("Available transcripts:\n")
    for track in tracks:
        kind = click.style("(auto-generated)", dim=True) if track.is_auto_generated else ""
        click.echo(f"  {track.language_code:<6} {track.name or ''} {kind}".rstrip())
