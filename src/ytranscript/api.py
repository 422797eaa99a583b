"""
api.py — FastAPI REST API for ytranscript.

Endpoints:
    GET /transcript/{video_id}  — Fetch a transcript (text, json, doc, srt or vtt).
    GET /tracks/{video_id}      — List the caption tracks a video offers.
    GET /health                 — Simple health-check for load balancers / monitoring.

Run with:
    uv run uvicorn ytranscript.api:app

The global exception handler catches any TranscriptError and converts it to
the HTTP response using the status code stored on the exception.
"""

from __future__ import annotations

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from ytranscript.errors import TranscriptError
from ytranscript.extractor import fetch_transcript, list_tracks
from ytranscript.formatters import render
from ytranscript.models import FetchOptions

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(
    title="ytranscript API",
    description="Fetch YouTube video transcripts as plain text, structured JSON, "
                "markdown, SRT or WebVTT.",
    version="1.0.0",
)


# ---------------------------------------------------------------------------
# Global error handler
# ---------------------------------------------------------------------------

@app.exception_handler(TranscriptError)
async def transcript_error_handler(request: Request, exc: TranscriptError) -> JSONResponse:
    """
    Translate any TranscriptError (or subclass) into an HTTP error response.

    Endpoints just raise the library exception; the http_status on it picks
    the response code (400 bad ID, 404 no captions, 429 rate limited, ...).
    """
    return JSONResponse(
        status_code=exc.http_status,
        content={"error": exc.message, "kind": type(exc).__name__},
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

# Plain `def` endpoints: fetching is blocking I/O, so FastAPI runs these in
# its threadpool instead of on the event loop.

@app.get("/transcript/{video_id}", response_model=None)
def get_transcript(
    video_id: str,
    format: str = Query(
        default="text",
        description="Output format: 'text', 'json' (segments with timestamps), "
                    "'doc' (markdown paragraphs), 'srt' or 'vtt'.",
        pattern="^(text|json|doc|srt|vtt)$",
    ),
    lang: str = Query(
        default="",
        description="Comma-separated language codes in priority order (e.g. 'de,en'). Empty defaults to English.",
    ),
) -> PlainTextResponse | JSONResponse:
    """
    Fetch the transcript for a single YouTube video.

    Languages are matched by prefix and tried in order; within the first
    matching language a manually authored track is preferred over an
    auto-generated one.
    """
    options = FetchOptions()
    if lang:
        languages = tuple(code.strip() for code in lang.split(",") if code.strip())
        options = FetchOptions(languages=languages)

    transcript = fetch_transcript(video_id, options)
    result = render(transcript, format)

    if isinstance(result, dict):
        return JSONResponse(content=result)
    return PlainTextResponse(content=result)


@app.get("/tracks/{video_id}")
def get_tracks(video_id: str) -> JSONResponse:
    """
    List available caption tracks.

    A video without captions returns an empty list (200), not an error.
    """
    tracks = list_tracks(video_id)
    return JSONResponse(content={
        "track_count": len(tracks),
        "tracks": [
            {
                "language_code": t.language_code,
                "name": t.name,
                "is_auto_generated": t.is_auto_generated,
            }
            for t in tracks
        ],
    })


@app.get("/health")
async def health() -> dict:
    """Return HTTP 200 with {"status": "ok"}."""
    return {"status": "ok"}
