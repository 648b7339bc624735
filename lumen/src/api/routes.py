"""
Lumen - API Routes
===================
    POST /api/chat   → stream a RAG-grounded reply as Server-Sent Events
    GET  /           → browser chat page

The chat handler is a thin controller: it validates the body, delegates
to ``RAGManager``, primes the reply stream, and forwards each chunk the
moment it arrives.

Wire format (``text/event-stream``)::

    data: {"token": "Hel"}

    data: {"token": "lo"}

    event: done
    data: {}

A failure after streaming has begun ends the stream with::

    event: error
    data: {"error": "generation_service_error", "message": "..."}

Failures before the first chunk return a JSON error with the matching
status code instead (see ``lumen.src.main``).
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, StreamingResponse

from lumen.src.core.exceptions import GenerationServiceError, LumenError
from lumen.src.core.models import ChatRequest
from lumen.src.core.rag_engine import RAGManager
from lumen.src.core.streaming import TokenStream
from lumen.src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

_STATIC_DIR = Path(__file__).resolve().parent / "static"


def format_sse(payload: dict[str, object], event: str | None = None) -> str:
    """Encode one Server-Sent Event."""
    lines = [f"event: {event}"] if event else []
    lines.append(f"data: {json.dumps(payload, ensure_ascii=False)}")
    return "\n".join(lines) + "\n\n"


async def sse_events(stream: TokenStream) -> AsyncIterator[str]:
    """
    Forward *stream* as SSE frames.

    The upstream is closed in every exit path, including client
    disconnect (the response task is cancelled).
    """
    forwarded = 0
    try:
        async for token in stream:
            forwarded += 1
            yield format_sse({"token": token})
    except LumenError as exc:
        logger.error("Stream aborted after %d chunk(s): %s", forwarded, exc.message)
        yield format_sse({"error": exc.code, "message": exc.message}, event="error")
    else:
        logger.info("Stream complete: %d chunk(s) forwarded.", forwarded)
        yield format_sse({}, event="done")
    finally:
        await stream.aclose()


@router.post("/api/chat")
async def chat(body: ChatRequest, request: Request) -> StreamingResponse:
    """Stream a reply for the conversation in *body*."""
    rag: RAGManager = request.app.state.rag
    timeout = rag.timeout_s

    stream = await rag.handle(body.messages)
    try:
        await stream.start(timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise GenerationServiceError(f"No response from the generation service within {timeout}s") from exc

    return StreamingResponse(
        sse_events(stream),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/", include_in_schema=False)
async def index() -> FileResponse:
    """Serve the browser chat page."""
    return FileResponse(_STATIC_DIR / "index.html", media_type="text/html")
