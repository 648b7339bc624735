"""
Lumen - Application Entry Point
================================
FastAPI application factory.  Registers the routes from
``lumen.src.api.routes``, maps the error taxonomy onto HTTP responses,
and configures CORS.

The lifespan handler builds the expensive collaborators once at startup
(settings → embedding client, LanceDB store, chat model → ``RAGManager``)
and keeps them on ``app.state``; nothing re-reads configuration per
request.

Run locally:
    uvicorn lumen.src.main:create_app --factory --reload --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lumen.src.api.routes import router
from lumen.src.core.exceptions import LumenError
from lumen.src.core.rag_engine import RAGManager
from lumen.src.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)

def build_rag_manager() -> RAGManager:
    """Build the process-wide ``RAGManager`` from settings."""
    from lumen.config.settings import get_settings
    from lumen.src.core.completion import create_completion_client
    from lumen.src.core.embedder import create_embedding_client
    from lumen.src.database.vector_store import create_document_store

    settings = get_settings()
    configure_logging(settings.ENV)

    return RAGManager(
        embedder=create_embedding_client(settings),
        vector_store=create_document_store(settings),
        completion=create_completion_client(settings),
        timeout_s=settings.REQUEST_TIMEOUT_S,
        degrade_on_retrieval_error=settings.DEGRADE_ON_RETRIEVAL_ERROR,
    )


async def lumen_error_handler(request: Request, exc: LumenError) -> JSONResponse:
    """Map any ``LumenError`` to its status code and a JSON body."""
    if exc.http_status >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    else:
        logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content={"error": exc.code, "message": exc.message})


def create_app(rag_manager: RAGManager | None = None, cors_origins: list[str] | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Parameters
    ----------
    rag_manager
        Pre-built manager (tests).  When omitted, the lifespan handler
        builds one from settings at startup.
    cors_origins
        Allowed browser origins.  Defaults to ``settings.CORS_ORIGINS``
        when the manager is built from settings, else none.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Lumen backend starting up…")
        if rag_manager is None:
            app.state.rag = build_rag_manager()
        else:
            app.state.rag = rag_manager
        logger.info("All components initialised. Ready.")
        yield
        logger.info("Lumen backend shutting down.")

    app = FastAPI(
        title="Lumen API",
        description="Retrieval-augmented chat: nearest-document context injection with streamed replies.",
        version="0.1.0",
        lifespan=lifespan,
    )

    origins = cors_origins
    if origins is None and rag_manager is None:
        from lumen.config.settings import get_settings

        origins = get_settings().CORS_ORIGINS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LumenError, lumen_error_handler)  # type: ignore[arg-type]
    app.include_router(router)
    return app

