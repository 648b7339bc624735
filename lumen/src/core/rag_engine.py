"""
Lumen - RAG Engine
===================
Orchestrates the Retrieval-Augmented Generation request flow.

``RAGManager``
    Stateless pipeline orchestrator.  Flow:
        1. Validate → conversation non-empty, last message from ``user``
        2. Embed    → exactly one embedding call on the last message
        3. Retrieve → single nearest document by L2 distance
        4. Prompt   → inject the document into the system instruction,
                      or omit the instruction entirely when nothing
                      was retrieved
        5. Generate → stream the reply for the full, unmodified conversation
        6. Return   → the ``TokenStream``, unbuffered

    The three remote calls are inherently sequential.  The LanceDB query
    is synchronous and runs on a worker thread so the event loop keeps
    serving other requests.  Each of embed / retrieve is bounded by
    ``timeout_s``.

Concurrency
-----------
``RAGManager`` holds only references to its collaborators; no
request-scoped state lives on the instance, so one instance serves all
concurrent requests.

Usage:
    from lumen.src.core.rag_engine import RAGManager
    rag = RAGManager(embedder, store, completion)
    stream = await rag.handle(messages)
    async for token in stream: ...
"""

from __future__ import annotations

import asyncio
import time
from typing import Sequence

from lumen.config.prompt_templates import SYSTEM_PROMPT_TEMPLATE
from lumen.src.core.completion import CompletionClient
from lumen.src.core.embedder import EmbeddingClient
from lumen.src.core.exceptions import EmbeddingServiceError, InvalidRequest, RetrievalError
from lumen.src.core.models import Document, Message
from lumen.src.core.streaming import TokenStream
from lumen.src.database.vector_store import DocumentStore
from lumen.src.utils.logger import get_logger

logger = get_logger(__name__)


def build_system_prompt(document: Document | None) -> str | None:
    """
    Return the system instruction for *document*, or ``None``.

    ``None`` means general-knowledge mode: no system instruction is sent
    at all (never an instruction quoting empty content).
    """
    if document is None:
        return None
    return SYSTEM_PROMPT_TEMPLATE.format(context=document.content)


class RAGManager:
    """
    Orchestrates embed → retrieve → prompt → generate.

    Parameters
    ----------
    embedder
        ``EmbeddingClient`` for the query embedding.
    vector_store
        ``DocumentStore`` answering nearest-neighbour queries.
    completion
        ``CompletionClient`` producing the streamed reply.
    timeout_s
        Upper bound for the embedding call and for the vector query.
    degrade_on_retrieval_error
        If true, a failed retrieval is logged and the reply is generated
        without context.  If false, ``RetrievalError`` propagates.
    """

    __slots__ = ("_embedder", "_store", "_completion", "_timeout_s", "_degrade")

    def __init__(self, embedder: EmbeddingClient, vector_store: DocumentStore, completion: CompletionClient, timeout_s: float = 30.0, degrade_on_retrieval_error: bool = True) -> None:
        self._embedder = embedder
        self._store = vector_store
        self._completion = completion
        self._timeout_s = timeout_s
        self._degrade = degrade_on_retrieval_error


    @property
    def timeout_s(self) -> float:
        """Per-call bound for embed, retrieve and the first generated token."""
        return self._timeout_s


    async def handle(self, messages: Sequence[Message]) -> TokenStream:
        """
        Run the RAG flow for a conversation and return the reply stream.

        Raises
        ------
        InvalidRequest
            Empty conversation, or the last message is not from the user.
            Raised before any remote call.
        EmbeddingServiceError
            The embedding call failed or timed out.
        RetrievalError
            Retrieval failed and degradation is disabled.
        """
        t_start = time.perf_counter()

        # ── 1. Validate ───────────────────────────────────────────────
        prompt = self._latest_user_prompt(messages)

        # ── 2–3. Embed + retrieve ─────────────────────────────────────
        document = await self.retrieve(prompt)

        # ── 4. Build system instruction ───────────────────────────────
        system_prompt = build_system_prompt(document)
        if system_prompt is None:
            logger.info("[RAG] No document retrieved — general-knowledge mode.")

        # ── 5–6. Generate (stream is returned unstarted) ─────────────
        stream = self._completion.stream_complete(system_prompt, list(messages))

        total_ms = (time.perf_counter() - t_start) * 1000
        logger.info("[RAG] Pre-generation pipeline: %.1fms (%d message(s), context=%s)", total_ms, len(messages), "yes" if document else "no")
        return stream


    async def retrieve(self, prompt: str) -> Document | None:
        """Embed *prompt* once and return the nearest stored document, if any."""

        # ── Embed ─────────────────────────────────────────────────────
        t_embed = time.perf_counter()
        try:
            query_embedding = await asyncio.wait_for(self._embedder.embed(prompt), self._timeout_s)
        except asyncio.TimeoutError as exc:
            logger.error("[RAG] Embedding timed out after %.1fs.", self._timeout_s)
            raise EmbeddingServiceError(f"Embedding timed out after {self._timeout_s}s") from exc
        embed_ms = (time.perf_counter() - t_embed) * 1000
        logger.info("[RAG] Query embedded in %.1fms (dim=%d)", embed_ms, len(query_embedding))

        # ── Retrieve ──────────────────────────────────────────────────
        t_search = time.perf_counter()
        try:
            hits = await asyncio.wait_for(asyncio.to_thread(self._store.nearest, query_embedding, 1), self._timeout_s)
        except (RetrievalError, asyncio.TimeoutError) as exc:
            if not self._degrade:
                if isinstance(exc, RetrievalError):
                    raise
                raise RetrievalError(f"Vector search timed out after {self._timeout_s}s") from exc
            logger.warning("[RAG] Retrieval failed (%s) — continuing without context.", str(exc) or "timeout")
            return None
        search_ms = (time.perf_counter() - t_search) * 1000

        if not hits:
            logger.info("[RAG] Search returned no documents in %.1fms", search_ms)
            return None

        document = hits[0]
        logger.info("[RAG] Nearest document %s (distance=%s) in %.1fms", document.id, document.distance, search_ms)
        return document


    @staticmethod
    def _latest_user_prompt(messages: Sequence[Message]) -> str:
        if not messages:
            raise InvalidRequest("Conversation is empty.")
        last = messages[-1]
        if last.role != "user":
            raise InvalidRequest(f"The last message must come from the user, got role '{last.role}'.")
        return last.content
