"""
Lumen - EmbeddingClient
========================
Thin async adapter over a LangChain ``Embeddings`` model (Gemini by
default).  It is the only place that talks to the embedding service.

  • ``embed(text)``        — one query vector (used once per chat request)
  • ``embed_many(texts)``  — order-preserving batch (used by the seeder)

Every upstream failure is re-raised as ``EmbeddingServiceError``; nothing
is retried here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from lumen.src.core.exceptions import EmbeddingServiceError
from lumen.src.utils.logger import get_logger

if TYPE_CHECKING:
    from lumen.config.settings import Settings

logger = get_logger(__name__)

_EMBED_BATCH_SIZE = 64


# ── Embedder Protocol ─────────────────────────────────────────────────

@runtime_checkable
class Embedder(Protocol):
    """Structural type for any LangChain-compatible async embedding model."""

    async def aembed_documents(self, texts: list[str]) -> list[list[float]]: ...

    async def aembed_query(self, text: str) -> list[float]: ...


class EmbeddingClient:
    """
    Converts text into fixed-length vectors.

    Parameters
    ----------
    embeddings
        Any object satisfying the ``Embedder`` protocol, e.g.
        ``GoogleGenerativeAIEmbeddings``.
    batch_size
        Maximum texts per upstream call in ``embed_many``.
    """

    __slots__ = ("_embeddings", "_batch_size")

    def __init__(self, embeddings: Embedder, batch_size: int = _EMBED_BATCH_SIZE) -> None:
        self._embeddings = embeddings
        self._batch_size = batch_size


    async def embed(self, text: str) -> list[float]:
        """Embed a single query string."""
        try:
            vector = await self._embeddings.aembed_query(text)
        except Exception as exc:
            logger.error("Failed to embed query: %s", exc)
            raise EmbeddingServiceError(f"Embedding service failed: {exc}") from exc
        return list(vector)


    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """
        Embed *texts* in order: result ``i`` is the vector for ``texts[i]``.

        Texts are sent in batches of ``batch_size``.
        """
        if not texts:
            return []

        logger.info("Embedding %d text(s) in batches of %d …", len(texts), self._batch_size)

        all_vectors: list[list[float]] = []
        for i in range(0, len(texts), self._batch_size):
            batch = texts[i : i + self._batch_size]
            try:
                vectors = await self._embeddings.aembed_documents(batch)
            except Exception as exc:
                logger.error("Embedding batch %d–%d failed: %s", i, i + len(batch) - 1, exc)
                raise EmbeddingServiceError(f"Embedding service failed: {exc}") from exc
            if len(vectors) != len(batch):
                raise EmbeddingServiceError(f"Embedding service returned {len(vectors)} vectors for {len(batch)} texts.")
            all_vectors.extend(list(v) for v in vectors)

        return all_vectors


def create_embedding_client(settings: Settings) -> EmbeddingClient:
    """Build the Gemini-backed embedding client from process settings."""
    from langchain_google_genai import GoogleGenerativeAIEmbeddings

    embeddings = GoogleGenerativeAIEmbeddings(model=settings.EMBEDDING_MODEL, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    logger.info("Embedding model initialised: %s", settings.EMBEDDING_MODEL)
    return EmbeddingClient(embeddings)
