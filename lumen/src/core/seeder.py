"""
Lumen - Seeder
===============
One-shot population of the document store: embed → ensure table → insert.

  • **One batched embedding call** for all texts, order-preserving
    (vector ``i`` belongs to text ``i``).
  • **Idempotent schema** — ``ensure_table()`` creates the table only if
    it is missing.
  • **No dedup, no rollback** — every run appends new rows.  If an insert
    fails, the rows already written stay.

Usage:
    from lumen.src.core.seeder import seed
    documents = await seed(store, embedder, ["sunny day at the beach", ...])
"""

from __future__ import annotations

from typing import Sequence

from lumen.src.core.embedder import EmbeddingClient
from lumen.src.core.models import Document
from lumen.src.database.vector_store import DocumentStore
from lumen.src.utils.logger import get_logger

logger = get_logger(__name__)


async def seed(store: DocumentStore, embedder: EmbeddingClient, values: Sequence[str]) -> list[Document]:
    """
    Embed *values* and insert one document per value, in order.

    Returns
    -------
    list[Document]
        The inserted documents, parallel to *values*.

    Raises
    ------
    EmbeddingServiceError
        The batch embedding failed; nothing was written.
    Exception
        Any storage error aborts the loop; earlier inserts remain.
    """
    texts = list(values)
    embeddings = await embedder.embed_many(texts)

    store.ensure_table()

    documents: list[Document] = []
    for i, (text, embedding) in enumerate(zip(texts, embeddings), 1):
        documents.append(store.upsert(text, embedding))
        logger.info("Embedding %d/%d inserted successfully", i, len(texts))

    logger.info("All %d embeddings inserted successfully", len(documents))
    return documents
