"""
Lumen - RAG Retrieval Verification
====================================
Embeds a query, looks up the nearest stored document, and shows the
system instruction the chat endpoint would send for it.  Used to check
that seeding worked and that retrieval picks the expected sentence.

Usage:
    python -m lumen.scripts.verify_rag
    python -m lumen.scripts.verify_rag "Is it cold in the mountains?"
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from lumen.config.prompt_templates import DEFAULT_VERIFY_QUERY
from lumen.config.settings import get_settings
from lumen.src.core.embedder import create_embedding_client
from lumen.src.core.rag_engine import build_system_prompt
from lumen.src.database.vector_store import create_document_store
from lumen.src.utils.logger import configure_logging


async def _nearest(query: str):
    settings = get_settings()
    configure_logging(settings.ENV)

    embedder = create_embedding_client(settings)
    store = create_document_store(settings)

    if store.count() == 0:
        print("Table is empty or missing. Run 'python -m lumen.scripts.setup_db' first.")
        return None

    print(f"Table '{settings.LANCEDB_TABLE_NAME}' has {store.count()} rows.\n")
    vector = await embedder.embed(query)
    hits = await asyncio.to_thread(store.nearest, vector, 3)
    return hits


def main() -> None:
    query = " ".join(sys.argv[1:]) or DEFAULT_VERIFY_QUERY
    hits = asyncio.run(_nearest(query))
    if hits is None:
        return

    print(f"Query: {query}")
    print("=" * 60)

    for i, document in enumerate(hits, 1):
        print(f"\n--- Result {i} ---")
        print(f"  Id:        {document.id}")
        print(f"  Distance:  {document.distance:.4f}")
        print(f"  Content:   {document.content}")

    print("\n" + "=" * 60)
    print("SYSTEM PROMPT:")
    print(build_system_prompt(hits[0] if hits else None) or "(omitted — no document retrieved)")


if __name__ == "__main__":
    main()
