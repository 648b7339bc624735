"""
Lumen - Prompt Templates & Seed Data
======================================
Centralised prompt management for the RAG engine.  Prompts live here so
they can be reviewed and versioned independently of application logic.

Exports
-------
SYSTEM_PROMPT_TEMPLATE, SAMPLE_DOCUMENTS, DEFAULT_VERIFY_QUERY.
"""

# ══════════════════════════════════════════════════════════════════════
#  SYSTEM PROMPT (context injection)
# ══════════════════════════════════════════════════════════════════════
# ``{context}`` is replaced verbatim with the retrieved document content.
# Only used when a document was retrieved; otherwise no system prompt is sent.

SYSTEM_PROMPT_TEMPLATE: str = """You are a helpful assistant. The following information may be useful when answering the user:

"{context}"

Use this information only if it is relevant to the user's question.
Do not mention that you were given this information unless the user explicitly asks about it.
If it is not relevant, answer from your general knowledge."""


# ══════════════════════════════════════════════════════════════════════
#  SEED DATA
# ══════════════════════════════════════════════════════════════════════
# Inserted in this order by ``python -m lumen.scripts.setup_db``.

SAMPLE_DOCUMENTS: tuple[str, ...] = (
    "sunny day at the beach",
    "rainy afternoon in the city",
    "snowy night in the mountains",
)

DEFAULT_VERIFY_QUERY: str = "What's the weather like at the beach?"
