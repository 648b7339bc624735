"""
Shared test fixtures: deterministic fake embeddings, a scripted chat
model, and a throwaway LanceDB store per test.
"""

import asyncio
import re
import time

import pytest
from langchain_core.messages import AIMessageChunk

from lumen.src.core.completion import CompletionClient
from lumen.src.core.embedder import EmbeddingClient
from lumen.src.core.rag_engine import RAGManager
from lumen.src.database.vector_store import DocumentStore

# One dimension per content word; anything else is ignored.
VOCAB = ["sunny", "day", "beach", "rainy", "afternoon", "city", "snowy", "night", "mountains", "weather"]
DIM = len(VOCAB)

SEED_SENTENCES = ["sunny day at the beach", "rainy afternoon in the city", "snowy night in the mountains"]


def keyword_vector(text: str) -> list[float]:
    words = re.findall(r"[a-z]+", text.lower())
    return [float(words.count(term)) for term in VOCAB]


class KeywordEmbeddings:
    """Bag-of-words embeddings over ``VOCAB`` that record every call."""

    def __init__(self, fail: Exception | None = None):
        self.query_calls: list[str] = []
        self.document_calls: list[list[str]] = []
        self.fail = fail

    async def aembed_query(self, text):
        self.query_calls.append(text)
        if self.fail:
            raise self.fail
        return keyword_vector(text)

    async def aembed_documents(self, texts):
        self.document_calls.append(list(texts))
        if self.fail:
            raise self.fail
        return [keyword_vector(t) for t in texts]


class ScriptedChatModel:
    """
    Stands in for a LangChain chat model: ``astream`` yields the scripted
    tokens, optionally with a delay and optionally failing after
    ``fail_after`` tokens.
    """

    def __init__(self, tokens=("Hello", ", ", "world"), delay: float = 0.0, fail_after: int | None = None):
        self.tokens = list(tokens)
        self.delay = delay
        self.fail_after = fail_after
        self.calls: list[list] = []
        self.emitted_at: list[float] = []
        self.closed = False

    async def astream(self, messages):
        self.calls.append(list(messages))
        try:
            for i, token in enumerate(self.tokens):
                if self.fail_after is not None and i >= self.fail_after:
                    raise RuntimeError("upstream exploded")
                if self.delay:
                    await asyncio.sleep(self.delay)
                self.emitted_at.append(time.perf_counter())
                yield AIMessageChunk(content=token)
            if self.fail_after is not None and self.fail_after >= len(self.tokens):
                raise RuntimeError("upstream exploded")
        finally:
            self.closed = True


@pytest.fixture
def store(tmp_path):
    return DocumentStore(uri=str(tmp_path / "lancedb"), table_name="documents", dim=DIM)


@pytest.fixture
def seeded_store(store):
    store.ensure_table()
    for sentence in SEED_SENTENCES:
        store.upsert(sentence, keyword_vector(sentence))
    return store


@pytest.fixture
def embeddings():
    return KeywordEmbeddings()


@pytest.fixture
def chat_model():
    return ScriptedChatModel()


@pytest.fixture
def make_rag(embeddings, chat_model):
    def _make(store, degrade: bool = True, timeout_s: float = 5.0):
        return RAGManager(
            embedder=EmbeddingClient(embeddings),
            vector_store=store,
            completion=CompletionClient(chat_model),
            timeout_s=timeout_s,
            degrade_on_retrieval_error=degrade,
        )

    return _make
