"""
Tests for EmbeddingClient batching and error mapping.
"""

import asyncio

import pytest

from conftest import KeywordEmbeddings, keyword_vector
from lumen.src.core.embedder import EmbeddingClient
from lumen.src.core.exceptions import EmbeddingServiceError


def test_embed_single_query(embeddings):
    vector = asyncio.run(EmbeddingClient(embeddings).embed("beach weather"))

    assert vector == keyword_vector("beach weather")
    assert embeddings.query_calls == ["beach weather"]


def test_embed_many_batches_in_order(embeddings):
    texts = [f"beach {i}" for i in range(5)] + ["snowy night"]
    vectors = asyncio.run(EmbeddingClient(embeddings, batch_size=2).embed_many(texts))

    assert [len(batch) for batch in embeddings.document_calls] == [2, 2, 2]
    assert vectors == [keyword_vector(t) for t in texts]


def test_embed_many_empty_makes_no_call(embeddings):
    assert asyncio.run(EmbeddingClient(embeddings).embed_many([])) == []
    assert embeddings.document_calls == []


def test_upstream_error_is_wrapped():
    failing = KeywordEmbeddings(fail=PermissionError("invalid api key"))

    with pytest.raises(EmbeddingServiceError) as info:
        asyncio.run(EmbeddingClient(failing).embed("hello"))

    assert isinstance(info.value.__cause__, PermissionError)
    assert info.value.http_status == 502


def test_short_batch_result_is_an_error():
    class Dropping(KeywordEmbeddings):
        async def aembed_documents(self, texts):
            return [keyword_vector(t) for t in texts[:-1]]

    with pytest.raises(EmbeddingServiceError):
        asyncio.run(EmbeddingClient(Dropping()).embed_many(["a", "b"]))
