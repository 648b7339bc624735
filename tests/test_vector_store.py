"""
Tests for DocumentStore: idempotent schema, inserts, L2 nearest search.
"""

import pytest

from conftest import DIM, keyword_vector
from lumen.src.core.exceptions import RetrievalError
from lumen.src.core.models import Document


class TestEnsureTable:

    def test_creates_table_once(self, store):
        store.ensure_table()
        store.upsert("sunny day at the beach", keyword_vector("sunny day at the beach"))

        store.ensure_table()

        assert store.count() == 1

    def test_count_without_table_is_zero(self, store):
        assert store.count() == 0


class TestUpsert:

    def test_returns_document_with_generated_id(self, store):
        store.ensure_table()
        doc = store.upsert("rainy afternoon in the city", keyword_vector("rainy afternoon in the city"))

        assert isinstance(doc, Document)
        assert doc.id
        assert doc.content == "rainy afternoon in the city"
        assert len(doc.embedding) == DIM

    def test_same_content_twice_creates_two_rows(self, store):
        store.ensure_table()
        a = store.upsert("snowy night", keyword_vector("snowy night"))
        b = store.upsert("snowy night", keyword_vector("snowy night"))

        assert a.id != b.id
        assert store.count() == 2

    def test_wrong_dimension_rejected(self, store):
        store.ensure_table()
        with pytest.raises(ValueError):
            store.upsert("short", [1.0, 2.0])
        assert store.count() == 0

    def test_requires_table(self, store):
        with pytest.raises(RuntimeError):
            store.upsert("no table yet", keyword_vector("beach"))


class TestNearest:

    def test_missing_table_returns_empty(self, store):
        assert store.nearest(keyword_vector("beach"), k=1) == []

    def test_empty_table_returns_empty(self, store):
        store.ensure_table()
        assert store.nearest(keyword_vector("beach"), k=1) == []

    def test_returns_single_closest_document(self, seeded_store):
        hits = seeded_store.nearest(keyword_vector("What's the weather like at the beach?"), k=1)

        assert len(hits) == 1
        assert hits[0].content == "sunny day at the beach"
        assert hits[0].distance is not None

    def test_results_ordered_by_distance(self, seeded_store):
        hits = seeded_store.nearest(keyword_vector("snowy mountains at night"), k=3)

        assert hits[0].content == "snowy night in the mountains"
        distances = [h.distance for h in hits]
        assert distances == sorted(distances)

    def test_exact_match_has_zero_distance(self, seeded_store):
        hits = seeded_store.nearest(keyword_vector("rainy afternoon in the city"), k=1)
        assert hits[0].distance == pytest.approx(0.0)

    def test_dimension_mismatch_is_retrieval_error(self, seeded_store):
        with pytest.raises(RetrievalError):
            seeded_store.nearest([0.0] * (DIM + 1), k=1)

    def test_invalid_k(self, seeded_store):
        with pytest.raises(RetrievalError):
            seeded_store.nearest(keyword_vector("beach"), k=0)

    def test_table_created_after_store_opened(self, store, tmp_path):
        from lumen.src.database.vector_store import DocumentStore

        writer = DocumentStore(uri=str(tmp_path / "lancedb"), table_name="documents", dim=DIM)
        writer.ensure_table()
        writer.upsert("sunny day at the beach", keyword_vector("sunny day at the beach"))

        hits = store.nearest(keyword_vector("beach"), k=1)
        assert [h.content for h in hits] == ["sunny day at the beach"]


def test_drop_table(seeded_store):
    seeded_store.drop_table()
    assert seeded_store.count() == 0
    assert seeded_store.nearest(keyword_vector("beach"), k=1) == []
