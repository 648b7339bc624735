"""
Lumen - DocumentStore
======================
OOP wrapper around LanceDB providing a clean interface for:
  • Idempotent table creation with a strict PyArrow schema
  • Document insertion (content + pre-computed embedding)
  • Nearest-neighbour search by L2 distance

Design decisions:
  • **Singleton DB connection** — ``_get_connection()`` caches the
    ``lancedb.DBConnection`` per URI to avoid file-lock issues.
  • **No embedder inside** — the store only sees vectors.  Embedding
    happens in ``EmbeddingClient`` so the handler controls exactly one
    embedding call per request.
  • **Typed boundary** — search rows are validated into ``Document``
    before they leave this module.
  • **Fixed dimension** — every vector written or queried must have
    ``dim`` components; the table column is a fixed-size list.

Usage:
    from lumen.src.database.vector_store import DocumentStore
    store = DocumentStore(uri=".lancedb", table_name="documents", dim=3072)
    store.ensure_table()
    store.upsert("sunny day at the beach", vector)
    hits = store.nearest(query_vector, k=1)
"""

from __future__ import annotations

import threading
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

import lancedb
import pyarrow as pa

from lumen.src.core.exceptions import RetrievalError
from lumen.src.core.models import Document
from lumen.src.utils.logger import get_logger

if TYPE_CHECKING:
    from lumen.config.settings import Settings

logger = get_logger(__name__)

# ── Constants ──────────────────────────────────────────────────────────
_VECTOR_COLUMN = "embedding"
_DISTANCE_TYPE = "l2"
_DB_LOCK = threading.Lock()
_db_connection_cache: dict[str, lancedb.DBConnection] = {}


def document_schema(dim: int) -> pa.Schema:
    """LanceDB table schema for documents with ``dim``-dimensional embeddings."""
    return pa.schema([
        pa.field("id", pa.utf8(), nullable=False),
        pa.field("content", pa.utf8(), nullable=False),
        pa.field(_VECTOR_COLUMN, pa.list_(pa.float32(), dim)),
    ])


def _get_connection(uri: str) -> lancedb.DBConnection:
    """
    Return a **singleton** ``lancedb.DBConnection`` for *uri*.

    Thread-safe via ``_DB_LOCK``.  Re-uses an existing connection
    for the same URI, avoiding file-lock contention when multiple
    ``DocumentStore`` instances share the same database.
    """
    if uri not in _db_connection_cache:
        with _DB_LOCK:
            if uri not in _db_connection_cache:
                if "://" not in uri:
                    Path(uri).mkdir(parents=True, exist_ok=True)
                logger.info("Opening new LanceDB connection.")
                _db_connection_cache[uri] = lancedb.connect(uri)
    return _db_connection_cache[uri]


class DocumentStore:
    """
    High-level abstraction over a LanceDB document table.

    Parameters
    ----------
    uri
        LanceDB connection string (local directory or remote URI).
    table_name
        Name of the documents table.
    dim
        Embedding dimension; must match the embedding model.
    """

    __slots__ = ("_uri", "_table_name", "_dim", "db", "table")

    def __init__(self, uri: str, table_name: str = "documents", dim: int = 3072) -> None:
        self._uri: str = str(uri)
        self._table_name: str = table_name
        self._dim: int = dim
        self.db: lancedb.DBConnection | None = None
        self.table: lancedb.table.Table | None = None
        self._connect()


    @property
    def dim(self) -> int:
        return self._dim


    def _connect(self) -> None:
        """Open (or re-use) the LanceDB connection and the table if it exists."""
        try:
            self.db = _get_connection(self._uri)
            self._open_table()
        except OSError as exc:
            logger.error("LanceDB filesystem error: %s", exc)
            raise RetrievalError(f"Vector store unreachable: {exc}") from exc


    def _open_table(self) -> lancedb.table.Table | None:
        """Lazily open the table if it exists, cache the handle."""
        if self.table is None and self.db is not None and self._table_name in self.db.table_names():
            self.table = self.db.open_table(self._table_name)
            logger.info("Opened existing table '%s' (%d rows).", self._table_name, self.table.count_rows())
        return self.table


    def _check_dim(self, vector: Sequence[float]) -> None:
        if len(vector) != self._dim:
            raise ValueError(f"Embedding dimension mismatch: expected {self._dim}, got {len(vector)}.")


    def ensure_table(self) -> None:
        """Create the documents table if it does not exist.  Safe to call repeatedly."""
        if self.db is None:
            raise RuntimeError("LanceDB connection is not initialised.")
        self.table = self.db.create_table(self._table_name, schema=document_schema(self._dim), exist_ok=True)
        logger.info("Table '%s' ready (%d rows).", self._table_name, self.table.count_rows())


    def upsert(self, content: str, embedding: Sequence[float]) -> Document:
        """
        Persist one ``(content, embedding)`` pair as a new document.

        Every call inserts a new row with a fresh id; identical content
        is not de-duplicated.

        Raises
        ------
        ValueError
            If the embedding has the wrong dimension.
        RuntimeError
            If the table has not been created (see ``ensure_table``).
        """
        self._check_dim(embedding)
        if self._open_table() is None:
            raise RuntimeError(f"Table '{self._table_name}' does not exist. Call ensure_table() first.")

        document = Document(id=str(uuid.uuid4()), content=content, embedding=[float(x) for x in embedding])
        try:
            self.table.add([document.to_row()])  # type: ignore[union-attr]
        except OSError as exc:
            logger.error("Failed to write document to LanceDB: %s", exc)
            raise

        logger.debug("Inserted document %s into '%s'.", document.id, self._table_name)
        return document


    def nearest(self, embedding: Sequence[float], k: int = 1) -> list[Document]:
        """
        Return the ``k`` documents closest to *embedding* by L2 distance.

        An absent or empty table yields ``[]``.

        Raises
        ------
        RetrievalError
            On dimension mismatch or any failure talking to LanceDB.
        """
        if k < 1:
            raise RetrievalError(f"k must be >= 1, got {k}.")
        try:
            self._check_dim(embedding)
        except ValueError as exc:
            raise RetrievalError(str(exc)) from exc

        try:
            table = self._open_table()
            if table is None or table.count_rows() == 0:
                logger.info("Table '%s' is empty or missing; no documents to retrieve.", self._table_name)
                return []

            rows = (
                table.search(list(embedding), vector_column_name=_VECTOR_COLUMN)
                .distance_type(_DISTANCE_TYPE)
                .limit(k)
                .to_list()
            )
        except Exception as exc:
            logger.error("Vector search failed: %s", exc)
            raise RetrievalError(f"Vector search failed: {exc}") from exc

        documents = [Document.from_row(row) for row in rows]
        logger.info("Search returned %d result(s).", len(documents))
        return documents


    def count(self) -> int:
        """Return the total number of rows in the table."""
        table = self._open_table()
        return table.count_rows() if table is not None else 0


    def drop_table(self) -> None:
        """Drop the documents table (useful for testing / re-seeding)."""
        if self.db is None:
            logger.warning("No database connection; nothing to drop.")
            return
        if self._table_name not in self.db.table_names():
            logger.warning("Table '%s' does not exist — nothing to drop.", self._table_name)
            return
        self.db.drop_table(self._table_name)
        self.table = None
        logger.info("Dropped table '%s'.", self._table_name)


    def __repr__(self) -> str:
        return f"DocumentStore(table='{self._table_name}', dim={self._dim}, rows={self.count()})"


def create_document_store(settings: Settings) -> DocumentStore:
    """Build the store from process settings."""
    return DocumentStore(uri=settings.LANCEDB_URI.get_secret_value(), table_name=settings.LANCEDB_TABLE_NAME, dim=settings.EMBEDDING_DIM)
