"""
Lumen - Data Model
===================
Typed records that flow through the request pipeline.

``Message`` / ``ChatRequest``
    The conversation as sent by the client.  Order is chronological and
    is preserved end-to-end.
``Document``
    A stored ``(id, content, embedding)`` row.  Rows coming back from
    LanceDB are validated here (``Document.from_row``) instead of being
    passed around as loose dicts.
"""

from __future__ import annotations

from typing import Literal, Mapping

from pydantic import BaseModel, Field

Role = Literal["user", "assistant", "system"]


class Message(BaseModel):
    role: Role
    content: str


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``.  Emptiness is checked by the handler."""

    messages: list[Message] = Field(default_factory=list)


class Document(BaseModel):
    """
    A stored document.

    ``distance`` is only set on retrieval results (L2 distance to the
    query embedding) and is not part of the persisted row.
    """

    id: str
    content: str
    embedding: list[float]
    distance: float | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, object]) -> "Document":
        """Build a ``Document`` from a LanceDB result row."""
        raw_distance = row.get("_distance")
        return cls(
            id=str(row["id"]),
            content=str(row["content"]),
            embedding=[float(x) for x in row["embedding"]],  # type: ignore[union-attr]
            distance=float(raw_distance) if raw_distance is not None else None,  # type: ignore[arg-type]
        )

    def to_row(self) -> dict[str, str | list[float]]:
        return {"id": self.id, "content": self.content, "embedding": self.embedding}
