"""
Lumen - ChatSession
====================
Client-side conversation state for the ``POST /api/chat`` stream.

The session owns the message list; the server is stateless and receives
the whole conversation on every turn.  While a reply streams in, tokens
are appended to ``pending`` and ``is_loading`` is true; when the stream
ends with ``done`` the pending reply is committed as an assistant message.
A reply cut short (error event, or the stream closing without ``done``)
is committed as far as it got, its index is recorded in ``incomplete``,
and ``GenerationServiceError`` is raised.

Usage:
    async with ChatSession("http://localhost:8000") as session:
        reply = await session.send("What's the weather like at the beach?", on_token=print)
"""

from __future__ import annotations

import json
from typing import AsyncIterator, Callable

import httpx

from lumen.src.core.exceptions import GenerationServiceError, LumenError, error_from_code
from lumen.src.core.models import Message
from lumen.src.utils.logger import get_logger

logger = get_logger(__name__)

_CHAT_PATH = "/api/chat"


async def iter_sse(response: httpx.Response) -> AsyncIterator[tuple[str, dict]]:
    """Yield ``(event, data)`` pairs from a streamed SSE response."""
    event = "message"
    data_lines: list[str] = []
    async for line in response.aiter_lines():
        if not line:
            if data_lines:
                yield event, json.loads("\n".join(data_lines))
            event, data_lines = "message", []
        elif line.startswith("event:"):
            event = line[len("event:"):].strip()
        elif line.startswith("data:"):
            data_lines.append(line[len("data:"):].strip())
    if data_lines:
        yield event, json.loads("\n".join(data_lines))


class ChatSession:
    """
    Conversation state plus the streaming call to the chat endpoint.

    Parameters
    ----------
    base_url
        Root URL of the Lumen server.
    http_client
        Optional pre-built ``httpx.AsyncClient``.  When omitted the session
        creates one and closes it in ``aclose``.
    """

    __slots__ = ("_http", "_owns_http", "messages", "incomplete", "pending", "is_loading")

    def __init__(self, base_url: str, http_client: httpx.AsyncClient | None = None) -> None:
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=httpx.Timeout(60.0, connect=5.0))
        self.messages: list[Message] = []
        # indexes into ``messages`` of assistant replies cut short
        self.incomplete: set[int] = set()
        self.pending: str = ""
        self.is_loading: bool = False


    async def __aenter__(self) -> ChatSession:
        return self


    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()


    async def send(self, content: str, on_token: Callable[[str], None] | None = None) -> Message:
        """
        Append a user message, stream the reply, and commit it.

        Raises
        ------
        LumenError
            The server rejected the request (mapped from its JSON error).
        GenerationServiceError
            The stream was interrupted by an error event or ended without
            ``done``.  Any partial reply is committed and flagged in
            ``incomplete`` before raising.
        """
        self.messages.append(Message(role="user", content=content))
        payload = {"messages": [m.model_dump() for m in self.messages]}
        self.pending = ""
        self.is_loading = True
        finished = False
        try:
            async with self._http.stream("POST", _CHAT_PATH, json=payload) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise self._error_from_response(response)

                async for event, data in iter_sse(response):
                    if event == "error":
                        self._commit_partial()
                        raise GenerationServiceError(str(data.get("message", "stream interrupted")))
                    if event == "done":
                        finished = True
                        break
                    token = str(data.get("token", ""))
                    self.pending += token
                    if on_token is not None:
                        on_token(token)
        finally:
            self.is_loading = False

        if not finished:
            self._commit_partial()
            raise GenerationServiceError("Stream ended before the reply was complete.")
        return self._commit(self.pending)


    def _commit(self, text: str) -> Message:
        reply = Message(role="assistant", content=text)
        self.messages.append(reply)
        self.pending = ""
        return reply


    def _commit_partial(self) -> None:
        # Empty assistant turns are not sent back to the model.
        if not self.pending:
            return
        logger.warning("Reply interrupted after %d character(s).", len(self.pending))
        self._commit(self.pending)
        self.incomplete.add(len(self.messages) - 1)


    @staticmethod
    def _error_from_response(response: httpx.Response) -> LumenError:
        try:
            body = response.json()
        except ValueError:
            return LumenError(f"HTTP {response.status_code}: {response.text}")
        if isinstance(body, dict) and "error" in body:
            return error_from_code(str(body["error"]), str(body.get("message", "")))
        # FastAPI body-validation errors use {"detail": [...]}
        return LumenError(f"HTTP {response.status_code}: {body}")
