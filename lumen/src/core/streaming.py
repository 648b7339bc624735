"""
Lumen - TokenStream
====================
A finite, forward-only, cancellable sequence of text chunks.

The completion client produces one; the HTTP layer (or a script)
consumes it.  Chunks are handed on in arrival order and nothing is
buffered beyond the single chunk pulled by ``start()``.

Lifecycle::

    stream = completion.stream_complete(system_prompt, messages)
    await stream.start()          # optional: surface early upstream errors
    async for chunk in stream:    # closes the upstream when done / cancelled
        ...
    await stream.aclose()         # idempotent
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

_NOTHING = object()


class TokenStream:
    """
    Wraps an async iterator of text chunks.

    Parameters
    ----------
    source
        The upstream iterator.  If it exposes ``aclose()`` (async
        generators do), it is closed when the stream ends or is
        abandoned so no upstream generation is left running.
    """

    __slots__ = ("_source", "_head", "_started", "_consumed", "_closed")

    def __init__(self, source: AsyncIterator[str]) -> None:
        self._source = source
        self._head: object = _NOTHING
        self._started = False
        self._consumed = False
        self._closed = False


    @property
    def closed(self) -> bool:
        return self._closed


    async def start(self, timeout: float | None = None) -> None:
        """
        Pull the first chunk from upstream and hold it.

        Errors raised by the upstream before the first chunk propagate
        here, before the caller commits to a streamed response.  An
        upstream that produces nothing leaves the stream empty.
        """
        if self._started:
            return
        self._started = True
        try:
            self._head = await asyncio.wait_for(self._source.__anext__(), timeout)
        except StopAsyncIteration:
            self._head = _NOTHING
            await self.aclose()
        except BaseException:
            await self.aclose()
            raise


    def __aiter__(self) -> AsyncIterator[str]:
        if self._consumed:
            raise RuntimeError("TokenStream can only be iterated once.")
        self._consumed = True
        return self._iterate()


    async def _iterate(self) -> AsyncIterator[str]:
        try:
            if self._head is not _NOTHING:
                head, self._head = self._head, _NOTHING
                yield head  # type: ignore[misc]
            if not self._closed:
                async for chunk in self._source:
                    yield chunk
        finally:
            await self.aclose()


    async def aclose(self) -> None:
        """Release the upstream iterator.  Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        close = getattr(self._source, "aclose", None)
        if close is not None:
            await close()


    async def collect(self) -> str:
        """Drain the stream and return the concatenated text."""
        return "".join([chunk async for chunk in self])
