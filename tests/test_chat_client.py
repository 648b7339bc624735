"""
Tests for ChatSession: conversation state, incremental token append,
loading flag, and error mapping.
"""

import asyncio
import json

import httpx
import pytest

from conftest import KeywordEmbeddings, ScriptedChatModel
from lumen.src.client.chat_client import ChatSession
from lumen.src.core.completion import CompletionClient
from lumen.src.core.embedder import EmbeddingClient
from lumen.src.core.exceptions import GenerationServiceError, InvalidRequest
from lumen.src.core.rag_engine import RAGManager
from lumen.src.main import create_app


def _sse(*frames):
    return "".join(frames).encode()


def _session(handler):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://lumen.test")
    return ChatSession("http://lumen.test", http_client=http)


def test_tokens_appended_in_order_and_committed():
    seen_payloads = []
    body = _sse('data: {"token": "Hel"}\n\n', 'data: {"token": "lo"}\n\n', "event: done\ndata: {}\n\n")

    def handler(request):
        seen_payloads.append(json.loads(request.content))
        return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

    session = _session(handler)
    tokens = []
    loading_during = []

    def on_token(token):
        tokens.append(token)
        loading_during.append(session.is_loading)

    reply = asyncio.run(session.send("hi", on_token=on_token))

    assert tokens == ["Hel", "lo"]
    assert all(loading_during)
    assert not session.is_loading
    assert reply.content == "Hello"
    assert [(m.role, m.content) for m in session.messages] == [("user", "hi"), ("assistant", "Hello")]
    assert seen_payloads == [{"messages": [{"role": "user", "content": "hi"}]}]


def test_whole_conversation_sent_each_turn():
    payloads = []

    def handler(request):
        payloads.append(json.loads(request.content))
        return httpx.Response(200, content=_sse('data: {"token": "ok"}\n\n', "event: done\ndata: {}\n\n"))

    session = _session(handler)
    asyncio.run(session.send("one"))
    asyncio.run(session.send("two"))

    assert [m["content"] for m in payloads[1]["messages"]] == ["one", "ok", "two"]


def test_error_event_keeps_partial_reply():
    body = _sse('data: {"token": "par"}\n\n', 'event: error\ndata: {"error": "generation_service_error", "message": "upstream exploded"}\n\n')
    session = _session(lambda request: httpx.Response(200, content=body))

    with pytest.raises(GenerationServiceError):
        asyncio.run(session.send("hi"))

    assert session.messages[-1].role == "assistant"
    assert session.messages[-1].content == "par"
    assert session.incomplete == {1}
    assert not session.is_loading


def test_stream_closed_without_done_is_incomplete():
    session = _session(lambda request: httpx.Response(200, content=_sse('data: {"token": "par"}\n\n')))

    with pytest.raises(GenerationServiceError):
        asyncio.run(session.send("hi"))

    assert [(m.role, m.content) for m in session.messages] == [("user", "hi"), ("assistant", "par")]
    assert session.incomplete == {1}
    assert not session.is_loading


def test_interrupted_reply_sent_back_without_marker():
    payloads = []
    bodies = iter([
        _sse('data: {"token": "par"}\n\n'),
        _sse('data: {"token": "ok"}\n\n', "event: done\ndata: {}\n\n"),
    ])

    def handler(request):
        payloads.append(json.loads(request.content))
        return httpx.Response(200, content=next(bodies))

    session = _session(handler)
    with pytest.raises(GenerationServiceError):
        asyncio.run(session.send("one"))
    asyncio.run(session.send("two"))

    assert payloads[1]["messages"] == [
        {"role": "user", "content": "one"},
        {"role": "assistant", "content": "par"},
        {"role": "user", "content": "two"},
    ]
    assert session.incomplete == {1}


def test_error_before_any_token_commits_nothing():
    body = _sse('event: error\ndata: {"error": "generation_service_error", "message": "boom"}\n\n')
    session = _session(lambda request: httpx.Response(200, content=body))

    with pytest.raises(GenerationServiceError):
        asyncio.run(session.send("hi"))

    assert [m.role for m in session.messages] == ["user"]
    assert session.incomplete == set()


def test_session_owns_client_it_creates():
    async def go():
        async with ChatSession("http://lumen.test") as session:
            http = session._http
        return http

    assert asyncio.run(go()).is_closed


def test_injected_client_left_open():
    http = httpx.AsyncClient(base_url="http://lumen.test")

    async def go():
        async with ChatSession("http://lumen.test", http_client=http):
            pass

    asyncio.run(go())
    assert not http.is_closed


def test_http_error_mapped_to_taxonomy():
    session = _session(lambda request: httpx.Response(400, json={"error": "invalid_request", "message": "Conversation is empty."}))

    with pytest.raises(InvalidRequest):
        asyncio.run(session.send("hi"))
    assert not session.is_loading


def test_against_the_real_app(seeded_store):
    app = create_app(rag_manager=None, cors_origins=["http://localhost"])
    app.state.rag = RAGManager(EmbeddingClient(KeywordEmbeddings()), seeded_store, CompletionClient(ScriptedChatModel(tokens=["sunny", "!"])))

    async def go():
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://lumen.test") as http:
            session = ChatSession("http://lumen.test", http_client=http)
            return await session.send("What's the weather like at the beach?")

    assert asyncio.run(go()).content == "sunny!"
