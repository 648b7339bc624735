"""
Lumen - CompletionClient
=========================
Streams a chat-model reply as a ``TokenStream``.

The conversation is mapped 1:1 onto LangChain messages in its original
order; an optional system instruction is prepended.  Failures from the
model, whether before the first token or mid-stream, surface as
``GenerationServiceError`` from the stream.
"""

from __future__ import annotations

from contextlib import aclosing
from typing import TYPE_CHECKING, AsyncIterator, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from lumen.src.core.exceptions import GenerationServiceError
from lumen.src.core.models import Message
from lumen.src.core.streaming import TokenStream
from lumen.src.utils.logger import get_logger

if TYPE_CHECKING:
    from lumen.config.settings import Settings

logger = get_logger(__name__)

_ROLE_TO_MESSAGE: dict[str, type[BaseMessage]] = {
    "user": HumanMessage,
    "assistant": AIMessage,
    "system": SystemMessage,
}


def to_langchain_messages(system_prompt: str | None, messages: Sequence[Message]) -> list[BaseMessage]:
    """Map the conversation onto LangChain messages, preserving order."""
    converted: list[BaseMessage] = [SystemMessage(content=system_prompt)] if system_prompt is not None else []
    converted.extend(_ROLE_TO_MESSAGE[m.role](content=m.content) for m in messages)
    return converted


def chunk_text(content: object) -> str:
    """
    Extract plain text from a streamed chunk's ``content``.

    Gemini may deliver content as a string or as a list of parts
    (strings or ``{"type": "text", "text": ...}`` dicts).
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type", "text") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return ""


class CompletionClient:
    """
    Produces streamed replies from a LangChain chat model.

    Parameters
    ----------
    llm
        Any ``BaseChatModel`` supporting ``astream`` (e.g.
        ``ChatGoogleGenerativeAI``).
    """

    __slots__ = ("_llm",)

    def __init__(self, llm: BaseChatModel) -> None:
        self._llm = llm


    def stream_complete(self, system_prompt: str | None, messages: Sequence[Message]) -> TokenStream:
        """
        Start a streamed completion.

        Nothing is sent upstream until the returned stream is started or
        iterated.
        """
        lc_messages = to_langchain_messages(system_prompt, messages)
        logger.debug("Streaming completion: %d message(s), system prompt %s.", len(lc_messages), "present" if system_prompt is not None else "omitted")
        return TokenStream(self._generate(lc_messages))


    async def _generate(self, lc_messages: list[BaseMessage]) -> AsyncIterator[str]:
        emitted = 0
        try:
            async with aclosing(self._llm.astream(lc_messages)) as upstream:
                async for chunk in upstream:
                    text = chunk_text(chunk.content)
                    if text:
                        emitted += 1
                        yield text
        except Exception as exc:
            logger.error("Completion stream failed after %d chunk(s): %s", emitted, exc)
            raise GenerationServiceError(f"Generation service failed: {exc}") from exc
        logger.debug("Completion stream finished (%d chunks).", emitted)


def create_completion_client(settings: Settings) -> CompletionClient:
    """Initialise the Gemini chat model via LangChain."""
    from langchain_google_genai import ChatGoogleGenerativeAI

    llm = ChatGoogleGenerativeAI(model=settings.LLM_MODEL, temperature=settings.LLM_TEMPERATURE, timeout=settings.REQUEST_TIMEOUT_S, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    logger.info("LLM initialised: %s (temperature=%.1f)", settings.LLM_MODEL, settings.LLM_TEMPERATURE)
    return CompletionClient(llm)
