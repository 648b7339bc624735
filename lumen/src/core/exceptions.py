"""
Lumen - Error Taxonomy
=======================
Every error that crosses a module boundary derives from ``LumenError``,
so the HTTP layer can map the whole family to a status code and a JSON
body in one handler.

    InvalidRequest           → 400  malformed / empty conversation
    EmbeddingServiceError    → 502  embedding call failed or timed out
    RetrievalError           → 503  vector store unreachable or query malformed
    GenerationServiceError   → 502  completion failed (before or mid-stream)
    ConfigurationError       → 500  required setting missing or invalid
"""

from __future__ import annotations


class LumenError(Exception):
    """
    Base class for all Lumen errors.

    Attributes
    ----------
    message
        Human-readable description.
    code
        Machine-readable code used in JSON error bodies and SSE error events.
    http_status
        Status code used when the error reaches the HTTP boundary.
    """

    code: str = "internal_error"
    http_status: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(LumenError):
    """The conversation is empty or does not end with a user message."""

    code = "invalid_request"
    http_status = 400


class EmbeddingServiceError(LumenError):
    """The embedding service failed (network, auth, rate limit, timeout)."""

    code = "embedding_service_error"
    http_status = 502


class RetrievalError(LumenError):
    """The vector store is unreachable or the query was malformed."""

    code = "retrieval_error"
    http_status = 503


class GenerationServiceError(LumenError):
    """The completion service failed before or during streaming."""

    code = "generation_service_error"
    http_status = 502


class ConfigurationError(LumenError):
    """A required setting is missing or invalid."""

    code = "configuration_error"
    http_status = 500


_BY_CODE: dict[str, type[LumenError]] = {cls.code: cls for cls in (LumenError, InvalidRequest, EmbeddingServiceError, RetrievalError, GenerationServiceError, ConfigurationError)}


def error_from_code(code: str, message: str) -> LumenError:
    """Rebuild a typed error from the ``code`` of a JSON error body."""
    return _BY_CODE.get(code, LumenError)(message)
