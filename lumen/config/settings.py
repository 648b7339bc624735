"""
Lumen - Centralized Configuration
==================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Security
--------
- ``GOOGLE_API_KEY`` is typed as ``SecretStr`` and has **no default value**.
  The raw value is never exposed in repr, logs, or tracebacks.
- ``LANCEDB_URI`` is also ``SecretStr`` — remote connection strings
  (``db://``, ``s3://``) can carry credentials and must never leak into logs.

Lifecycle
---------
Settings are built **once** per process by ``get_settings()`` and then
passed explicitly into the client / store factories.  A missing required
value surfaces as ``ConfigurationError`` at first use, never at import.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lumen.src.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).
    Fields *without* a default are **required**.

    Attributes
    ----------
    GOOGLE_API_KEY : SecretStr
        API key for Google AI Studio (Gemini).  **Required.**
    LANCEDB_URI : SecretStr
        Vector store connection string: a local directory, ``s3://…``
        or ``db://…``.  **Required.**
    LANCEDB_TABLE_NAME : str
        Table holding the ``(id, content, embedding)`` documents.
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity.
    EMBEDDING_MODEL : str
        Model identifier passed to ``GoogleGenerativeAIEmbeddings``.
    EMBEDDING_DIM : int
        Fixed vector dimension.  Must match ``EMBEDDING_MODEL`` — stored
        and query embeddings are compared in the same space.
    LLM_MODEL : str
        Model identifier for the streaming chat model.
    LLM_TEMPERATURE : float
        Sampling temperature for the chat model.
    REQUEST_TIMEOUT_S : float
        Timeout applied to each remote call (embed, retrieve, first token).
    DEGRADE_ON_RETRIEVAL_ERROR : bool
        When retrieval fails, answer without context instead of failing.
    CORS_ORIGINS : list[str]
        Origins allowed to call the chat endpoint from a browser.
    """

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"

    # ── API Keys (REQUIRED, no default) ───────────────────────────────
    GOOGLE_API_KEY: SecretStr

    # ── LanceDB (REQUIRED, no default) ────────────────────────────────
    LANCEDB_URI: SecretStr
    LANCEDB_TABLE_NAME: str = "documents"

    # ── Model Configuration ────────────────────────────────────────────
    EMBEDDING_MODEL: str = "gemini-embedding-001"
    EMBEDDING_DIM: int = 3072
    LLM_MODEL: str = "gemini-2.0-flash"
    LLM_TEMPERATURE: float = 0.7

    # ── Request Handling ───────────────────────────────────────────────
    REQUEST_TIMEOUT_S: float = 30.0
    DEGRADE_ON_RETRIEVAL_ERROR: bool = True

    # ── HTTP ───────────────────────────────────────────────────────────
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("EMBEDDING_DIM")
    @classmethod
    def _dim_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"EMBEDDING_DIM must be > 0, got {v}")
        return v


    @field_validator("LLM_TEMPERATURE")
    @classmethod
    def _temperature_range(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError(f"LLM_TEMPERATURE must be 0.0–2.0, got {v}")
        return v


    @field_validator("REQUEST_TIMEOUT_S")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"REQUEST_TIMEOUT_S must be > 0, got {v}")
        return v

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Build the process-wide ``Settings`` on first call and cache it.

    Raises
    ------
    ConfigurationError
        If a required value is missing or a value fails validation.
    """
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in exc.errors())
        raise ConfigurationError(f"Invalid or missing configuration: {fields}. Check your environment or .env file.") from exc
