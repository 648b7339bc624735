"""
Lumen - Database Setup & Seeding Script
========================================
CLI entry point that orchestrates:
    1. Load settings (fail-fast on a missing ``GOOGLE_API_KEY`` /
       ``LANCEDB_URI``).
    2. Initialise the embedding client and ``DocumentStore``.
    3. Seed the three sample sentences.
    4. Print a structured execution summary with timing breakdown.

Running it twice inserts the sentences twice; there is no dedup.

Usage:
    python -m lumen.scripts.setup_db
"""

from __future__ import annotations

import asyncio
import sys
import time
from pathlib import Path

# ── Ensure project root is importable when run directly ────────────────
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))


# ── Main Orchestration ─────────────────────────────────────────────────

def main() -> None:
    t_start = time.perf_counter()

    # ── 0. Load settings + .env (timed) ────────────────────────────────
    from lumen.src.core.exceptions import ConfigurationError

    t_settings = time.perf_counter()
    try:
        from lumen.config.settings import get_settings

        settings = get_settings()
    except ConfigurationError as exc:
        print("\n[FATAL] Configuration error — check your .env file:\n")
        print(f"  {exc}")
        print()
        sys.exit(1)
    settings_ms = (time.perf_counter() - t_settings) * 1000

    from lumen.src.utils.logger import configure_logging, get_logger

    configure_logging(settings.ENV)
    logger = get_logger(__name__)
    logger.info("Settings loaded in %.1fms", settings_ms)

    from lumen.config.prompt_templates import SAMPLE_DOCUMENTS

    _print_header(settings, len(SAMPLE_DOCUMENTS))

    # ── 1. Initialise embedder + store (timed) ─────────────────────────
    from lumen.src.core.embedder import create_embedding_client
    from lumen.src.core.seeder import seed
    from lumen.src.database.vector_store import create_document_store

    t_init = time.perf_counter()
    embedder = create_embedding_client(settings)
    store = create_document_store(settings)
    init_ms = (time.perf_counter() - t_init) * 1000
    logger.info("Embedder + LanceDB initialised in %.1fms", init_ms)

    # ── 2. Seed ────────────────────────────────────────────────────────
    t_seed = time.perf_counter()
    documents = asyncio.run(seed(store, embedder, SAMPLE_DOCUMENTS))
    seed_s = time.perf_counter() - t_seed

    # ── 3. Print execution summary ─────────────────────────────────────
    _print_footer(len(documents), store.count(), settings_ms, init_ms, seed_s, time.perf_counter() - t_start)


# ── Pretty-print helpers ──────────────────────────────────────────────

def _print_header(settings: object, n_values: int) -> None:
    api_key_val = settings.GOOGLE_API_KEY.get_secret_value()  # type: ignore[attr-defined]
    masked = f"****{api_key_val[-4:]}" if len(api_key_val) > 4 else "****"

    uri_val = settings.LANCEDB_URI.get_secret_value()  # type: ignore[attr-defined]
    uri_masked = uri_val.split("@")[-1] if "@" in uri_val else uri_val

    print()
    print("=" * 60)
    print("  LUMEN — Vector Database Setup & Seeding")
    print("=" * 60)
    print(f"  Environment  : {settings.ENV}")                   # type: ignore[attr-defined]
    print(f"  Embedding    : {settings.EMBEDDING_MODEL} (dim {settings.EMBEDDING_DIM})")  # type: ignore[attr-defined]
    print(f"  LanceDB      : {uri_masked}")
    print(f"  Table        : {settings.LANCEDB_TABLE_NAME}")    # type: ignore[attr-defined]
    print(f"  Documents    : {n_values}")
    print(f"  API Key      : {masked}")
    print("=" * 60)
    print()


def _print_footer(added: int, total_rows: int, settings_ms: float, init_ms: float, seed_s: float, elapsed: float) -> None:
    print()
    print("=" * 60)
    print("  EXECUTION SUMMARY")
    print("-" * 60)
    print(f"  Documents added      : {added}")
    print(f"  Total rows in table  : {total_rows}")
    print("-" * 60)
    print("  TIMING BREAKDOWN")
    print("-" * 60)
    print(f"  Settings + .env load : {settings_ms:>8.1f}ms")
    print(f"  Client init          : {init_ms:>8.1f}ms")
    print(f"  Embed + insert       : {seed_s:>8.2f}s")
    print(f"  Total elapsed        : {elapsed:>8.2f}s")
    print("=" * 60)
    print()


# ── Entry point ────────────────────────────────────────────────────────

if __name__ == "__main__":
    main()
