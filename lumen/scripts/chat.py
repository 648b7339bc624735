"""
Lumen - Terminal Chat
======================
Interactive chat against a running server, printing tokens as they
stream in.  Empty input or Ctrl-D exits.

Usage:
    python -m lumen.scripts.chat                      # http://localhost:8000
    python -m lumen.scripts.chat http://host:8000
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

import httpx

from lumen.src.client.chat_client import ChatSession
from lumen.src.core.exceptions import LumenError

_DEFAULT_URL = "http://localhost:8000"


def _token_printer():
    """Print tokens as they arrive, replacing the loading indicator on the first one."""
    first = True

    def _print(token: str) -> None:
        nonlocal first
        if first:
            print("\r\033[KAI: ", end="")
            first = False
        print(token, end="", flush=True)

    return _print


async def _loop(base_url: str) -> None:
    async with ChatSession(base_url) as session:
        while True:
            try:
                content = input("User: ").strip()
            except EOFError:
                break
            if not content:
                break

            print("AI: …", end="", flush=True)
            try:
                await session.send(content, on_token=_token_printer())
            except LumenError as exc:
                print(f"\n[error] {exc.message}")
            except httpx.HTTPError as exc:
                print(f"\n[connection error] {exc}")
            print()


def main() -> None:
    base_url = sys.argv[1] if len(sys.argv) > 1 else _DEFAULT_URL
    asyncio.run(_loop(base_url))


if __name__ == "__main__":
    main()
