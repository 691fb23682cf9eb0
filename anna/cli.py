"""Entry point: python -m anna [chat|serve]

- No args / "chat": interactive REPL against a running memory service
- "serve":          run the memory service with uvicorn
"""

from __future__ import annotations

import logging
import sys
from typing import Callable, List, Optional, TextIO

from anna.assistant import bootstrap_anna, handle_message, sort_items
from anna.core.errors import TransportError
from anna.core.models import MemoryItem
from anna.tools.memory_client import MemoryClient
from anna.tools.session import SessionRegistry
from config.settings import get_settings


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(asctime)s] %(levelname)s - %(message)s",
    )


def format_items(items: List[MemoryItem]) -> str:
    if not items:
        return "(no memory yet)"
    return "\n".join(
        f"  {it.type}:{it.key} = {it.value} [{it.confidence}]" for it in sort_items(items)
    )


def run_chat(
    client: MemoryClient,
    registry: SessionRegistry,
    read_line: Callable[[], Optional[str]],
    out: TextIO = sys.stdout,
) -> None:
    try:
        boot = bootstrap_anna(client, registry)
    except TransportError as exc:
        print(f"Bootstrap failed: {exc}", file=out)
        return

    print(f"ANNA memory (session {boot.session_id}, memory {boot.memory_id} v{boot.memory_version})", file=out)
    print("Commands: /list, /reset, exit", file=out)
    print("-" * 48, file=out)

    while True:
        line = read_line()
        if line is None or line.strip().lower() in ("exit", "quit"):
            print("Bye!", file=out)
            break

        text = line.strip()
        if not text:
            continue

        try:
            if text == "/list":
                print(format_items(client.cache.items), file=out)
                continue
            if text == "/reset":
                cache = client.reset()
                print(f"Memory cleared (v{cache.version}).", file=out)
                continue

            outcome = handle_message(client, text)
        except TransportError as exc:
            print(f"Error: {exc}", file=out)
            continue

        if not outcome.saved:
            print("Kein speicherbares Memory erkannt.", file=out)
            continue
        for fact in outcome.facts:
            print(f"Gespeichert ({outcome.source}): {fact.type}:{fact.key} = {fact.value}", file=out)
        print(f"Memory v{client.cache.version}, {len(client.cache.items)} item(s).", file=out)


def _read_stdin() -> Optional[str]:
    try:
        sys.stdout.write("\nYou: ")
        sys.stdout.flush()
        raw = sys.stdin.readline()
    except (EOFError, KeyboardInterrupt):
        return None
    if not raw:
        return None
    return raw.rstrip("\n")


def _run_cli() -> None:
    settings = get_settings()
    _setup_logging(settings.log_level)
    registry = SessionRegistry(settings.session_file)
    with MemoryClient() as client:
        run_chat(client, registry, _read_stdin)


def _run_serve() -> None:
    from app.main import run

    run()


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "chat"

    if cmd in ("chat", "repl"):
        _run_cli()
    elif cmd == "serve":
        _run_serve()
    else:
        print("Usage: python -m anna [chat|serve]")
        print("  chat   - Interactive memory REPL (default)")
        print("  serve  - Run the memory service")
        sys.exit(1)


if __name__ == "__main__":
    main()
