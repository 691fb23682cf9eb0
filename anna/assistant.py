from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from anna.core import commands, extractor
from anna.core.models import Fact, MemoryItem, ParsedCommand
from anna.tools.memory_client import LocalCache, MemoryClient
from anna.tools.session import SessionRegistry


logger = logging.getLogger("anna")

DEFAULT_PREFERENCES = [
    {
        "type": "preference",
        "key": "code_delivery",
        "value": "Immer vollständigen Code zum Austauschen",
        "confidence": "high",
    },
    {
        "type": "preference",
        "key": "workflow",
        "value": "Schritt-für-Schritt Anleitung",
        "confidence": "high",
    },
]


@dataclass
class BootstrapResult:
    session_id: str
    memory_id: str
    memory_version: int


@dataclass
class MessageOutcome:
    source: Optional[str] = None  # "command", "suggestion" or None
    facts: List[Fact] = field(default_factory=list)

    @property
    def saved(self) -> bool:
        return bool(self.facts)


def bootstrap_anna(
    client: MemoryClient,
    registry: SessionRegistry,
    owner_hint: Optional[str] = None,
) -> BootstrapResult:
    session_id = registry.get_or_create_session_id()
    cache = client.start_session(session_id, owner_hint)

    # first run = version 1 and no items
    if cache.version == 1 and not cache.items:
        logger.info("First run for session %s, storing default preferences", session_id)
        cache = client.upsert_memory_items(DEFAULT_PREFERENCES)

    return BootstrapResult(
        session_id=client.session_id or session_id,
        memory_id=cache.memory_id,
        memory_version=cache.version,
    )


def execute_remember_command(client: MemoryClient, command: ParsedCommand) -> LocalCache:
    return client.upsert_memory_items([command])


def handle_message(client: MemoryClient, text: str) -> MessageOutcome:
    """Remember what a chat message asks for.

    An explicit remember command wins; otherwise the heuristic suggestions
    are stored. TransportError from the client propagates to the caller.
    """
    if not text or not text.strip():
        return MessageOutcome()

    command = commands.parse(text)
    if command is not None:
        execute_remember_command(client, command)
        return MessageOutcome(source="command", facts=[command])

    suggestions = extractor.extract(text)
    if not suggestions:
        return MessageOutcome()
    client.upsert_memory_items(suggestions)
    return MessageOutcome(source="suggestion", facts=list(suggestions))


def sort_items(items: List[MemoryItem]) -> List[MemoryItem]:
    return sorted(items, key=lambda it: (it.type or "", it.key or ""))
