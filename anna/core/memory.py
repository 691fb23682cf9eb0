"""Server-side memory store.

One MemoryRecord per session, addressed by memoryId. Items are keyed by
(type, key) and replaced wholesale on upsert. The record version goes up by
exactly one on every successful mutation, whatever the patch size. Writes are
last-write-wins; there is no optimistic concurrency check.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any, Optional

from anna.core.backends import InMemoryBackend, MemoryBackend, SQLiteBackend
from anna.core.errors import NotFoundError, ValidationError
from anna.core.models import (
    MemoryItem,
    MemoryRecord,
    Session,
    StartResult,
    clean,
    coerce_fact,
    confidence_level,
    now_iso,
    random_id,
)


logger = logging.getLogger("anna.memory")


class MemoryStore:
    def __init__(self, backend: Optional[MemoryBackend] = None, default_confidence: str = "medium") -> None:
        self.backend = backend if backend is not None else InMemoryBackend()
        self.default_confidence = confidence_level(default_confidence)
        # sync FastAPI endpoints run in a thread pool
        self._lock = threading.Lock()

    def start(self, session_id: Any, owner_hint: Any = None) -> StartResult:
        """Bind a session to its record, creating both on first sight."""
        session_id = self._require(session_id, "sessionId")
        with self._lock:
            now = now_iso()
            session = self.backend.load_session(session_id)
            record = self.backend.load_record(session.memory_id) if session is not None else None

            if session is None or record is None:
                record = MemoryRecord(
                    memory_id=random_id("mem"),
                    version=1,
                    items=[],
                    updated_at=now,
                    owner_hint=clean(owner_hint) or None,
                )
                self.backend.save_record(record)
                session = Session(
                    session_id=session_id,
                    memory_id=record.memory_id,
                    created_at=now,
                    last_seen_at=now,
                )
                logger.info("Session %s bound to new memory %s", session_id, record.memory_id)
            else:
                session = session.model_copy(update={"last_seen_at": now})
            self.backend.save_session(session)

        return StartResult(
            session_id=session.session_id,
            memory_id=record.memory_id,
            memory_version=record.version,
            items=record.items,
        )

    def get(self, memory_id: Any) -> MemoryRecord:
        memory_id = self._require(memory_id, "memoryId")
        with self._lock:
            return self._load(memory_id)

    def upsert(self, memory_id: Any, patch: Any) -> MemoryRecord:
        """Apply a patch as replace-by-identity and bump the version once.

        The whole patch is validated before anything is touched, so a bad
        entry leaves items and version unchanged.
        """
        memory_id = self._require(memory_id, "memoryId")
        if isinstance(patch, (str, bytes)) or not isinstance(patch, Sequence) or not patch:
            raise ValidationError("patch must be non-empty array")
        facts = [coerce_fact(entry, self.default_confidence) for entry in patch]

        with self._lock:
            record = self._load(memory_id)
            now = now_iso()
            items = {item.identity: item for item in record.items}
            for fact in facts:
                items[fact.identity] = MemoryItem(**fact.model_dump(), last_updated=now)
            record = record.model_copy(
                update={"items": list(items.values()), "version": record.version + 1, "updated_at": now}
            )
            self.backend.save_record(record)

        logger.info("Memory %s upserted %d item(s) -> version %d", memory_id, len(facts), record.version)
        return record

    def reset(self, memory_id: Any) -> MemoryRecord:
        """Clear all items. The version counter keeps counting."""
        memory_id = self._require(memory_id, "memoryId")
        with self._lock:
            record = self._load(memory_id)
            record = record.model_copy(
                update={"items": [], "version": record.version + 1, "updated_at": now_iso()}
            )
            self.backend.save_record(record)

        logger.info("Memory %s reset -> version %d", memory_id, record.version)
        return record

    def get_session(self, session_id: Any) -> Session:
        session_id = self._require(session_id, "sessionId")
        session = self.backend.load_session(session_id)
        if session is None:
            raise NotFoundError("session not found")
        return session

    def reset_session(self, session_id: Any) -> MemoryRecord:
        return self.reset(self.get_session(session_id).memory_id)

    def close(self) -> None:
        self.backend.close()

    def _load(self, memory_id: str) -> MemoryRecord:
        record = self.backend.load_record(memory_id)
        if record is None:
            raise NotFoundError("memory not found")
        return record

    @staticmethod
    def _require(value: Any, name: str) -> str:
        cleaned = clean(value)
        if not cleaned:
            raise ValidationError(f"{name} missing")
        return cleaned


def build_store(settings) -> MemoryStore:
    default_confidence = confidence_level(settings.default_confidence)
    backend_name = settings.store_backend.lower()
    if backend_name == "sqlite":
        backend: MemoryBackend = SQLiteBackend(settings.sqlite_path)
    elif backend_name == "memory":
        backend = InMemoryBackend()
    else:
        raise ValueError(f"Unknown ANNA_STORE_BACKEND: {settings.store_backend}")
    logger.info("Memory store backend=%s default_confidence=%s", backend_name, default_confidence)
    return MemoryStore(backend, default_confidence=default_confidence)
