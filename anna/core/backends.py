"""Persistence backends for the memory store.

Backends only load and save whole records and sessions. Read-modify-write
atomicity is the store's job; each backend just has to be safe to call from
several threads.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Dict, Optional, Union

from anna.core.models import MemoryItem, MemoryRecord, Session


logger = logging.getLogger("anna.backends")


class MemoryBackend:
    """Interface shared by all persistence backends."""

    def load_record(self, memory_id: str) -> Optional[MemoryRecord]:
        raise NotImplementedError

    def save_record(self, record: MemoryRecord) -> None:
        raise NotImplementedError

    def load_session(self, session_id: str) -> Optional[Session]:
        raise NotImplementedError

    def save_session(self, session: Session) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class InMemoryBackend(MemoryBackend):
    """Process-wide maps. Data is gone after a restart."""

    def __init__(self) -> None:
        self._records: Dict[str, MemoryRecord] = {}
        self._sessions: Dict[str, Session] = {}

    def load_record(self, memory_id: str) -> Optional[MemoryRecord]:
        record = self._records.get(memory_id)
        return record.model_copy(deep=True) if record is not None else None

    def save_record(self, record: MemoryRecord) -> None:
        self._records[record.memory_id] = record.model_copy(deep=True)

    def load_session(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        return session.model_copy() if session is not None else None

    def save_session(self, session: Session) -> None:
        self._sessions[session.session_id] = session.model_copy()


class SQLiteBackend(MemoryBackend):
    """Relational backend on a single sqlite3 connection."""

    def __init__(self, db_path: Union[str, Path] = ":memory:") -> None:
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self.initialize()

    def initialize(self) -> None:
        with self._lock:
            self.conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS memories (
                    memory_id TEXT PRIMARY KEY,
                    version INTEGER NOT NULL,
                    updated_at TEXT NOT NULL,
                    owner_hint TEXT
                );

                CREATE TABLE IF NOT EXISTS memory_items (
                    memory_id TEXT NOT NULL,
                    type TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    confidence TEXT NOT NULL,
                    last_updated TEXT,
                    position INTEGER NOT NULL,
                    PRIMARY KEY (memory_id, type, key),
                    FOREIGN KEY (memory_id) REFERENCES memories(memory_id)
                );

                CREATE TABLE IF NOT EXISTS sessions (
                    session_id TEXT PRIMARY KEY,
                    memory_id TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    last_seen_at TEXT NOT NULL
                );
                """
            )
            self.conn.commit()
        logger.info("SQLite memory backend ready at %s", self.db_path)

    def load_record(self, memory_id: str) -> Optional[MemoryRecord]:
        with self._lock:
            row = self.conn.execute(
                "SELECT memory_id, version, updated_at, owner_hint FROM memories WHERE memory_id = ?",
                (memory_id,),
            ).fetchone()
            if row is None:
                return None
            item_rows = self.conn.execute(
                """
                SELECT type, key, value, confidence, last_updated FROM memory_items
                WHERE memory_id = ? ORDER BY position
                """,
                (memory_id,),
            ).fetchall()

        items = [
            MemoryItem(
                type=r["type"],
                key=r["key"],
                value=r["value"],
                confidence=r["confidence"],
                last_updated=r["last_updated"],
            )
            for r in item_rows
        ]
        return MemoryRecord(
            memory_id=row["memory_id"],
            version=row["version"],
            items=items,
            updated_at=row["updated_at"],
            owner_hint=row["owner_hint"],
        )

    def save_record(self, record: MemoryRecord) -> None:
        with self._lock, self.conn:
            self.conn.execute(
                """
                INSERT INTO memories (memory_id, version, updated_at, owner_hint)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(memory_id) DO UPDATE SET
                    version = excluded.version,
                    updated_at = excluded.updated_at,
                    owner_hint = excluded.owner_hint
                """,
                (record.memory_id, record.version, record.updated_at, record.owner_hint),
            )
            self.conn.execute("DELETE FROM memory_items WHERE memory_id = ?", (record.memory_id,))
            self.conn.executemany(
                """
                INSERT INTO memory_items
                    (memory_id, type, key, value, confidence, last_updated, position)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (record.memory_id, it.type, it.key, it.value, it.confidence, it.last_updated, pos)
                    for pos, it in enumerate(record.items)
                ],
            )

    def load_session(self, session_id: str) -> Optional[Session]:
        with self._lock:
            row = self.conn.execute(
                "SELECT session_id, memory_id, created_at, last_seen_at FROM sessions WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        if row is None:
            return None
        return Session(
            session_id=row["session_id"],
            memory_id=row["memory_id"],
            created_at=row["created_at"],
            last_seen_at=row["last_seen_at"],
        )

    def save_session(self, session: Session) -> None:
        with self._lock, self.conn:
            self.conn.execute(
                """
                INSERT INTO sessions (session_id, memory_id, created_at, last_seen_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET
                    memory_id = excluded.memory_id,
                    last_seen_at = excluded.last_seen_at
                """,
                (session.session_id, session.memory_id, session.created_at, session.last_seen_at),
            )

    def close(self) -> None:
        with self._lock:
            self.conn.close()
