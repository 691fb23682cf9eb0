from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Union

from anna.core.models import random_id


logger = logging.getLogger("anna.session")


class SessionRegistry:
    """One session id per client installation, kept in a small JSON file."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def get_stored_session_id(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return None
        session_id = data.get("sessionId") if isinstance(data, dict) else None
        if isinstance(session_id, str) and session_id.strip():
            return session_id.strip()
        return None

    def get_or_create_session_id(self) -> str:
        existing = self.get_stored_session_id()
        if existing:
            return existing
        session_id = random_id("sess")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"sessionId": session_id}), encoding="utf-8")
        logger.info("Created session id %s", session_id)
        return session_id

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
