from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from anna.core.errors import ValidationError


Confidence = Literal["low", "medium", "high"]
CONFIDENCE_LEVELS = ("low", "medium", "high")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def random_id(prefix: str) -> str:
    return f"{prefix}_{secrets.token_hex(6)}_{int(time.time() * 1000):x}"


def clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def confidence_level(value: Any) -> str:
    """Normalise a configured default confidence; ValueError if unknown."""
    level = clean(value).lower()
    if level not in CONFIDENCE_LEVELS:
        raise ValueError(f"Unknown confidence level: {value!r} (expected one of {', '.join(CONFIDENCE_LEVELS)})")
    return level


class WireModel(BaseModel):
    """Snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True)


class Fact(WireModel):
    """A single patch entry, already validated and trimmed."""

    type: str
    key: str
    value: str
    confidence: Confidence = "medium"

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.type, self.key)


class MemoryItem(Fact):
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")


class CandidateFact(Fact):
    reason: str = ""


class ParsedCommand(Fact):
    type: Literal["user", "project", "preference"] = "preference"
    confidence: Literal["medium", "high"] = "high"


class MemoryRecord(WireModel):
    memory_id: str = Field(alias="memoryId")
    version: int = Field(default=1, ge=1, alias="memoryVersion")
    items: List[MemoryItem] = Field(default_factory=list)
    updated_at: str = Field(alias="updatedAt")
    owner_hint: Optional[str] = Field(default=None, alias="ownerHint")

    def find(self, type_: str, key: str) -> Optional[MemoryItem]:
        for item in self.items:
            if item.type == type_ and item.key == key:
                return item
        return None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "memoryId": self.memory_id,
            "memoryVersion": self.version,
            "items": [item.model_dump(by_alias=True) for item in self.items],
            "updatedAt": self.updated_at,
        }


class Session(WireModel):
    session_id: str = Field(alias="sessionId")
    memory_id: str = Field(alias="memoryId")
    created_at: str = Field(alias="createdAt")
    last_seen_at: str = Field(alias="lastSeenAt")


class StartResult(WireModel):
    session_id: str = Field(alias="sessionId")
    memory_id: str = Field(alias="memoryId")
    memory_version: int = Field(alias="memoryVersion")
    items: List[MemoryItem] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "memoryId": self.memory_id,
            "memoryVersion": self.memory_version,
            "items": [item.model_dump(by_alias=True) for item in self.items],
        }


def coerce_fact(entry: Any, default_confidence: str = "medium") -> Fact:
    """Validate one patch entry and return it trimmed.

    Accepts mappings or any of the fact models. Raises ValidationError when
    type, key or value is not a string or is empty after trimming, or when
    the confidence is not one of CONFIDENCE_LEVELS.
    """
    if isinstance(entry, BaseModel):
        entry = entry.model_dump()
    if not isinstance(entry, dict):
        raise ValidationError(f"patch entry must be an object, got {type(entry).__name__}")

    for name in ("type", "key", "value", "confidence"):
        raw = entry.get(name)
        if raw is not None and not isinstance(raw, str):
            raise ValidationError(f"patch entry {name} must be a string, got {type(raw).__name__}")

    fields = {name: clean(entry.get(name)) for name in ("type", "key", "value")}
    missing = [name for name, val in fields.items() if not val]
    if missing:
        raise ValidationError(f"patch entry missing {', '.join(missing)}")

    confidence = clean(entry.get("confidence")).lower() or default_confidence
    if confidence not in CONFIDENCE_LEVELS:
        raise ValidationError(f"invalid confidence: {confidence!r}")

    return Fact(confidence=confidence, **fields)
