"""HTTP client for the memory service, with a local mirror of the last known record."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError

from anna.core.errors import TransportError, ValidationError
from anna.core.models import MemoryItem, coerce_fact, confidence_level
from config.settings import get_settings


logger = logging.getLogger("anna.client")


class LocalCache:
    """Client-side copy of the last record the server confirmed.

    Never authoritative. Only the client writes to it, and only from server
    responses.
    """

    def __init__(self) -> None:
        self.memory_id: Optional[str] = None
        self.version: int = 0
        self.items: List[MemoryItem] = []
        self.updated_at: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.memory_id is None

    def replace(
        self,
        memory_id: str,
        version: int,
        items: List[MemoryItem],
        updated_at: Optional[str] = None,
    ) -> None:
        self.memory_id = memory_id
        self.version = version
        self.items = list(items)
        self.updated_at = updated_at

    def clear(self) -> None:
        self.memory_id = None
        self.version = 0
        self.items = []
        self.updated_at = None


class MemoryClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        http: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
        api_prefix: Optional[str] = None,
        default_confidence: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        self.api_prefix = (settings.api_prefix if api_prefix is None else api_prefix).rstrip("/")
        self.default_confidence = confidence_level(default_confidence or settings.default_confidence)
        self._owns_http = http is None
        if http is None:
            http = httpx.Client(
                base_url=(base_url or settings.api_base or "").rstrip("/"),
                timeout=timeout if timeout is not None else settings.http_timeout,
                headers={"Accept": "application/json"},
            )
        self._http = http
        self.session_id: Optional[str] = None
        self.cache = LocalCache()

    def __enter__(self) -> "MemoryClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health", "health", prefixed=False)

    def start_session(self, session_id: str, owner_hint: Optional[str] = None) -> LocalCache:
        payload: Dict[str, Any] = {"sessionId": session_id}
        if owner_hint:
            payload["ownerHint"] = owner_hint
        data = self._request("POST", "/session/start", "session start", json=payload)
        self.session_id = data.get("sessionId", session_id)
        self._fill_cache(data, "session start")
        return self.cache

    def load_memory(self) -> LocalCache:
        memory_id = self._require_memory_id()
        data = self._request("GET", "/memory", "loadMemory", params={"memoryId": memory_id})
        self._fill_cache(data, "loadMemory")
        return self.cache

    def upsert_memory_items(self, items: Iterable[Any]) -> LocalCache:
        """Send all valid items as one patch and refresh the cache.

        Invalid items are dropped. If nothing valid is left no request is
        made. On failure the cache is left as it was.
        """
        if isinstance(items, (dict, str, bytes, BaseModel)):
            raise ValidationError(f"items must be a sequence of facts, got {type(items).__name__}")
        patch = []
        for item in items or []:
            try:
                fact = coerce_fact(item, self.default_confidence)
            except ValidationError as exc:
                logger.warning("Dropping invalid memory item %r: %s", item, exc)
                continue
            patch.append(fact.model_dump())
        if not patch:
            return self.cache

        memory_id = self._require_memory_id()
        data = self._request(
            "POST", "/memory/upsert", "upsert", json={"memoryId": memory_id, "patch": patch}
        )
        if isinstance(data.get("items"), list) and "memoryVersion" in data:
            self._fill_cache(data, "upsert")
        else:
            self.load_memory()
        return self.cache

    def remember_preference(self, key: str, value: str, confidence: str = "high") -> LocalCache:
        return self.upsert_memory_items(
            [{"type": "preference", "key": key, "value": value, "confidence": confidence}]
        )

    def reset(self) -> LocalCache:
        memory_id = self._require_memory_id()
        self._request("POST", "/memory/reset", "reset", json={"memoryId": memory_id})
        return self.load_memory()

    def _require_memory_id(self) -> str:
        if self.cache.memory_id is None:
            raise ValidationError("no memoryId known; call start_session first")
        return self.cache.memory_id

    def _request(self, method: str, path: str, operation: str, prefixed: bool = True, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self.api_prefix}{path}" if prefixed else path
        logger.debug("%s %s", method, url)
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(None, str(exc), operation) from exc

        if not response.is_success:
            raise TransportError(response.status_code, response.text, operation)
        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(response.status_code, response.text, operation) from exc
        if not isinstance(data, dict):
            raise TransportError(response.status_code, response.text, operation)
        return data

    def _fill_cache(self, data: Dict[str, Any], operation: str) -> None:
        try:
            items = [MemoryItem.model_validate(item) for item in data.get("items") or []]
            memory_id = str(data["memoryId"])
            version = int(data["memoryVersion"])
        except (KeyError, TypeError, ValueError, PydanticValidationError) as exc:
            raise TransportError(200, f"unexpected response: {exc}", operation) from exc
        self.cache.replace(memory_id, version, items, data.get("updatedAt"))
