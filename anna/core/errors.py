from __future__ import annotations

from typing import Optional


class AnnaError(Exception):
    """Base class for memory sync errors."""


class ValidationError(AnnaError):
    """A required field is missing or empty."""


class NotFoundError(AnnaError):
    """A memoryId or sessionId does not reference a known record."""


class TransportError(AnnaError):
    """Network failure or non-2xx response from the memory service."""

    def __init__(self, status: Optional[int], body: str, operation: str = "request") -> None:
        self.status = status
        self.body = body
        self.operation = operation
        super().__init__(f"{operation} failed: {status if status is not None else 'no response'} {body}".rstrip())
