"""Explicit "remember" commands.

    merk dir: preference tone = Schritt-für-Schritt
    anna, remember: project stack = fastapi @medium

The address token ``anna`` is optional. Everything after the prefix must be
``<left> = <value>``; the left side may start with one of the memory types.
"""

from __future__ import annotations

import re
from typing import Optional

from anna.core.models import ParsedCommand


MEMORY_TYPES = {"user", "project", "preference"}
DEFAULT_TYPE = "preference"

_PREFIX_PATTERNS = [
    re.compile(r"^anna[, ]+\s*merk\s+dir\s*:\s*", re.IGNORECASE),
    re.compile(r"^merk\s+dir\s*:\s*", re.IGNORECASE),
    re.compile(r"^anna[, ]+\s*remember\s*:\s*", re.IGNORECASE),
    re.compile(r"^remember\s*:\s*", re.IGNORECASE),
]
_CONFIDENCE_SUFFIX = re.compile(r"\s@(high|medium)\s*$", re.IGNORECASE)


def _strip_prefix(text: str) -> Optional[str]:
    stripped = text.strip()
    for pattern in _PREFIX_PATTERNS:
        match = pattern.match(stripped)
        if match:
            return stripped[match.end():]
    return None


def is_remember_command(text: str) -> bool:
    if not isinstance(text, str):
        return False
    return _strip_prefix(text) is not None


def parse(text: str) -> Optional[ParsedCommand]:
    if not isinstance(text, str):
        return None
    body = _strip_prefix(text)
    if not body:
        return None

    confidence = "high"
    match = _CONFIDENCE_SUFFIX.search(body)
    if match:
        confidence = match.group(1).lower()
        body = body[: match.start()].strip()

    left, sep, right = body.partition("=")
    if not sep:
        return None
    left, right = left.strip(), right.strip()
    if not left or not right:
        return None

    words = left.split()
    type_ = DEFAULT_TYPE
    if len(words) >= 2 and words[0].lower() in MEMORY_TYPES:
        type_ = words[0].lower()
        words = words[1:]
    key = "_".join(words)
    if not key:
        return None

    return ParsedCommand(type=type_, key=key, value=right, confidence=confidence)
