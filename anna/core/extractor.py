"""Heuristic memory suggestions from free chat text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from anna.core.commands import is_remember_command
from anna.core.models import CandidateFact


@dataclass(frozen=True)
class _Rule:
    triggers: Tuple[str, ...]
    type: str
    key: str
    value: str
    confidence: str
    reason: str


RULES: Tuple[_Rule, ...] = (
    _Rule(
        triggers=(
            "volle codes",
            "vollen code",
            "ganzen code",
            "kompletten code",
            "kompletter code",
            "zum austauschen",
            "1:1 austauschen",
            "alles ersetzen",
            "full code",
            "complete code",
            "runnable code",
        ),
        type="preference",
        key="code_delivery",
        value="Immer vollständigen Code zum Austauschen liefern (keine Snippets).",
        confidence="high",
        reason="Wunsch nach vollständig austauschbarem Code erkannt",
    ),
    _Rule(
        triggers=("schritt für schritt", "step by step", "punkt für punkt"),
        type="preference",
        key="workflow",
        value="Immer Schritt-für-Schritt vorgehen und jeden Punkt einzeln abschließen.",
        confidence="high",
        reason="Wunsch nach Schritt-für-Schritt Vorgehen erkannt",
    ),
    _Rule(
        triggers=(
            "kein kreis",
            "nicht wiederholen",
            "wir drehen uns",
            "kurz und klar",
            "kein bla bla",
            "don't repeat",
            "no repetition",
            "short and clear",
        ),
        type="preference",
        key="communication_style",
        value="Kurz, klar, ohne Wiederholungen; Fokus auf Umsetzung.",
        confidence="medium",
        reason="Präferenz für knappe, fokussierte Kommunikation erkannt",
    ),
)


def extract(text: str) -> List[CandidateFact]:
    if not isinstance(text, str):
        return []
    stripped = text.strip()
    if not stripped or is_remember_command(stripped):
        return []

    lower = stripped.lower()
    seen = set()
    candidates: List[CandidateFact] = []
    for rule in RULES:
        if (rule.type, rule.key) in seen:
            continue
        if any(trigger in lower for trigger in rule.triggers):
            seen.add((rule.type, rule.key))
            candidates.append(
                CandidateFact(
                    type=rule.type,
                    key=rule.key,
                    value=rule.value,
                    confidence=rule.confidence,
                    reason=rule.reason,
                )
            )
    return candidates
