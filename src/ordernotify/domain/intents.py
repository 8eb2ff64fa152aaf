"""Keyword intent detection for inbound customer messages.

Deterministic substring matching, no NLP. Never log the text.
"""

from __future__ import annotations

from enum import Enum


class Intent(str, Enum):
    STATUS_QUERY = "status_query"
    HELP = "help"


STATUS_KEYWORDS: tuple[str, ...] = ("status", "order", "pedido", "estado")
HELP_KEYWORDS: tuple[str, ...] = ("help", "ayuda")

# Checked in order; the first intent with a matching keyword wins.
_INTENT_KEYWORDS: tuple[tuple[Intent, tuple[str, ...]], ...] = (
    (Intent.STATUS_QUERY, STATUS_KEYWORDS),
    (Intent.HELP, HELP_KEYWORDS),
)


def detect_intent(text: str | None) -> Intent | None:
    """Return the single intent a message triggers, or None.

    Matching is case-insensitive and by substring, so "Order?" and
    "mi pedido" both count as status queries. A status query wins when a
    message also asks for help.
    """
    if not text:
        return None
    lowered = text.casefold()
    for intent, keywords in _INTENT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return intent
    return None
