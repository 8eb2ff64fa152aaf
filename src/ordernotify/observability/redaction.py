"""Redaction helpers for safe logging.

Customer phone numbers, names and message bodies are PII. Anything derived
from a request or a provider payload goes through these helpers before it is
logged.
"""

import hashlib
import re
from typing import Any

_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"


def redact_string(value: str) -> str:
    """Replace phone- and email-looking substrings."""
    result = _PHONE_PATTERN.sub(_REDACTED, value)
    return _EMAIL_PATTERN.sub(_REDACTED, result)


def redact_value(value: Any) -> str:
    """Render any value as a log-safe string."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        return f"dict(keys={list(value.keys())})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build an ``extra_fields`` dict with every value redacted."""
    return {k: redact_value(v) for k, v in kwargs.items()}


def hash_identifier(value: str) -> str:
    """Non-reversible short hash (12 hex chars) for correlating a phone in logs."""
    return hashlib.sha256(value.encode()).hexdigest()[:12]


def id_prefix(message_id: str, length: int = 8) -> str:
    """Leading characters of a provider message id, enough to grep for."""
    return message_id[:length]
