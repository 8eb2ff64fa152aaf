"""Meta Cloud API webhook adapter.

Answers the subscription handshake, checks payload signatures and turns
webhook bodies into typed events.
"""

from __future__ import annotations

import hashlib
import hmac
from datetime import datetime, timezone
from typing import Any, Iterator

from .models import (
    DELIVERY_STATES,
    MessageReceived,
    StatusUpdate,
    VerificationRequest,
)


class InvalidPayloadError(Exception):
    """Raised when a message or status entry has an invalid shape."""


class SignatureVerificationError(Exception):
    """Raised when HMAC signature verification fails."""


class VerificationFailed(Exception):
    """Raised when the subscription handshake does not match."""


def verify_challenge(request: VerificationRequest, expected_token: str) -> str:
    """Answer the webhook subscription handshake.

    Args:
        request: The ``hub.*`` query values. ``mode`` must be "subscribe";
            ``challenge`` is echoed back on success.
        expected_token: Configured verify token. Empty means every request
            is rejected.

    Returns:
        The challenge string to echo.

    Raises:
        VerificationFailed: On any mismatch.
    """
    if not expected_token:
        raise VerificationFailed("no verify token configured")
    if request.mode != "subscribe":
        raise VerificationFailed("invalid mode")
    if request.token is None or not hmac.compare_digest(
        request.token.encode("utf-8"), expected_token.encode("utf-8")
    ):
        raise VerificationFailed("token mismatch")
    return request.challenge or ""


def verify_signature(payload_bytes: bytes, signature_header: str, app_secret: str) -> None:
    """Verify a Meta webhook signature (``sha256=<hex>`` HMAC of the body).

    Raises:
        SignatureVerificationError: If the header is missing, malformed or
            does not match.
    """
    if not signature_header:
        raise SignatureVerificationError("missing signature header")

    if not signature_header.startswith("sha256="):
        raise SignatureVerificationError("invalid signature format")

    expected_sig = signature_header[len("sha256="):]

    computed_sig = hmac.new(
        key=app_secret.encode("utf-8"),
        msg=payload_bytes,
        digestmod=hashlib.sha256,
    ).hexdigest()

    if not hmac.compare_digest(computed_sig.encode("utf-8"), expected_sig.encode("utf-8")):
        raise SignatureVerificationError("signature mismatch")


def _parse_timestamp(raw: Any) -> datetime | None:
    """Meta sends unix seconds as a string."""
    try:
        return datetime.fromtimestamp(int(raw), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _iter_values(payload: Any) -> Iterator[dict[str, Any]]:
    """Yield every ``entry[].changes[].value`` dict, skipping bad shapes."""
    if not isinstance(payload, dict):
        return
    entries = payload.get("entry")
    if not isinstance(entries, list):
        return
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        changes = entry.get("changes")
        if not isinstance(changes, list):
            continue
        for change in changes:
            if not isinstance(change, dict):
                continue
            value = change.get("value")
            if isinstance(value, dict):
                yield value


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def parse_message(message: Any) -> MessageReceived:
    """Build a MessageReceived from one ``messages[]`` item.

    Raises:
        InvalidPayloadError: If the id or sender is missing.
    """
    if not isinstance(message, dict):
        raise InvalidPayloadError("message is not an object")

    message_id = message.get("id")
    if not message_id or not isinstance(message_id, str):
        raise InvalidPayloadError("missing or invalid message_id")

    sender_phone = message.get("from")
    if not sender_phone or not isinstance(sender_phone, str):
        raise InvalidPayloadError("missing sender phone number")

    kind = str(message.get("type", "unknown"))

    text = None
    if kind == "text":
        text_obj = message.get("text")
        if isinstance(text_obj, dict) and isinstance(text_obj.get("body"), str):
            text = text_obj["body"]
    elif kind == "button":
        button = message.get("button")
        if isinstance(button, dict) and isinstance(button.get("text"), str):
            text = button["text"]

    return MessageReceived(
        message_id=message_id,
        sender_phone=sender_phone,
        text=text,
        timestamp=_parse_timestamp(message.get("timestamp")),
        kind=kind,
    )


def parse_status(status: Any) -> StatusUpdate:
    """Build a StatusUpdate from one ``statuses[]`` item.

    Raises:
        InvalidPayloadError: If the id is missing or the status is unknown.
    """
    if not isinstance(status, dict):
        raise InvalidPayloadError("status is not an object")

    message_id = status.get("id")
    if not message_id or not isinstance(message_id, str):
        raise InvalidPayloadError("missing or invalid message_id")

    state = status.get("status")
    if state not in DELIVERY_STATES:
        raise InvalidPayloadError("unknown delivery status")

    error_code = None
    error_message = None
    if state == "failed":
        errors = status.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            first = errors[0]
            try:
                error_code = int(first.get("code"))
            except (TypeError, ValueError):
                error_code = None
            error_message = first.get("title") or first.get("message")

    recipient = status.get("recipient_id")

    return StatusUpdate(
        message_id=message_id,
        status=state,
        timestamp=_parse_timestamp(status.get("timestamp")),
        recipient_phone=recipient if isinstance(recipient, str) else None,
        error_code=error_code,
        error_message=error_message,
    )


def parse_events(
    payload: Any,
) -> tuple[list[MessageReceived], list[StatusUpdate], int]:
    """Extract every message and status event from a webhook body.

    Walks all ``entry[].changes[].value`` objects. Order is preserved within
    each kind. Unknown top-level shapes yield nothing.

    Returns:
        (messages, statuses, skipped) where ``skipped`` counts malformed
        items that were dropped.
    """
    messages: list[MessageReceived] = []
    statuses: list[StatusUpdate] = []
    skipped = 0

    for value in _iter_values(payload):
        for raw in _as_list(value.get("messages")):
            try:
                messages.append(parse_message(raw))
            except InvalidPayloadError:
                skipped += 1
        for raw in _as_list(value.get("statuses")):
            try:
                statuses.append(parse_status(raw))
            except InvalidPayloadError:
                skipped += 1

    return messages, statuses, skipped
