"""Inbound WhatsApp event models.

``sender_phone``, ``recipient_phone`` and ``text`` are PII: keep them in
memory, never log them.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Union

DeliveryState = Literal["sent", "delivered", "read", "failed"]
DELIVERY_STATES: tuple[str, ...] = ("sent", "delivered", "read", "failed")
# Tracked status only moves to a higher rank; "failed" is final.
DELIVERY_RANK: dict[str, int] = {"sent": 1, "delivered": 2, "read": 3, "failed": 4}


@dataclass(frozen=True)
class VerificationRequest:
    """GET handshake sent when the webhook subscription is created."""

    mode: str | None
    token: str | None
    challenge: str | None


@dataclass(frozen=True)
class MessageReceived:
    message_id: str
    sender_phone: str
    text: str | None
    timestamp: datetime | None
    kind: str


@dataclass(frozen=True)
class StatusUpdate:
    message_id: str
    status: DeliveryState
    timestamp: datetime | None
    recipient_phone: str | None = None
    error_code: int | None = None
    error_message: str | None = None


InboundEvent = Union[VerificationRequest, MessageReceived, StatusUpdate]
