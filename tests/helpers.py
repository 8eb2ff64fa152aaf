"""Shared test helpers: order requests, Meta webhook payloads, log capture.

Plain functions, not fixtures, so test modules import them directly.
"""

from __future__ import annotations

import io
import json
import urllib.error
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from ordernotify.domain.models import OrderNotificationRequest, OrderRecord


def make_request(**overrides: Any) -> OrderNotificationRequest:
    data: dict[str, Any] = {
        "order_id": "A1",
        "customer_name": "Ana López",
        "customer_phone": "55 1234 5678",
        "store_name": "Tacos El Güero",
        "store_address": "Av. Reforma 100, CDMX",
        "store_phone": "55 8765 4321",
        "total_amount": 100,
        "currency": "MXN",
        "items": [{"name": "Taco", "quantity": 2, "price": 10}],
        "payment_method": "Efectivo",
        "status": "confirmed",
        "language": "es",
    }
    data.update(overrides)
    return OrderNotificationRequest(**data)


def make_order(**overrides: Any) -> OrderRecord:
    data: dict[str, Any] = {
        "id": "A1",
        "status": "pending",
        "language": "es",
        "customer_name": "Ana López",
        "customer_phone": "5512345678",
        "store_name": "Tacos El Güero",
        "store_address": "Av. Reforma 100, CDMX",
        "store_phone": "5587654321",
        "total_amount": Decimal("100.00"),
        "currency": "MXN",
        "created_at": datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return OrderRecord(**data)


def text_message(
    message_id: str = "wamid.IN0000001",
    sender: str = "5215512345678",
    body: str = "hola",
    timestamp: str = "1704067200",
) -> dict[str, Any]:
    return {
        "from": sender,
        "id": message_id,
        "timestamp": timestamp,
        "type": "text",
        "text": {"body": body},
    }


def status_entry(
    message_id: str = "wamid.OUT000001",
    status: str = "delivered",
    timestamp: str = "1704067300",
    error_code: int | None = None,
) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "id": message_id,
        "status": status,
        "timestamp": timestamp,
        "recipient_id": "5215512345678",
    }
    if error_code is not None:
        entry["errors"] = [{"code": error_code, "title": "Message failed"}]
    return entry


def webhook_payload(
    messages: list[dict[str, Any]] | None = None,
    statuses: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    value: dict[str, Any] = {
        "messaging_product": "whatsapp",
        "metadata": {"display_phone_number": "5215500000000", "phone_number_id": "123456789"},
    }
    if messages is not None:
        value["messages"] = messages
    if statuses is not None:
        value["statuses"] = statuses
    return {
        "object": "whatsapp_business_account",
        "entry": [{"id": "WABA_ID", "changes": [{"value": value, "field": "messages"}]}],
    }


def http_error(code: int, body: dict[str, Any] | None = None) -> urllib.error.HTTPError:
    raw = json.dumps(body).encode() if body is not None else b"not json"
    return urllib.error.HTTPError(
        "https://graph.facebook.com/v20.0/123456789/messages",
        code,
        "error",
        {},
        io.BytesIO(raw),
    )


class LogRecorder:
    """Simple recorder to capture log calls deterministically."""

    def __init__(self):
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, level: str, *args, **kwargs):
        self.calls.append((level, args, kwargs))

    def info(self, *args, **kwargs):
        self._record("info", *args, **kwargs)

    def warning(self, *args, **kwargs):
        self._record("warning", *args, **kwargs)

    def error(self, *args, **kwargs):
        self._record("error", *args, **kwargs)

    def exception(self, *args, **kwargs):
        self._record("exception", *args, **kwargs)

    def debug(self, *args, **kwargs):
        self._record("debug", *args, **kwargs)

    def get_all_logged_content(self) -> str:
        return " ".join(f"{args} {kwargs}" for _, args, kwargs in self.calls)

    def has_extra_field(self, key: str) -> bool:
        for _, _, kwargs in self.calls:
            extra_fields = kwargs.get("extra", {}).get("extra_fields", {})
            if key in extra_fields:
                return True
        return False
