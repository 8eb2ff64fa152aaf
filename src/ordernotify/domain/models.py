"""Order notification data models.

Request models are pydantic (validated at the HTTP boundary and by the
services); values produced by the package are frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .order_status import OrderStatus

Locale = Literal["es", "en"]
DEFAULT_LOCALE: Locale = "en"
SUPPORTED_LOCALES: tuple[str, ...] = ("es", "en")


def coerce_locale(value: str | None, default: Locale = DEFAULT_LOCALE) -> Locale:
    """Return a supported locale, falling back to ``default``."""
    if value and value.lower() in SUPPORTED_LOCALES:
        return value.lower()  # type: ignore[return-value]
    return default


class LineItem(BaseModel):
    """One ordered product."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str = Field(min_length=1)
    quantity: int = Field(gt=0)
    price: Decimal = Field(gt=0)


class OrderNotificationRequest(BaseModel):
    """Everything needed to render and send one order notification."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    order_id: str = Field(min_length=1)
    customer_name: str = Field(min_length=1)
    customer_phone: str = Field(min_length=10)
    store_name: str = Field(min_length=1)
    store_address: str | None = None
    store_phone: str | None = None
    total_amount: Decimal = Field(ge=0)
    currency: str = Field(pattern=r"^[A-Za-z]{3}$")
    items: list[LineItem] = Field(min_length=1)
    delivery_address: str | None = None
    special_instructions: str | None = None
    payment_method: str = Field(min_length=1)
    status: OrderStatus = OrderStatus.CONFIRMED
    language: Locale = DEFAULT_LOCALE
    estimated_time: str | None = None
    cancellation_reason: str | None = None

    @field_validator(
        "store_address",
        "store_phone",
        "delivery_address",
        "special_instructions",
        "estimated_time",
        "cancellation_reason",
        mode="before",
    )
    @classmethod
    def _blank_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()

    @field_validator("language", mode="before")
    @classmethod
    def _default_language(cls, value: Any) -> Any:
        if value is None or value == "":
            return DEFAULT_LOCALE
        return value.lower() if isinstance(value, str) else value


@dataclass(frozen=True)
class RenderedMessage:
    """A message ready to send. Body and phone are PII: never log them."""

    to_phone: str
    body: str
    locale: Locale
    truncated: bool = False


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one dispatch call.

    ``message_id`` is the provider id on a live send, or a synthetic
    ``test_msg_*`` id in test mode. ``preview`` holds the composed body in
    test mode only.
    """

    success: bool
    message_id: str | None = None
    test_mode: bool = False
    error: str | None = None
    preview: str | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "messageId": self.message_id,
            "testMode": self.test_mode,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class OrderRecord:
    """The slice of a stored order this service reads and writes."""

    id: str
    status: str
    language: Locale = DEFAULT_LOCALE
    customer_name: str = ""
    customer_phone: str = ""
    store_name: str = ""
    store_address: str | None = None
    store_phone: str | None = None
    total_amount: Decimal = Decimal("0")
    currency: str = "MXN"
    created_at: datetime | None = None


@dataclass(frozen=True)
class DeliveryRecord:
    """Latest provider delivery status for one outbound message."""

    message_id: str
    status: str
    timestamp: datetime | None = None
    error_code: int | None = None
    error_message: str | None = None
    requires_manual_intervention: bool = False
