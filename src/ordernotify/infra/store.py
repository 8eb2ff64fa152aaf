"""Persistence interface used by the notification services.

Orders, message logs and delivery statuses live in an external store. The
services only talk to this protocol; ``PgNotificationStore`` implements it on
PostgreSQL.
"""

from __future__ import annotations

from typing import Protocol

from ordernotify.domain.models import DeliveryRecord, DispatchResult, OrderRecord
from ordernotify.domain.order_status import NotificationKind, OrderStatus
from ordernotify.whatsapp.models import MessageReceived


class NotificationStore(Protocol):
    def get_order(self, order_id: str) -> OrderRecord | None: ...

    def find_recent_orders_by_phone(self, phone: str, limit: int = 5) -> list[OrderRecord]:
        """Orders for a normalized phone, newest first."""
        ...

    def update_order_status(
        self, order_id: str, expected: OrderStatus, new: OrderStatus
    ) -> bool:
        """Compare-and-set the status. False when the stored status moved on."""
        ...

    def record_inbound_message(self, message: MessageReceived) -> bool:
        """Store an inbound message. False when its id was already stored."""
        ...

    def record_outbound_message(
        self,
        *,
        order_id: str | None,
        to_phone: str,
        kind: NotificationKind | str,
        result: DispatchResult,
    ) -> None: ...

    def has_outbound_message(self, order_id: str, kind: NotificationKind | str) -> bool:
        """True when a successful send of ``kind`` was recorded for the order."""
        ...

    def get_delivery_status(self, message_id: str) -> DeliveryRecord | None: ...

    def save_delivery_status(self, record: DeliveryRecord) -> bool:
        """Store ``record`` if it advances the tracked status; False otherwise."""
        ...
