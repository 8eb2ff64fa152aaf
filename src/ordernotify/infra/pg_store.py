"""PostgreSQL implementation of NotificationStore.

Each call runs in its own short transaction.
"""

from __future__ import annotations

from ordernotify.config import Settings
from ordernotify.domain.models import DeliveryRecord, DispatchResult, OrderRecord
from ordernotify.domain.order_status import NotificationKind, OrderStatus
from ordernotify.whatsapp.models import MessageReceived

from .db import txn
from .repositories import delivery_repository, messages_repository, orders_repository


def _kind_value(kind: NotificationKind | str) -> str:
    return kind.value if isinstance(kind, NotificationKind) else kind


class PgNotificationStore:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def get_order(self, order_id: str) -> OrderRecord | None:
        with txn() as cur:
            return orders_repository.get_order(cur, order_id)

    def find_recent_orders_by_phone(self, phone: str, limit: int = 5) -> list[OrderRecord]:
        local_length = self._settings.local_number_length
        with txn() as cur:
            return orders_repository.find_recent_by_phone(
                cur, local_phone=phone[-local_length:], local_length=local_length, limit=limit
            )

    def update_order_status(
        self, order_id: str, expected: OrderStatus, new: OrderStatus
    ) -> bool:
        with txn() as cur:
            return orders_repository.compare_and_set_status(
                cur, order_id=order_id, expected=expected.value, new=new.value
            )

    def record_inbound_message(self, message: MessageReceived) -> bool:
        with txn() as cur:
            return messages_repository.insert_inbound(cur, message)

    def record_outbound_message(
        self,
        *,
        order_id: str | None,
        to_phone: str,
        kind: NotificationKind | str,
        result: DispatchResult,
    ) -> None:
        with txn() as cur:
            messages_repository.insert_outbound(
                cur, order_id=order_id, to_phone=to_phone, kind=_kind_value(kind), result=result
            )

    def has_outbound_message(self, order_id: str, kind: NotificationKind | str) -> bool:
        with txn() as cur:
            return messages_repository.outbound_exists(
                cur, order_id=order_id, kind=_kind_value(kind)
            )

    def get_delivery_status(self, message_id: str) -> DeliveryRecord | None:
        with txn() as cur:
            return delivery_repository.get_status(cur, message_id)

    def save_delivery_status(self, record: DeliveryRecord) -> bool:
        with txn() as cur:
            return delivery_repository.upsert_status(cur, record)
