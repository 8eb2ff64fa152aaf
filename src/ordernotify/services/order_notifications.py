"""Order lifecycle notifications.

Builds customer and store messages for order events and sends them through
the dispatcher. A failed notification never blocks or rolls back the order
change that caused it; the failure is logged and recorded for the admin
tooling.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ordernotify.config import Settings
from ordernotify.domain.models import (
    DispatchResult,
    OrderNotificationRequest,
    OrderRecord,
    RenderedMessage,
    coerce_locale,
)
from ordernotify.domain.order_status import (
    InvalidTransition,
    NotificationKind,
    OrderStatus,
    notification_kind_for,
    parse_status,
    validate_transition,
)
from ordernotify.domain.phone import normalize_phone
from ordernotify.infra.store import NotificationStore
from ordernotify.observability.logging import get_logger
from ordernotify.observability.redaction import safe_log_context
from ordernotify.whatsapp import templates
from ordernotify.whatsapp.dispatcher import NotificationDispatcher

logger = get_logger(__name__)

CREATION_STATUSES = (OrderStatus.PENDING, OrderStatus.CONFIRMED)


class OrderNotFound(Exception):
    """Raised when an order id is unknown to the store."""


class OrderMismatch(Exception):
    """Raised when the order body names a different order than the path."""


@dataclass(frozen=True)
class CreatedNotifications:
    customer: DispatchResult
    business: DispatchResult | None = None


@dataclass(frozen=True)
class StatusChange:
    order_id: str
    previous: OrderStatus
    current: OrderStatus
    notification: DispatchResult


class OrderNotificationService:
    def __init__(
        self,
        store: NotificationStore,
        dispatcher: NotificationDispatcher,
        settings: Settings,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._settings = settings

    def normalize(self, phone: str | None) -> str:
        return normalize_phone(
            phone,
            country_code=self._settings.country_code,
            local_length=self._settings.local_number_length,
        )

    def build_message(
        self,
        request: OrderNotificationRequest,
        kind: NotificationKind,
        to_phone: str,
    ) -> RenderedMessage:
        """Render ``request`` for ``to_phone``.

        The customer phone printed in the body is the normalized one.
        """
        normalized_customer = self.normalize(request.customer_phone)
        view = request.model_copy(update={"customer_phone": normalized_customer})
        result = templates.render(request.language, view, kind)
        return RenderedMessage(
            to_phone=to_phone,
            body=result.text,
            locale=coerce_locale(request.language),
            truncated=result.truncated,
        )

    def send_order_notification(
        self,
        request: OrderNotificationRequest,
        kind: NotificationKind | None = None,
    ) -> DispatchResult:
        """Render and send the customer message for ``request.status``."""
        kind = kind or notification_kind_for(request.status)
        message = self.build_message(request, kind, self.normalize(request.customer_phone))
        return self._dispatch(request.order_id, kind, message)

    def notify_order_created(self, request: OrderNotificationRequest) -> CreatedNotifications:
        """Notify the customer and, once per order, the store.

        Raises:
            InvalidTransition: If the order is not created as pending or
                confirmed.
        """
        if request.status not in CREATION_STATUSES:
            raise InvalidTransition(
                OrderStatus.PENDING, request.status, "orders start as pending or confirmed"
            )

        customer = self.send_order_notification(request)

        business = None
        store_phone = self.normalize(request.store_phone)
        if not store_phone:
            logger.info(
                "store has no phone, business alert skipped",
                extra={"extra_fields": safe_log_context(order_id=request.order_id)},
            )
        elif self._store.has_outbound_message(request.order_id, NotificationKind.BUSINESS_ALERT):
            logger.info(
                "business alert already sent",
                extra={"extra_fields": safe_log_context(order_id=request.order_id)},
            )
        else:
            message = self.build_message(request, NotificationKind.BUSINESS_ALERT, store_phone)
            business = self._dispatch(request.order_id, NotificationKind.BUSINESS_ALERT, message)

        return CreatedNotifications(customer=customer, business=business)

    def change_status(
        self,
        order_id: str,
        target: OrderStatus,
        request: OrderNotificationRequest | None = None,
    ) -> StatusChange:
        """Move an order to ``target`` and notify the customer once.

        The stored order ``language`` picks the locale. With ``request`` the
        full order message is sent; without it a short status message built
        from the stored order.

        Raises:
            OrderNotFound: If the order does not exist.
            OrderMismatch: If ``request`` is for another order.
            InvalidTransition: If the move is not allowed, or another writer
                changed the status first.
        """
        if request is not None and request.order_id != order_id:
            raise OrderMismatch(order_id)

        order = self._store.get_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)

        current = parse_status(order.status)
        if current is None:
            raise InvalidTransition(order.status, target, "unknown current status")
        validate_transition(current, target)

        if not self._store.update_order_status(order_id, current, target):
            raise InvalidTransition(current, target, "order status changed concurrently")

        logger.info(
            "order status changed",
            extra={
                "extra_fields": safe_log_context(
                    order_id=order_id, previous=current.value, current=target.value
                )
            },
        )

        kind = notification_kind_for(target)
        updated = replace(order, status=target.value)
        message = self._status_message(updated, target, kind, request)
        result = self._dispatch(order_id, kind, message)
        return StatusChange(order_id=order_id, previous=current, current=target, notification=result)

    def _status_message(
        self,
        order: OrderRecord,
        target: OrderStatus,
        kind: NotificationKind,
        request: OrderNotificationRequest | None,
    ) -> RenderedMessage:
        if request is not None:
            view = request.model_copy(update={"status": target, "language": order.language})
            return self.build_message(
                view, kind, self.normalize(view.customer_phone or order.customer_phone)
            )

        return RenderedMessage(
            to_phone=self.normalize(order.customer_phone),
            body=templates.render_status_reply(order),
            locale=coerce_locale(order.language),
        )

    def _dispatch(
        self, order_id: str, kind: NotificationKind, message: RenderedMessage
    ) -> DispatchResult:
        result = self._dispatcher.send_rendered(message)
        self._store.record_outbound_message(
            order_id=order_id, to_phone=message.to_phone, kind=kind, result=result
        )
        if not result.success:
            logger.error(
                "order notification failed",
                extra={
                    "extra_fields": safe_log_context(
                        order_id=order_id, kind=kind.value, error=result.error
                    )
                },
            )
        return result
