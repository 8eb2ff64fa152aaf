"""Tests for order lifecycle notifications."""

from unittest.mock import patch

import pytest

from ordernotify.domain.order_status import InvalidTransition, NotificationKind, OrderStatus
from ordernotify.services.order_notifications import (
    OrderMismatch,
    OrderNotFound,
    OrderNotificationService,
)
from ordernotify.whatsapp.dispatcher import NotificationDispatcher

from helpers import http_error, make_order, make_request


@pytest.fixture
def service(store, dispatcher, test_settings):
    return OrderNotificationService(store, dispatcher, test_settings)


class TestSendOrderNotification:
    def test_sends_to_normalized_customer_phone(self, service, store):
        result = service.send_order_notification(make_request())

        assert result.success is True
        assert result.test_mode is True
        [row] = store.outbound
        assert row.to_phone == "525512345678"
        assert row.kind == NotificationKind.CONFIRMATION.value
        assert "📱 Teléfono: 525512345678" in result.preview

    def test_kind_follows_status(self, service, store):
        service.send_order_notification(make_request(status="ready"))
        assert store.outbound[0].kind == NotificationKind.STATUS_UPDATE.value

    def test_provider_failure_is_returned_not_raised(self, store, live_settings):
        service = OrderNotificationService(store, NotificationDispatcher(live_settings), live_settings)

        with patch("ordernotify.whatsapp.meta_sender._do_request", side_effect=http_error(500)):
            result = service.send_order_notification(make_request())

        assert result.success is False
        assert result.error == "API Error: 500"
        assert store.outbound[0].result is result


class TestNotifyOrderCreated:
    def test_customer_and_business(self, service, store):
        created = service.notify_order_created(make_request(status="pending"))

        assert created.customer.success is True
        assert created.business is not None
        assert [(row.to_phone, row.kind) for row in store.outbound] == [
            ("525512345678", "confirmation"),
            ("525587654321", "business_alert"),
        ]
        assert "Nueva Orden Recibida" in created.business.preview

    def test_business_alert_sent_once_per_order(self, service, store):
        service.notify_order_created(make_request())
        created = service.notify_order_created(make_request())

        assert created.business is None
        kinds = [row.kind for row in store.outbound]
        assert kinds.count("business_alert") == 1
        assert kinds.count("confirmation") == 2

    def test_store_without_phone_skips_alert(self, service, store):
        created = service.notify_order_created(make_request(store_phone=None))

        assert created.business is None
        assert len(store.outbound) == 1

    @pytest.mark.parametrize("status", ["preparing", "ready", "completed", "cancelled"])
    def test_rejects_non_initial_status(self, service, store, status):
        with pytest.raises(InvalidTransition):
            service.notify_order_created(make_request(status=status))
        assert store.outbound == []


class TestChangeStatus:
    def test_valid_transition_updates_and_notifies(self, service, store):
        store.add_order(make_order(status="preparing"))

        change = service.change_status("A1", OrderStatus.READY)

        assert change.previous is OrderStatus.PREPARING
        assert change.current is OrderStatus.READY
        assert store.orders["A1"].status == "ready"
        assert change.notification.success is True
        [row] = store.outbound
        assert row.to_phone == "525512345678"
        assert row.kind == "status_update"
        assert "Orden #A1" in change.notification.preview
        assert "lista para recoger" in change.notification.preview

    def test_uses_stored_language(self, service, store):
        store.add_order(make_order(status="preparing", language="en"))

        change = service.change_status("A1", OrderStatus.READY)

        assert "Order #A1" in change.notification.preview

    def test_full_message_when_order_given(self, service, store):
        store.add_order(make_order(status="preparing", language="es"))
        request = make_request(status="preparing", language="en")

        change = service.change_status("A1", OrderStatus.READY, request)

        text = change.notification.preview
        assert "¡Orden Lista!" in text
        assert "• Taco x2 - $10.00 MXN" in text

    def test_unknown_order(self, service):
        with pytest.raises(OrderNotFound):
            service.change_status("missing", OrderStatus.READY)

    def test_body_for_another_order_rejected(self, service, store):
        store.add_order(make_order(status="preparing"))

        with pytest.raises(OrderMismatch):
            service.change_status("A1", OrderStatus.READY, make_request(order_id="B2"))

        assert store.orders["A1"].status == "preparing"
        assert store.outbound == []

    def test_invalid_transition_leaves_order_untouched(self, service, store):
        store.add_order(make_order(status="pending"))

        with pytest.raises(InvalidTransition):
            service.change_status("A1", OrderStatus.READY)

        assert store.orders["A1"].status == "pending"
        assert store.outbound == []

    def test_terminal_order_rejected(self, service, store):
        store.add_order(make_order(status="completed"))

        with pytest.raises(InvalidTransition, match="terminal"):
            service.change_status("A1", OrderStatus.CANCELLED)

    def test_legacy_status_accepted(self, service, store):
        store.add_order(make_order(status="paid"))

        change = service.change_status("A1", OrderStatus.PREPARING)

        assert change.previous is OrderStatus.CONFIRMED

    def test_unknown_stored_status_rejected(self, service, store):
        store.add_order(make_order(status="shipped"))

        with pytest.raises(InvalidTransition) as exc_info:
            service.change_status("A1", OrderStatus.READY)

        assert exc_info.value.current == "shipped"

    def test_concurrent_change_detected(self, service, store):
        store.add_order(make_order(status="preparing"))

        with patch.object(store, "update_order_status", return_value=False):
            with pytest.raises(InvalidTransition, match="concurrently"):
                service.change_status("A1", OrderStatus.READY)

        assert store.outbound == []

    def test_notification_failure_keeps_status_change(self, store, live_settings):
        store.add_order(make_order(status="preparing"))
        service = OrderNotificationService(store, NotificationDispatcher(live_settings), live_settings)

        with patch("ordernotify.whatsapp.meta_sender._do_request", side_effect=http_error(500)):
            change = service.change_status("A1", OrderStatus.READY)

        assert change.notification.success is False
        assert store.orders["A1"].status == "ready"
