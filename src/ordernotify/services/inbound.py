"""Inbound webhook event routing.

Messages are stored, then matched against keyword intents; status receipts
go to the delivery tracker. Everything is keyed on the provider message id,
so a redelivered webhook neither replies twice nor counts twice.

Security: sender phones and message text stay in memory; logs carry hashes,
lengths and id prefixes only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ordernotify.config import Settings
from ordernotify.domain.intents import Intent, detect_intent
from ordernotify.domain.models import DispatchResult
from ordernotify.domain.phone import normalize_phone
from ordernotify.infra.store import NotificationStore
from ordernotify.observability.logging import get_logger
from ordernotify.observability.redaction import hash_identifier, id_prefix, safe_log_context
from ordernotify.whatsapp import templates
from ordernotify.whatsapp.dispatcher import NotificationDispatcher
from ordernotify.whatsapp.meta_adapter import parse_events
from ordernotify.whatsapp.models import MessageReceived

from .delivery import DeliveryStatusTracker

logger = get_logger(__name__)

REPLY_KIND_PREFIX = "auto_reply"


@dataclass
class HandleSummary:
    messages: int = 0
    duplicates: int = 0
    replies: int = 0
    statuses: int = 0
    skipped: int = 0


class InboundEventRouter:
    def __init__(
        self,
        store: NotificationStore,
        dispatcher: NotificationDispatcher,
        tracker: DeliveryStatusTracker,
        settings: Settings,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._tracker = tracker
        self._settings = settings

    def handle(self, payload: Any) -> HandleSummary:
        """Process every message and status in a webhook body.

        Unknown shapes are a no-op. Messages are handled in arrival order,
        then statuses in arrival order.
        """
        messages, statuses, skipped = parse_events(payload)
        summary = HandleSummary(skipped=skipped)

        if skipped:
            logger.warning(
                "malformed webhook items skipped",
                extra={"extra_fields": safe_log_context(skipped=skipped)},
            )

        for message in messages:
            self._handle_message(message, summary)

        for status in statuses:
            if self._tracker.record(status).changed:
                summary.statuses += 1

        return summary

    def _handle_message(self, message: MessageReceived, summary: HandleSummary) -> None:
        if not self._store.record_inbound_message(message):
            summary.duplicates += 1
            logger.info(
                "duplicate inbound message ignored",
                extra={
                    "extra_fields": safe_log_context(
                        message_id_prefix=id_prefix(message.message_id)
                    )
                },
            )
            return

        summary.messages += 1
        intent = detect_intent(message.text)

        logger.info(
            "inbound message received",
            extra={
                "extra_fields": safe_log_context(
                    message_id_prefix=id_prefix(message.message_id),
                    from_hash=hash_identifier(message.sender_phone),
                    kind=message.kind,
                    text_len=len(message.text or ""),
                    intent=intent.value if intent else "none",
                )
            },
        )

        if intent is None:
            return

        phone = normalize_phone(
            message.sender_phone,
            country_code=self._settings.country_code,
            local_length=self._settings.local_number_length,
        )
        if intent is Intent.STATUS_QUERY:
            body, order_id = self._status_reply(phone)
        else:
            body, order_id = templates.render_help_reply(), None

        result = self._dispatcher.send(phone, body)
        self._store.record_outbound_message(
            order_id=order_id,
            to_phone=phone,
            kind=f"{REPLY_KIND_PREFIX}:{intent.value}",
            result=result,
        )
        if result.success:
            summary.replies += 1
        else:
            self._log_reply_failure(message, intent, result)

    def _status_reply(self, phone: str) -> tuple[str, str | None]:
        try:
            orders = self._store.find_recent_orders_by_phone(phone, limit=1)
        except Exception:
            logger.exception(
                "order lookup failed",
                extra={"extra_fields": safe_log_context(from_hash=hash_identifier(phone))},
            )
            return templates.render_lookup_error(), None

        if not orders:
            return templates.render_no_recent_order(), None

        latest = orders[0]
        return templates.render_status_reply(latest), latest.id

    def _log_reply_failure(
        self, message: MessageReceived, intent: Intent, result: DispatchResult
    ) -> None:
        logger.error(
            "automated reply failed",
            extra={
                "extra_fields": safe_log_context(
                    message_id_prefix=id_prefix(message.message_id),
                    intent=intent.value,
                    error=result.error,
                )
            },
        )
