"""Delivery receipt tracking.

Receipts arrive at least once and not necessarily in order. The tracked
status only moves forward (sent < delivered < read); ``failed`` is final.
Replays and regressions leave the stored record untouched.
"""

from __future__ import annotations

from dataclasses import dataclass

from ordernotify.domain.models import DeliveryRecord
from ordernotify.infra.store import NotificationStore
from ordernotify.observability.logging import get_logger
from ordernotify.observability.redaction import id_prefix, safe_log_context
from ordernotify.whatsapp.models import DELIVERY_RANK, StatusUpdate

logger = get_logger(__name__)

# Cloud API error codes worth retrying later without operator action:
# throttling, temporary outages and generic server errors.
TRANSIENT_ERROR_CODES = frozenset(
    {1, 2, 4, 80007, 130429, 131000, 131016, 131048, 131056, 133004}
)


def requires_manual_intervention(error_code: int | None) -> bool:
    """A failed send needs a human unless the provider error is transient.

    An unknown code counts as non-transient.
    """
    return error_code not in TRANSIENT_ERROR_CODES


@dataclass(frozen=True)
class TrackResult:
    record: DeliveryRecord
    changed: bool


class DeliveryStatusTracker:
    def __init__(self, store: NotificationStore) -> None:
        self._store = store

    def record(self, update: StatusUpdate) -> TrackResult:
        """Apply one receipt. Idempotent per (message id, status)."""
        current = self._store.get_delivery_status(update.message_id)
        if current is not None and not _advances(current.status, update.status):
            return self._ignored(update, current)

        manual = update.status == "failed" and requires_manual_intervention(update.error_code)
        record = DeliveryRecord(
            message_id=update.message_id,
            status=update.status,
            timestamp=update.timestamp,
            error_code=update.error_code,
            error_message=update.error_message,
            requires_manual_intervention=manual,
        )
        if not self._store.save_delivery_status(record):
            # A concurrent receipt moved the row past this one after the read.
            latest = self._store.get_delivery_status(update.message_id)
            return self._ignored(update, latest or record)

        log = logger.warning if update.status == "failed" else logger.info
        log(
            "delivery status updated",
            extra={
                "extra_fields": safe_log_context(
                    message_id_prefix=id_prefix(update.message_id),
                    status=update.status,
                    error_code=update.error_code,
                    requires_manual_intervention=manual,
                )
            },
        )
        return TrackResult(record=record, changed=True)

    def _ignored(self, update: StatusUpdate, stored: DeliveryRecord) -> TrackResult:
        logger.info(
            "delivery status ignored",
            extra={
                "extra_fields": safe_log_context(
                    message_id_prefix=id_prefix(update.message_id),
                    stored=stored.status,
                    received=update.status,
                )
            },
        )
        return TrackResult(record=stored, changed=False)


def _advances(stored: str, received: str) -> bool:
    if stored == "failed":
        return False
    return DELIVERY_RANK.get(received, 0) > DELIVERY_RANK.get(stored, 0)
