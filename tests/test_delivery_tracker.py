"""Tests for delivery receipt tracking."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from ordernotify.domain.models import DeliveryRecord
from ordernotify.services.delivery import (
    DeliveryStatusTracker,
    requires_manual_intervention,
)
from ordernotify.whatsapp.models import StatusUpdate


def _update(status, error_code=None, message_id="wamid.OUT1", second=0):
    return StatusUpdate(
        message_id=message_id,
        status=status,
        timestamp=datetime(2026, 1, 1, 12, 0, second, tzinfo=timezone.utc),
        error_code=error_code,
        error_message="Message failed" if status == "failed" else None,
    )


@pytest.fixture
def tracker(store):
    return DeliveryStatusTracker(store)


class TestRecord:
    def test_first_receipt_stored(self, tracker, store):
        result = tracker.record(_update("sent"))

        assert result.changed is True
        assert store.deliveries["wamid.OUT1"].status == "sent"

    def test_forward_progress(self, tracker, store):
        for i, status in enumerate(["sent", "delivered", "read"]):
            assert tracker.record(_update(status, second=i)).changed is True
        assert store.deliveries["wamid.OUT1"].status == "read"

    def test_duplicate_receipt_is_noop(self, tracker, store):
        tracker.record(_update("delivered"))
        writes = store.delivery_writes

        result = tracker.record(_update("delivered"))

        assert result.changed is False
        assert store.delivery_writes == writes

    def test_late_receipt_does_not_regress(self, tracker, store):
        tracker.record(_update("read", second=5))

        result = tracker.record(_update("delivered", second=1))

        assert result.changed is False
        assert store.deliveries["wamid.OUT1"].status == "read"

    def test_failed_is_final(self, tracker, store):
        tracker.record(_update("failed", error_code=131026))

        assert tracker.record(_update("read")).changed is False
        assert store.deliveries["wamid.OUT1"].status == "failed"

    def test_failed_after_delivered_recorded(self, tracker, store):
        tracker.record(_update("delivered"))
        assert tracker.record(_update("failed", error_code=131026)).changed is True

    def test_permanent_failure_flags_manual_intervention(self, tracker, store):
        tracker.record(_update("failed", error_code=131026))

        record = store.deliveries["wamid.OUT1"]
        assert record.requires_manual_intervention is True
        assert record.error_code == 131026
        assert record.error_message == "Message failed"

    def test_transient_failure_not_flagged(self, tracker, store):
        tracker.record(_update("failed", error_code=130429))
        assert store.deliveries["wamid.OUT1"].requires_manual_intervention is False

    def test_concurrent_receipt_wins_over_stale_read(self, tracker, store):
        # Another worker stored "read" between our read and our write.
        tracker.record(_update("sent"))
        tracker.record(_update("read", second=5))
        reads = iter([DeliveryRecord(message_id="wamid.OUT1", status="sent")])
        original_get = store.get_delivery_status

        def stale_get(message_id):
            return next(reads, None) or original_get(message_id)

        with patch.object(store, "get_delivery_status", side_effect=stale_get):
            result = tracker.record(_update("delivered", second=3))

        assert result.changed is False
        assert result.record.status == "read"
        assert store.deliveries["wamid.OUT1"].status == "read"

    def test_messages_tracked_independently(self, tracker, store):
        tracker.record(_update("read", message_id="wamid.A"))
        tracker.record(_update("sent", message_id="wamid.B"))

        assert store.deliveries["wamid.A"].status == "read"
        assert store.deliveries["wamid.B"].status == "sent"


@pytest.mark.parametrize(
    "code,expected",
    [(130429, False), (131000, False), (1, False), (131026, True), (470, True), (None, True)],
)
def test_requires_manual_intervention(code, expected):
    assert requires_manual_intervention(code) is expected
