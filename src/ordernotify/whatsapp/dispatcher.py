"""Notification dispatch: one rendered message, one provider call.

In test mode (not production, or credentials missing) nothing leaves the
process; the result carries a synthetic id and the composed body. Retries
are the caller's decision: every ``send`` is a single attempt.
"""

from __future__ import annotations

import time
from typing import Callable

from ordernotify.config import Settings
from ordernotify.domain.models import DispatchResult, RenderedMessage
from ordernotify.observability.correlation import get_correlation_id
from ordernotify.observability.logging import get_logger
from ordernotify.observability.redaction import hash_identifier, safe_log_context

from .meta_sender import MAX_TEXT_BODY_LENGTH, ProviderError, send_text_via_meta

logger = get_logger(__name__)


class NotificationDispatcher:
    """Sends text bodies to normalized phone numbers."""

    def __init__(self, settings: Settings, *, clock: Callable[[], float] = time.time) -> None:
        self._settings = settings
        self._clock = clock

    @property
    def test_mode(self) -> bool:
        return not self._settings.live_mode

    def send_rendered(self, message: RenderedMessage) -> DispatchResult:
        return self.send(message.to_phone, message.body)

    def send(self, phone: str, body: str) -> DispatchResult:
        """Send ``body`` to ``phone`` (already normalized).

        Never raises; failures come back as ``success=False`` with the
        provider's error message when one was returned.
        """
        correlation_id = get_correlation_id()

        if not phone:
            return DispatchResult(success=False, test_mode=self.test_mode, error="missing recipient phone")
        if not body:
            return DispatchResult(success=False, test_mode=self.test_mode, error="empty message body")
        if len(body) > MAX_TEXT_BODY_LENGTH:
            return DispatchResult(
                success=False,
                test_mode=self.test_mode,
                error=f"message body exceeds {MAX_TEXT_BODY_LENGTH} characters",
            )

        if self.test_mode:
            message_id = f"test_msg_{int(self._clock() * 1000)}"
            logger.info(
                "test mode: message not sent",
                extra={
                    "extra_fields": safe_log_context(
                        correlationId=correlation_id,
                        to_hash=hash_identifier(phone),
                        text_len=len(body),
                        message_id=message_id,
                    )
                },
            )
            return DispatchResult(success=True, message_id=message_id, test_mode=True, preview=body)

        try:
            message_id = send_text_via_meta(
                settings=self._settings,
                to_phone=phone,
                text=body,
                correlation_id=correlation_id,
            )
        except ProviderError as e:
            return DispatchResult(success=False, test_mode=False, error=str(e) or "provider call failed")

        return DispatchResult(success=True, message_id=message_id, test_mode=False)
