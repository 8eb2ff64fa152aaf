"""Tests for notification dispatch and the Meta sender.

Uses mocks to ensure no real HTTP calls are made.
"""

import json
import urllib.error
from dataclasses import replace
from unittest.mock import patch

import pytest

from ordernotify.domain.models import RenderedMessage
from ordernotify.whatsapp import meta_sender
from ordernotify.whatsapp.dispatcher import NotificationDispatcher
from ordernotify.whatsapp.meta_sender import (
    MAX_TEXT_BODY_LENGTH,
    ProviderError,
    build_payload,
    send_text_via_meta,
)

from helpers import LogRecorder, http_error

PHONE = "525512345678"
BODY = "📋 *Orden #A1*\nHola Ana, tu pedido está listo"
DO_REQUEST = "ordernotify.whatsapp.meta_sender._do_request"


class TestTestMode:
    def test_no_network_and_synthetic_id(self, test_settings):
        dispatcher = NotificationDispatcher(test_settings, clock=lambda: 1700000000.5)

        with patch(DO_REQUEST) as mock_request:
            result = dispatcher.send(PHONE, BODY)

        mock_request.assert_not_called()
        assert result.success is True
        assert result.test_mode is True
        assert result.message_id == "test_msg_1700000000500"
        assert result.preview == BODY

    def test_production_without_credentials_is_test_mode(self, test_settings):
        settings = replace(test_settings, environment="production", access_token="t")
        assert NotificationDispatcher(settings).test_mode is True

    def test_send_rendered(self, dispatcher):
        message = RenderedMessage(to_phone=PHONE, body=BODY, locale="es")
        with patch(DO_REQUEST) as mock_request:
            result = dispatcher.send_rendered(message)
        mock_request.assert_not_called()
        assert result.success is True

    def test_does_not_log_phone_or_body(self, test_settings):
        recorder = LogRecorder()
        with patch("ordernotify.whatsapp.dispatcher.logger", recorder):
            NotificationDispatcher(test_settings).send(PHONE, BODY)

        content = recorder.get_all_logged_content()
        assert PHONE not in content
        assert "Hola Ana" not in content
        assert recorder.has_extra_field("to_hash")


class TestRejectedInput:
    @pytest.mark.parametrize(
        "phone,body,error",
        [
            ("", BODY, "missing recipient phone"),
            (PHONE, "", "empty message body"),
            (PHONE, "x" * (MAX_TEXT_BODY_LENGTH + 1), "message body exceeds 4096 characters"),
        ],
    )
    def test_invalid_input_never_calls_provider(self, live_settings, phone, body, error):
        with patch(DO_REQUEST) as mock_request:
            result = NotificationDispatcher(live_settings).send(phone, body)

        mock_request.assert_not_called()
        assert result.success is False
        assert result.error == error

    def test_body_at_limit_is_sent(self, live_settings):
        with patch(DO_REQUEST, return_value={"messages": [{"id": "wamid.X"}]}):
            result = NotificationDispatcher(live_settings).send(PHONE, "x" * MAX_TEXT_BODY_LENGTH)
        assert result.success is True


class TestLiveMode:
    def test_success_returns_provider_id(self, live_settings):
        with patch(DO_REQUEST, return_value={"messages": [{"id": "wamid.ABC123"}]}) as mock_request:
            result = NotificationDispatcher(live_settings).send(PHONE, BODY)

        assert result.success is True
        assert result.test_mode is False
        assert result.message_id == "wamid.ABC123"
        assert result.preview is None

        url, data, headers, timeout = mock_request.call_args[0]
        assert url == "https://graph.facebook.com/v20.0/123456789/messages"
        assert json.loads(data) == build_payload(PHONE, BODY)
        assert headers["Authorization"] == "Bearer test-access-token"
        assert timeout == live_settings.http_timeout

    def test_single_attempt_on_failure(self, live_settings):
        body = {"error": {"message": "Invalid parameter", "code": 100}}
        with patch(DO_REQUEST, side_effect=http_error(400, body)) as mock_request:
            result = NotificationDispatcher(live_settings).send(PHONE, BODY)

        assert mock_request.call_count == 1
        assert result.success is False
        assert result.error == "Invalid parameter"

    def test_error_without_body_uses_status(self, live_settings):
        with patch(DO_REQUEST, side_effect=http_error(503)):
            result = NotificationDispatcher(live_settings).send(PHONE, BODY)
        assert result.error == "API Error: 503"

    def test_transport_error(self, live_settings):
        with patch(DO_REQUEST, side_effect=urllib.error.URLError("connection refused")):
            result = NotificationDispatcher(live_settings).send(PHONE, BODY)
        assert result.success is False
        assert result.error == "transport error: URLError"

    def test_timeout(self, live_settings):
        with patch(DO_REQUEST, side_effect=TimeoutError()):
            result = NotificationDispatcher(live_settings).send(PHONE, BODY)
        assert result.error == "transport error: TimeoutError"

    @pytest.mark.parametrize("response", [{}, {"messages": []}, {"messages": [{"id": ""}]}, None])
    def test_malformed_response(self, live_settings, response):
        with patch(DO_REQUEST, return_value=response):
            result = NotificationDispatcher(live_settings).send(PHONE, BODY)
        assert result.success is False
        assert result.error == "malformed provider response"


class TestSendTextViaMeta:
    def test_raises_provider_error_with_codes(self, live_settings):
        body = {"error": {"message": "Rate limit hit", "code": 130429}}
        with patch(DO_REQUEST, side_effect=http_error(429, body)):
            with pytest.raises(ProviderError) as exc_info:
                send_text_via_meta(settings=live_settings, to_phone=PHONE, text=BODY)

        assert exc_info.value.status_code == 429
        assert exc_info.value.error_code == 130429

    def test_logs_never_contain_pii(self, live_settings):
        recorder = LogRecorder()
        with patch(DO_REQUEST, side_effect=http_error(400)), \
             patch.object(meta_sender, "logger", recorder):
            with pytest.raises(ProviderError):
                send_text_via_meta(
                    settings=live_settings, to_phone=PHONE, text=BODY, correlation_id="cid-1"
                )

        content = recorder.get_all_logged_content()
        assert PHONE not in content
        assert "Hola Ana" not in content
        assert "test-access-token" not in content
        assert recorder.has_extra_field("text_len")
        assert [level for level, _, _ in recorder.calls] == ["info", "error"]
