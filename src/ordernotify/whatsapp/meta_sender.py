"""Outbound text messages via the Meta Cloud API.

Security: NEVER log to_phone or text. Only log hashes and lengths.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from typing import Any

from ordernotify.config import Settings
from ordernotify.observability.logging import get_logger
from ordernotify.observability.redaction import hash_identifier, safe_log_context

logger = get_logger(__name__)

# Provider limit for text.body
MAX_TEXT_BODY_LENGTH = 4096


class ProviderError(Exception):
    """The provider rejected the send or could not be reached.

    Attributes:
        status_code: HTTP status when the provider answered, else None.
        error_code: Provider ``error.code`` when present.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


def build_payload(to_phone: str, text: str) -> dict[str, Any]:
    """Cloud API body for a plain text message."""
    return {
        "messaging_product": "whatsapp",
        "to": to_phone,
        "type": "text",
        "text": {"body": text},
    }


def _do_request(
    url: str, data: bytes, headers: dict[str, str], timeout: float
) -> dict[str, Any]:
    """Execute HTTP POST request. Raises on error."""
    req = urllib.request.Request(url, data=data, headers=headers, method="POST")
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        return json.loads(resp.read().decode())


def _error_from_http(exc: urllib.error.HTTPError) -> ProviderError:
    """Map a non-2xx answer to ProviderError using ``{"error": {...}}``."""
    message = f"API Error: {exc.code}"
    error_code = None
    try:
        body = json.loads(exc.read().decode())
    except (ValueError, OSError, AttributeError):
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        error = body["error"]
        if error.get("message"):
            message = str(error["message"])
        if isinstance(error.get("code"), int):
            error_code = error["code"]
    return ProviderError(message, status_code=exc.code, error_code=error_code)


def _extract_message_id(response: Any) -> str:
    try:
        message_id = response["messages"][0]["id"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ProviderError("malformed provider response") from exc
    if not isinstance(message_id, str) or not message_id:
        raise ProviderError("malformed provider response")
    return message_id


def send_text_via_meta(
    *,
    settings: Settings,
    to_phone: str,
    text: str,
    correlation_id: str | None = None,
) -> str:
    """Send one text message. Single attempt, no retry.

    Args:
        settings: Provider credentials, base URL and timeout.
        to_phone: Normalized recipient phone. NEVER logged.
        text: Message body. NEVER logged.
        correlation_id: Optional correlation ID for tracing.

    Returns:
        Provider message id (``messages[0].id``).

    Raises:
        ProviderError: On non-2xx, transport failure or malformed response.
    """
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {settings.access_token}",
    }
    data = json.dumps(build_payload(to_phone, text)).encode("utf-8")

    log_ctx = safe_log_context(
        correlationId=correlation_id or "",
        to_hash=hash_identifier(to_phone),
        text_len=len(text),
        provider="meta",
    )

    logger.info("sending outbound message via meta", extra={"extra_fields": log_ctx})

    try:
        response = _do_request(settings.messages_url, data, headers, settings.http_timeout)
    except urllib.error.HTTPError as e:
        error = _error_from_http(e)
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        error = ProviderError(f"transport error: {type(e).__name__}")
    except ValueError:
        error = ProviderError("malformed provider response")
    else:
        try:
            message_id = _extract_message_id(response)
        except ProviderError as e:
            error = e
        else:
            logger.info(
                "outbound message sent via meta",
                extra={"extra_fields": {**log_ctx, "message_id_prefix": message_id[:8]}},
            )
            return message_id

    logger.error(
        "outbound send via meta failed",
        extra={
            "extra_fields": {
                **log_ctx,
                **safe_log_context(
                    status_code=error.status_code,
                    error_code=error.error_code,
                    error=str(error),
                ),
            }
        },
    )
    raise error
