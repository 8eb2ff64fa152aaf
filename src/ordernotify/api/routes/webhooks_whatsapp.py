"""WhatsApp webhook routes - Meta Cloud API callbacks.

IMPORTANT: once the body is parsed, always answer 200. Meta redelivers on
non-2xx responses, and processing is idempotent on message ids anyway.

Security: sender phones and text never reach logs.
"""

import json
from typing import Any

from fastapi import APIRouter, Header, Query, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from ordernotify.config import Settings
from ordernotify.observability.correlation import get_correlation_id
from ordernotify.observability.logging import get_logger
from ordernotify.observability.redaction import safe_log_context
from ordernotify.services.inbound import InboundEventRouter
from ordernotify.whatsapp.meta_adapter import (
    SignatureVerificationError,
    VerificationFailed,
    verify_challenge,
    verify_signature,
)
from ordernotify.whatsapp.models import VerificationRequest

router = APIRouter(prefix="/webhooks/whatsapp", tags=["webhooks"])

logger = get_logger(__name__)

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}

_ACK = {"success": True}


@router.options("")
def webhook_preflight() -> Response:
    return Response(status_code=204, headers=_CORS_HEADERS)


@router.get("")
def webhook_verify(
    request: Request,
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
) -> Response:
    """Subscription handshake: echo ``hub.challenge`` or answer 403."""
    settings: Settings = request.app.state.settings

    try:
        challenge = verify_challenge(
            VerificationRequest(hub_mode, hub_verify_token, hub_challenge),
            settings.verify_token,
        )
    except VerificationFailed as e:
        logger.warning(
            "webhook verification failed",
            extra={
                "extra_fields": safe_log_context(
                    hub_mode=hub_mode or "missing",
                    reason=str(e),
                )
            },
        )
        return JSONResponse(
            status_code=403, content={"error": "Verification failed"}, headers=_CORS_HEADERS
        )

    logger.info(
        "webhook verification successful",
        extra={"extra_fields": safe_log_context(hub_mode=hub_mode)},
    )
    return PlainTextResponse(challenge, status_code=200, headers=_CORS_HEADERS)


@router.post("")
async def webhook_events(
    request: Request,
    x_hub_signature_256: str | None = Header(None, alias="X-Hub-Signature-256"),
) -> Response:
    """Receive messages and delivery receipts.

    Returns:
        400 if the body is not JSON, otherwise 200 ``{"success": true}``.
    """
    settings: Settings = request.app.state.settings
    inbound: InboundEventRouter = request.app.state.inbound
    correlation_id = get_correlation_id()

    body_bytes = await request.body()

    if settings.app_secret:
        try:
            verify_signature(body_bytes, x_hub_signature_256 or "", settings.app_secret)
        except SignatureVerificationError as e:
            logger.warning(
                "webhook signature verification failed",
                extra={
                    "extra_fields": safe_log_context(correlationId=correlation_id, error=str(e))
                },
            )
            # Acknowledge so Meta does not retry a request we will never accept.
            return JSONResponse(status_code=200, content=_ACK, headers=_CORS_HEADERS)

    try:
        payload: Any = json.loads(body_bytes)
    except ValueError:
        logger.warning(
            "invalid json body",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid JSON."},
            headers=_CORS_HEADERS,
        )

    try:
        summary = await run_in_threadpool(inbound.handle, payload)
    except Exception:
        logger.exception(
            "webhook processing failed",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return JSONResponse(status_code=200, content=_ACK, headers=_CORS_HEADERS)

    logger.info(
        "webhook processed",
        extra={
            "extra_fields": safe_log_context(
                correlationId=correlation_id,
                object_type=payload.get("object", "missing") if isinstance(payload, dict) else "invalid",
                messages=summary.messages,
                duplicates=summary.duplicates,
                replies=summary.replies,
                statuses=summary.statuses,
                skipped=summary.skipped,
            )
        },
    )
    return JSONResponse(status_code=200, content=_ACK, headers=_CORS_HEADERS)
