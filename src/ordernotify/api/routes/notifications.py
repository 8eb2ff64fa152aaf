"""Internal notification routes called by the storefront backend."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ordernotify.api.auth import require_api_key
from ordernotify.domain.order_status import InvalidTransition, OrderStatus
from ordernotify.domain.models import OrderNotificationRequest
from ordernotify.observability.logging import get_logger
from ordernotify.observability.redaction import safe_log_context
from ordernotify.services.order_notifications import (
    OrderMismatch,
    OrderNotFound,
    OrderNotificationService,
)

router = APIRouter(tags=["notifications"])

logger = get_logger(__name__)

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


class StatusChangeRequest(BaseModel):
    status: OrderStatus
    order: OrderNotificationRequest | None = None


def _service(request: Request) -> OrderNotificationService:
    return request.app.state.notifications


def _invalid_transition(exc: InvalidTransition) -> JSONResponse:
    logger.info(
        "status change rejected",
        extra={"extra_fields": safe_log_context(target=exc.target.value, reason=exc.reason)},
    )
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "invalid_transition", "detail": str(exc)},
        headers=_CORS_HEADERS,
    )


@router.options("/notifications/order")
@router.options("/notifications/order-created")
@router.options("/orders/{order_id}/status")
def notifications_preflight() -> Response:
    return Response(status_code=204, headers=_CORS_HEADERS)


@router.post("/notifications/order", dependencies=[Depends(require_api_key)])
def send_order_notification(
    body: OrderNotificationRequest,
    service: OrderNotificationService = Depends(_service),
) -> JSONResponse:
    """Render and send the customer message for ``body.status``.

    Returns 502 with the failed result when the provider rejects the send.
    """
    result = service.send_order_notification(body)
    status_code = 200 if result.success else 502
    return JSONResponse(status_code=status_code, content=result.to_dict(), headers=_CORS_HEADERS)


@router.post("/notifications/order-created", dependencies=[Depends(require_api_key)])
def order_created(
    body: OrderNotificationRequest,
    service: OrderNotificationService = Depends(_service),
) -> JSONResponse:
    try:
        created = service.notify_order_created(body)
    except InvalidTransition as e:
        return _invalid_transition(e)

    content = {
        "success": created.customer.success,
        "customer": created.customer.to_dict(),
        "business": created.business.to_dict() if created.business else None,
    }
    status_code = 200 if created.customer.success else 502
    return JSONResponse(status_code=status_code, content=content, headers=_CORS_HEADERS)


@router.post("/orders/{order_id}/status", dependencies=[Depends(require_api_key)])
def change_order_status(
    order_id: str,
    body: StatusChangeRequest,
    service: OrderNotificationService = Depends(_service),
) -> JSONResponse:
    """Apply a status transition and notify the customer.

    The status change stands even when the notification fails; the failure
    is reported in ``notification``.
    """
    try:
        change = service.change_status(order_id, body.status, body.order)
    except OrderNotFound:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "order_not_found"},
            headers=_CORS_HEADERS,
        )
    except OrderMismatch:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "order_id_mismatch"},
            headers=_CORS_HEADERS,
        )
    except InvalidTransition as e:
        return _invalid_transition(e)

    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "orderId": change.order_id,
            "previousStatus": change.previous.value,
            "status": change.current.value,
            "notification": change.notification.to_dict(),
        },
        headers=_CORS_HEADERS,
    )
