"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ordernotify.config import Settings, load_settings
from ordernotify.infra.store import NotificationStore
from ordernotify.observability.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from ordernotify.observability.logging import get_logger
from ordernotify.observability.redaction import safe_log_context
from ordernotify.services.delivery import DeliveryStatusTracker
from ordernotify.services.inbound import InboundEventRouter
from ordernotify.services.order_notifications import OrderNotificationService
from ordernotify.whatsapp.dispatcher import NotificationDispatcher

from .routes import notifications, public, webhooks_whatsapp

logger = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


def create_app(
    settings: Settings | None = None,
    store: NotificationStore | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> FastAPI:
    """Build the app and wire its components.

    Args:
        settings: Explicit settings. If None, read from the environment.
        store: Persistence adapter. If None, the PostgreSQL store is used.
        dispatcher: Override for the outbound dispatcher.

    Raises:
        ConfigurationError: If a production deployment lacks provider
            credentials.
    """
    settings = settings or load_settings()
    settings.require_production_credentials()

    if store is None:
        from ordernotify.infra.pg_store import PgNotificationStore

        store = PgNotificationStore(settings)
    dispatcher = dispatcher or NotificationDispatcher(settings)

    app = FastAPI(title="Order Notify", docs_url=None, redoc_url=None)
    app.state.settings = settings
    app.state.store = store
    app.state.dispatcher = dispatcher
    app.state.notifications = OrderNotificationService(store, dispatcher, settings)
    app.state.inbound = InboundEventRouter(
        store, dispatcher, DeliveryStatusTracker(store), settings
    )

    logger.info(
        "app configured",
        extra={
            "extra_fields": safe_log_context(
                environment=settings.environment,
                site_url=settings.site_url,
                test_mode=dispatcher.test_mode,
                verify_token_configured=bool(settings.verify_token),
                signature_check=bool(settings.app_secret),
            )
        },
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(
            "request validation failed",
            extra={
                "extra_fields": safe_log_context(
                    path=request.url.path,
                    error_count=len(exc.errors()),
                    fields=[".".join(str(p) for p in e.get("loc", ())) for e in exc.errors()],
                )
            },
        )
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid input."},
            headers=CORS_HEADERS,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "unhandled error",
            extra={"extra_fields": safe_log_context(path=request.url.path)},
        )
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error."},
            headers=CORS_HEADERS,
        )

    app.include_router(public.router)
    app.include_router(webhooks_whatsapp.router)
    app.include_router(notifications.router)

    return app
