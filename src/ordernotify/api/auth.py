"""Bearer-key guard for the internal notification endpoints.

The storefront backend calls these endpoints server-to-server with
``Authorization: Bearer <NOTIFY_API_KEY>``. With no key configured the guard
is open, which is only meant for local development.
"""

from __future__ import annotations

import hmac

from fastapi import HTTPException, Request

from ordernotify.config import Settings
from ordernotify.observability.logging import get_logger
from ordernotify.observability.redaction import safe_log_context

logger = get_logger(__name__)


def extract_bearer_token(request: Request) -> str | None:
    """Token from ``Authorization: Bearer <token>``, or None."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:]


def require_api_key(request: Request) -> None:
    """FastAPI dependency. Raises 401 on a missing or wrong key."""
    settings: Settings = request.app.state.settings
    if not settings.api_key:
        return

    token = extract_bearer_token(request)
    expected = settings.api_key.encode("utf-8")
    if token is None or not hmac.compare_digest(token.encode("utf-8"), expected):
        logger.warning(
            "api key rejected",
            extra={
                "extra_fields": safe_log_context(
                    path=request.url.path, token_present=token is not None
                )
            },
        )
        raise HTTPException(status_code=401, detail="Unauthorized")
