"""Service configuration.

Settings are read from the environment once, at startup, and passed to every
component that needs them. Nothing else in the package reads ``os.environ``
for provider credentials or mode detection.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

DEFAULT_API_BASE_URL = "https://graph.facebook.com/v20.0"
DEFAULT_SITE_URL = "http://localhost:8888"
DEFAULT_HTTP_TIMEOUT = 5.0
DEFAULT_COUNTRY_CODE = "52"
DEFAULT_LOCAL_NUMBER_LENGTH = 10

PRODUCTION_ENV = "production"


class ConfigurationError(RuntimeError):
    """Raised when the process cannot run with the configured environment."""


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration.

    Attributes:
        access_token: WhatsApp Cloud API bearer token.
        phone_number_id: Sender phone-number id registered with Meta.
        api_base_url: Versioned Graph API base URL.
        environment: Deployment context; ``"production"`` enables live sends.
        site_url: Public storefront URL, used for links inside messages.
        verify_token: Token expected in the webhook subscription handshake.
        app_secret: Meta app secret for ``X-Hub-Signature-256`` checks.
        api_key: Bearer key for the internal notification endpoints.
        http_timeout: Seconds to wait for the provider before failing.
        country_code: Calling code prepended to local numbers.
        local_number_length: Digit count of a bare local number.
    """

    access_token: str = ""
    phone_number_id: str = ""
    api_base_url: str = DEFAULT_API_BASE_URL
    environment: str = "development"
    site_url: str = DEFAULT_SITE_URL
    verify_token: str = ""
    app_secret: str = ""
    api_key: str = ""
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    country_code: str = DEFAULT_COUNTRY_CODE
    local_number_length: int = DEFAULT_LOCAL_NUMBER_LENGTH

    @property
    def is_production(self) -> bool:
        return self.environment == PRODUCTION_ENV

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_token and self.phone_number_id)

    @property
    def live_mode(self) -> bool:
        """True when sends must reach the provider."""
        return self.is_production and self.has_credentials

    @property
    def messages_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}/{self.phone_number_id}/messages"

    def require_production_credentials(self) -> None:
        """Fail fast when a production deployment lacks provider credentials.

        Raises:
            ConfigurationError: If production is missing the token or the
                phone-number id.
        """
        if not self.is_production:
            return
        missing = [
            name
            for name, value in (
                ("WHATSAPP_ACCESS_TOKEN", self.access_token),
                ("WHATSAPP_PHONE_NUMBER_ID", self.phone_number_id),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing WhatsApp config in production: {', '.join(missing)} required"
            )


def _parse_float(raw: str | None, default: float, name: str) -> float:
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive")
    return value


def _parse_int(raw: str | None, default: int, name: str) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive")
    return value


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from environment variables.

    Recognized variables:
    - WHATSAPP_ACCESS_TOKEN, WHATSAPP_PHONE_NUMBER_ID
    - WHATSAPP_API_BASE_URL (default: v20.0 Graph endpoint)
    - APP_ENV ("production" enables live sends)
    - SITE_URL
    - WHATSAPP_WEBHOOK_VERIFY_TOKEN, WHATSAPP_APP_SECRET
    - NOTIFY_API_KEY
    - WHATSAPP_HTTP_TIMEOUT, HOME_COUNTRY_CODE, LOCAL_NUMBER_LENGTH
    """
    env = os.environ if environ is None else environ

    return Settings(
        access_token=env.get("WHATSAPP_ACCESS_TOKEN", "").strip(),
        phone_number_id=env.get("WHATSAPP_PHONE_NUMBER_ID", "").strip(),
        api_base_url=env.get("WHATSAPP_API_BASE_URL", "").strip() or DEFAULT_API_BASE_URL,
        environment=env.get("APP_ENV", "development").strip().lower() or "development",
        site_url=env.get("SITE_URL", "").strip() or DEFAULT_SITE_URL,
        verify_token=env.get("WHATSAPP_WEBHOOK_VERIFY_TOKEN", ""),
        app_secret=env.get("WHATSAPP_APP_SECRET", ""),
        api_key=env.get("NOTIFY_API_KEY", ""),
        http_timeout=_parse_float(
            env.get("WHATSAPP_HTTP_TIMEOUT"), DEFAULT_HTTP_TIMEOUT, "WHATSAPP_HTTP_TIMEOUT"
        ),
        country_code=env.get("HOME_COUNTRY_CODE", "").strip() or DEFAULT_COUNTRY_CODE,
        local_number_length=_parse_int(
            env.get("LOCAL_NUMBER_LENGTH"), DEFAULT_LOCAL_NUMBER_LENGTH, "LOCAL_NUMBER_LENGTH"
        ),
    )
