"""Shared pytest fixtures for ordernotify tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from ordernotify.config import Settings  # noqa: E402
from ordernotify.whatsapp.dispatcher import NotificationDispatcher  # noqa: E402

from fakes import FakeNotificationStore  # noqa: E402

LIVE_TOKEN = "test-access-token"
LIVE_PHONE_NUMBER_ID = "123456789"
VERIFY_TOKEN = "test_verify_token"


@pytest.fixture
def test_settings() -> Settings:
    """Development settings: dispatch runs in test mode."""
    return Settings(verify_token=VERIFY_TOKEN)


@pytest.fixture
def live_settings() -> Settings:
    """Production settings with credentials: dispatch hits _do_request."""
    return Settings(
        access_token=LIVE_TOKEN,
        phone_number_id=LIVE_PHONE_NUMBER_ID,
        environment="production",
        verify_token=VERIFY_TOKEN,
    )


@pytest.fixture
def store() -> FakeNotificationStore:
    return FakeNotificationStore()


@pytest.fixture
def dispatcher(test_settings) -> NotificationDispatcher:
    return NotificationDispatcher(test_settings, clock=lambda: 1700000000.0)
