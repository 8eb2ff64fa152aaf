"""Tests for settings loading."""

import pytest

from ordernotify.config import (
    DEFAULT_API_BASE_URL,
    ConfigurationError,
    Settings,
    load_settings,
)


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings({})

        assert settings.environment == "development"
        assert settings.api_base_url == DEFAULT_API_BASE_URL
        assert settings.http_timeout == 5.0
        assert settings.country_code == "52"
        assert settings.local_number_length == 10
        assert settings.live_mode is False

    def test_reads_all_variables(self):
        settings = load_settings(
            {
                "WHATSAPP_ACCESS_TOKEN": " tok ",
                "WHATSAPP_PHONE_NUMBER_ID": "123",
                "WHATSAPP_API_BASE_URL": "https://graph.example.test/v21.0/",
                "APP_ENV": "Production",
                "SITE_URL": "https://shop.example.test",
                "WHATSAPP_WEBHOOK_VERIFY_TOKEN": "verify",
                "WHATSAPP_APP_SECRET": "secret",
                "NOTIFY_API_KEY": "key",
                "WHATSAPP_HTTP_TIMEOUT": "2.5",
                "HOME_COUNTRY_CODE": "34",
                "LOCAL_NUMBER_LENGTH": "9",
            }
        )

        assert settings.access_token == "tok"
        assert settings.is_production is True
        assert settings.live_mode is True
        assert settings.messages_url == "https://graph.example.test/v21.0/123/messages"
        assert settings.verify_token == "verify"
        assert settings.app_secret == "secret"
        assert settings.api_key == "key"
        assert settings.http_timeout == 2.5
        assert settings.country_code == "34"
        assert settings.local_number_length == 9

    @pytest.mark.parametrize(
        "name,value",
        [
            ("WHATSAPP_HTTP_TIMEOUT", "fast"),
            ("WHATSAPP_HTTP_TIMEOUT", "0"),
            ("LOCAL_NUMBER_LENGTH", "ten"),
            ("LOCAL_NUMBER_LENGTH", "-1"),
        ],
    )
    def test_invalid_numbers(self, name, value):
        with pytest.raises(ConfigurationError, match=name):
            load_settings({name: value})


class TestProductionCredentials:
    def test_non_production_never_fails(self):
        Settings(environment="staging").require_production_credentials()

    def test_missing_phone_number_id(self):
        settings = Settings(environment="production", access_token="tok")
        with pytest.raises(ConfigurationError, match="WHATSAPP_PHONE_NUMBER_ID"):
            settings.require_production_credentials()

    def test_complete(self, live_settings):
        live_settings.require_production_credentials()

    def test_production_detection_is_exact(self):
        assert Settings(environment="prod").is_production is False
