"""Fixtures for channel tests.

Level: Component-level fixtures; provider HTTP calls are patched at
`requests.post` inside each channel module.
"""

from unittest.mock import MagicMock

import pytest

from infrastructure.configuration import Settings
from infrastructure.configuration.integrations import (
    FcmSettings,
    SendGridSettings,
    TwilioSettings,
)
from infrastructure.notifications import RenderedMessage


@pytest.fixture
def provider_settings():
    """Settings with credentials for every provider."""
    return Settings(
        sendgrid=SendGridSettings(
            SENDGRID_API_KEY="SG.test-key", SENDGRID_FROM_EMAIL="noreply@acme.test"
        ),
        twilio=TwilioSettings(
            TWILIO_ACCOUNT_SID="AC123",
            TWILIO_AUTH_TOKEN="token",
            TWILIO_FROM_NUMBER="+15550000000",
        ),
        fcm=FcmSettings(FCM_SERVER_KEY="fcm-key"),
    )


@pytest.fixture
def unconfigured_settings():
    return Settings(
        sendgrid=SendGridSettings(SENDGRID_API_KEY=None),
        twilio=TwilioSettings(TWILIO_ACCOUNT_SID=None),
        fcm=FcmSettings(FCM_SERVER_KEY=None),
    )


@pytest.fixture
def message():
    return RenderedMessage(subject="Welcome to Acme!", body="Hello John")


@pytest.fixture
def http_response():
    """Factory for fake `requests.Response` objects."""

    def _make(status_code=200, json_data=None, headers=None, text=""):
        response = MagicMock()
        response.status_code = status_code
        response.headers = headers or {}
        response.json.return_value = json_data or {}
        response.text = text
        return response

    return _make
