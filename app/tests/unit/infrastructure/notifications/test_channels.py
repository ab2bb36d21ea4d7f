"""Unit tests for the email, SMS and push channels."""

from unittest.mock import patch

import pytest
import requests

from infrastructure.notifications import (
    EmailChannel,
    PushChannel,
    RenderedMessage,
    SMSChannel,
)
from infrastructure.notifications.channels.push import split_title_and_body


@pytest.mark.unit
class TestEmailChannel:
    """Tests for EmailChannel (SendGrid)."""

    def test_send_success(self, provider_settings, message, http_response):
        """A 202 from SendGrid is a delivery with the X-Message-Id as provider id."""
        channel = EmailChannel(provider_settings)
        with patch(
            "infrastructure.notifications.channels.email.requests.post",
            return_value=http_response(202, headers={"X-Message-Id": "sg-1"}),
        ) as mock_post:
            result = channel.send("user12345@example.com", message, {})

        assert result.success
        assert result.provider_message_id == "sg-1"
        payload = mock_post.call_args.kwargs["json"]
        assert payload["personalizations"][0]["to"][0]["email"] == "user12345@example.com"
        assert payload["from"]["email"] == "noreply@acme.test"
        assert payload["subject"] == "Welcome to Acme!"
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer SG.test-key"

    def test_invalid_recipient_is_not_sent(self, provider_settings, message):
        channel = EmailChannel(provider_settings)
        with patch(
            "infrastructure.notifications.channels.email.requests.post"
        ) as mock_post:
            result = channel.send("not-an-email", message, {})

        assert not result.success
        assert result.error_code == "INVALID_RECIPIENT"
        assert not result.retryable
        mock_post.assert_not_called()

    def test_server_error_is_retryable(self, provider_settings, message, http_response):
        channel = EmailChannel(provider_settings)
        with patch(
            "infrastructure.notifications.channels.email.requests.post",
            return_value=http_response(503, text="unavailable"),
        ):
            result = channel.send("a@b.co", message, {})

        assert not result.success
        assert result.error_code == "SERVER_ERROR"
        assert result.retryable

    def test_client_error_is_permanent(self, provider_settings, message, http_response):
        channel = EmailChannel(provider_settings)
        with patch(
            "infrastructure.notifications.channels.email.requests.post",
            return_value=http_response(400, text="bad request"),
        ):
            result = channel.send("a@b.co", message, {})

        assert result.error_code == "HTTP_400"
        assert not result.retryable

    def test_timeout_is_retryable(self, provider_settings, message):
        channel = EmailChannel(provider_settings)
        with patch(
            "infrastructure.notifications.channels.email.requests.post",
            side_effect=requests.Timeout("read timed out"),
        ):
            result = channel.send("a@b.co", message, {})

        assert result.error_code == "TIMEOUT"
        assert result.retryable

    def test_missing_api_key(self, unconfigured_settings, message):
        result = EmailChannel(unconfigured_settings).send("a@b.co", message, {})

        assert result.error_code == "PROVIDER_NOT_CONFIGURED"

    def test_unexpected_exception_is_captured(self, provider_settings, message):
        """send never raises."""
        channel = EmailChannel(provider_settings)
        with patch(
            "infrastructure.notifications.channels.email.requests.post",
            side_effect=KeyError("boom"),
        ):
            result = channel.send("a@b.co", message, {})

        assert result.error_code == "SEND_ERROR"
        assert result.retryable


@pytest.mark.unit
class TestSMSChannel:
    """Tests for SMSChannel (Twilio)."""

    def test_send_success(self, provider_settings, http_response):
        channel = SMSChannel(provider_settings)
        with patch(
            "infrastructure.notifications.channels.sms.requests.post",
            return_value=http_response(201, json_data={"sid": "SM1", "status": "queued"}),
        ) as mock_post:
            result = channel.send("+15550012345", RenderedMessage(body="Shipped"), {})

        assert result.success
        assert result.provider_message_id == "SM1"
        assert mock_post.call_args.kwargs["data"] == {
            "To": "+15550012345",
            "From": "+15550000000",
            "Body": "Shipped",
        }
        assert mock_post.call_args.kwargs["auth"] == ("AC123", "token")
        assert "/Accounts/AC123/Messages.json" in mock_post.call_args.args[0]

    def test_rejects_non_e164_number(self, provider_settings):
        result = SMSChannel(provider_settings).send(
            "5550012345", RenderedMessage(body="x"), {}
        )

        assert result.error_code == "INVALID_RECIPIENT"

    def test_long_body_is_truncated(self, provider_settings, http_response):
        channel = SMSChannel(provider_settings)
        with patch(
            "infrastructure.notifications.channels.sms.requests.post",
            return_value=http_response(201, json_data={"sid": "SM1"}),
        ) as mock_post:
            channel.send("+15550012345", RenderedMessage(body="x" * 2000), {})

        body = mock_post.call_args.kwargs["data"]["Body"]
        assert len(body) == 1600
        assert body.endswith("...")

    def test_rate_limited_is_retryable(self, provider_settings, http_response):
        channel = SMSChannel(provider_settings)
        with patch(
            "infrastructure.notifications.channels.sms.requests.post",
            return_value=http_response(429, headers={"Retry-After": "30"}),
        ):
            result = channel.send("+15550012345", RenderedMessage(body="x"), {})

        assert result.error_code == "RATE_LIMITED"
        assert result.retryable

    def test_missing_credentials(self, unconfigured_settings):
        result = SMSChannel(unconfigured_settings).send(
            "+15550012345", RenderedMessage(body="x"), {}
        )

        assert result.error_code == "PROVIDER_NOT_CONFIGURED"


@pytest.mark.unit
class TestPushChannel:
    """Tests for PushChannel (FCM)."""

    TOKEN = "fcm_token_12345_" + "a" * 30

    def test_send_success(self, provider_settings, message, http_response):
        channel = PushChannel(provider_settings)
        response = http_response(
            200, json_data={"success": 1, "failure": 0, "results": [{"message_id": "m-1"}]}
        )
        with patch(
            "infrastructure.notifications.channels.push.requests.post",
            return_value=response,
        ) as mock_post:
            result = channel.send(self.TOKEN, message, {"order_id": 42})

        assert result.success
        assert result.provider_message_id == "m-1"
        payload = mock_post.call_args.kwargs["json"]
        assert payload["to"] == self.TOKEN
        assert payload["notification"] == {"title": "Welcome to Acme!", "body": "Hello John"}
        assert payload["data"] == {"order_id": "42"}

    def test_per_message_error_is_classified(self, provider_settings, message, http_response):
        """NotRegistered will not succeed on retry; Unavailable might."""
        channel = PushChannel(provider_settings)
        not_registered = http_response(
            200, json_data={"failure": 1, "results": [{"error": "NotRegistered"}]}
        )
        unavailable = http_response(
            200, json_data={"failure": 1, "results": [{"error": "Unavailable"}]}
        )
        with patch(
            "infrastructure.notifications.channels.push.requests.post",
            side_effect=[not_registered, unavailable],
        ):
            permanent = channel.send(self.TOKEN, message, {})
            transient = channel.send(self.TOKEN, message, {})

        assert permanent.error_code == "FCM_NOTREGISTERED"
        assert not permanent.retryable
        assert transient.retryable

    def test_rejects_short_token(self, provider_settings, message):
        result = PushChannel(provider_settings).send("short", message, {})

        assert result.error_code == "INVALID_RECIPIENT"

    def test_split_title_and_body_from_json(self):
        title, body = split_title_and_body(
            RenderedMessage(body='{"title": "Order", "body": "Shipped"}')
        )

        assert (title, body) == ("Order", "Shipped")

    def test_split_title_and_body_plain_text(self):
        assert split_title_and_body(RenderedMessage(body="Hi")) == ("Notification", "Hi")
