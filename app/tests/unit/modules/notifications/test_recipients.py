"""Unit tests for recipient resolution."""

import pytest

from modules.notifications.recipients import DirectoryRecipientResolver


@pytest.mark.unit
class TestDirectoryRecipientResolver:
    """Tests for DirectoryRecipientResolver."""

    def test_email(self):
        assert DirectoryRecipientResolver().resolve("12345", "email") == "user12345@example.com"

    def test_sms_uses_digits_of_user_id(self):
        resolver = DirectoryRecipientResolver()

        assert resolver.resolve("12345", "sms") == "+15550012345"
        assert resolver.resolve("user-42", "sms") == "+15550000042"

    def test_push_token_is_stable(self):
        resolver = DirectoryRecipientResolver()

        token = resolver.resolve("12345", "push")

        assert token.startswith("fcm_token_12345_")
        assert len(token) == len("fcm_token_12345_") + 30
        assert resolver.resolve("12345", "push") == token

    def test_unknown_channel_falls_back_to_email(self):
        assert DirectoryRecipientResolver().resolve("7", "fax") == "user7@example.com"
