"""Unit tests for logging processors and request context."""

import pytest
import structlog

from infrastructure.logging import (
    add_app_info,
    bind_request_context,
    get_correlation_id,
    get_module_logger,
    mask_recipient,
    mask_recipients,
    mask_sensitive_data,
    truncate_large_values,
)
from infrastructure.logging.setup import build_processors


@pytest.mark.unit
class TestProcessors:
    """Tests for the custom structlog processors."""

    def test_add_app_info(self):
        event = add_app_info("notification-service", "abc123")(None, "info", {})

        assert event == {"app_name": "notification-service", "app_version": "abc123"}

    def test_mask_sensitive_data(self):
        """Credentials are masked by key name; other values pass through."""
        processor = mask_sensitive_data()

        event = processor(
            None,
            "info",
            {"SENDGRID_API_KEY": "SG.x", "auth_token": "t", "user_id": "12345"},
        )

        assert event["SENDGRID_API_KEY"] == "***REDACTED***"
        assert event["auth_token"] == "***REDACTED***"
        assert event["user_id"] == "12345"

    def test_mask_keeps_none_values(self):
        event = mask_sensitive_data()(None, "info", {"password": None})

        assert event["password"] is None

    def test_mask_recipients(self):
        """Addresses keep a few characters at each end for support lookups."""
        event = mask_recipients()(
            None, "info", {"recipient": "user12345@example.com", "attempt": 2}
        )

        assert event == {"recipient": "use***com", "attempt": 2}

    def test_mask_short_recipient(self):
        assert mask_recipient("+1555") == "*****"

    def test_production_processors_render_json(self):
        processors = build_processors(production=True)

        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_truncate_large_values(self):
        event = truncate_large_values(max_length=10)(None, "info", {"body": "x" * 50})

        assert event["body"].startswith("x" * 10)
        assert "50 chars total" in event["body"]


@pytest.mark.unit
class TestRequestContext:
    """Tests for bind_request_context."""

    def teardown_method(self):
        structlog.contextvars.clear_contextvars()

    def test_binds_given_correlation_id(self):
        with bind_request_context(correlation_id="req-1", request_path="/health") as cid:
            assert cid == "req-1"
            assert get_correlation_id() == "req-1"
            assert structlog.contextvars.get_contextvars()["request_path"] == "/health"

        assert get_correlation_id() is None

    def test_generates_correlation_id(self):
        with bind_request_context() as cid:
            assert cid
            assert get_correlation_id() == cid

    def test_get_module_logger(self):
        logger = get_module_logger()

        logger.info("test_event", key="value")
