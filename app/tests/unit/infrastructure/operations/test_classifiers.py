"""Unit tests for provider error classifiers."""

from unittest.mock import MagicMock

import pytest
import requests

from infrastructure.operations import (
    OperationStatus,
    classify_http_response,
    classify_request_exception,
)


def _response(status_code, headers=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.text = text
    return response


@pytest.mark.unit
class TestClassifyHttpResponse:
    """Tests for classify_http_response."""

    def test_rate_limited_uses_retry_after(self):
        result = classify_http_response(_response(429, {"Retry-After": "17"}))

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "RATE_LIMITED"
        assert result.retry_after == 17
        assert result.is_retryable

    def test_malformed_retry_after_falls_back(self):
        result = classify_http_response(_response(429, {"Retry-After": "soon"}))

        assert result.retry_after == 60

    @pytest.mark.parametrize(
        "status_code, expected_status, error_code",
        [
            (401, OperationStatus.UNAUTHORIZED, "UNAUTHORIZED"),
            (403, OperationStatus.PERMANENT_ERROR, "FORBIDDEN"),
            (404, OperationStatus.NOT_FOUND, "NOT_FOUND"),
            (500, OperationStatus.TRANSIENT_ERROR, "SERVER_ERROR"),
            (502, OperationStatus.TRANSIENT_ERROR, "SERVER_ERROR"),
            (422, OperationStatus.PERMANENT_ERROR, "HTTP_422"),
        ],
    )
    def test_status_code_mapping(self, status_code, expected_status, error_code):
        result = classify_http_response(_response(status_code), provider="sendgrid")

        assert result.status == expected_status
        assert result.error_code == error_code
        assert result.data["status_code"] == status_code

    def test_only_transient_errors_are_retryable(self):
        assert not classify_http_response(_response(401)).is_retryable
        assert classify_http_response(_response(503)).is_retryable


@pytest.mark.unit
class TestClassifyRequestException:
    """Tests for classify_request_exception."""

    def test_timeout(self):
        result = classify_request_exception(requests.Timeout("slow"))

        assert result.error_code == "TIMEOUT"
        assert result.is_retryable

    def test_connection_error(self):
        result = classify_request_exception(requests.ConnectionError("refused"))

        assert result.error_code == "CONNECTION_ERROR"
        assert result.is_retryable

    def test_invalid_url_is_permanent(self):
        result = classify_request_exception(requests.exceptions.MissingSchema("no scheme"))

        assert result.error_code == "INVALID_URL"
        assert not result.is_retryable

    def test_other_request_errors_are_transient(self):
        result = classify_request_exception(requests.RequestException("odd"))

        assert result.error_code == "REQUEST_ERROR"
        assert result.is_retryable
