"""Error classifiers for delivery provider calls.

Converts HTTP responses and transport exceptions raised by the `requests`
library into standardized OperationResult objects, so every channel applies
the same transient/permanent classification.

Key Functions:
- classify_http_response(): non-2xx provider response -> OperationResult
- classify_request_exception(): requests exception -> OperationResult

Usage:
    from infrastructure.operations.classifiers import (
        classify_http_response,
        classify_request_exception,
    )

    try:
        response = requests.post(url, json=payload, timeout=10)
    except requests.RequestException as exc:
        return classify_request_exception(exc)
    if not response.ok:
        return classify_http_response(response, provider="sendgrid")
"""

from typing import Optional

import requests

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus


def _retry_after(response: requests.Response, default: int = 60) -> int:
    header_value = response.headers.get("Retry-After") if response.headers else None
    if header_value:
        try:
            return int(header_value)
        except (ValueError, TypeError):
            pass  # Use default if header is malformed
    return default


def _response_detail(response: requests.Response) -> str:
    try:
        return response.text[:500]
    except Exception:  # pylint: disable=broad-except
        return ""


def classify_http_response(
    response: requests.Response, provider: str = "provider"
) -> OperationResult:
    """Classify a non-successful provider HTTP response.

    Status Code Mapping:
    - 429: Rate limiting -> TRANSIENT_ERROR with retry_after
    - 401: Unauthorized -> PERMANENT_ERROR
    - 403: Forbidden -> PERMANENT_ERROR
    - 404: Not found -> NOT_FOUND
    - 5xx: Server error -> TRANSIENT_ERROR
    - Other 4xx: Client error -> PERMANENT_ERROR

    Args:
        response: Response returned by the provider
        provider: Provider name used in messages

    Returns:
        OperationResult with status, message, error_code and retry_after
    """
    status_code: Optional[int] = response.status_code
    detail = _response_detail(response)

    if status_code == 429:
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            f"{provider} rate limited",
            error_code="RATE_LIMITED",
            retry_after=_retry_after(response),
            data={"status_code": status_code, "body": detail},
        )

    if status_code == 401:
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            f"{provider} authentication failed",
            error_code="UNAUTHORIZED",
            data={"status_code": status_code, "body": detail},
        )

    if status_code == 403:
        return OperationResult.error(
            OperationStatus.PERMANENT_ERROR,
            f"{provider} authorization denied",
            error_code="FORBIDDEN",
            data={"status_code": status_code, "body": detail},
        )

    if status_code == 404:
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            f"{provider} resource not found",
            error_code="NOT_FOUND",
            data={"status_code": status_code, "body": detail},
        )

    if status_code and 500 <= status_code < 600:
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            f"{provider} server error ({status_code})",
            error_code="SERVER_ERROR",
            data={"status_code": status_code, "body": detail},
        )

    return OperationResult.error(
        OperationStatus.PERMANENT_ERROR,
        f"{provider} client error ({status_code}): {detail}",
        error_code=f"HTTP_{status_code}",
        data={"status_code": status_code, "body": detail},
    )


def classify_request_exception(exc: Exception) -> OperationResult:
    """Classify a transport-level exception raised while calling a provider.

    Timeouts and connection failures are transient. Invalid URLs and other
    request construction errors are permanent.

    Args:
        exc: Exception raised by `requests`

    Returns:
        OperationResult with TRANSIENT_ERROR or PERMANENT_ERROR status
    """
    if isinstance(exc, requests.Timeout):
        return OperationResult.transient_error(
            f"Provider request timed out: {exc}",
            error_code="TIMEOUT",
        )

    if isinstance(exc, requests.ConnectionError):
        return OperationResult.transient_error(
            f"Connection error: {type(exc).__name__}: {exc}",
            error_code="CONNECTION_ERROR",
        )

    if isinstance(exc, (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema)):
        return OperationResult.permanent_error(
            f"Invalid provider URL: {exc}",
            error_code="INVALID_URL",
        )

    return OperationResult.transient_error(
        f"Provider request failed: {type(exc).__name__}: {exc}",
        error_code="REQUEST_ERROR",
    )
