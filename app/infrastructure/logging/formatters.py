"""Structlog processors used by the logging pipeline."""

from typing import Any, Dict

EventDict = Dict[str, Any]

# Provider credentials must never reach the log sink
SENSITIVE_PATTERNS = frozenset(
    {
        "password",
        "secret",
        "api_key",
        "apikey",
        "auth_token",
        "server_key",
        "authorization",
        "credential",
    }
)

RECIPIENT_KEYS = frozenset({"recipient", "to", "email", "phone", "push_token"})

REDACTED = "***REDACTED***"


def add_app_info(app_name: str, app_version: str = "unknown"):
    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict["app_name"] = app_name
        event_dict["app_version"] = app_version
        return event_dict

    return processor


def mask_sensitive_data(
    mask_value: str = REDACTED,
    additional_patterns: frozenset[str] | None = None,
):
    """Create a processor replacing credential values.

    A value is masked when its key contains one of the sensitive patterns
    (case-insensitive). None values are left as they are.
    """
    patterns = SENSITIVE_PATTERNS | (additional_patterns or frozenset())

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in event_dict.items():
            if value is not None and any(p in key.lower() for p in patterns):
                event_dict[key] = mask_value
        return event_dict

    return processor


def mask_recipient(value: str, visible: int = 3) -> str:
    """Keep the first and last characters of an address, phone number or token.

    Example:
        >>> mask_recipient("user12345@example.com")
        'use***com'
    """
    if len(value) <= visible * 2:
        return "*" * len(value)
    return f"{value[:visible]}***{value[-visible:]}"


def mask_recipients():
    """Create a processor partially masking recipient addresses."""

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key in RECIPIENT_KEYS.intersection(event_dict):
            if isinstance(event_dict[key], str):
                event_dict[key] = mask_recipient(event_dict[key])
        return event_dict

    return processor


def truncate_large_values(max_length: int = 500):
    """Create a processor cutting string values longer than `max_length`."""

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in event_dict.items():
            if isinstance(value, str) and len(value) > max_length:
                event_dict[key] = (
                    value[:max_length] + f"...[truncated, {len(value)} chars total]"
                )
        return event_dict

    return processor
