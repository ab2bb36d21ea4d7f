"""Structured logging (structlog) for the notification service.

Example:
    from infrastructure.logging import get_module_logger

    logger = get_module_logger()
    logger.info("worker_pool_started", concurrency=10)
"""

from infrastructure.logging.setup import configure_logging, get_module_logger
from infrastructure.logging.context import (
    bind_request_context,
    get_correlation_id,
)
from infrastructure.logging.formatters import (
    add_app_info,
    mask_recipient,
    mask_recipients,
    mask_sensitive_data,
    truncate_large_values,
)

__all__ = [
    "configure_logging",
    "get_module_logger",
    "bind_request_context",
    "get_correlation_id",
    "add_app_info",
    "mask_recipient",
    "mask_recipients",
    "mask_sensitive_data",
    "truncate_large_values",
]
