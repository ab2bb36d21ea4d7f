"""Structlog configuration for the API and worker processes.

Both entry points call `configure_logging()` once at startup; modules obtain
their logger with `get_module_logger()` at import time.

Usage:
    from infrastructure.logging import get_module_logger

    logger = get_module_logger()
    logger.info("notification_created", notification_id=notification.id)
"""

import inspect
import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.stdlib import BoundLogger

from infrastructure.configuration import settings
from infrastructure.logging.formatters import (
    add_app_info,
    mask_recipients,
    mask_sensitive_data,
    truncate_large_values,
)

APP_NAME = "notification-service"

# Provider responses and rendered bodies are logged on failure paths
MAX_VALUE_LENGTH = 2000


def _is_test_environment() -> bool:
    return "pytest" in sys.modules


def build_processors(production: bool) -> List[Any]:
    """Processor chain shared by the API and the worker.

    Args:
        production: JSON lines when True, coloured console output otherwise.
    """
    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
        add_app_info(APP_NAME, settings.GIT_SHA),
        mask_sensitive_data(),
        mask_recipients(),
        truncate_large_values(max_length=MAX_VALUE_LENGTH),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if production:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def _silence() -> BoundLogger:
    # Test runs keep the structlog API but drop every record
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", level=logging.CRITICAL + 1, force=True)
    return structlog.stdlib.get_logger()


def configure_logging(
    log_level: Optional[str] = None,
    is_production: Optional[bool] = None,
) -> BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Overrides settings.LOG_LEVEL.
        is_production: Overrides settings.is_production (JSON vs console output).

    Returns:
        The root structlog logger.
    """
    if _is_test_environment():
        return _silence()

    production = settings.is_production if is_production is None else is_production
    structlog.configure(
        processors=build_processors(production),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level_name = (log_level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        format="%(message)s", level=getattr(logging, level_name, logging.INFO)
    )
    # requests/urllib3 debug lines would duplicate the channel logs
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return structlog.stdlib.get_logger()


logger: BoundLogger = configure_logging()


def get_module_logger() -> BoundLogger:
    """Logger bound to the calling module.

    Example:
        # In modules/notifications/worker.py
        logger = get_module_logger()
        # context: {"component": "worker", "module_path": "modules.notifications.worker"}
    """
    current_frame = inspect.currentframe()
    frame = current_frame.f_back if current_frame else None
    module = inspect.getmodule(frame) if frame else None
    if module is None:
        return logger.bind(component="unknown")

    return logger.bind(
        component=module.__name__.rsplit(".", 1)[-1], module_path=module.__name__
    )
