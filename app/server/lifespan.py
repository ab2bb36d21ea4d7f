from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, TYPE_CHECKING

from fastapi import FastAPI
from structlog.stdlib import BoundLogger

from infrastructure.logging.setup import configure_logging
from infrastructure.queue import DeliveryWorkerPool
from infrastructure.services import (
    get_database,
    get_delivery_worker,
    get_settings,
    get_template_repository,
    get_worker_pool,
)

if TYPE_CHECKING:
    from infrastructure.configuration import Settings


def _list_configs(settings: "Settings", logger: BoundLogger) -> None:
    config_settings: dict[str, list[object]] = {"settings": []}

    for key, value in settings.model_dump().items():
        if isinstance(value, dict):
            config_settings[key] = list(value.keys())
        else:
            config_settings["settings"].append({key: value})

    logger.info("configuration_initialized", base_settings=config_settings["settings"])
    for key, value in config_settings.items():
        if key != "settings":
            logger.info("configuration_loaded", config_setting=key, keys=value)


def _prepare_database(settings: "Settings", logger: BoundLogger) -> None:
    database = get_database()
    if settings.database.auto_create:
        database.create_all()

    if settings.database.seed_templates:
        inserted = get_template_repository().seed_defaults()
        logger.info("default_templates_ready", inserted=inserted)


def _start_worker_pool(
    settings: "Settings", logger: BoundLogger
) -> Optional[DeliveryWorkerPool]:
    if not settings.worker.enabled:
        logger.info("worker_pool_skipped", reason="worker_disabled")
        return None

    pool = get_worker_pool()
    pool.start()
    return pool


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger = configure_logging(settings.LOG_LEVEL, settings.is_production)

    app.state.settings = settings
    app.state.logger = logger

    logger.info("application_startup")
    _list_configs(settings, logger)

    _prepare_database(settings, logger)
    app.state.worker_pool = _start_worker_pool(settings, logger)

    yield

    logger.info("application_shutdown")

    pool = app.state.worker_pool
    if pool is not None:
        stopped = pool.stop(grace_seconds=settings.worker.shutdown_grace_seconds)
        if not stopped:
            logger.warning("worker_pool_forced_shutdown")
        get_delivery_worker().shutdown(wait=False)

    get_database().dispose()
