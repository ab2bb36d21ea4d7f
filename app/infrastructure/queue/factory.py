"""Factory for creating dispatch queues based on configuration."""

from typing import Optional, TYPE_CHECKING

from infrastructure.logging import get_module_logger
from infrastructure.persistence import Database
from infrastructure.queue.sql_store import SqlDispatchQueue
from infrastructure.queue.store import DispatchQueue, InMemoryDispatchQueue

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()


def create_dispatch_queue(
    settings: "Settings",
    database: Optional[Database] = None,
    backend: Optional[str] = None,
) -> DispatchQueue:
    """Create the dispatch queue configured in settings.

    Args:
        settings: Application settings
        database: Database used by the 'database' backend
        backend: Optional backend override (memory, database).
                If None, uses settings.queue.backend

    Returns:
        DispatchQueue implementation

    Raises:
        ValueError: If an unknown backend is specified, or the database
            backend is requested without a database

    Examples:
        >>> queue = create_dispatch_queue(settings)  # Uses settings.queue.backend
        >>> queue = create_dispatch_queue(settings, backend="memory")
        >>> queue = create_dispatch_queue(settings, database=db, backend="database")
    """
    backend = backend or settings.queue.backend

    if backend == "memory":
        logger.info("creating_in_memory_dispatch_queue")
        return InMemoryDispatchQueue()

    if backend == "database":
        if database is None:
            raise ValueError("The database queue backend requires a Database")
        logger.info("creating_database_dispatch_queue", dialect=database.engine.dialect.name)
        return SqlDispatchQueue(database)

    raise ValueError(f"Unknown queue backend: {backend}. Supported: memory, database")
