"""Session helper shared by the notification repositories."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from infrastructure.logging import get_module_logger
from infrastructure.persistence import Database
from modules.notifications.domain.errors import (
    ConflictError,
    InfrastructureError,
    NotificationError,
)

logger = get_module_logger()


@contextmanager
def store_session(
    database: Database, component: str, operation: str
) -> Generator[Session, None, None]:
    """Transactional session that maps database failures onto the error taxonomy.

    Raises:
        ConflictError: A unique or foreign key constraint rejected the write
        InfrastructureError: The database could not be reached or failed
    """
    try:
        with database.session() as session:
            yield session
    except NotificationError:
        raise
    except IntegrityError as e:
        logger.info(
            "store_integrity_conflict",
            component=component,
            operation=operation,
            error=str(e.orig),
        )
        raise ConflictError(f"{component} {operation} conflicts with existing data") from e
    except SQLAlchemyError as e:
        logger.error(
            "store_operation_failed",
            component=component,
            operation=operation,
            error=str(e),
        )
        raise InfrastructureError(f"{component} unavailable: {e}") from e
