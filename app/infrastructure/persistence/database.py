"""Relational database access.

Wraps a SQLAlchemy engine and session factory behind a small class so the
stores receive it through dependency injection. All notification state
(notifications, templates, delivery logs, dispatch jobs) lives here.
"""

from contextlib import contextmanager
from typing import Generator, TYPE_CHECKING

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()

Base = declarative_base()

_IN_MEMORY_SQLITE_URLS = ("sqlite://", "sqlite:///:memory:")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):  # pylint: disable=unused-argument
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Engine and session management.

    Usage:
        database = Database("sqlite:///./notifications.db")
        database.create_all()

        with database.session() as session:
            session.add(record)
        # committed here, rolled back if the block raised
    """

    def __init__(
        self,
        url: str,
        echo: bool = False,
        pool_size: int = 10,
        pool_timeout_seconds: int = 5,
    ):
        self.url = url
        self.is_sqlite = url.startswith("sqlite")

        if self.is_sqlite:
            engine_kwargs = {
                "echo": echo,
                "connect_args": {"check_same_thread": False, "timeout": 30},
            }
            if url in _IN_MEMORY_SQLITE_URLS:
                engine_kwargs["poolclass"] = StaticPool
            self.engine: Engine = create_engine(url, **engine_kwargs)
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        else:
            self.engine = create_engine(
                url,
                echo=echo,
                pool_size=pool_size,
                max_overflow=pool_size,
                pool_timeout=pool_timeout_seconds,
                pool_pre_ping=True,
            )

        self._session_factory = sessionmaker(
            self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info("database_engine_created", dialect=self.engine.dialect.name)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "Database":
        config = settings.database
        return cls(
            config.url,
            echo=config.echo,
            pool_size=config.pool_size,
            pool_timeout_seconds=config.pool_timeout_seconds,
        )

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Transactional session scope: commit on success, rollback on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self) -> None:
        """Create every table registered on the declarative Base."""
        Base.metadata.create_all(self.engine)
        logger.info("database_tables_created")

    def drop_all(self) -> None:
        Base.metadata.drop_all(self.engine)

    def health_check(self) -> OperationResult:
        """Run a trivial query to verify connectivity."""
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return OperationResult.success(message="database reachable")
        except SQLAlchemyError as e:
            logger.error("database_health_check_failed", error=str(e))
            return OperationResult.transient_error(
                f"Database unreachable: {e}", error_code="DATABASE_UNAVAILABLE"
            )

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("database_engine_disposed")
