"""
Engine and session management for the booking store.

The database URL comes from ``AppConfig.database_url`` (``DATABASE_URL``).
SQLite is the default; an in-memory SQLite URL keeps a single shared
connection so every worker thread sees the same tables.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.exc import SQLAlchemyError

from ..utils.config import AppConfig, get_config
from .models import create_all_tables

logger = logging.getLogger(__name__)


class DatabaseConfig:
    """
    Lazily initialised engine plus a session factory.

    Features:
    - Transactional session context (commit on success, rollback on error)
    - Foreign keys enforced on SQLite
    - Credentials hidden from connection info
    """

    def __init__(self, database_url: Optional[str] = None, echo: bool = False):
        """
        Initialize database configuration.

        Args:
            database_url: Database URL, defaults to the application config
            echo: Enable SQL query logging for debugging
        """
        self.database_url = database_url or get_config().database_url
        self.echo = echo
        self.url = make_url(self.database_url)
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None
        self._is_initialized = False

        logger.info(f"Database configuration initialized for {self.db_type}")

    @classmethod
    def from_app_config(cls, config: AppConfig, echo: bool = False) -> "DatabaseConfig":
        return cls(database_url=config.database_url, echo=echo)

    @property
    def db_type(self) -> str:
        return self.url.get_backend_name()

    @property
    def is_memory(self) -> bool:
        return self.db_type == "sqlite" and self.url.database in (None, "", ":memory:")

    def _get_engine_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"echo": self.echo, "pool_pre_ping": True}

        if self.db_type == "sqlite":
            # repository work runs in worker threads
            kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
            if self.is_memory:
                kwargs["poolclass"] = StaticPool

        return kwargs

    def initialize(self) -> None:
        """
        Create the engine and verify connectivity.

        Raises:
            SQLAlchemyError: If database connection fails
        """
        if self._is_initialized:
            return

        try:
            self.engine = create_engine(self.database_url, **self._get_engine_kwargs())
            if self.db_type == "sqlite":
                event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))

            self.SessionLocal = sessionmaker(
                autoflush=False,
                bind=self.engine,
                expire_on_commit=False,
            )
            self._is_initialized = True
            logger.info(f"Database engine initialized ({self.db_type})")

        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    def create_tables(self) -> None:
        """Create the flight and booking tables if they don't exist."""
        self.initialize()
        try:
            create_all_tables(self.engine)
            logger.info("Database tables created successfully")
        except SQLAlchemyError as e:
            logger.error(f"Failed to create tables: {e}")
            raise

    def get_session(self) -> Session:
        self.initialize()
        return self.SessionLocal()

    @contextmanager
    def get_session_context(self) -> Iterator[Session]:
        """
        Session with automatic commit/rollback.

        Usage:
            with db_config.get_session_context() as session:
                session.add(row)
        """
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    def get_connection_info(self) -> Dict[str, Any]:
        return {
            "database_type": self.db_type,
            "database_url": self.url.render_as_string(hide_password=True),
            "is_initialized": self._is_initialized,
        }

    def close(self) -> None:
        if self.engine:
            self.engine.dispose()
            logger.info("Database connections closed")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


__all__ = [
    'DatabaseConfig',
]
