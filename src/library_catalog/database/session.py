"""
Database session management for the Library Catalog service.

The ``DatabaseManager`` owns the process-wide SQLAlchemy engine (and with it
the connection pool). It is created once when the application starts and
disposed when it shuts down; nothing here connects at import time.

Sessions are short-lived: one per HTTP request, or one per
``session_scope()`` block in scripts and tests.
"""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import StoreError
from .schema import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DatabaseManager:
    """
    Manages database connections and sessions for the service.

    This class provides:
    - One engine (and connection pool) per process
    - Session factory with explicit transactions
    - Table creation for development and tests
    """

    def __init__(self, database_url: str, pool_size: int = 10, max_overflow: int = 20):
        """
        Initialize the database manager.

        Args:
            database_url: SQLAlchemy database URL
            pool_size: Pool size for server databases (ignored for SQLite)
            max_overflow: Extra connections allowed beyond pool_size
        """
        self.database_url = database_url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        """
        Get or create the database engine.

        SQLite engines enable foreign key enforcement on every connection.
        In-memory SQLite shares a single connection so every session sees
        the same database; file-backed SQLite gets one connection per
        thread, and writers queue on the database lock.
        """
        if self._engine is None:
            url = make_url(self.database_url)

            if url.get_backend_name() == "sqlite":
                in_memory = url.database in (None, "", ":memory:")
                if in_memory:
                    self._engine = create_engine(
                        self.database_url,
                        poolclass=StaticPool,
                        connect_args={"check_same_thread": False},
                        echo=False,
                    )
                else:
                    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
                    self._engine = create_engine(
                        self.database_url,
                        connect_args={"check_same_thread": False, "timeout": 30},
                        echo=False,
                    )

                @event.listens_for(self._engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()
            else:
                # PostgreSQL or other server databases
                self._engine = create_engine(
                    self.database_url,
                    pool_size=self.pool_size,
                    max_overflow=self.max_overflow,
                    pool_pre_ping=True,
                    echo=False,
                )

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                # Keep objects usable after commit
                expire_on_commit=False,
            )
        return self._session_factory

    def create_session(self) -> Session:
        """Create a new database session. The caller must close it."""
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for database operations.

        ```python
        with db_manager.session_scope() as session:
            copies = CopyRepository(session).all_available_copies()
        ```
        """
        session = self.create_session()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed successfully")
        except Exception:
            logger.exception("Database error, rolling back")
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Create the schema.

        Args:
            drop_existing: If True, drop all tables before creating
        """
        engine = self.engine

        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(bind=engine)

        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


def safe_commit(session: Session, operation: str) -> None:
    """
    Commit a session, rolling back on failure.

    Args:
        session: The database session
        operation: Description of the operation (for error messages)

    Raises:
        StoreError: If the commit fails
    """
    try:
        session.commit()
    except Exception as e:
        session.rollback()
        logger.exception("Commit failed during '%s'", operation)
        raise StoreError(f"Database operation '{operation}' failed") from e


def safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a query, translating driver errors into ``StoreError``.

    Args:
        session: The database session
        query_func: Function that performs the query
        error_msg: Message for the raised error

    Returns:
        Query result

    Raises:
        StoreError: If the query fails
    """
    try:
        return query_func(session)
    except Exception as e:
        session.rollback()
        logger.exception("Query failed: %s", error_msg)
        raise StoreError(f"{error_msg}: database query failed") from e
