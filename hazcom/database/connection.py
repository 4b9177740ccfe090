"""
Database connection and session management for the HazCom store.

Provides the SQLAlchemy engine, session factory and a transactional
session scope for SQLite.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional
from sqlalchemy import create_engine, event, pool
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .models import Base


# Default database path (relative to project root)
DEFAULT_DB_PATH = "data/hazcom.db"


class DatabaseManager:
    """
    Manages database connections and sessions.

    File databases use a pooled engine; ":memory:" uses a single static
    connection so every session sees the same tables.
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
    ):
        """
        Initialize database manager.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
            echo: If True, SQL statements will be logged
            pool_size: Number of connections to keep in the pool
            max_overflow: Maximum number of connections beyond pool_size
        """
        self.db_path = db_path or DEFAULT_DB_PATH
        self.echo = echo
        self.in_memory = self.db_path == ":memory:"

        if self.in_memory:
            engine_kwargs = dict(
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            engine_kwargs = dict(
                connect_args={"check_same_thread": False},
                poolclass=pool.QueuePool,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,
            )

        self.database_url = f"sqlite:///{self.db_path}"
        self.engine = create_engine(self.database_url, echo=self.echo, **engine_kwargs)
        self._configure_sqlite()

        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    def _configure_sqlite(self) -> None:
        """Configure SQLite-specific settings on every new connection."""
        in_memory = self.in_memory

        @event.listens_for(self.engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if not in_memory:
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

    def create_all_tables(self) -> None:
        """Create all tables defined in models."""
        Base.metadata.create_all(bind=self.engine)

    def drop_all_tables(self) -> None:
        """Drop all tables (use with caution!)."""
        Base.metadata.drop_all(bind=self.engine)

    def get_session(self) -> Session:
        """
        Get a new database session.

        Note:
            The caller is responsible for closing the session.
        """
        return self.SessionLocal()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope with automatic commit/rollback.

        Usage:
            with db_manager.session_scope() as session:
                session.add(chemical)
                # Commits on success, rolls back on exception

        Yields:
            SQLAlchemy Session within a transaction context
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Close all connections and dispose of the engine."""
        self.engine.dispose()


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


def init_db(db_path: Optional[str] = None, echo: bool = False, **kwargs) -> DatabaseManager:
    """
    Initialize the global database manager and create missing tables.

    Returns:
        DatabaseManager instance
    """
    global _db_manager
    _db_manager = DatabaseManager(db_path=db_path, echo=echo, **kwargs)
    _db_manager.create_all_tables()
    return _db_manager


def get_db_manager() -> DatabaseManager:
    """
    Get the global database manager instance.

    Raises:
        RuntimeError: If database has not been initialized
    """
    if _db_manager is None:
        raise RuntimeError(
            "Database not initialized. Call init_db() first."
        )
    return _db_manager


def get_session() -> Session:
    """Get a new database session from the global manager."""
    return get_db_manager().get_session()


def create_test_db() -> DatabaseManager:
    """
    Create an in-memory database for testing.

    Returns:
        DatabaseManager instance with all tables created
    """
    db = DatabaseManager(db_path=":memory:")
    db.create_all_tables()
    return db
