"""Database infrastructure for the rule store."""

from contextlib import contextmanager
from typing import Any, Generator

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.rule_engine.infrastructure.orm import Base


def _engine_options_for_url(url: str) -> dict[str, Any]:
    u = (url or "").strip().lower()
    if u.startswith("sqlite"):
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if u in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": 10,
        "max_overflow": 10,
        "pool_recycle": 3600,  # Recycle connections after 1 hour
        "pool_timeout": 30,
    }


class Database:
    """Database connection manager."""

    def __init__(self, database_url: str, echo: bool = False):
        """
        Initialize database connection.

        Args:
            database_url: SQLAlchemy database URL
            echo: Log every SQL statement
        """
        self.database_url = database_url
        self.engine = create_engine(database_url, echo=echo, **_engine_options_for_url(database_url))
        self.session_factory = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info(f"Rule store database configured ({self.engine.url.render_as_string(hide_password=True)})")

    def create_all(self):
        """Create all tables (for development and tests)."""
        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=self.engine)
        logger.info("✓ Database tables created")

    def drop_all(self):
        """Drop all tables (for development and tests)."""
        logger.warning("Dropping all database tables...")
        Base.metadata.drop_all(bind=self.engine)
        logger.info("✓ Database tables dropped")

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional session."""
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self):
        """Close database connections."""
        self.engine.dispose()
        logger.info("✓ Database connections closed")
