"""
Database session configuration.

Provides the SQLAlchemy engine and session factory for reading the fee
schedule reference tables. Supports both PostgreSQL and SQLite.
"""

import logging
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator

from app.config import settings
from app.db.base import Base

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    """Create an engine with settings suited to the database backend."""
    if database_url.startswith("sqlite"):
        # Benchmark lookups run on worker threads
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=settings.BENCHMARK_MAX_WORKERS,
    )


engine = build_engine(settings.DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def create_tables(bind: Engine = engine) -> None:
    """Create the reference tables (local development; Alembic elsewhere)."""
    import app.models  # noqa: F401  registers the models on Base.metadata

    Base.metadata.create_all(bind=bind)
    logger.info("Fee schedule tables created")


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after use.

    Yields:
        Session: SQLAlchemy database session.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
