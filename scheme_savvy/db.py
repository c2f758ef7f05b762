"""Database setup and session utilities for SQLAlchemy.

This module centralizes engine/session initialization, metadata base, and helpers:
- init_db: Ensures the pgvector extension exists (PostgreSQL only) and creates the
  documents and chunks tables.
- session_scope: Context-managed transactional scope for imperative workflows (CLI ingest).
- get_db: FastAPI dependency to yield a per-request SQLAlchemy Session.

Configuration is read from scheme_savvy.config.settings.DATABASE_URL.
"""
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from scheme_savvy.config import settings

# SQLAlchemy setup
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def init_db(bind: Engine = engine) -> None:
    """Initialize database extensions and tables.

    On PostgreSQL the pgvector extension is created first so the embedding column
    type resolves. Idempotent and safe to run multiple times.

    Args:
        bind: Engine to initialize; defaults to the configured application engine.
    """
    if bind.dialect.name == "postgresql":
        with bind.connect() as conn:
            conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            conn.commit()

    # Import models after Base is defined
    from scheme_savvy import models  # noqa: F401

    Base.metadata.create_all(bind=bind)


@contextmanager
def session_scope():
    """Provide a transactional scope around a series of operations.

    Yields:
        Session: A SQLAlchemy session bound to the configured engine.

    Notes:
        - Commits on successful exit.
        - Rolls back and re-raises on exception.
        - Always closes the session at the end.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator:
    """FastAPI dependency that yields a SQLAlchemy Session.

    Yields:
        Session: A session tied to the current request lifecycle.

    Notes:
        Ensures the session is closed after the request finishes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
