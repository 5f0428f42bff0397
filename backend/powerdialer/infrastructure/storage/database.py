"""
Database Connection and Session Management
Connects to PostgreSQL (Supabase) or SQLite
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import NullPool, StaticPool
from contextlib import contextmanager
from typing import Iterator

from powerdialer.infrastructure.storage.models import Base


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for `database_url`.

    In-memory SQLite shares one connection so every session sees the
    same database.
    """
    if not database_url:
        raise ValueError("DATABASE_URL not set. Check your .env file")

    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)

    return create_engine(
        database_url,
        poolclass=NullPool,  # Disable connection pooling for serverless
        echo=echo,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine, expire_on_commit=False)


def init_schema(engine: Engine) -> None:
    """Create any missing tables (used for SQLite and tests)."""
    Base.metadata.create_all(engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Get database session with automatic cleanup

    Usage:
        with session_scope(SessionLocal) as db:
            leads = db.query(DialerLeadRow).all()
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
