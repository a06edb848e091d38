"""
SQLAlchemy base model and database session management.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from typing import Generator
from config import get_settings

# Base class for all models
Base = declarative_base()

# Database engine (initialized on first use)
_engine = None
_SessionLocal = None


def build_engine(database_url: str, echo: bool = False):
    """
    Create an engine for the given URL.

    SQLite needs cross-thread access because FastAPI runs handlers in a
    threadpool; an in-memory database must also share one connection.
    """
    kwargs = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url:
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def init_db():
    """Initialize database engine and session maker."""
    global _engine, _SessionLocal

    settings = get_settings()

    _engine = build_engine(settings.database_url, echo=settings.app_debug)

    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def create_tables(engine=None):
    """Create all tables in the database."""
    from sitegen.models.user import User, AuthSession  # noqa: F401
    from sitegen.models.conversation import Conversation  # noqa: F401
    from sitegen.models.generation import Generation  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())


def get_engine():
    """Get database engine, initializing if needed."""
    global _engine
    if _engine is None:
        init_db()
    return _engine


def get_session_maker():
    """Get session maker, initializing if needed."""
    global _SessionLocal
    if _SessionLocal is None:
        init_db()
    return _SessionLocal


@contextmanager
def get_db() -> Generator[Session, None, None]:
    """
    Get database session context manager.

    Usage:
        with get_db() as db:
            db.query(...)

    Yields:
        Session: Database session
    """
    SessionLocal = get_session_maker()
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db_dependency():
    """
    FastAPI dependency for database session.

    Usage:
        @app.get("/")
        def route(db: Session = Depends(get_db_dependency)):
            ...
    """
    SessionLocal = get_session_maker()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
