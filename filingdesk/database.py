"""
Filing store connection.

One engine per process; the API opens a session per request through get_db,
Celery tasks open their own from SessionLocal.
"""
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from filingdesk.config import Settings, get_settings


def build_engine(settings: Settings) -> Engine:
    """
    Create the engine for the configured database URL.

    SQLite connections are shared across threads; an in-memory SQLite
    database is pinned to a single connection so every session sees the
    same tables.
    """
    url = make_url(settings.database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(
            url,
            pool_pre_ping=True,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )

    options = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return create_engine(url, **options)


engine = build_engine(get_settings())

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session that is closed after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create the filings tables if they do not exist."""
    from filingdesk.models import filing  # noqa: F401

    Base.metadata.create_all(bind=engine)
