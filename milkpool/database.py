"""Database connection and session management."""

from typing import Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine

from milkpool.config import settings


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for ``database_url``.

    Server databases get a sized connection pool; SQLite gets the
    cross-thread flag FastAPI's threadpool needs and its default pool.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        database_url,
        echo=echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,  # Verify connections before use
    )


engine = build_engine(settings.database_url, echo=settings.debug)


def get_session() -> Generator[Session, None, None]:
    """Dependency to provide database session to endpoints."""
    with Session(engine) as session:
        yield session
