"""Database configuration and session management."""

from collections.abc import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from mealcart.config import settings

DATABASE_URL = settings.database_url
_SQL_ECHO = settings.is_development and settings.log_level.upper() == "DEBUG"


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def make_engine(url: str = DATABASE_URL, echo: bool = _SQL_ECHO):
    """Create an engine, allowing SQLite connections to cross threads."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=echo, connect_args=connect_args)


engine = make_engine()
SessionLocal = sessionmaker(engine, class_=Session, expire_on_commit=False)


def get_db() -> Iterator[Session]:
    """Dependency for FastAPI endpoints."""
    with SessionLocal() as session:
        yield session
