"""Database initialization helpers for the SQL storage backend."""
from __future__ import annotations

from sqlalchemy import Engine
from sqlalchemy import create_engine as sa_create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import Settings, get_settings


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


def create_engine(settings: Settings | None = None) -> Engine:
    """Create a configured SQLAlchemy engine."""

    settings = settings or get_settings()
    return sa_create_engine(settings.database_url, echo=settings.echo_sql)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_database(engine: Engine) -> None:
    """Create the tables used by the application."""

    from . import models  # noqa: F401  registers the mapped classes

    Base.metadata.create_all(engine)


__all__ = [
    "Base",
    "create_engine",
    "create_session_factory",
    "init_database",
]
