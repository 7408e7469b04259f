"""Database engine and session configuration.

The engine and session factory are built explicitly at the composition root
(``fono_chat.main.create_app``) and handed to the message store. Nothing here
creates a module-level connection pool.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from fono_chat.core.settings import Settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


def _connect_args(settings: Settings) -> dict[str, Any]:
    url = settings.database_url
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    if url.startswith("postgresql"):
        # Bound connecting and every statement so a stuck database fails the request.
        return {
            "connect_timeout": settings.db_connect_timeout_seconds,
            "options": f"-c statement_timeout={settings.db_statement_timeout_ms}",
        }
    return {}


def create_db_engine(settings: Settings) -> Engine:
    """Create the pooled engine used by the message store."""
    options: dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": settings.sql_debug,
        "connect_args": _connect_args(settings),
    }
    if not settings.database_url.startswith("sqlite"):
        options["pool_timeout"] = settings.db_pool_timeout_seconds
    return create_engine(settings.database_url, **options)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory bound to ``engine``."""
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


def create_tables(engine: Engine) -> None:
    """Create all database tables."""
    # Ensure model modules are imported so that metadata is populated.
    import fono_chat.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_tables(engine: Engine) -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=engine)
