"""Database configuration for the Task Manager API.

The engine is built explicitly from settings at application start-up and
handed to the request layer through ``app.state``.
Use db.session.get_session() for database sessions.
"""

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from .config import Settings

# Import models so they're registered with SQLModel.metadata
from .models.user import User, RefreshToken  # noqa: F401
from .models.task import Task  # noqa: F401


def build_engine(settings: Settings) -> Engine:
    """Create an engine for ``settings.database_url``."""
    url = settings.database_url
    kwargs = {"echo": settings.db_echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            # a single shared connection keeps the in-memory database alive
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return create_engine(url, **kwargs)


def create_db_and_tables(engine: Engine) -> None:
    """Create all database tables."""
    SQLModel.metadata.create_all(engine)
