"""Database session management for the Task Manager API."""

from typing import Generator

from fastapi import Request
from sqlmodel import Session


def get_session(request: Request) -> Generator[Session, None, None]:
    """Yield a session bound to the engine the application was created with.

    Usage:
        session: Session = Depends(get_session)
    """
    with Session(request.app.state.engine) as session:
        yield session
