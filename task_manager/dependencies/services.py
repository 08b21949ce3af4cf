from fastapi import Depends, Request
from sqlmodel import Session

from ..db.session import get_session
from ..services.auth import AuthService
from ..services.tasks import TaskService


def get_auth_service(request: Request, session: Session = Depends(get_session)) -> AuthService:
    state = request.app.state
    return AuthService(session, state.settings, tokens=state.token_manager, hasher=state.password_hasher)


def get_task_service(session: Session = Depends(get_session)) -> TaskService:
    return TaskService(session)
