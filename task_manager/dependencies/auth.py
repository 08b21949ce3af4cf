"""Request authentication dependencies.

The access token is read from the ``accessToken`` HttpOnly cookie first and
from the ``Authorization: Bearer`` header otherwise.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..errors import AppError, AuthenticationError
from ..schemas.user import AuthenticatedUser
from ..services.auth import AuthService
from .services import get_auth_service

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"

bearer_scheme = HTTPBearer(auto_error=False)


def extract_access_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token
    if credentials and credentials.scheme.lower() == "bearer":
        return credentials.credentials
    return None


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthenticatedUser:
    """Resolve the caller or fail with 401."""
    try:
        token = extract_access_token(request, credentials)
        if not token:
            raise AuthenticationError("Access token required")
        user = auth_service.authenticate_access_token(token)
    except AuthenticationError as e:
        logger.warning(
            f"Authentication failed on {request.method} {request.url.path}: {e.message} "
            f"(cookie={ACCESS_TOKEN_COOKIE in request.cookies}, header={credentials is not None})"
        )
        raise

    logger.debug(f"User {user.id} authenticated for {request.method} {request.url.path}")
    request.state.user_id = user.id
    return user


def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[AuthenticatedUser]:
    """Like get_current_user, but anonymous (None) instead of an error."""
    token = extract_access_token(request, credentials)
    if not token:
        return None
    try:
        user = auth_service.authenticate_access_token(token)
    except AppError as e:
        logger.debug(f"Optional auth failed, continuing without user: {e.message}")
        return None
    request.state.user_id = user.id
    return user
