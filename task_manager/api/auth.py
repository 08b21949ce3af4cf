"""Authentication endpoints: register, login, token refresh, logout, profile."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status

from ..dependencies.auth import REFRESH_TOKEN_COOKIE, get_current_user, get_optional_user
from ..dependencies.services import get_auth_service
from ..errors import AuthenticationError
from ..schemas.common import ApiResponse
from ..schemas.user import (
    AuthenticatedUser,
    AuthResult,
    RefreshTokenRequest,
    TokenPair,
    UserCreate,
    UserLogin,
    UserPublic,
)
from ..services.auth import AuthService
from .cookies import clear_auth_cookies, set_auth_cookies

logger = logging.getLogger(__name__)

router = APIRouter()


def _refresh_token_from(request: Request, body: Optional[RefreshTokenRequest]) -> Optional[str]:
    if body and body.refresh_token:
        return body.refresh_token
    return request.cookies.get(REFRESH_TOKEN_COOKIE)


@router.post("/register", response_model=ApiResponse[AuthResult], status_code=status.HTTP_201_CREATED)
def register(
    payload: UserCreate,
    response: Response,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
):
    result = auth_service.register(payload.name, payload.email, payload.password)
    set_auth_cookies(response, result, request.app.state.settings)
    return ApiResponse(message="User registered successfully", data=result)


@router.post("/login", response_model=ApiResponse[AuthResult])
def login(
    payload: UserLogin,
    response: Response,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
):
    result = auth_service.login(payload.email, payload.password)
    set_auth_cookies(response, result, request.app.state.settings)
    return ApiResponse(message="Login successful", data=result)


@router.post("/refresh-token", response_model=ApiResponse[TokenPair])
def refresh_token(
    response: Response,
    request: Request,
    payload: Optional[RefreshTokenRequest] = None,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Rotate the refresh token. A used token cannot be presented again."""
    token = _refresh_token_from(request, payload)
    if not token:
        raise AuthenticationError("Refresh token required")

    pair = auth_service.refresh(token)
    set_auth_cookies(response, pair, request.app.state.settings)
    return ApiResponse(message="Token refreshed successfully", data=pair)


@router.post("/logout", response_model=ApiResponse[None])
def logout(
    response: Response,
    request: Request,
    payload: Optional[RefreshTokenRequest] = None,
    current_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Revoke the presented refresh token and clear the auth cookies.

    Always succeeds; an unknown or already revoked token is ignored.
    """
    token = _refresh_token_from(request, payload)
    if token:
        user_id = current_user.id if current_user else None
        if user_id is None:
            try:
                user_id = auth_service.tokens.decode_refresh_token(token)["sub"]
            except AuthenticationError:
                logger.debug("Logout with an unverifiable refresh token")
        if user_id:
            auth_service.logout(user_id, token)

    clear_auth_cookies(response, request.app.state.settings)
    return ApiResponse(message="Logout successful")


@router.get("/profile", response_model=ApiResponse[UserPublic])
def get_profile(
    current_user: AuthenticatedUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    return ApiResponse(data=auth_service.get_profile(current_user.id))
