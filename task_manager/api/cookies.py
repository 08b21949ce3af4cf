from fastapi import Response

from ..config import Settings
from ..dependencies.auth import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from ..schemas.user import TokenPair


def set_auth_cookies(response: Response, pair: TokenPair, settings: Settings) -> None:
    """Deliver both tokens as HttpOnly, SameSite=strict cookies."""
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        pair.access_token,
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="strict",
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        pair.refresh_token,
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="strict",
    )


def clear_auth_cookies(response: Response, settings: Settings) -> None:
    for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(name, path="/", secure=settings.cookie_secure, httponly=True, samesite="strict")
