"""Password hashing and JWT access/refresh token handling."""

import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import uuid4

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from ..config import Settings
from ..errors import AuthenticationError, ValidationError
from ..schemas.user import MAX_PASSWORD_BYTES, TokenPair

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def make_password_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_token(token: str) -> str:
    """SHA-256 digest under which a refresh token is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class PasswordHasher:
    def __init__(self, rounds: int = 12):
        self.context = make_password_context(rounds)

    def hash(self, password: str) -> str:
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return self.context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        # bcrypt only sees the first 72 bytes; a longer password never matches
        if len(plain_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            return False
        return self.context.verify(plain_password, hashed_password)


class TokenManager:
    """Issues and verifies the access/refresh token pair.

    Access and refresh tokens are signed with different secrets and carry
    a ``type`` claim, so neither can stand in for the other.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.access_ttl = timedelta(minutes=settings.access_token_expire_minutes)
        self.refresh_ttl = timedelta(days=settings.refresh_token_expire_days)

    def _encode(self, user_id: str, token_type: str, secret: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = {
            "sub": user_id,
            "type": token_type,
            "jti": uuid4().hex,
            "iat": now,
            "exp": now + ttl,
            "iss": self.settings.jwt_issuer,
            "aud": self.settings.jwt_audience,
        }
        return jwt.encode(to_encode, secret, algorithm=self.settings.jwt_algorithm)

    def _decode(self, token: str, token_type: str, secret: str) -> Dict[str, Any]:
        label = token_type.capitalize()
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.settings.jwt_algorithm],
                audience=self.settings.jwt_audience,
                issuer=self.settings.jwt_issuer,
            )
        except ExpiredSignatureError:
            raise AuthenticationError(f"{label} token expired")
        except JWTError:
            raise AuthenticationError(f"Invalid {token_type} token")

        if payload.get("type") != token_type:
            raise AuthenticationError("Invalid token type")
        if not payload.get("sub"):
            raise AuthenticationError(f"Invalid {token_type} token")
        return payload

    def create_access_token(self, user_id: str) -> str:
        return self._encode(user_id, ACCESS_TOKEN_TYPE, self.settings.jwt_secret, self.access_ttl)

    def create_refresh_token(self, user_id: str) -> str:
        return self._encode(user_id, REFRESH_TOKEN_TYPE, self.settings.jwt_refresh_secret, self.refresh_ttl)

    def create_token_pair(self, user_id: str) -> TokenPair:
        return TokenPair(
            access_token=self.create_access_token(user_id),
            refresh_token=self.create_refresh_token(user_id),
        )

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, ACCESS_TOKEN_TYPE, self.settings.jwt_secret)

    def decode_refresh_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, REFRESH_TOKEN_TYPE, self.settings.jwt_refresh_secret)
