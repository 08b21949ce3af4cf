from typing import Annotated, Optional

from pydantic import ConfigDict, EmailStr, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from .common import CamelModel, UTCDateTime

# bcrypt ignores everything past this many bytes
MAX_PASSWORD_BYTES = 72


class UserCreate(CamelModel):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50)]
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class UserLogin(CamelModel):
    email: str = Field(..., min_length=1, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)


class UserPublic(CamelModel):
    """User view safe to return to clients (no password, no tokens)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    name: str
    email: str
    is_active: bool
    created_at: UTCDateTime
    updated_at: UTCDateTime


class AuthenticatedUser(CamelModel):
    """Identity attached to an authenticated request."""
    id: str
    name: str
    email: str


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class AuthResult(TokenPair):
    user: UserPublic


class RefreshTokenRequest(CamelModel):
    # May also arrive as the refreshToken cookie
    refresh_token: Optional[str] = None
