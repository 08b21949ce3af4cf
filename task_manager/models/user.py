from datetime import datetime
from sqlmodel import Field, SQLModel

from .base import UTCTimestamp, new_id, utcnow


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(max_length=50)
    email: str = Field(unique=True, index=True, max_length=254)
    hashed_password: str
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)


class RefreshToken(SQLModel, table=True):
    """One currently valid refresh token of a user, stored as a SHA-256 hash."""
    __tablename__ = "refresh_tokens"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    token_hash: str = Field(unique=True, index=True, max_length=64)
    expires_at: datetime = Field(index=True, sa_type=UTCTimestamp)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)
