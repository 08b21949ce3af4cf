"""Account registration, login and refresh-token rotation."""

import logging
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..config import Settings
from ..errors import AuthenticationError, ConflictError, NotFoundError
from ..models.base import utcnow
from ..models.user import RefreshToken, User
from ..schemas.user import AuthenticatedUser, AuthResult, TokenPair, UserPublic
from .security import PasswordHasher, TokenManager, hash_token

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Issues and rotates paired access/refresh tokens for users.

    Attributes:
        session: Database session for the current request
        settings: Application settings (secrets, lifetimes, bcrypt cost)
    """

    def __init__(
        self,
        session: Session,
        settings: Settings,
        tokens: Optional[TokenManager] = None,
        hasher: Optional[PasswordHasher] = None,
    ):
        self.session = session
        self.settings = settings
        self.tokens = tokens or TokenManager(settings)
        self.hasher = hasher or PasswordHasher(settings.bcrypt_rounds)

    def register(self, name: str, email: str, password: str) -> AuthResult:
        """Create an account and sign it in.

        Raises:
            ConflictError: If the email is already registered (any casing)
        """
        email = normalize_email(email)
        existing = self.session.exec(select(User).where(User.email == email)).first()
        if existing:
            raise ConflictError("Email already registered")

        user = User(name=name.strip(), email=email, hashed_password=self.hasher.hash(password))
        self.session.add(user)
        try:
            self.session.flush()
        except IntegrityError:
            # lost a race against a concurrent registration
            self.session.rollback()
            raise ConflictError("Email already registered")

        pair = self._issue_tokens(user.id)
        self.session.commit()
        self.session.refresh(user)

        logger.info(f"Registered user {user.id}")
        return AuthResult(user=UserPublic.model_validate(user), **pair.model_dump())

    def login(self, email: str, password: str) -> AuthResult:
        """Verify credentials and issue a new token pair.

        Earlier refresh tokens of the user stay valid.

        Raises:
            AuthenticationError: On unknown email, inactive account or wrong password
        """
        user = self.session.exec(
            select(User).where(User.email == normalize_email(email), User.is_active == True)  # noqa: E712
        ).first()
        if not user or not self.hasher.verify(password, user.hashed_password):
            raise AuthenticationError("Invalid email or password")

        pair = self._issue_tokens(user.id)
        self.session.commit()
        self.session.refresh(user)

        logger.info(f"User {user.id} logged in")
        return AuthResult(user=UserPublic.model_validate(user), **pair.model_dump())

    def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new pair, consuming the old one.

        Raises:
            AuthenticationError: If the token is invalid, expired, unknown or already used
        """
        try:
            payload = self.tokens.decode_refresh_token(refresh_token)
        except AuthenticationError:
            raise AuthenticationError("Invalid refresh token")

        user = self._get_active_user(payload["sub"])
        if user is None:
            raise AuthenticationError("Invalid refresh token")

        # Conditional delete: of two concurrent refreshes only one removes the row.
        result = self.session.exec(
            delete(RefreshToken).where(
                RefreshToken.user_id == user.id,
                RefreshToken.token_hash == hash_token(refresh_token),
            )
        )
        if result.rowcount != 1:
            self.session.rollback()
            logger.warning(f"Rejected unknown or reused refresh token for user {user.id}")
            raise AuthenticationError("Invalid refresh token")

        pair = self._issue_tokens(user.id)
        self.session.commit()
        return pair

    def logout(self, user_id: str, refresh_token: str) -> None:
        """Drop ``refresh_token`` from the user's valid set. No-op if absent."""
        result = self.session.exec(
            delete(RefreshToken).where(
                RefreshToken.user_id == user_id,
                RefreshToken.token_hash == hash_token(refresh_token),
            )
        )
        self.session.commit()
        if result.rowcount:
            logger.info(f"User {user_id} logged out")

    def get_profile(self, user_id: str) -> UserPublic:
        user = self.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return UserPublic.model_validate(user)

    def authenticate_access_token(self, token: str) -> AuthenticatedUser:
        """Resolve an access token to the identity of an active user."""
        payload = self.tokens.decode_access_token(token)
        user = self._get_active_user(payload["sub"])
        if user is None:
            raise AuthenticationError("User not found or inactive")
        return AuthenticatedUser(id=user.id, name=user.name, email=user.email)

    def purge_expired_tokens(self) -> int:
        """Delete stored refresh tokens past their expiry. Returns the count removed."""
        result = self.session.exec(delete(RefreshToken).where(RefreshToken.expires_at < utcnow()))
        self.session.commit()
        removed = result.rowcount or 0
        if removed:
            logger.info(f"Purged {removed} expired refresh tokens")
        return removed

    def _get_active_user(self, user_id: str) -> Optional[User]:
        return self.session.exec(
            select(User).where(User.id == user_id, User.is_active == True)  # noqa: E712
        ).first()

    def _issue_tokens(self, user_id: str) -> TokenPair:
        self.session.exec(
            delete(RefreshToken).where(RefreshToken.user_id == user_id, RefreshToken.expires_at < utcnow())
        )
        pair = self.tokens.create_token_pair(user_id)
        self.session.add(
            RefreshToken(
                user_id=user_id,
                token_hash=hash_token(pair.refresh_token),
                expires_at=utcnow() + self.tokens.refresh_ttl,
            )
        )
        return pair
