"""Unit tests for AuthService."""

from datetime import timedelta

import pytest
from sqlmodel import select

from task_manager.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from task_manager.models import RefreshToken, User
from task_manager.models.base import utcnow
from task_manager.services.security import hash_token


def _stored_hashes(session, user_id):
    return set(session.exec(select(RefreshToken.token_hash).where(RefreshToken.user_id == user_id)).all())


class TestRegister:
    def test_register_returns_sanitized_user_and_tokens(self, ann, session):
        assert ann.user.name == "Ann"
        assert ann.user.email == "ann@x.com"
        assert ann.user.is_active is True
        assert ann.access_token and ann.refresh_token
        dumped = ann.user.model_dump()
        assert "hashed_password" not in dumped
        assert "password" not in dumped

        user = session.get(User, ann.user.id)
        assert user.hashed_password != "password123"
        assert _stored_hashes(session, user.id) == {hash_token(ann.refresh_token)}

    def test_email_is_normalized(self, auth_service):
        result = auth_service.register("Cara", "  Cara@Example.COM ", "password123")
        assert result.user.email == "cara@example.com"

    def test_duplicate_email_any_casing_conflicts(self, auth_service, ann):
        with pytest.raises(ConflictError, match="Email already registered"):
            auth_service.register("Ann Again", "ANN@X.COM", "password123")

    def test_password_over_bcrypt_limit_is_rejected(self, auth_service):
        with pytest.raises(ValidationError):
            auth_service.register("Cara", "cara@example.com", "a" * 72 + "original")


class TestLogin:
    def test_login_with_exact_password(self, auth_service, ann):
        result = auth_service.login("ann@x.com", "password123")
        assert result.user.id == ann.user.id

    def test_login_is_case_insensitive_on_email(self, auth_service, ann):
        assert auth_service.login("Ann@X.com", "password123").user.id == ann.user.id

    @pytest.mark.parametrize("email,password", [
        ("ann@x.com", "wrong"),
        ("ann@x.com", "PASSWORD123"),
        ("nobody@x.com", "password123"),
    ])
    def test_login_failures_are_indistinguishable(self, auth_service, ann, email, password):
        with pytest.raises(AuthenticationError) as exc:
            auth_service.login(email, password)
        assert exc.value.message == "Invalid email or password"

    def test_inactive_user_cannot_login(self, auth_service, session, ann):
        user = session.get(User, ann.user.id)
        user.is_active = False
        session.add(user)
        session.commit()

        with pytest.raises(AuthenticationError):
            auth_service.login("ann@x.com", "password123")

    def test_login_with_bcrypt_truncated_prefix_fails(self, auth_service):
        auth_service.register("Cara", "cara@example.com", "a" * 72)

        with pytest.raises(AuthenticationError):
            auth_service.login("cara@example.com", "a" * 72 + "DIFFERENT")

    def test_login_keeps_earlier_refresh_tokens(self, auth_service, session, ann):
        result = auth_service.login("ann@x.com", "password123")

        assert _stored_hashes(session, ann.user.id) == {
            hash_token(ann.refresh_token),
            hash_token(result.refresh_token),
        }


class TestRefresh:
    def test_refresh_rotates_token(self, auth_service, session, ann):
        pair = auth_service.refresh(ann.refresh_token)

        assert pair.refresh_token != ann.refresh_token
        assert _stored_hashes(session, ann.user.id) == {hash_token(pair.refresh_token)}

    def test_refresh_token_is_single_use(self, auth_service, ann):
        pair = auth_service.refresh(ann.refresh_token)

        with pytest.raises(AuthenticationError, match="Invalid refresh token"):
            auth_service.refresh(ann.refresh_token)
        # the successor still works
        assert auth_service.refresh(pair.refresh_token).refresh_token

    def test_access_token_cannot_refresh(self, auth_service, ann):
        with pytest.raises(AuthenticationError):
            auth_service.refresh(ann.access_token)

    def test_garbage_token(self, auth_service):
        with pytest.raises(AuthenticationError):
            auth_service.refresh("not-a-token")

    def test_valid_signature_but_not_stored(self, auth_service, ann):
        forged = auth_service.tokens.create_refresh_token(ann.user.id)
        with pytest.raises(AuthenticationError):
            auth_service.refresh(forged)

    def test_inactive_user_cannot_refresh(self, auth_service, session, ann):
        user = session.get(User, ann.user.id)
        user.is_active = False
        session.add(user)
        session.commit()

        with pytest.raises(AuthenticationError):
            auth_service.refresh(ann.refresh_token)


class TestLogout:
    def test_logout_revokes_refresh_token(self, auth_service, ann):
        auth_service.logout(ann.user.id, ann.refresh_token)

        with pytest.raises(AuthenticationError):
            auth_service.refresh(ann.refresh_token)

    def test_logout_is_idempotent(self, auth_service, ann):
        auth_service.logout(ann.user.id, ann.refresh_token)
        auth_service.logout(ann.user.id, ann.refresh_token)
        auth_service.logout("missing-user", "missing-token")

    def test_logout_only_touches_own_tokens(self, auth_service, ann, bob):
        auth_service.logout(bob.user.id, ann.refresh_token)

        assert auth_service.refresh(ann.refresh_token).refresh_token


class TestProfileAndIdentity:
    def test_get_profile(self, auth_service, ann):
        profile = auth_service.get_profile(ann.user.id)
        assert profile.email == "ann@x.com"

    def test_get_profile_missing_user(self, auth_service):
        with pytest.raises(NotFoundError):
            auth_service.get_profile("missing")

    def test_authenticate_access_token(self, auth_service, ann):
        identity = auth_service.authenticate_access_token(ann.access_token)
        assert identity.id == ann.user.id
        assert identity.email == "ann@x.com"

    def test_authenticate_inactive_user(self, auth_service, session, ann):
        user = session.get(User, ann.user.id)
        user.is_active = False
        session.add(user)
        session.commit()

        with pytest.raises(AuthenticationError, match="User not found or inactive"):
            auth_service.authenticate_access_token(ann.access_token)


def test_purge_expired_tokens(auth_service, session, ann):
    session.add(RefreshToken(user_id=ann.user.id, token_hash="0" * 64, expires_at=utcnow() - timedelta(days=1)))
    session.commit()

    assert auth_service.purge_expired_tokens() == 1
    assert _stored_hashes(session, ann.user.id) == {hash_token(ann.refresh_token)}


def test_issuing_tokens_drops_the_users_expired_ones(auth_service, session, ann, bob):
    for user_id, token_hash in ((ann.user.id, "0" * 64), (bob.user.id, "1" * 64)):
        session.add(RefreshToken(user_id=user_id, token_hash=token_hash, expires_at=utcnow() - timedelta(days=1)))
    session.commit()

    result = auth_service.login("ann@x.com", "password123")

    assert _stored_hashes(session, ann.user.id) == {
        hash_token(ann.refresh_token),
        hash_token(result.refresh_token),
    }
    # rows of other users are untouched
    assert "1" * 64 in _stored_hashes(session, bob.user.id)
