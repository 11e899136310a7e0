"""
Hearth Butler Backend — Auth Service Unit Tests
=================================================

What we test:
    ✅ PBKDF2 hashes verify only the right password
    ✅ Password and name rules
    ✅ Register / login issue a session whose digest is stored
    ✅ resolve_session rejects missing, unknown, expired and deleted
"""

from datetime import timedelta

import pytest

from hearth.exceptions import AuthenticationError, ValidationError
from hearth.models.mixins import utcnow
from hearth.models.user import User, UserSession
from hearth.services.auth_service import (
    AuthService,
    hash_password,
    hash_token,
    sanitize_name,
    validate_password,
    verify_password,
)


class TestPrimitives:

    def test_hash_roundtrip(self):
        stored = hash_password("secret123", iterations=10_000)
        assert stored.startswith("pbkdf2_sha256$10000$")
        assert verify_password("secret123", stored)
        assert not verify_password("secret124", stored)

    def test_hashes_are_salted(self):
        assert hash_password("secret123") != hash_password("secret123")

    @pytest.mark.parametrize("stored", ["", "plain", "md5$1$abc$def"])
    def test_malformed_hash_never_verifies(self, stored):
        assert verify_password("secret123", stored) is False

    def test_hash_token_is_sha256_hex(self):
        digest = hash_token("abc")
        assert len(digest) == 64
        assert digest == hash_token("abc")

    @pytest.mark.parametrize("password,message", [
        ("a1b2", "at least 8"),
        ("abcdefgh", "letter and one digit"),
        ("12345678", "letter and one digit"),
    ])
    def test_weak_passwords_rejected(self, password, message):
        with pytest.raises(ValidationError, match=message):
            validate_password(password)

    def test_sanitize_name(self):
        assert sanitize_name("  <Alice> ") == "Alice"
        with pytest.raises(ValidationError):
            sanitize_name("<>")
        with pytest.raises(ValidationError):
            sanitize_name("x" * 51)


class TestRegisterAndLogin:

    def setup_method(self):
        self.service = AuthService()

    @pytest.mark.asyncio
    async def test_register_creates_user_and_session(self, mock_db_session, make_result):
        mock_db_session.execute.side_effect = [make_result(value=None)]

        user, token = await self.service.register(
            mock_db_session, " Alice@Example.com ", "secret123", "Alice"
        )

        assert user.email == "alice@example.com"
        assert user.id is not None
        assert verify_password("secret123", user.password_hash)
        (session,) = [o for o in mock_db_session.added if isinstance(o, UserSession)]
        assert session.user_id == user.id
        assert session.token_hash == hash_token(token)
        assert session.expires_at > utcnow()

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, mock_db_session, make_result, user):
        mock_db_session.execute.side_effect = [make_result(value=user)]
        with pytest.raises(ValidationError, match="already registered"):
            await self.service.register(mock_db_session, "alice@example.com", "secret123", "Alice")

    @pytest.mark.asyncio
    async def test_invalid_email_rejected_before_query(self, mock_db_session):
        with pytest.raises(ValidationError, match="email"):
            await self.service.register(mock_db_session, "not-an-email", "secret123", "Alice")
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_login(self, mock_db_session, make_result, user):
        user.password_hash = hash_password("secret123")
        mock_db_session.execute.side_effect = [make_result(value=user)]

        logged_in, token = await self.service.login(mock_db_session, "ALICE@example.com", "secret123")

        assert logged_in is user
        assert token

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, mock_db_session, make_result, user):
        user.password_hash = hash_password("secret123")
        mock_db_session.execute.side_effect = [make_result(value=user), make_result(value=None)]

        with pytest.raises(AuthenticationError) as wrong:
            await self.service.login(mock_db_session, "alice@example.com", "wrong-pass1")
        with pytest.raises(AuthenticationError) as unknown:
            await self.service.login(mock_db_session, "ghost@example.com", "secret123")

        assert wrong.value.message == unknown.value.message


class TestResolveSession:

    def setup_method(self):
        self.service = AuthService()

    def session_row(self, user: User, expires_in: timedelta):
        session = UserSession(user_id=user.id, token_hash=hash_token("tok"), expires_at=utcnow() + expires_in)
        return session, user

    @pytest.mark.asyncio
    async def test_valid_token(self, mock_db_session, make_result, user):
        session, _ = row = self.session_row(user, timedelta(hours=1))
        mock_db_session.execute.side_effect = [make_result(rows=[row])]

        resolved = await self.service.resolve_session(mock_db_session, "tok")

        assert resolved is user
        assert session.last_used_at is not None

    @pytest.mark.asyncio
    async def test_missing_token(self, mock_db_session):
        with pytest.raises(AuthenticationError):
            await self.service.resolve_session(mock_db_session, None)

    @pytest.mark.asyncio
    async def test_unknown_token(self, mock_db_session, make_result):
        mock_db_session.execute.side_effect = [make_result(rows=[])]
        with pytest.raises(AuthenticationError, match="Invalid session"):
            await self.service.resolve_session(mock_db_session, "tok")

    @pytest.mark.asyncio
    async def test_expired_token(self, mock_db_session, make_result, user):
        mock_db_session.execute.side_effect = [make_result(rows=[self.session_row(user, timedelta(hours=-1))])]
        with pytest.raises(AuthenticationError, match="expired"):
            await self.service.resolve_session(mock_db_session, "tok")

    @pytest.mark.asyncio
    async def test_deleted_user(self, mock_db_session, make_result, user):
        user.deleted_at = utcnow()
        mock_db_session.execute.side_effect = [make_result(rows=[self.session_row(user, timedelta(hours=1))])]
        with pytest.raises(AuthenticationError, match="no longer exists"):
            await self.service.resolve_session(mock_db_session, "tok")
