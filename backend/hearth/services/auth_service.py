"""
Hearth Butler Backend — Authentication Service
================================================

What:  Registration, login, logout and bearer-token resolution.
Why:   Every family-scoped endpoint needs to know which user is calling.
How:   PBKDF2-SHA256 password hashes; opaque random session tokens whose
       SHA-256 digest is stored in `user_sessions` with an expiry.
Who:   Called by the auth routes and by the get_current_user dependency.
"""

import base64
import hashlib
import hmac
import logging
import os
import re
import secrets
from datetime import timedelta
from typing import Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.config import settings
from hearth.exceptions import (
    AuthenticationError,
    DatabaseError,
    HearthError,
    ValidationError,
)
from hearth.models.enums import UserRole
from hearth.models.mixins import ensure_utc, utcnow
from hearth.models.user import User, UserSession

logger = logging.getLogger(__name__)

_PBKDF2_ALG = "sha256"
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


# ══════════════════════════════════════════════════════════════════════════
# Password and token primitives
# ══════════════════════════════════════════════════════════════════════════

def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64url_decode(data: str) -> bytes:
    pad = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode((data + pad).encode("ascii"))


def hash_password(password: str, iterations: int | None = None) -> str:
    iterations = iterations or settings.password_hash_iterations
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac(_PBKDF2_ALG, password.encode("utf-8"), salt, iterations)
    return f"pbkdf2_{_PBKDF2_ALG}${iterations}${_b64url_encode(salt)}${_b64url_encode(dk)}"


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check of a password against a stored PBKDF2 hash."""
    try:
        scheme, iter_s, salt_b64, dk_b64 = password_hash.split("$", 3)
    except ValueError:
        return False
    if not scheme.startswith("pbkdf2_"):
        return False
    alg = scheme.split("_", 1)[1]
    actual = hashlib.pbkdf2_hmac(
        alg, password.encode("utf-8"), _b64url_decode(salt_b64), int(iter_s)
    )
    return hmac.compare_digest(actual, _b64url_decode(dk_b64))


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def validate_password(password: str) -> None:
    """Minimum length, at least one letter and one digit."""
    if len(password) < settings.password_min_length:
        raise ValidationError(
            message=f"Password must be at least {settings.password_min_length} characters",
            field="password",
        )
    if not re.search(r"[A-Za-z]", password) or not re.search(r"\d", password):
        raise ValidationError(
            message="Password must contain at least one letter and one digit",
            field="password",
        )


def sanitize_name(name: str) -> str:
    """Trims whitespace and strips angle brackets from display names."""
    cleaned = re.sub(r"[<>]", "", name).strip()
    if not 1 <= len(cleaned) <= 50:
        raise ValidationError(message="Name must be between 1 and 50 characters", field="name")
    return cleaned


# ══════════════════════════════════════════════════════════════════════════
# Auth Service
# ══════════════════════════════════════════════════════════════════════════

class AuthService:
    """
    Account and session lifecycle.

    Error Handling:
        Bad credentials and bad tokens raise AuthenticationError (401).
        Input rule violations raise ValidationError (400).
        Anything unexpected is wrapped in DatabaseError (500).
    """

    async def register(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        name: str,
    ) -> Tuple[User, str]:
        """Creates an account and logs it in. Returns (user, raw token)."""
        email = email.strip().lower()
        if not _EMAIL_RE.match(email):
            raise ValidationError(message="Invalid email address", field="email")
        validate_password(password)
        name = sanitize_name(name)

        try:
            result = await db.execute(select(User).where(User.email == email))
            if result.scalar_one_or_none() is not None:
                raise ValidationError(message="Email is already registered", field="email")

            user = User(
                email=email,
                name=name,
                password_hash=hash_password(password),
                role=UserRole.USER.value,
            )
            db.add(user)
            await db.flush()

            token = await self._create_session(db, user)
            logger.info("User registered: %s", user.id)
            return user, token

        except HearthError:
            raise
        except Exception as e:
            logger.error("Database error registering user: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the account. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def login(self, db: AsyncSession, email: str, password: str) -> Tuple[User, str]:
        try:
            result = await db.execute(
                select(User).where(
                    User.email == email.strip().lower(),
                    User.deleted_at.is_(None),
                )
            )
            user = result.scalar_one_or_none()
        except Exception as e:
            logger.error("Database error during login: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

        # Same message for unknown email and wrong password
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError(message="Invalid email or password")

        token = await self._create_session(db, user)
        logger.info("User logged in: %s", user.id)
        return user, token

    async def logout(self, db: AsyncSession, token: str) -> None:
        await db.execute(delete(UserSession).where(UserSession.token_hash == hash_token(token)))
        await db.flush()

    async def resolve_session(self, db: AsyncSession, token: str | None) -> User:
        """
        Maps a bearer token to its user.

        Raises:
            AuthenticationError: Missing, unknown or expired token, or deleted user.
        """
        if not token:
            raise AuthenticationError()

        result = await db.execute(
            select(UserSession, User)
            .join(User, User.id == UserSession.user_id)
            .where(UserSession.token_hash == hash_token(token))
        )
        row = result.first()
        if row is None:
            raise AuthenticationError(message="Invalid session token")

        session, user = row
        now = utcnow()
        if ensure_utc(session.expires_at) <= now:
            raise AuthenticationError(message="Session expired. Please log in again.")
        if user.deleted_at is not None:
            raise AuthenticationError(message="Account no longer exists")

        session.last_used_at = now
        return user

    async def _create_session(self, db: AsyncSession, user: User) -> str:
        token = secrets.token_urlsafe(32)
        db.add(
            UserSession(
                user_id=user.id,
                token_hash=hash_token(token),
                expires_at=utcnow() + timedelta(hours=settings.session_ttl_hours),
            )
        )
        await db.flush()
        return token


auth_service = AuthService()
