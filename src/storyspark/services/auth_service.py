"""Account service: registration, login, e-mail verification, password reset
and session token revocation.

Raw account tokens are never stored. Each one is hashed with SHA-256 and the
digest is matched together with its expiry, then cleared on use.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storyspark.core.config import get_settings
from storyspark.core.security import (
    generate_token,
    hash_password,
    hash_token,
    verify_password,
)
from storyspark.models.user import RevokedToken, User

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "invalid_credentials"
EMAIL_NOT_VERIFIED = "email_not_verified"


class AuthService:
    """Service for account lifecycle operations."""

    def __init__(self, db: AsyncSession):
        """Initialize with database session.

        Args:
            db: Async SQLAlchemy session
        """
        self.db = db
        self.settings = get_settings()

    async def get_user(self, user_id: str) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def register(self, email: str, password: str, name: str) -> tuple[User, str]:
        """Create an unverified user.

        Args:
            email: E-mail address, stored lower-cased
            password: Plain text password
            name: Display name

        Returns:
            Tuple of (User, raw verification token)
        """
        raw_token = generate_token()
        user = User(
            email=email.lower(),
            name=name,
            hashed_password=hash_password(password),
            is_email_verified=False,
            email_verification_token=hash_token(raw_token),
            email_verification_expires=datetime.now(UTC)
            + timedelta(hours=self.settings.email_verification_expire_hours),
        )
        self.db.add(user)
        await self.db.commit()
        logger.info("Registered user %s", user.email)
        return user, raw_token

    async def authenticate(self, email: str, password: str) -> tuple[User | None, str | None]:
        """Check credentials.

        Returns:
            Tuple of (User, None) on success or (None, error_code) on failure
        """
        user = await self.get_user_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.warning("Failed login attempt for email: %s", email)
            return None, INVALID_CREDENTIALS
        if not user.is_email_verified:
            logger.warning("Login attempt with unverified email: %s", email)
            return None, EMAIL_NOT_VERIFIED
        logger.info("Successful login for user: %s", user.email)
        return user, None

    async def verify_email(self, token: str) -> User | None:
        """Mark the user owning ``token`` as verified.

        Returns:
            The verified user, or None if the token is unknown, expired or already used
        """
        result = await self.db.execute(
            select(User).where(
                User.email_verification_token == hash_token(token),
                User.email_verification_expires > datetime.now(UTC),
                User.is_email_verified.is_(False),
            )
        )
        user = result.scalar_one_or_none()
        if user is None:
            return None

        user.is_email_verified = True
        user.email_verified_at = datetime.now(UTC)
        user.email_verification_token = None
        user.email_verification_expires = None
        await self.db.commit()
        logger.info("Email verified for user: %s", user.email)
        return user

    async def refresh_verification_token(self, user: User) -> str:
        """Issue a new verification token, replacing the previous one."""
        raw_token = generate_token()
        user.email_verification_token = hash_token(raw_token)
        user.email_verification_expires = datetime.now(UTC) + timedelta(
            hours=self.settings.email_verification_expire_hours
        )
        await self.db.commit()
        return raw_token

    async def start_password_reset(self, email: str) -> tuple[User, str] | None:
        """Store a reset token for the user with ``email``.

        Returns:
            Tuple of (User, raw reset token), or None if no such user exists
        """
        user = await self.get_user_by_email(email)
        if user is None:
            return None

        raw_token = generate_token()
        user.password_reset_token = hash_token(raw_token)
        user.password_reset_expires = datetime.now(UTC) + timedelta(
            minutes=self.settings.password_reset_expire_minutes
        )
        await self.db.commit()
        logger.info("Password reset requested for user: %s", user.email)
        return user, raw_token

    async def reset_password(self, token: str, new_password: str) -> User | None:
        """Replace the password of the user owning a live reset token.

        The token fields are cleared in the same commit, so a token works once.

        Returns:
            The updated user, or None if the token is unknown or expired
        """
        result = await self.db.execute(
            select(User).where(
                User.password_reset_token == hash_token(token),
                User.password_reset_expires > datetime.now(UTC),
            )
        )
        user = result.scalar_one_or_none()
        if user is None:
            return None

        user.hashed_password = hash_password(new_password)
        user.password_reset_token = None
        user.password_reset_expires = None
        await self.db.commit()
        logger.info("Password reset for user: %s", user.email)
        return user

    async def revoke_token(
        self,
        jti: str,
        expires_at: datetime,
        user_id: str | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> RevokedToken:
        """Record a session token as revoked. Revoking twice is a no-op."""
        result = await self.db.execute(select(RevokedToken).where(RevokedToken.token == jti))
        revoked = result.scalar_one_or_none()
        if revoked is not None:
            return revoked

        revoked = RevokedToken(
            token=jti,
            user_id=user_id,
            expires_at=expires_at,
            revoked_at=datetime.now(UTC),
            ip=ip,
            user_agent=user_agent,
        )
        self.db.add(revoked)
        await self.db.commit()
        logger.info("Revoked session token for user %s", user_id)
        return revoked

    async def is_token_revoked(self, jti: str) -> bool:
        result = await self.db.execute(
            select(RevokedToken.id).where(RevokedToken.token == jti)
        )
        return result.scalar_one_or_none() is not None
