"""Password hashing, account tokens and session JWTs.

Passwords use bcrypt. Verification and reset links carry a random token whose
SHA-256 digest is what the ``users`` table stores. Sessions are HS256 JWTs
with a unique ``jti`` so that a single session can be revoked on logout.
"""
import hashlib
import secrets
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt

from .config import settings

BCRYPT_ROUNDS = 10
# bcrypt ignores everything past 72 bytes
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Return the bcrypt hash of ``password`` as text."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against a stored hash.

    A malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def generate_token() -> str:
    """Random single-use token for verification and reset links."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 digest of an account token.

    Tokens are looked up by equality, so the digest has to be deterministic.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session_token(
    subject: str,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """Sign a session token for a user.

    Args:
        subject: User ID, stored as ``sub``
        expires_delta: Lifetime, ``SESSION_MAX_AGE_DAYS`` when omitted
        extra_claims: Merged into the payload

    Returns:
        The encoded JWT
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(days=settings.session_max_age_days)
    claims: dict[str, Any] = {
        **(extra_claims or {}),
        "sub": str(subject),
        "jti": uuid.uuid4().hex,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    token: str = jwt.encode(claims, settings.effective_jwt_secret, algorithm=settings.jwt_algorithm)
    return token


def decode_session_token(token: str) -> dict[str, Any] | None:
    """Return the claims of a valid session token.

    Bad signatures, expired tokens and tokens without a subject give ``None``.
    Revocation is checked separately against the ``revoked_tokens`` table.
    """
    try:
        claims: dict[str, Any] = jwt.decode(
            token, settings.effective_jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None
    return claims if claims.get("sub") else None
