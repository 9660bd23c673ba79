"""
Password hashing and access tokens for marketplace profiles.

Tokens are HS256 JWTs carrying the profile id (``sub``), the profile role
and ``typ="access"``. ``decode_token`` returns them as ``TokenClaims`` and
raises ``ValueError`` for anything it cannot trust.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from marketplace.config import get_settings

logger = logging.getLogger(__name__)

TOKEN_TYPE = "access"


@dataclass(frozen=True)
class TokenClaims:
    profile_id: str
    role: str | None
    expires_at: datetime


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("ascii"))
    except ValueError:
        logger.warning("Stored password hash is not a bcrypt hash")
        return False


# ---------------------------------------------------------------------------
# Access tokens
# ---------------------------------------------------------------------------


def issue_token(profile_id: str, role: str | None = None, expires_minutes: int | None = None) -> str:
    """Sign an access token for *profile_id*.

    ``expires_minutes`` defaults to ``JWT_EXPIRATION_MINUTES``.
    """
    settings = get_settings()
    issued_at = datetime.now(timezone.utc)
    lifetime = settings.JWT_EXPIRATION_MINUTES if expires_minutes is None else expires_minutes
    claims = {
        "sub": profile_id,
        "typ": TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=lifetime),
    }
    if role is not None:
        claims["role"] = role
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> TokenClaims:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        logger.debug("Rejected access token: %s", exc)
        raise ValueError("Invalid or expired token") from exc

    profile_id = payload.get("sub")
    if not profile_id or payload.get("typ") != TOKEN_TYPE:
        raise ValueError("Token is not a profile access token")
    return TokenClaims(
        profile_id=profile_id,
        role=payload.get("role"),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
