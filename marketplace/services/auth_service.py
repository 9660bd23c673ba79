"""
Who is calling, and what they may touch.

``get_current_user`` resolves the bearer token to an active ``Profile``;
``require_role`` narrows that to a set of roles. The booking checks at the
bottom are shared by the milestone, task, progress and invoice services.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.models.booking import Booking
from marketplace.models.profile import Profile
from marketplace.utils.security import decode_token, verify_password

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


def authenticate_user(db: Session, login: str, password: str) -> Profile | None:
    """Return the active profile whose username or email is *login*.

    ``None`` on any mismatch; the router decides the HTTP response.
    """
    user = (
        db.query(Profile)
        .filter(or_(Profile.username == login, Profile.email == login), Profile.is_active.is_(True))
        .first()
    )
    if user is None or not verify_password(password, user.password_hash):
        logger.debug("Login rejected for '%s'", login)
        return None

    try:
        user.last_login = datetime.utcnow()
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not record last_login for profile %s", user.id, exc_info=True)
    return user


# ---------------------------------------------------------------------------
# Current authenticated user
# ---------------------------------------------------------------------------


def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[Session, Depends(get_db)],
) -> Profile:
    """Resolve the bearer token to an active profile, or raise 401.

    A token whose role no longer matches the profile (the role was changed
    after login) is rejected as well.
    """
    try:
        claims = decode_token(token)
    except ValueError:
        raise _unauthorized()

    user = db.get(Profile, claims.profile_id)
    if user is None or not user.is_active:
        raise _unauthorized()
    if claims.role is not None and claims.role != user.role:
        logger.info("Stale role in token for profile %s (%s != %s)", user.id, claims.role, user.role)
        raise _unauthorized()
    return user


def require_role(*roles: str):
    """Dependency factory: the current user, provided their role is in *roles*."""
    allowed = frozenset(roles)

    def _check_role(
        current_user: Annotated[Profile, Depends(get_current_user)],
    ) -> Profile:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. One of the roles {sorted(allowed)} is required",
            )
        return current_user

    return _check_role


# ---------------------------------------------------------------------------
# Booking participant checks
# ---------------------------------------------------------------------------


def is_booking_participant(booking: Booking, user: Profile) -> bool:
    return user.role == "admin" or user.id in (booking.client_id, booking.provider_id)


def ensure_booking_reader(booking: Booking, user: Profile) -> None:
    """Allow the booking's client, its provider, or an admin."""
    if not is_booking_participant(booking, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this booking",
        )


def ensure_booking_editor(booking: Booking, user: Profile) -> None:
    """Allow only the booking's provider or an admin to change its plan."""
    if user.role == "admin":
        return
    if user.role != "provider" or booking.provider_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the booking provider or an admin can modify milestones and tasks",
        )
