"""
Authentication router.

Mounts under ``/api/auth`` (prefix set in ``main.py``).

Endpoints:
    POST /login   — Authenticate with username (or email) + password, receive JWT.
    POST /refresh — Exchange a valid token for a new one.
    GET  /me      — Return the authenticated profile.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.models.profile import Profile
from marketplace.schemas.auth import TokenResponse, UserResponse
from marketplace.services.auth_service import authenticate_user, get_current_user
from marketplace.utils.security import issue_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def _token_for(user: Profile) -> TokenResponse:
    return TokenResponse(access_token=issue_token(user.id, user.role))


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Log in",
    description=(
        "Authenticates with an OAuth2 password form and returns an access JWT "
        "valid for ``JWT_EXPIRATION_MINUTES``."
    ),
    responses={
        200: {"description": "Authenticated; the JWT is included."},
        401: {"description": "Wrong credentials or inactive account."},
    },
)
def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Annotated[Session, Depends(get_db)],
) -> TokenResponse:
    user = authenticate_user(db, form_data.username, form_data.password)
    if user is None:
        logger.warning("Failed login attempt for username='%s'", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect credentials or inactive account",
            headers={"WWW-Authenticate": "Bearer"},
        )
    logger.info("Successful login for username='%s' role='%s'", user.username, user.role)
    return _token_for(user)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh token",
    responses={401: {"description": "Invalid or expired token."}},
)
def refresh_token(
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> TokenResponse:
    logger.info("Token refreshed for username='%s'", current_user.username)
    return _token_for(current_user)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Authenticated profile",
    responses={401: {"description": "Missing, invalid or expired token."}},
)
def get_me(
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> UserResponse:
    return UserResponse.model_validate(current_user)
