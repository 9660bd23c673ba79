"""
Pydantic v2 schemas for the authentication endpoints.

Covers the JWT token response and the public profile representation
returned by ``GET /api/auth/me``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TokenResponse(BaseModel):
    """Response body returned after a successful authentication.

    Attributes:
        access_token: Signed JWT string to be sent in the
                      ``Authorization: Bearer <token>`` header.
        token_type: Always ``"bearer"`` per OAuth2 convention.
    """

    access_token: str = Field(..., description="HS256-signed access JWT")
    token_type: str = Field(default="bearer", description="OAuth2 token type")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "token_type": "bearer",
            }
        }
    )


class UserResponse(BaseModel):
    """Public representation of an authenticated profile.

    Sensitive fields (``password_hash``) are deliberately excluded.
    """

    id: str
    username: str
    email: str
    full_name: str | None
    role: str
    company_name: str | None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
