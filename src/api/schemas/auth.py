"""Pydantic schemas for sign-in endpoints."""

from pydantic import BaseModel, Field

from api.schemas.profile import ProfileResponse


class MagicLinkRequest(BaseModel):
    """Request a passwordless sign-in email."""

    email: str = Field(
        ...,
        max_length=255,
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
    )
    redirect_to: str | None = Field(None, max_length=2000)
    code_challenge: str | None = Field(None, min_length=43, max_length=128)


class AuthCallbackRequest(BaseModel):
    """Auth code from the emailed link plus the client's PKCE verifier."""

    auth_code: str = Field(..., min_length=1)
    code_verifier: str = Field(..., min_length=43, max_length=128)
    next: str | None = None


class SessionResponse(BaseModel):
    """Session tokens issued by the identity provider."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    redirect_to: str
    profile: ProfileResponse | None = None
