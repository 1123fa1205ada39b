"""Passwordless sign-in routes."""

from fastapi import APIRouter, Depends, Request, status

from api.dependencies.auth import CurrentUser
from api.dependencies.services import get_auth_service, get_profile_service
from api.schemas.auth import AuthCallbackRequest, MagicLinkRequest, SessionResponse
from api.schemas.common import AUTH_ERROR_RESPONSES, ErrorResponse, MessageResponse
from api.schemas.profile import ProfileResponse
from core.rate_limit import limiter
from domain.services.auth_service import AuthService
from domain.services.profile_service import ProfileService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/magic-link",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Email a sign-in link",
    responses={
        400: {"model": ErrorResponse, "description": "Redirect outside this site"},
        502: {"model": ErrorResponse, "description": "Identity provider unavailable"},
    },
)
@limiter.limit("5/minute")  # type: ignore[untyped-decorator]
async def request_magic_link(
    request: Request,
    body: MagicLinkRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Send a passwordless sign-in link to the given address."""
    await service.send_magic_link(body.email, body.redirect_to, body.code_challenge)
    return MessageResponse(message="Check your email for the sign-in link")


@router.post(
    "/callback",
    response_model=SessionResponse,
    summary="Complete sign-in from an emailed link",
    responses={
        401: {"model": ErrorResponse, "description": "Link invalid or expired"},
        502: {"model": ErrorResponse, "description": "Identity provider unavailable"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def auth_callback(
    request: Request,
    body: AuthCallbackRequest,
    service: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    """Exchange the auth code for a session and create or refresh the profile."""
    result = await service.complete_sign_in(body.auth_code, body.code_verifier, body.next)
    session = result.session
    return SessionResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        token_type=session.token_type,
        expires_in=session.expires_in,
        redirect_to=result.redirect_to,
        profile=ProfileResponse.from_entity(result.profile) if result.profile else None,
    )


@router.post(
    "/sync",
    response_model=ProfileResponse,
    summary="Mirror the signed-in identity into the profile",
    responses=AUTH_ERROR_RESPONSES,
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def sync_profile(
    request: Request,
    user: CurrentUser,
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    """Create the caller's profile if missing and refresh its email."""
    profile = await service.sync_from_identity(user.id, user.email, user.full_name)
    return ProfileResponse.from_entity(profile)
