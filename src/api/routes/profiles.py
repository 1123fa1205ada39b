"""Profile API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request

from api.dependencies.auth import CurrentUser
from api.dependencies.services import get_profile_service
from api.schemas.common import AUTH_ERROR_RESPONSES, ErrorResponse
from api.schemas.profile import ProfileResponse, ProfileUpdate
from core.exceptions import AuthorizationError
from core.rate_limit import limiter
from domain.services.profile_service import ProfileService

router = APIRouter(prefix="/profile", tags=["profile"])


def _owner_uuid(owner_id: str) -> UUID:
    """Owner ids that are not UUIDs can never match a caller."""
    try:
        return UUID(owner_id)
    except ValueError:
        raise AuthorizationError("You can only access your own profile") from None


@router.get(
    "/{owner_id}",
    response_model=ProfileResponse,
    summary="Get a profile",
    responses={
        **AUTH_ERROR_RESPONSES,
        403: {"model": ErrorResponse, "description": "Profile belongs to another user"},
        404: {"model": ErrorResponse, "description": "Profile not found"},
    },
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_profile(
    request: Request,
    owner_id: str,
    user: CurrentUser,
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    """Get the authenticated user's own profile."""
    profile = await service.get_profile(_owner_uuid(owner_id), user.id)
    return ProfileResponse.from_entity(profile)


@router.put(
    "/{owner_id}",
    response_model=ProfileResponse,
    summary="Update a profile",
    responses={
        **AUTH_ERROR_RESPONSES,
        403: {"model": ErrorResponse, "description": "Profile belongs to another user"},
        500: {"model": ErrorResponse, "description": "Profile could not be saved"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def update_profile(
    request: Request,
    owner_id: str,
    body: ProfileUpdate,
    user: CurrentUser,
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    """Update name, country and bio. Fields left out of the body are unchanged."""
    profile = await service.update_profile(
        owner_id=_owner_uuid(owner_id),
        caller_id=user.id,
        caller_email=user.email,
        changes=body.model_dump(exclude_unset=True),
    )
    return ProfileResponse.from_entity(profile)
