"""Image upload and delete routes."""

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from api.dependencies.auth import CurrentUser
from api.dependencies.services import get_image_service
from api.schemas.common import AUTH_ERROR_RESPONSES, ErrorResponse
from api.schemas.image import ImageDeleteResponse, ImageUploadResponse
from api.schemas.profile import ProfileResponse
from core.exceptions import InvalidImageKindError, InvalidInputError, MissingFileError
from core.rate_limit import limiter
from domain.entities.asset import ImageKind
from domain.services.image_service import ImageService

router = APIRouter(tags=["images"])


@router.post(
    "/upload/image",
    response_model=ImageUploadResponse,
    summary="Upload a profile or banner image",
    responses={
        **AUTH_ERROR_RESPONSES,
        400: {"model": ErrorResponse, "description": "Missing file, bad type or size"},
        500: {"model": ErrorResponse, "description": "Upload or profile update failed"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def upload_image(
    request: Request,
    user: CurrentUser,
    file: UploadFile | None = File(None),
    image_type: str | None = Form(None, alias="type"),
    service: ImageService = Depends(get_image_service),
) -> ImageUploadResponse:
    """
    Replace the caller's profile or banner image.

    The previous image of the same type is removed in the background once the
    profile points at the new one.
    """
    if file is None:
        raise MissingFileError()

    kind = ImageKind.parse(image_type)
    if kind is None:
        raise InvalidImageKindError(image_type)

    # Form is already spooled; BodySizeLimitMiddleware refuses oversized bodies
    service.validate(file.content_type, file.size or 0)
    data = await file.read()

    result = await service.replace_image(
        owner_id=user.id,
        email=user.email,
        kind=kind,
        data=data,
        media_type=file.content_type,
        filename=file.filename,
        declared_size=file.size,
    )
    return ImageUploadResponse(
        url=result.asset.url,
        path=result.asset.path,
        profile=ProfileResponse.from_entity(result.profile),
    )


@router.delete(
    "/delete/image",
    response_model=ImageDeleteResponse,
    summary="Delete a profile or banner image",
    responses={
        **AUTH_ERROR_RESPONSES,
        400: {"model": ErrorResponse, "description": "Bad type or URL"},
        403: {"model": ErrorResponse, "description": "Image belongs to another user"},
        500: {"model": ErrorResponse, "description": "Delete or profile update failed"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def delete_image(
    request: Request,
    user: CurrentUser,
    image_type: str | None = Query(None, alias="type"),
    url: str | None = Query(None),
    service: ImageService = Depends(get_image_service),
) -> ImageDeleteResponse:
    """Delete an image from storage and clear it from the caller's profile."""
    kind = ImageKind.parse(image_type)
    if kind is None:
        raise InvalidImageKindError(image_type)
    if not url:
        raise InvalidInputError("Image URL required")

    profile = await service.delete_image(
        owner_id=user.id,
        email=user.email,
        kind=kind,
        asset_url=url,
    )
    return ImageDeleteResponse(success=True, profile=ProfileResponse.from_entity(profile))
