"""Pydantic schemas for image upload and delete."""

from pydantic import BaseModel

from api.schemas.profile import ProfileResponse


class ImageUploadResponse(BaseModel):
    """New asset location and the profile now pointing at it."""

    url: str
    path: str
    profile: ProfileResponse


class ImageDeleteResponse(BaseModel):
    """Outcome of deleting an image."""

    success: bool
    profile: ProfileResponse
