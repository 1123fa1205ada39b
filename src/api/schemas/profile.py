"""Pydantic schemas for Profile API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from domain.entities.profile import BIO_MAX_LENGTH, Profile


class ProfileUpdate(BaseModel):
    """Schema for updating a Profile. Omitted fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, max_length=100)
    country: str | None = Field(None, max_length=100)
    bio: str | None = Field(None, max_length=BIO_MAX_LENGTH)


class ProfileResponse(BaseModel):
    """Schema for Profile response."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "owner_id": "0b5e8f1c-2a4d-4c1e-9a8e-6f2d3c4b5a69",
                "email": "alice@example.com",
                "name": "Alice",
                "country": "Portugal",
                "bio": "Photographer.",
                "profile_image_url": (
                    "https://xyzabc.supabase.co/storage/v1/object/public/user-images/"
                    "0b5e8f1c-2a4d-4c1e-9a8e-6f2d3c4b5a69/profile-1735689600000.png"
                ),
                "profile_image_path": (
                    "0b5e8f1c-2a4d-4c1e-9a8e-6f2d3c4b5a69/profile-1735689600000.png"
                ),
                "banner_image_url": None,
                "banner_image_path": None,
                "created_at": "2026-01-28T10:00:00",
                "updated_at": "2026-01-28T10:05:00",
            }
        },
    )

    id: UUID
    owner_id: UUID
    email: str
    name: str | None = None
    country: str | None = None
    bio: str | None = None
    profile_image_url: str | None = None
    profile_image_path: str | None = None
    banner_image_url: str | None = None
    banner_image_path: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, profile: Profile) -> "ProfileResponse":
        return cls(
            id=profile.id,
            owner_id=profile.owner_id,
            email=profile.email,
            name=profile.name,
            country=profile.country,
            bio=profile.bio,
            profile_image_url=profile.profile_image_url,
            profile_image_path=profile.profile_image_ref.path if profile.profile_image_ref else None,
            banner_image_url=profile.banner_image_url,
            banner_image_path=profile.banner_image_ref.path if profile.banner_image_ref else None,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )
