"""Profile domain entity."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from domain.entities.asset import AssetReference, ImageKind

BIO_MAX_LENGTH = 500
EDITABLE_FIELDS = ("name", "country", "bio")


@dataclass
class Profile:
    """Domain entity for user profile (synced from Supabase)."""

    owner_id: UUID
    email: str = ""
    id: UUID = field(default_factory=uuid4)
    name: str | None = None
    country: str | None = None
    bio: str | None = None
    profile_image_url: str | None = None
    profile_image_ref: AssetReference | None = None
    banner_image_url: str | None = None
    banner_image_ref: AssetReference | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        """Ensure updated_at is always at least as recent as created_at."""
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at

    def image_url(self, kind: ImageKind) -> str | None:
        """Current URL stored for an image kind."""
        if kind is ImageKind.PROFILE:
            return self.profile_image_url
        return self.banner_image_url

    def image_ref(self, kind: ImageKind) -> AssetReference | None:
        """Current structured reference stored for an image kind."""
        if kind is ImageKind.PROFILE:
            return self.profile_image_ref
        return self.banner_image_ref


def image_fields(kind: ImageKind) -> tuple[str, str]:
    """Column names (url, ref) holding an image kind."""
    if kind is ImageKind.PROFILE:
        return "profile_image_url", "profile_image_ref"
    return "banner_image_url", "banner_image_ref"
