"""Image asset value objects."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class ImageKind(StrEnum):
    """Purpose of an uploaded image."""

    PROFILE = "profile"
    BANNER = "banner"

    @classmethod
    def parse(cls, value: str | None) -> "ImageKind | None":
        """Return the matching kind, or None for anything unrecognised."""
        if value is None:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class AssetReference:
    """Location of an object in the asset store."""

    bucket: str
    path: str

    @property
    def owner_prefix(self) -> str:
        """First path segment, which partitions objects by owner."""
        return self.path.split("/", 1)[0]

    def to_dict(self) -> dict[str, str]:
        return {"bucket": self.bucket, "path": self.path}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AssetReference | None":
        if not data or not data.get("bucket") or not data.get("path"):
            return None
        return cls(bucket=str(data["bucket"]), path=str(data["path"]))


@dataclass(frozen=True, slots=True)
class StoredAsset:
    """A freshly uploaded object and its public URL."""

    url: str
    reference: AssetReference

    @property
    def path(self) -> str:
        return self.reference.path
