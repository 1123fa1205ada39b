"""Asset store protocol."""

from typing import Protocol
from uuid import UUID

from domain.entities.asset import AssetReference, ImageKind, StoredAsset


class IAssetStore(Protocol):
    """Object storage holding uploaded images."""

    async def put(
        self,
        owner_id: UUID,
        kind: ImageKind,
        data: bytes,
        content_type: str,
        filename: str | None = None,
    ) -> StoredAsset:
        """Upload under a fresh, owner-prefixed path. Raises StorageError on failure."""
        ...

    async def delete(self, reference: AssetReference) -> bool:
        """Remove an object. True when the store accepted the call, even if nothing matched."""
        ...

    def public_url(self, reference: AssetReference) -> str:
        """Derive the public URL of an object without a network call."""
        ...

    def reference_from_url(self, url: str) -> AssetReference | None:
        """Recover a reference from a public URL, or None when it does not point into the bucket."""
        ...
