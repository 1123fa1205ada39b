"""Supabase Storage adapter for image assets.

Talks to the Storage REST API directly:

    POST   /storage/v1/object/{bucket}/{path}      upload (x-upsert)
    DELETE /storage/v1/object/{bucket}             {"prefixes": [path, ...]}
    GET    /storage/v1/object/public/{bucket}/{path}  public read

Objects live under ``{owner_id}/{kind}-{timestamp_ms}.{ext}``.
"""

import logging
import mimetypes
import time
from urllib.parse import quote, unquote, urlsplit
from uuid import UUID

import httpx

from core.exceptions import StorageError
from domain.entities.asset import AssetReference, ImageKind, StoredAsset

logger = logging.getLogger(__name__)

_EXTENSION_BY_TYPE = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def file_extension(filename: str | None, content_type: str) -> str:
    """Extension from the uploaded filename, falling back to the media type."""
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].strip().lower()
        if ext.isalnum() and len(ext) <= 8:
            return ext
    if content_type in _EXTENSION_BY_TYPE:
        return _EXTENSION_BY_TYPE[content_type]
    guessed = mimetypes.guess_extension(content_type or "")
    return guessed.lstrip(".") if guessed else "bin"


class SupabaseStorage:
    """Asset store backed by a Supabase Storage bucket."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        service_key: str,
        bucket: str = "user-images",
        timeout_seconds: float = 15.0,
        cache_control_seconds: int = 3600,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._service_key = service_key
        self._bucket = bucket
        self._timeout = httpx.Timeout(timeout_seconds)
        self._cache_control = str(cache_control_seconds)

    @property
    def bucket(self) -> str:
        return self._bucket

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._service_key,
            "authorization": f"Bearer {self._service_key}",
        }

    def build_path(self, owner_id: UUID, kind: ImageKind, ext: str) -> str:
        """Owner-prefixed, timestamp-suffixed object path."""
        return f"{owner_id}/{kind.value}-{time.time_ns() // 1_000_000}.{ext}"

    async def put(
        self,
        owner_id: UUID,
        kind: ImageKind,
        data: bytes,
        content_type: str,
        filename: str | None = None,
    ) -> StoredAsset:
        """Upload an image and return its public URL and reference."""
        path = self.build_path(owner_id, kind, file_extension(filename, content_type))
        url = f"{self._base_url}/storage/v1/object/{self._bucket}/{quote(path)}"
        headers = {
            **self._headers(),
            "content-type": content_type,
            "cache-control": f"max-age={self._cache_control}",
            "x-upsert": "true",
        }

        try:
            response = await self._client.post(
                url, content=data, headers=headers, timeout=self._timeout
            )
        except httpx.HTTPError as exc:
            logger.error("Storage upload transport error for %s: %s", path, exc)
            raise StorageError(f"upload transport error: {exc}") from exc

        if response.status_code >= 300:
            logger.error(
                "Storage upload rejected for %s: %s %s",
                path,
                response.status_code,
                response.text[:500],
            )
            raise StorageError(
                f"upload rejected with status {response.status_code}",
                status_code=response.status_code,
            )

        reference = AssetReference(bucket=self._bucket, path=path)
        return StoredAsset(url=self.public_url(reference), reference=reference)

    async def delete(self, reference: AssetReference) -> bool:
        """Remove an object; missing objects are not an error."""
        url = f"{self._base_url}/storage/v1/object/{reference.bucket}"
        try:
            response = await self._client.request(
                "DELETE",
                url,
                json={"prefixes": [reference.path]},
                headers=self._headers(),
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            logger.error("Storage delete transport error for %s: %s", reference.path, exc)
            return False

        if response.status_code >= 300:
            logger.error(
                "Storage delete rejected for %s: %s %s",
                reference.path,
                response.status_code,
                response.text[:500],
            )
            return False
        return True

    def public_url(self, reference: AssetReference) -> str:
        """Public URL of an object in a public bucket."""
        return (
            f"{self._base_url}/storage/v1/object/public/"
            f"{reference.bucket}/{quote(reference.path)}"
        )

    def reference_from_url(self, url: str) -> AssetReference | None:
        """Locate the bucket segment in a URL and take everything after it as the path."""
        if not url:
            return None
        segments = urlsplit(url).path.split("/")
        try:
            index = segments.index(self._bucket)
        except ValueError:
            return None
        path = "/".join(unquote(part) for part in segments[index + 1 :] if part)
        if not path:
            return None
        return AssetReference(bucket=self._bucket, path=path)
