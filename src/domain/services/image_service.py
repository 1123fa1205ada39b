"""Image asset lifecycle: upload, replace and delete profile images."""

import asyncio
import weakref
from collections.abc import AsyncIterator, Awaitable, Callable, Collection
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TypeVar
from uuid import UUID

import structlog

from core.exceptions import (
    AppException,
    AuthorizationError,
    DatabaseError,
    DeleteFailedError,
    InvalidReferenceError,
    StorageError,
    UploadFailedError,
)
from domain.entities.asset import AssetReference, ImageKind, StoredAsset
from domain.entities.profile import Profile, image_fields
from domain.repositories.asset_store import IAssetStore
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.asset_cleanup import AssetCleanupQueue, CleanupOutcome
from domain.services.image_validation import (
    DEFAULT_ALLOWED_IMAGE_TYPES,
    DEFAULT_MAX_UPLOAD_BYTES,
    validate_image,
)

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ImageReplacement:
    """Result of replacing a profile image."""

    profile: Profile
    asset: StoredAsset
    superseded: AssetReference | None = None
    cleanup: "asyncio.Task[CleanupOutcome] | None" = None


class _KeyedLocks:
    """One asyncio.Lock per (owner, kind); unused locks are garbage collected."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[tuple[UUID, ImageKind], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @asynccontextmanager
    async def hold(self, owner_id: UUID, kind: ImageKind) -> AsyncIterator[None]:
        key = (owner_id, kind)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        async with lock:
            yield


class ImageService:
    """Service layer coordinating the asset store and the profile table."""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        asset_store: IAssetStore,
        cleanup_queue: AssetCleanupQueue,
        *,
        allowed_types: Collection[str] = DEFAULT_ALLOWED_IMAGE_TYPES,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        remote_timeout_seconds: float = 20.0,
    ) -> None:
        self._uow_factory = uow_factory
        self._asset_store = asset_store
        self._cleanup_queue = cleanup_queue
        self._allowed_types = allowed_types
        self._max_upload_bytes = max_upload_bytes
        self._remote_timeout_seconds = remote_timeout_seconds
        self._locks = _KeyedLocks()

    def validate(self, media_type: str | None, size_bytes: int) -> None:
        """Reject an upload before reading or storing anything."""
        validate_image(
            media_type,
            size_bytes,
            allowed_types=self._allowed_types,
            max_bytes=self._max_upload_bytes,
        )

    async def replace_image(
        self,
        owner_id: UUID,
        email: str,
        kind: ImageKind,
        data: bytes,
        media_type: str | None,
        filename: str | None = None,
        declared_size: int | None = None,
    ) -> ImageReplacement:
        """
        Upload a new image and point the profile at it.

        The previous asset of the same kind, if any, is handed to the cleanup
        queue only after the new reference is persisted. A failed cleanup
        leaves an orphan but never fails this call. A failed persist after a
        successful upload also leaves an orphan (the new object) and raises.

        No database session is held while the upload is in flight.

        Raises:
            InvalidInputError: media type or size rejected, nothing stored
            UploadFailedError: store upload failed, profile untouched
            DatabaseError: profile read or write failed
        """
        size_bytes = max(len(data), declared_size or 0)
        self.validate(media_type, size_bytes)
        content_type = (media_type or "").split(";", 1)[0].strip().lower()

        async with self._locks.hold(owner_id, kind):
            current = await self._load_profile(owner_id)
            previous = self._previous_reference(current, kind) if current else None

            try:
                asset = await self._bounded(
                    self._asset_store.put(owner_id, kind, data, content_type, filename),
                    UploadFailedError("Upload timed out"),
                )
            except StorageError as exc:
                logger.error(
                    "image_upload_failed",
                    owner_id=str(owner_id),
                    kind=kind.value,
                    error=str(exc),
                    store_status=exc.status_code,
                )
                raise UploadFailedError() from exc

            profile = await self._write_image_fields(
                owner_id,
                email,
                kind,
                asset.url,
                asset.reference,
                failure_event="image_reference_persist_failed",
                orphaned_path=asset.path,
            )

        cleanup = None
        if previous is not None and previous != asset.reference:
            cleanup = self._cleanup_queue.schedule(previous, owner_id=owner_id, kind=kind)

        logger.info(
            "image_replaced",
            owner_id=str(owner_id),
            kind=kind.value,
            path=asset.path,
            superseded=previous.path if previous else None,
        )
        return ImageReplacement(
            profile=profile,
            asset=asset,
            superseded=previous,
            cleanup=cleanup,
        )

    async def delete_image(
        self,
        owner_id: UUID,
        email: str,
        kind: ImageKind,
        asset_url: str,
    ) -> Profile:
        """
        Delete an image from the store and clear it from the profile.

        The URL must be the image currently stored for ``kind``. Once the field
        is empty any URL under the caller's prefix is accepted, so repeating a
        delete is harmless, except one that is still in use by another kind.

        Raises:
            InvalidReferenceError: URL does not point into the bucket, or is
                not the image stored for ``kind``
            AuthorizationError: object lives under another owner's prefix
            DeleteFailedError: store delete failed, profile untouched
            DatabaseError: profile read or write failed
        """
        async with self._locks.hold(owner_id, kind):
            current = await self._load_profile(owner_id)

            reference = None
            if current is not None and current.image_url(kind) == asset_url:
                reference = current.image_ref(kind)
            if reference is None:
                reference = self._asset_store.reference_from_url(asset_url)
            if reference is None:
                raise InvalidReferenceError(asset_url)
            if reference.owner_prefix != str(owner_id):
                logger.warning(
                    "image_delete_forbidden",
                    owner_id=str(owner_id),
                    path=reference.path,
                )
                raise AuthorizationError("You can only delete your own images")
            if current is not None and not self._may_delete(current, kind, reference):
                logger.warning(
                    "image_delete_reference_mismatch",
                    owner_id=str(owner_id),
                    kind=kind.value,
                    path=reference.path,
                )
                raise InvalidReferenceError(asset_url)

            try:
                deleted = await self._bounded(
                    self._asset_store.delete(reference),
                    DeleteFailedError(reference.path),
                )
            except StorageError as exc:
                logger.error("image_delete_failed", path=reference.path, error=str(exc))
                raise DeleteFailedError(reference.path) from exc
            if not deleted:
                logger.error("image_delete_failed", path=reference.path)
                raise DeleteFailedError(reference.path)

            profile = await self._write_image_fields(
                owner_id,
                email,
                kind,
                None,
                None,
                failure_event="image_reference_clear_failed",
            )

        logger.info(
            "image_deleted",
            owner_id=str(owner_id),
            kind=kind.value,
            path=reference.path,
        )
        return profile

    async def _load_profile(self, owner_id: UUID) -> Profile | None:
        async with self._uow_factory() as uow:
            return await self._bounded(
                uow.profiles.get_by_owner(owner_id),
                DatabaseError("Failed to load profile"),
            )

    async def _write_image_fields(
        self,
        owner_id: UUID,
        email: str,
        kind: ImageKind,
        url: str | None,
        reference: AssetReference | None,
        *,
        failure_event: str,
        **log_context: str,
    ) -> Profile:
        """Upsert the url/ref pair for ``kind`` in its own transaction."""
        url_field, ref_field = image_fields(kind)
        try:
            async with self._uow_factory() as uow:
                profile = await self._bounded(
                    uow.profiles.upsert(
                        owner_id,
                        {url_field: url, ref_field: reference},
                        defaults={"email": email},
                    ),
                    DatabaseError(),
                )
                await uow.commit()
        except DatabaseError:
            logger.error(failure_event, owner_id=str(owner_id), kind=kind.value, **log_context)
            raise
        except Exception as exc:
            logger.error(
                failure_event,
                owner_id=str(owner_id),
                kind=kind.value,
                error=str(exc),
                **log_context,
            )
            raise DatabaseError() from exc
        return profile

    def _stored_reference(self, profile: Profile, kind: ImageKind) -> AssetReference | None:
        """Reference held for ``kind``; rows written before references existed only carry the URL."""
        reference = profile.image_ref(kind)
        if reference is None:
            url = profile.image_url(kind)
            if url:
                reference = self._asset_store.reference_from_url(url)
                if reference is None:
                    logger.warning("stored_image_unresolvable", url=url, kind=kind.value)
        return reference

    def _may_delete(self, profile: Profile, kind: ImageKind, reference: AssetReference) -> bool:
        """Only the image stored for ``kind``, or, once that field is empty, none in use."""
        stored = self._stored_reference(profile, kind)
        if stored is not None:
            return stored == reference
        if profile.image_url(kind):
            # unresolvable stored URL; nothing to compare against
            return False
        return all(
            self._stored_reference(profile, other) != reference
            for other in ImageKind
            if other is not kind
        )

    def _previous_reference(self, profile: Profile, kind: ImageKind) -> AssetReference | None:
        """Reference of the asset currently on the profile, if it can be cleaned up."""
        reference = self._stored_reference(profile, kind)
        if reference is None:
            return None
        if reference.owner_prefix != str(profile.owner_id):
            logger.warning(
                "previous_image_outside_owner_prefix",
                owner_id=str(profile.owner_id),
                path=reference.path,
            )
            return None
        return reference

    async def _bounded(self, call: Awaitable[T], on_timeout: AppException) -> T:
        """Await a remote call under the configured timeout."""
        try:
            async with asyncio.timeout(self._remote_timeout_seconds):
                return await call
        except TimeoutError:
            raise on_timeout from None
