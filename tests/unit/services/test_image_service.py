"""Unit tests for ImageService."""

import asyncio
from uuid import UUID

import pytest

from core.exceptions import (
    AuthorizationError,
    DatabaseError,
    DeleteFailedError,
    FileTooLargeError,
    InvalidMediaTypeError,
    InvalidReferenceError,
    UploadFailedError,
)
from domain.entities.asset import AssetReference, ImageKind
from domain.entities.profile import Profile
from domain.services.asset_cleanup import AssetCleanupQueue
from domain.services.image_service import ImageService
from tests.unit.conftest import (
    FakeAssetStore,
    FakeUnitOfWork,
    InMemoryProfileRepository,
    public_url,
)

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
EMAIL = "ana@example.com"


@pytest.fixture
def store() -> FakeAssetStore:
    return FakeAssetStore()


@pytest.fixture
def repo() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture
def memory_uow(repo: InMemoryProfileRepository) -> FakeUnitOfWork:
    return FakeUnitOfWork(profiles=repo)


@pytest.fixture
def queue(store: FakeAssetStore) -> AssetCleanupQueue:
    return AssetCleanupQueue(store, timeout_seconds=1.0)


@pytest.fixture
def service(
    memory_uow: FakeUnitOfWork, store: FakeAssetStore, queue: AssetCleanupQueue
) -> ImageService:
    return ImageService(
        lambda: memory_uow,
        store,
        queue,
        max_upload_bytes=1024,
        remote_timeout_seconds=0.5,
    )


async def _upload(service: ImageService, user_id: UUID, kind=ImageKind.PROFILE, data=PNG):
    return await service.replace_image(
        owner_id=user_id,
        email=EMAIL,
        kind=kind,
        data=data,
        media_type="image/png",
        filename="avatar.png",
    )


# --- replace_image ---


class TestFirstUpload:
    async def test_stores_object_and_points_profile_at_it(
        self,
        service: ImageService,
        store: FakeAssetStore,
        repo: InMemoryProfileRepository,
        memory_uow: FakeUnitOfWork,
        user_id: UUID,
    ):
        result = await _upload(service, user_id)

        assert result.asset.path.startswith(f"{user_id}/profile-")
        assert result.asset.path in store.objects
        assert result.profile.profile_image_url == result.asset.url
        assert result.profile.profile_image_ref == result.asset.reference
        assert result.superseded is None
        assert result.cleanup is None
        assert memory_uow.committed

    async def test_creates_profile_with_caller_email(
        self, service: ImageService, repo: InMemoryProfileRepository, user_id: UUID
    ):
        await _upload(service, user_id)

        assert repo.rows[user_id].email == EMAIL


class TestReplace:
    async def test_previous_object_removed_after_new_reference_saved(
        self,
        service: ImageService,
        store: FakeAssetStore,
        repo: InMemoryProfileRepository,
        user_id: UUID,
    ):
        first = await _upload(service, user_id)
        second = await _upload(service, user_id)

        assert second.superseded == first.asset.reference
        assert second.cleanup is not None
        outcome = await second.cleanup

        assert outcome.succeeded
        assert first.asset.path not in store.objects
        assert second.asset.path in store.objects
        assert repo.rows[user_id].profile_image_url == second.asset.url

    async def test_failed_cleanup_does_not_fail_replacement(
        self,
        service: ImageService,
        store: FakeAssetStore,
        repo: InMemoryProfileRepository,
        user_id: UUID,
    ):
        first = await _upload(service, user_id)
        store.fail_delete = True

        second = await _upload(service, user_id)
        outcome = await second.cleanup

        assert not outcome.succeeded
        assert repo.rows[user_id].profile_image_url == second.asset.url
        # Orphan left behind
        assert first.asset.path in store.objects

    async def test_kinds_are_independent(
        self, service: ImageService, store: FakeAssetStore, user_id: UUID
    ):
        profile_image = await _upload(service, user_id, ImageKind.PROFILE)
        banner = await _upload(service, user_id, ImageKind.BANNER)

        assert banner.superseded is None
        assert banner.profile.profile_image_url == profile_image.asset.url
        assert banner.profile.banner_image_url == banner.asset.url
        assert profile_image.asset.path in store.objects

    async def test_legacy_url_only_row_is_cleaned_up(
        self,
        service: ImageService,
        store: FakeAssetStore,
        repo: InMemoryProfileRepository,
        user_id: UUID,
    ):
        legacy_path = f"{user_id}/profile-1700000000000.jpg"
        store.objects[legacy_path] = b"legacy"
        repo.rows[user_id] = Profile(
            owner_id=user_id, email=EMAIL, profile_image_url=public_url(legacy_path)
        )

        result = await _upload(service, user_id)
        await result.cleanup

        assert result.superseded == AssetReference(bucket="user-images", path=legacy_path)
        assert legacy_path not in store.objects

    async def test_previous_outside_owner_prefix_is_left_alone(
        self,
        service: ImageService,
        store: FakeAssetStore,
        repo: InMemoryProfileRepository,
        user_id: UUID,
        other_user_id: UUID,
    ):
        foreign_path = f"{other_user_id}/profile-1.png"
        store.objects[foreign_path] = b"theirs"
        repo.rows[user_id] = Profile(
            owner_id=user_id, email=EMAIL, profile_image_url=public_url(foreign_path)
        )

        result = await _upload(service, user_id)

        assert result.superseded is None
        assert result.cleanup is None
        assert foreign_path in store.objects

    async def test_concurrent_replacements_leave_one_object(
        self,
        service: ImageService,
        store: FakeAssetStore,
        repo: InMemoryProfileRepository,
        queue: AssetCleanupQueue,
        user_id: UUID,
    ):
        store.put_delay = 0.01

        await asyncio.gather(*(_upload(service, user_id) for _ in range(3)))
        await queue.drain()

        current = repo.rows[user_id].profile_image_ref
        assert set(store.objects) == {current.path}


class TestReplaceRejections:
    async def test_invalid_media_type_touches_nothing(
        self,
        service: ImageService,
        store: FakeAssetStore,
        repo: InMemoryProfileRepository,
        user_id: UUID,
    ):
        with pytest.raises(InvalidMediaTypeError):
            await service.replace_image(
                owner_id=user_id,
                email=EMAIL,
                kind=ImageKind.PROFILE,
                data=b"GIF89a",
                media_type="image/gif",
            )

        assert store.objects == {}
        assert repo.rows == {}

    async def test_too_large_touches_nothing(
        self, service: ImageService, store: FakeAssetStore, user_id: UUID
    ):
        with pytest.raises(FileTooLargeError):
            await _upload(service, user_id, data=b"\x00" * 1025)

        assert store.objects == {}

    async def test_declared_size_counts(
        self, service: ImageService, store: FakeAssetStore, user_id: UUID
    ):
        with pytest.raises(FileTooLargeError):
            await service.replace_image(
                owner_id=user_id,
                email=EMAIL,
                kind=ImageKind.PROFILE,
                data=PNG,
                media_type="image/png",
                declared_size=4096,
            )

    async def test_upload_failure_keeps_previous_image(
        self,
        service: ImageService,
        store: FakeAssetStore,
        repo: InMemoryProfileRepository,
        queue: AssetCleanupQueue,
        user_id: UUID,
    ):
        first = await _upload(service, user_id)
        store.fail_put = True

        with pytest.raises(UploadFailedError) as exc_info:
            await _upload(service, user_id)

        assert exc_info.value.status_code == 500
        assert repo.rows[user_id].profile_image_url == first.asset.url
        assert first.asset.path in store.objects
        assert store.delete_calls == []
        assert queue.pending_count == 0

    async def test_upload_timeout(
        self, service: ImageService, store: FakeAssetStore, user_id: UUID
    ):
        store.put_delay = 2.0

        with pytest.raises(UploadFailedError) as exc_info:
            await _upload(service, user_id)

        assert exc_info.value.message == "Upload timed out"

    async def test_persist_failure_keeps_previous_object(
        self,
        service: ImageService,
        store: FakeAssetStore,
        repo: InMemoryProfileRepository,
        user_id: UUID,
    ):
        first = await _upload(service, user_id)
        repo.fail_upsert = True

        with pytest.raises(DatabaseError):
            await _upload(service, user_id)

        assert repo.rows[user_id].profile_image_url == first.asset.url
        assert first.asset.path in store.objects
        assert store.delete_calls == []


# --- delete_image ---


class TestDeleteImage:
    async def test_deletes_object_and_clears_profile(
        self,
        service: ImageService,
        store: FakeAssetStore,
        repo: InMemoryProfileRepository,
        user_id: UUID,
    ):
        uploaded = await _upload(service, user_id)

        profile = await service.delete_image(user_id, EMAIL, ImageKind.PROFILE, uploaded.asset.url)

        assert profile.profile_image_url is None
        assert profile.profile_image_ref is None
        assert uploaded.asset.path not in store.objects

    async def test_repeated_delete_succeeds(
        self, service: ImageService, store: FakeAssetStore, user_id: UUID
    ):
        uploaded = await _upload(service, user_id)

        await service.delete_image(user_id, EMAIL, ImageKind.PROFILE, uploaded.asset.url)
        profile = await service.delete_image(
            user_id, EMAIL, ImageKind.PROFILE, uploaded.asset.url
        )

        assert profile.profile_image_url is None
        assert store.delete_calls == [uploaded.asset.path, uploaded.asset.path]

    async def test_other_owners_object_is_forbidden(
        self, service: ImageService, store: FakeAssetStore, user_id: UUID, other_user_id: UUID
    ):
        url = public_url(f"{other_user_id}/profile-1.png")

        with pytest.raises(AuthorizationError):
            await service.delete_image(user_id, EMAIL, ImageKind.PROFILE, url)

        assert store.delete_calls == []

    async def test_url_outside_bucket_is_rejected(
        self, service: ImageService, store: FakeAssetStore, user_id: UUID
    ):
        with pytest.raises(InvalidReferenceError) as exc_info:
            await service.delete_image(
                user_id, EMAIL, ImageKind.BANNER, "https://elsewhere.example.com/banner.png"
            )

        assert exc_info.value.status_code == 400
        assert store.delete_calls == []

    async def test_store_failure_keeps_profile_reference(
        self,
        service: ImageService,
        store: FakeAssetStore,
        repo: InMemoryProfileRepository,
        user_id: UUID,
    ):
        uploaded = await _upload(service, user_id)
        store.fail_delete = True

        with pytest.raises(DeleteFailedError):
            await service.delete_image(user_id, EMAIL, ImageKind.PROFILE, uploaded.asset.url)

        assert repo.rows[user_id].profile_image_url == uploaded.asset.url

    async def test_url_of_other_kind_is_rejected(
        self,
        service: ImageService,
        store: FakeAssetStore,
        repo: InMemoryProfileRepository,
        user_id: UUID,
    ):
        avatar = await _upload(service, user_id, ImageKind.PROFILE)
        banner = await _upload(service, user_id, ImageKind.BANNER)

        with pytest.raises(InvalidReferenceError):
            await service.delete_image(user_id, EMAIL, ImageKind.BANNER, avatar.asset.url)

        assert store.delete_calls == []
        assert avatar.asset.path in store.objects
        assert repo.rows[user_id].profile_image_url == avatar.asset.url
        assert repo.rows[user_id].banner_image_url == banner.asset.url

    async def test_url_of_other_kind_is_rejected_when_field_empty(
        self, service: ImageService, store: FakeAssetStore, user_id: UUID
    ):
        avatar = await _upload(service, user_id, ImageKind.PROFILE)

        with pytest.raises(InvalidReferenceError):
            await service.delete_image(user_id, EMAIL, ImageKind.BANNER, avatar.asset.url)

        assert avatar.asset.path in store.objects

    async def test_superseded_url_is_rejected(
        self,
        service: ImageService,
        store: FakeAssetStore,
        repo: InMemoryProfileRepository,
        user_id: UUID,
    ):
        first = await _upload(service, user_id)
        second = await _upload(service, user_id)
        await second.cleanup
        store.delete_calls.clear()

        with pytest.raises(InvalidReferenceError):
            await service.delete_image(user_id, EMAIL, ImageKind.PROFILE, first.asset.url)

        assert store.delete_calls == []
        assert second.asset.path in store.objects
        assert repo.rows[user_id].profile_image_url == second.asset.url

    async def test_unreferenced_own_object_is_deleted_once_field_empty(
        self, service: ImageService, store: FakeAssetStore, user_id: UUID
    ):
        orphan = f"{user_id}/banner-99.png"
        store.objects[orphan] = b"left over"

        profile = await service.delete_image(user_id, EMAIL, ImageKind.BANNER, public_url(orphan))

        assert profile.banner_image_url is None
        assert orphan not in store.objects


class TestSessionScope:
    """The pooled session is never held across a store call."""

    @pytest.fixture
    def open_sessions(self) -> list[FakeUnitOfWork]:
        return []

    @pytest.fixture
    def counting_service(
        self,
        repo: InMemoryProfileRepository,
        store: FakeAssetStore,
        queue: AssetCleanupQueue,
        open_sessions: list[FakeUnitOfWork],
    ) -> ImageService:
        class CountingUnitOfWork(FakeUnitOfWork):
            async def __aenter__(self) -> "CountingUnitOfWork":
                open_sessions.append(self)
                return self

            async def __aexit__(self, *args) -> None:
                open_sessions.remove(self)

        return ImageService(lambda: CountingUnitOfWork(profiles=repo), store, queue)

    async def test_upload_runs_outside_unit_of_work(
        self,
        counting_service: ImageService,
        store: FakeAssetStore,
        open_sessions: list[FakeUnitOfWork],
        user_id: UUID,
    ):
        sessions_during_put = []
        put = store.put

        async def tracking_put(*args, **kwargs):
            sessions_during_put.append(len(open_sessions))
            return await put(*args, **kwargs)

        store.put = tracking_put
        await _upload(counting_service, user_id)

        assert sessions_during_put == [0]
        assert open_sessions == []

    async def test_delete_runs_outside_unit_of_work(
        self,
        counting_service: ImageService,
        store: FakeAssetStore,
        open_sessions: list[FakeUnitOfWork],
        user_id: UUID,
    ):
        uploaded = await _upload(counting_service, user_id)
        sessions_during_delete = []
        delete = store.delete

        async def tracking_delete(reference):
            sessions_during_delete.append(len(open_sessions))
            return await delete(reference)

        store.delete = tracking_delete
        await counting_service.delete_image(user_id, EMAIL, ImageKind.PROFILE, uploaded.asset.url)

        assert sessions_during_delete == [0]
