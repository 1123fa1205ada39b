"""Shared fixtures and fakes for unit tests."""

import asyncio
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from core.exceptions import StorageError
from domain.entities.asset import AssetReference, ImageKind, StoredAsset
from domain.entities.profile import Profile

BASE_URL = "https://project.supabase.co"
BUCKET = "user-images"


def public_url(path: str) -> str:
    return f"{BASE_URL}/storage/v1/object/public/{BUCKET}/{path}"


class FakeUnitOfWork:
    """Fake Unit of Work; the profile repository is a mock unless one is given."""

    def __init__(self, profiles: Any = None) -> None:
        self.profiles = profiles if profiles is not None else AsyncMock()
        self.committed = False
        self.rolled_back = False

    async def commit(self) -> None:
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True

    async def __aenter__(self) -> "FakeUnitOfWork":
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


class InMemoryProfileRepository:
    """Profile table kept in a dict, with the same upsert semantics as SQL."""

    def __init__(self) -> None:
        self.rows: dict[UUID, Profile] = {}
        self.fail_upsert = False

    async def get_by_owner(self, owner_id: UUID) -> Profile | None:
        profile = self.rows.get(owner_id)
        return replace(profile) if profile else None

    async def upsert(
        self,
        owner_id: UUID,
        changes: Mapping[str, Any],
        defaults: Mapping[str, Any] | None = None,
    ) -> Profile:
        if self.fail_upsert:
            raise RuntimeError("connection reset by peer")
        existing = self.rows.get(owner_id)
        if existing is None:
            existing = Profile(owner_id=owner_id, **dict(defaults or {}))
        profile = replace(existing, **dict(changes), updated_at=datetime.utcnow())
        self.rows[owner_id] = profile
        return replace(profile)


class FakeAssetStore:
    """Bucket kept in a dict. Deleting a missing object succeeds, as in Supabase."""

    def __init__(self, bucket: str = BUCKET) -> None:
        self.bucket = bucket
        self.objects: dict[str, bytes] = {}
        self.delete_calls: list[str] = []
        self.fail_put = False
        self.fail_delete = False
        self.delete_error: Exception | None = None
        self.put_delay = 0.0
        self.delete_delay = 0.0
        self._counter = 0

    async def put(
        self,
        owner_id: UUID,
        kind: ImageKind,
        data: bytes,
        content_type: str,
        filename: str | None = None,
    ) -> StoredAsset:
        if self.put_delay:
            await asyncio.sleep(self.put_delay)
        if self.fail_put:
            raise StorageError("upload rejected with status 500", status_code=500)
        self._counter += 1
        path = f"{owner_id}/{kind.value}-{self._counter}.png"
        self.objects[path] = data
        reference = AssetReference(bucket=self.bucket, path=path)
        return StoredAsset(url=self.public_url(reference), reference=reference)

    async def delete(self, reference: AssetReference) -> bool:
        self.delete_calls.append(reference.path)
        if self.delete_delay:
            await asyncio.sleep(self.delete_delay)
        if self.delete_error is not None:
            raise self.delete_error
        if self.fail_delete:
            return False
        self.objects.pop(reference.path, None)
        return True

    def public_url(self, reference: AssetReference) -> str:
        return public_url(reference.path)

    def reference_from_url(self, url: str) -> AssetReference | None:
        marker = f"/{self.bucket}/"
        if marker not in url:
            return None
        path = url.split(marker, 1)[1]
        return AssetReference(bucket=self.bucket, path=path) if path else None


@pytest.fixture
def uow() -> FakeUnitOfWork:
    """Create a fresh FakeUnitOfWork."""
    return FakeUnitOfWork()


@pytest.fixture
def user_id() -> UUID:
    """A random user ID."""
    return uuid4()


@pytest.fixture
def other_user_id() -> UUID:
    """A random user ID distinct from user_id."""
    return uuid4()
