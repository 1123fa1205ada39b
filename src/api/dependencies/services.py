"""Dependency injection factories for the API."""

from functools import lru_cache
from typing import Callable

import httpx

from core.config import settings
from domain.services.asset_cleanup import AssetCleanupQueue
from domain.services.auth_service import AuthService
from domain.services.image_service import ImageService
from domain.services.profile_service import ProfileService
from infrastructure.auth.supabase_identity import SupabaseIdentityClient
from infrastructure.database.session import async_session_factory
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork
from infrastructure.storage.supabase_storage import SupabaseStorage


def get_uow_factory() -> Callable[[], SQLAlchemyUnitOfWork]:
    """Factory for creating Unit of Work instances."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(async_session_factory)

    return factory


@lru_cache
def get_http_client() -> httpx.AsyncClient:
    """Shared HTTP client for Supabase calls (closed on shutdown)."""
    return httpx.AsyncClient(timeout=httpx.Timeout(settings.storage_timeout_seconds))


@lru_cache
def get_asset_store() -> SupabaseStorage:
    """Get Supabase Storage adapter instance."""
    return SupabaseStorage(
        client=get_http_client(),
        base_url=settings.supabase_url,
        service_key=settings.supabase_service_role_key,
        bucket=settings.storage_bucket,
        timeout_seconds=settings.storage_timeout_seconds,
    )


@lru_cache
def get_cleanup_queue() -> AssetCleanupQueue:
    """Get the process-wide cleanup queue."""
    return AssetCleanupQueue(
        get_asset_store(),
        timeout_seconds=settings.remote_call_timeout_seconds,
    )


@lru_cache
def get_profile_service() -> ProfileService:
    """Get Profile service instance."""
    return ProfileService(get_uow_factory())


@lru_cache
def get_image_service() -> ImageService:
    """Get Image service instance."""
    return ImageService(
        get_uow_factory(),
        get_asset_store(),
        get_cleanup_queue(),
        allowed_types=settings.allowed_image_types_list,
        max_upload_bytes=settings.max_upload_bytes,
        remote_timeout_seconds=settings.remote_call_timeout_seconds,
    )


@lru_cache
def get_auth_service() -> AuthService:
    """Get Auth service instance."""
    identity_client = SupabaseIdentityClient(
        client=get_http_client(),
        base_url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
    )
    return AuthService(identity_client, get_profile_service(), settings.site_url)
