"""Profile service layer with business logic."""

from collections.abc import Mapping
from typing import Any, Callable
from uuid import UUID

import structlog

from core.exceptions import (
    AuthorizationError,
    DatabaseError,
    InvalidInputError,
    ProfileNotFoundError,
)
from domain.entities.profile import BIO_MAX_LENGTH, EDITABLE_FIELDS, Profile
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()


def _normalize_text(value: Any) -> str | None:
    """Blank strings are stored as null."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ProfileService:
    """Service layer for Profile business logic."""

    def __init__(self, uow_factory: Callable[[], IUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def get_profile(self, owner_id: UUID, caller_id: UUID) -> Profile:
        """Get a profile; callers may only read their own."""
        self._require_owner(owner_id, caller_id)
        async with self._uow_factory() as uow:
            profile = await uow.profiles.get_by_owner(owner_id)
            if not profile:
                raise ProfileNotFoundError(str(owner_id))
            return profile

    async def update_profile(
        self,
        owner_id: UUID,
        caller_id: UUID,
        caller_email: str,
        changes: Mapping[str, Any],
    ) -> Profile:
        """
        Write the editable fields present in ``changes``.

        Fields missing from ``changes`` keep their stored value. The profile is
        created with the caller's email if it does not exist yet.

        Raises:
            AuthorizationError: caller does not own the profile
            InvalidInputError: unknown field or bio too long
            DatabaseError: the write failed
        """
        self._require_owner(owner_id, caller_id)

        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidInputError(
                "Unsupported profile fields",
                details={"fields": sorted(unknown)},
            )

        values = {key: _normalize_text(value) for key, value in changes.items()}
        bio = values.get("bio")
        if bio is not None and len(bio) > BIO_MAX_LENGTH:
            raise InvalidInputError(
                f"Bio must be at most {BIO_MAX_LENGTH} characters",
                details={"field": "bio", "max_length": BIO_MAX_LENGTH},
            )

        profile = await self._upsert(owner_id, values, {"email": caller_email})
        logger.info("profile_updated", owner_id=str(owner_id), fields=sorted(values))
        return profile

    async def sync_from_identity(
        self,
        owner_id: UUID,
        email: str,
        full_name: str | None = None,
    ) -> Profile:
        """
        Mirror the identity provider's record into the profile table.

        The email is refreshed on every sign-in; the display name only seeds a
        newly created profile so user edits are never overwritten.
        """
        profile = await self._upsert(
            owner_id, {"email": email}, {"name": _normalize_text(full_name)}
        )
        logger.info("profile_synced", owner_id=str(owner_id))
        return profile

    async def _upsert(
        self,
        owner_id: UUID,
        changes: Mapping[str, Any],
        defaults: Mapping[str, Any],
    ) -> Profile:
        try:
            async with self._uow_factory() as uow:
                profile = await uow.profiles.upsert(owner_id, changes, defaults=defaults)
                await uow.commit()
                return profile
        except Exception as exc:
            logger.error("profile_write_failed", owner_id=str(owner_id), error=str(exc))
            raise DatabaseError() from exc

    @staticmethod
    def _require_owner(owner_id: UUID, caller_id: UUID) -> None:
        if owner_id != caller_id:
            logger.warning(
                "profile_access_denied",
                owner_id=str(owner_id),
                caller_id=str(caller_id),
            )
            raise AuthorizationError("You can only access your own profile")
