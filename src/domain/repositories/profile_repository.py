"""Profile repository protocol."""

from collections.abc import Mapping
from typing import Any, Protocol
from uuid import UUID

from domain.entities.profile import Profile


class IProfileRepository(Protocol):
    """Repository interface for Profile entities."""

    async def get_by_owner(self, owner_id: UUID) -> Profile | None:
        """Get the profile belonging to an identity subject."""
        ...

    async def upsert(
        self,
        owner_id: UUID,
        changes: Mapping[str, Any],
        defaults: Mapping[str, Any] | None = None,
    ) -> Profile:
        """
        Create or update the owner's profile in one atomic statement.

        ``changes`` are written on both insert and update; ``defaults`` only
        seed a newly created row. ``updated_at`` is refreshed on every call.
        """
        ...
