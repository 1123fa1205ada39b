"""SQLAlchemy implementation of Profile repository."""

from collections.abc import Mapping
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.asset import AssetReference
from domain.entities.profile import Profile
from infrastructure.database.models import ProfileModel

_REF_COLUMNS = ("profile_image_ref", "banner_image_ref")


class SQLAlchemyProfileRepository:
    """SQLAlchemy implementation of IProfileRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_owner(self, owner_id: UUID) -> Profile | None:
        """Get the profile belonging to an identity subject."""
        stmt = select(ProfileModel).where(ProfileModel.owner_id == owner_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def upsert(
        self,
        owner_id: UUID,
        changes: Mapping[str, Any],
        defaults: Mapping[str, Any] | None = None,
    ) -> Profile:
        """Create or update the owner's profile with INSERT ... ON CONFLICT."""
        now = datetime.utcnow()
        update_values = {key: self._to_column(key, value) for key, value in changes.items()}
        update_values["updated_at"] = now

        insert_values: dict[str, Any] = {
            "id": uuid4(),
            "owner_id": owner_id,
            "created_at": now,
        }
        for key, value in (defaults or {}).items():
            insert_values[key] = self._to_column(key, value)
        insert_values.update(update_values)

        dialect = self._session.get_bind().dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = (
            insert(ProfileModel)
            .values(**insert_values)
            .on_conflict_do_update(
                index_elements=[ProfileModel.owner_id],
                set_=update_values,
            )
        )
        await self._session.execute(stmt)

        # The statement bypasses the identity map; reload any cached instance
        reload = (
            select(ProfileModel)
            .where(ProfileModel.owner_id == owner_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(reload)
        return self._to_entity(result.scalar_one())

    @staticmethod
    def _to_column(key: str, value: Any) -> Any:
        if key in _REF_COLUMNS and isinstance(value, AssetReference):
            return value.to_dict()
        return value

    def _to_entity(self, model: ProfileModel) -> Profile:
        """Convert ORM model to domain entity."""
        return Profile(
            id=model.id,
            owner_id=model.owner_id,
            email=model.email,
            name=model.name,
            country=model.country,
            bio=model.bio,
            profile_image_url=model.profile_image_url,
            profile_image_ref=AssetReference.from_dict(model.profile_image_ref),
            banner_image_url=model.banner_image_url,
            banner_image_ref=AssetReference.from_dict(model.banner_image_ref),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
