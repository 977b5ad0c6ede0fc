"""Base repository: generic lookups and inserts shared by the stores."""

from collections.abc import Iterable
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rbac.infrastructure.persistence.database import Base


class BaseRepository[ModelType: Base]:
    """Base repository with get_by_id, get_many, create and delete.

    Subclasses map ORM rows to domain entities at their public boundary.
    """

    def __init__(self, db: AsyncSession, model: type[ModelType]) -> None:
        self.db = db
        self.model = model

    async def get_by_id(self, entity_id: str) -> ModelType | None:
        """Return a single record by primary key, or None."""
        model: Any = self.model
        result = await self.db.execute(select(self.model).where(model.id == entity_id))
        return result.scalar_one_or_none()

    async def get_many(self, entity_ids: Iterable[str]) -> list[ModelType]:
        """Return records whose primary key is in entity_ids (order unspecified)."""
        ids = list(entity_ids)
        if not ids:
            return []
        model: Any = self.model
        result = await self.db.execute(select(self.model).where(model.id.in_(ids)))
        return list(result.scalars().all())

    async def create(self, obj: ModelType) -> ModelType:
        """Persist a new record inside a SAVEPOINT.

        A constraint violation rolls back only the savepoint, leaving the
        outer transaction usable; the IntegrityError propagates.
        """
        async with self.db.begin_nested():
            self.db.add(obj)
            await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def delete(self, obj: ModelType) -> None:
        """Delete the record."""
        await self.db.delete(obj)
        await self.db.flush()
