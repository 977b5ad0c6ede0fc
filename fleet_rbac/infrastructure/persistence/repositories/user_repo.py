"""User directory repository (read-only mirror of the identity service)."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rbac.application.dtos.user import UserSummary
from fleet_rbac.infrastructure.persistence.models.user import AppUser
from fleet_rbac.infrastructure.persistence.repositories.base import BaseRepository


def _user_to_summary(u: AppUser) -> UserSummary:
    return UserSummary(
        id=u.id,
        tenant_id=u.tenant_id,
        full_name=u.full_name,
        email=u.email,
        user_type=u.user_type,
        is_active=u.is_active,
    )


class UserRepository(BaseRepository[AppUser]):
    """Resolves user ids to directory entries. Inactive users do not resolve."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, AppUser)

    async def get_user(self, user_id: str) -> UserSummary | None:
        row = await self.get_by_id(user_id)
        if row is None or not row.is_active:
            return None
        return _user_to_summary(row)

    async def get_users(self, user_ids: set[str]) -> dict[str, UserSummary]:
        return {
            row.id: _user_to_summary(row)
            for row in await self.get_many(user_ids)
            if row.is_active
        }

    async def get_by_email(self, email: str) -> UserSummary | None:
        result = await self.db.execute(select(AppUser).where(AppUser.email == email))
        row = result.scalar_one_or_none()
        return _user_to_summary(row) if row else None

    async def add_user(
        self,
        *,
        user_id: str | None = None,
        tenant_id: str | None = None,
        full_name: str | None = None,
        email: str | None = None,
        user_type: str = "staff",
    ) -> UserSummary:
        """Insert a directory entry (seeding and tests)."""
        row = AppUser(
            tenant_id=tenant_id,
            full_name=full_name,
            email=email,
            user_type=user_type,
        )
        if user_id:
            row.id = user_id
        return _user_to_summary(await self.create(row))
