"""Role repository. Public methods take and return RoleEntity, never ORM rows."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rbac.domain.entities.role import RoleEntity
from fleet_rbac.domain.enums import RoleType
from fleet_rbac.domain.exceptions import (
    DuplicateRoleNameException,
    ResourceNotFoundException,
)
from fleet_rbac.infrastructure.persistence.models.role import Role
from fleet_rbac.infrastructure.persistence.repositories.base import BaseRepository
from fleet_rbac.shared.utils.datetime import ensure_utc

# Columns copied from the entity on save; identity, tenant and the system flag are fixed at creation.
_MUTABLE_FIELDS = (
    "name",
    "description",
    "is_active",
    "is_default_role",
    "priority",
    "color",
    "icon",
    "updated_by",
)


def _role_to_entity(r: Role) -> RoleEntity:
    """Map ORM Role to domain RoleEntity."""
    return RoleEntity(
        id=r.id,
        tenant_id=r.tenant_id,
        name=r.name,
        permissions=frozenset(r.permissions or ()),
        description=r.description,
        role_type=RoleType(r.role_type) if r.role_type else None,
        is_system_role=r.is_system_role,
        is_default_role=r.is_default_role,
        is_active=r.is_active,
        priority=r.priority,
        color=r.color,
        icon=r.icon,
        created_at=ensure_utc(r.created_at),
        updated_at=ensure_utc(r.updated_at),
        created_by=r.created_by,
        updated_by=r.updated_by,
    )


class RoleRepository(BaseRepository[Role]):
    """Role store backed by the role table."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Role)

    async def get_role(self, role_id: str) -> RoleEntity | None:
        row = await self.get_by_id(role_id)
        return _role_to_entity(row) if row else None

    async def get_roles(self, role_ids: set[str]) -> dict[str, RoleEntity]:
        return {row.id: _role_to_entity(row) for row in await self.get_many(role_ids)}

    async def get_by_name(self, tenant_id: str, name: str) -> RoleEntity | None:
        result = await self.db.execute(
            select(Role).where(Role.tenant_id == tenant_id, Role.name == name)
        )
        row = result.scalar_one_or_none()
        return _role_to_entity(row) if row else None

    async def list_by_tenant(
        self, tenant_id: str, *, include_inactive: bool = True
    ) -> list[RoleEntity]:
        q = select(Role).where(Role.tenant_id == tenant_id)
        if not include_inactive:
            q = q.where(Role.is_active.is_(True))
        q = q.order_by(Role.priority.desc(), Role.name)
        result = await self.db.execute(q)
        return [_role_to_entity(r) for r in result.scalars().all()]

    async def add(self, role: RoleEntity) -> RoleEntity:
        """Insert role; unique (tenant_id, name) collision -> DuplicateRoleNameException."""
        row = Role(
            id=role.id,
            tenant_id=role.tenant_id,
            name=role.name,
            description=role.description,
            role_type=role.role_type.value if role.role_type else None,
            is_system_role=role.is_system_role,
            is_default_role=role.is_default_role,
            is_active=role.is_active,
            priority=role.priority,
            permissions=sorted(role.permissions),
            color=role.color,
            icon=role.icon,
            created_by=role.created_by,
            updated_by=role.updated_by,
        )
        try:
            created = await self.create(row)
        except IntegrityError:
            raise DuplicateRoleNameException(role.name, role.tenant_id) from None
        return _role_to_entity(created)

    async def save(self, role: RoleEntity) -> RoleEntity:
        """Write mutable fields and the permission set of an existing role."""
        row = await self.get_by_id(role.id)
        if row is None:
            raise ResourceNotFoundException("role", role.id)
        try:
            async with self.db.begin_nested():
                for field_name in _MUTABLE_FIELDS:
                    setattr(row, field_name, getattr(role, field_name))
                row.permissions = sorted(role.permissions)
                await self.db.flush()
        except IntegrityError:
            raise DuplicateRoleNameException(role.name, role.tenant_id) from None
        await self.db.refresh(row)
        return _role_to_entity(row)

    async def remove(self, role_id: str) -> None:
        row = await self.get_by_id(role_id)
        if row is None:
            raise ResourceNotFoundException("role", role_id)
        await self.delete(row)

    async def count_created_since(self, tenant_id: str, since: datetime) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(Role)
            .where(Role.tenant_id == tenant_id, Role.created_at >= ensure_utc(since))
        )
        return int(result.scalar_one())
