"""Role application service: role lifecycle, provisioning and statistics."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from fleet_rbac.application.dtos.role import RoleStats, RoleUpdate
from fleet_rbac.application.interfaces.repositories import (
    IAssignmentRepository,
    IRoleRepository,
)
from fleet_rbac.domain.entities.role import (
    RoleEntity,
    clamp_priority,
    normalize_role_name,
    validate_description,
)
from fleet_rbac.domain.enums import RoleType
from fleet_rbac.domain.exceptions import (
    DuplicateRoleNameException,
    ImmutableRoleException,
    ResourceNotFoundException,
    RoleInUseException,
    ValidationException,
)
from fleet_rbac.domain.permissions import all_permission_codes, validate_permission_codes
from fleet_rbac.domain.role_types import (
    DEFAULT_ROLE_TEMPLATES,
    SUPER_ADMIN_PRIORITY,
    SUPER_ADMIN_ROLE_NAME,
    SYSTEM_TENANT_ID,
    RoleTemplate,
    role_type_info,
)
from fleet_rbac.shared.utils import generate_cuid, utc_now

if TYPE_CHECKING:
    from fleet_rbac.application.services.authorization_service import (
        PermissionEvaluationEngine,
    )

logger = logging.getLogger(__name__)


class RoleService:
    """Create, update, clone and delete roles; enforce uniqueness and immutability.

    Every write that can change an effective permission set invalidates the
    tenant's cached sets through the evaluation engine.
    """

    def __init__(
        self,
        role_repo: IRoleRepository,
        assignment_repo: IAssignmentRepository,
        authorization: PermissionEvaluationEngine | None = None,
        *,
        stats_period_days: int = 30,
        expiring_soon_days: int = 7,
    ) -> None:
        self._role_repo = role_repo
        self._assignment_repo = assignment_repo
        self._authorization = authorization
        self._stats_period_days = stats_period_days
        self._expiring_soon_days = expiring_soon_days

    # Reads

    async def get_role(self, role_id: str) -> RoleEntity:
        """Return role or raise ResourceNotFoundException."""
        role = await self._role_repo.get_role(role_id)
        if role is None:
            raise ResourceNotFoundException("role", role_id)
        return role

    async def list_roles(
        self, tenant_id: str, *, include_inactive: bool = True
    ) -> list[RoleEntity]:
        return await self._role_repo.list_by_tenant(
            tenant_id, include_inactive=include_inactive
        )

    @staticmethod
    def role_templates() -> list[RoleTemplate]:
        """Fixed templates instantiated by provision_default_roles."""
        return list(DEFAULT_ROLE_TEMPLATES)

    # Create

    async def create_role(
        self,
        tenant_id: str,
        name: str,
        *,
        description: str | None = None,
        role_type: RoleType | None = None,
        permissions: Iterable[str] = (),
        priority: int | None = 0,
        color: str | None = None,
        icon: str | None = None,
        is_default: bool = False,
        created_by: str | None = None,
    ) -> RoleEntity:
        """Create a tenant role.

        Raises:
            ValidationException: Bad name/description, unknown permission code,
                or the reserved super_admin kind.
            DuplicateRoleNameException: Name already used in the tenant.
        """
        if not tenant_id:
            raise ValidationException("Organization ID is required", field="tenant_id")
        if role_type == RoleType.SUPER_ADMIN:
            raise ValidationException(
                "The super_admin role type is reserved for system roles",
                field="role_type",
            )
        if role_type is not None:
            info = role_type_info(role_type)
            color = color or info.color
            icon = icon or info.icon
        return await self._insert(
            RoleEntity(
                id=generate_cuid(),
                tenant_id=tenant_id,
                name=normalize_role_name(name),
                description=validate_description(description),
                role_type=role_type,
                permissions=validate_permission_codes(permissions),
                priority=clamp_priority(priority),
                color=color,
                icon=icon,
                is_default_role=is_default,
                created_by=created_by,
                updated_by=created_by,
            )
        )

    async def clone_role(
        self,
        role_id: str,
        new_name: str,
        new_tenant_id: str | None = None,
        *,
        created_by: str | None = None,
    ) -> RoleEntity:
        """Copy permissions, priority and display metadata into a new role.

        The clone is never a default role and never a system role. A system
        role can only be cloned into an organization.
        """
        source = await self.get_role(role_id)
        tenant_id = new_tenant_id or source.tenant_id
        if tenant_id == SYSTEM_TENANT_ID:
            raise ValidationException(
                "System roles can only be cloned into an organization",
                field="tenant_id",
            )
        role_type = None if source.role_type == RoleType.SUPER_ADMIN else source.role_type
        clone = await self._insert(
            RoleEntity(
                id=generate_cuid(),
                tenant_id=tenant_id,
                name=normalize_role_name(new_name),
                description=source.description,
                role_type=role_type,
                permissions=source.permissions,
                priority=source.priority,
                color=source.color,
                icon=source.icon,
                created_by=created_by,
                updated_by=created_by,
            )
        )
        logger.info("Role %s cloned from %s as %s", clone.id, source.id, clone.name)
        return clone

    async def _insert(self, role: RoleEntity) -> RoleEntity:
        if await self._role_repo.get_by_name(role.tenant_id, role.name) is not None:
            raise DuplicateRoleNameException(role.name, role.tenant_id)
        created = await self._role_repo.add(role)
        logger.info(
            "Role created: %s in tenant %s (%d permissions)",
            created.name,
            created.tenant_id,
            len(created.permissions),
        )
        return created

    # Update

    async def update_role(
        self,
        role_id: str,
        changes: RoleUpdate,
        *,
        updated_by: str | None = None,
    ) -> RoleEntity:
        """Apply a partial update. Permission set is replaced, not merged.

        Raises:
            ImmutableRoleException: Role is a system role.
            DuplicateRoleNameException: Rename collides within the tenant.
            ValidationException: Invalid field or permission code.
        """
        role = await self._get_mutable(role_id)
        fields: dict = {"updated_by": updated_by}
        if changes.name is not None:
            name = normalize_role_name(changes.name)
            if name != role.name:
                existing = await self._role_repo.get_by_name(role.tenant_id, name)
                if existing is not None and existing.id != role.id:
                    raise DuplicateRoleNameException(name, role.tenant_id)
            fields["name"] = name
        if changes.description is not None:
            fields["description"] = validate_description(changes.description)
        if changes.priority is not None:
            fields["priority"] = clamp_priority(changes.priority)
        if changes.color is not None:
            fields["color"] = changes.color
        if changes.icon is not None:
            fields["icon"] = changes.icon
        if changes.is_active is not None:
            fields["is_active"] = changes.is_active
        if changes.is_default_role is not None:
            fields["is_default_role"] = changes.is_default_role
        if changes.permissions is not None:
            fields["permissions"] = validate_permission_codes(changes.permissions)

        saved = await self._role_repo.save(dataclasses.replace(role, **fields))
        await self._invalidate(saved.tenant_id)
        logger.info("Role updated: %s (%s)", saved.id, saved.summary())
        return saved

    async def update_role_permissions(
        self,
        role_id: str,
        permissions: Iterable[str],
        *,
        updated_by: str | None = None,
    ) -> RoleEntity:
        """Replace the role's whole permission set."""
        return await self.update_role(
            role_id,
            RoleUpdate(permissions=frozenset(permissions)),
            updated_by=updated_by,
        )

    async def toggle_role_status(
        self, role_id: str, *, updated_by: str | None = None
    ) -> RoleEntity:
        """Flip is_active. Inactive roles contribute nothing to effective sets."""
        role = await self._get_mutable(role_id)
        return await self.update_role(
            role_id, RoleUpdate(is_active=not role.is_active), updated_by=updated_by
        )

    # Delete

    async def delete_role(self, role_id: str) -> None:
        """Delete a role with no active assignments.

        Raises:
            ImmutableRoleException: System role, or still marked default.
            RoleInUseException: At least one active assignment references it.
        """
        role = await self.get_role(role_id)
        if role.is_system_role:
            raise ImmutableRoleException(role_id, "System roles cannot be deleted")
        if not role.can_be_deleted():
            raise ImmutableRoleException(role_id, "Default roles cannot be deleted")
        active = await self._assignment_repo.count_active_for_role(role_id)
        if active:
            raise RoleInUseException(role_id, active)
        await self._role_repo.remove(role_id)
        await self._invalidate(role.tenant_id)
        logger.info("Role deleted: %s (%s) in tenant %s", role.id, role.name, role.tenant_id)

    # Provisioning

    async def provision_default_roles(
        self, tenant_id: str, *, created_by: str | None = None
    ) -> list[RoleEntity]:
        """Instantiate the default templates for a new tenant.

        Templates whose name already exists in the tenant are skipped, so a
        repeated call creates nothing.
        """
        created = []
        for template in DEFAULT_ROLE_TEMPLATES:
            if await self._role_repo.get_by_name(tenant_id, template.name) is not None:
                logger.info(
                    "Default role %s already exists in tenant %s", template.name, tenant_id
                )
                continue
            created.append(
                await self.create_role(
                    tenant_id,
                    template.name,
                    description=template.description,
                    role_type=template.role_type,
                    permissions=template.permissions,
                    priority=template.priority,
                    color=template.color,
                    icon=template.icon,
                    is_default=template.is_default,
                    created_by=created_by,
                )
            )
        logger.info("Provisioned %d default roles for tenant %s", len(created), tenant_id)
        return created

    async def ensure_system_roles(self) -> RoleEntity:
        """Create the platform Super Administrator role if missing; return it."""
        existing = await self._role_repo.get_by_name(SYSTEM_TENANT_ID, SUPER_ADMIN_ROLE_NAME)
        if existing is not None:
            return existing
        info = role_type_info(RoleType.SUPER_ADMIN)
        role = await self._role_repo.add(
            RoleEntity(
                id=generate_cuid(),
                tenant_id=SYSTEM_TENANT_ID,
                name=SUPER_ADMIN_ROLE_NAME,
                description=info.description,
                role_type=RoleType.SUPER_ADMIN,
                permissions=all_permission_codes(),
                priority=SUPER_ADMIN_PRIORITY,
                color=info.color,
                icon=info.icon,
                is_system_role=True,
            )
        )
        logger.info("System role created: %s", role.name)
        return role

    # Stats

    async def get_role_stats(
        self, tenant_id: str, *, now: datetime | None = None
    ) -> RoleStats:
        now = now or utc_now()
        roles = await self._role_repo.list_by_tenant(tenant_id, include_inactive=True)
        counts = await self._assignment_repo.tenant_counts(
            tenant_id, now, now + timedelta(days=self._expiring_soon_days)
        )
        created = await self._role_repo.count_created_since(
            tenant_id, now - timedelta(days=self._stats_period_days)
        )
        active = sum(1 for r in roles if r.is_active)
        average = (
            round(sum(len(r.permissions) for r in roles) / len(roles), 2) if roles else 0.0
        )
        return RoleStats(
            total_roles=len(roles),
            active_roles=active,
            inactive_roles=len(roles) - active,
            system_roles=sum(1 for r in roles if r.is_system_role),
            custom_roles=sum(1 for r in roles if r.is_custom),
            default_roles=sum(1 for r in roles if r.is_default_role),
            total_assignments=counts["total"],
            active_assignments=counts["active"],
            expired_assignments=counts["expired"],
            expiring_soon_assignments=counts["expiring_soon"],
            roles_created_this_period=created,
            average_permissions_per_role=average,
        )

    # Helpers

    async def _get_mutable(self, role_id: str) -> RoleEntity:
        role = await self.get_role(role_id)
        if not role.can_be_modified():
            raise ImmutableRoleException(role_id, "System roles cannot be modified")
        return role

    async def _invalidate(self, tenant_id: str) -> None:
        if self._authorization is not None:
            await self._authorization.invalidate_tenant_cache(tenant_id)
