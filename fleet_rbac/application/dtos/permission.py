"""DTOs for permission evaluation results (no dependency on ORM)."""

from dataclasses import dataclass

from fleet_rbac.domain.entities.role import RoleEntity
from fleet_rbac.domain.enums import AccessLevel
from fleet_rbac.domain.permissions import PermissionGroup


@dataclass(frozen=True)
class UserPermissionsResult:
    """What a user may do in a tenant, for rendering.

    roles are ordered by priority (highest first); ordering never affects
    the effective set.
    """

    user_id: str
    tenant_id: str
    effective_permissions: frozenset[str]
    roles: list[RoleEntity]
    groups: list[PermissionGroup]
    has_full_access: bool
    access_level: AccessLevel
