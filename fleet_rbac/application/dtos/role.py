"""DTOs for role use cases (no dependency on ORM)."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RoleUpdate:
    """Partial update for a role. None means "leave unchanged".

    permissions, when given, replaces the whole set (no merge).
    """

    name: str | None = None
    description: str | None = None
    priority: int | None = None
    color: str | None = None
    icon: str | None = None
    is_active: bool | None = None
    is_default_role: bool | None = None
    permissions: frozenset[str] | None = None


@dataclass(frozen=True)
class RoleStats:
    """Aggregate role and assignment counts for one tenant."""

    total_roles: int
    active_roles: int
    inactive_roles: int
    system_roles: int
    custom_roles: int
    default_roles: int
    total_assignments: int
    active_assignments: int
    expired_assignments: int
    expiring_soon_assignments: int
    roles_created_this_period: int
    average_permissions_per_role: float
