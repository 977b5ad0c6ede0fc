"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference domain entities or application DTOs only; no infrastructure imports.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from fleet_rbac.application.dtos.user import UserSummary
    from fleet_rbac.domain.entities.assignment import AssignmentEntity
    from fleet_rbac.domain.entities.role import RoleEntity


class IRoleRepository(Protocol):
    """Protocol for the role store (DIP)."""

    async def get_role(self, role_id: str) -> RoleEntity | None:
        """Return role by ID."""

    async def get_roles(self, role_ids: set[str]) -> dict[str, RoleEntity]:
        """Return roles by ID (batch). Missing ids are absent from the result."""

    async def get_by_name(self, tenant_id: str, name: str) -> RoleEntity | None:
        """Return the role with this exact name in tenant."""

    async def list_by_tenant(
        self, tenant_id: str, *, include_inactive: bool = True
    ) -> list[RoleEntity]:
        """Return roles of tenant ordered by priority (highest first), then name."""

    async def add(self, role: RoleEntity) -> RoleEntity:
        """Insert role. Raises DuplicateRoleNameException on (tenant, name) collision."""

    async def save(self, role: RoleEntity) -> RoleEntity:
        """Persist mutable fields of an existing role."""

    async def remove(self, role_id: str) -> None:
        """Hard-delete role row."""

    async def count_created_since(self, tenant_id: str, since: datetime) -> int:
        """Return number of roles created in tenant at or after since."""


class IAssignmentRepository(Protocol):
    """Protocol for the assignment store (DIP)."""

    async def add(self, assignment: AssignmentEntity) -> AssignmentEntity:
        """Insert. Raises DuplicateAssignmentException if (user, role) already active."""

    async def get(self, assignment_id: str) -> AssignmentEntity | None:
        """Return assignment by ID."""

    async def get_active(self, user_id: str, role_id: str) -> AssignmentEntity | None:
        """Return the active assignment for (user, role), if any."""

    async def list_valid_for_user(
        self, user_id: str, tenant_id: str, now: datetime
    ) -> list[AssignmentEntity]:
        """Return assignments that are active and unexpired at now, in tenant."""

    async def list_for_user(
        self, user_id: str, tenant_id: str | None = None, *, active_only: bool = False
    ) -> list[AssignmentEntity]:
        """Return user's assignments, newest first."""

    async def count_active_for_role(self, role_id: str) -> int:
        """Return number of active assignments referencing role."""

    async def deactivate(
        self, assignment_id: str, now: datetime, revoked_by: str | None = None
    ) -> bool:
        """Compare-and-set is_active True -> False. Returns False if already inactive."""

    async def set_expiry(
        self, assignment_id: str, expires_at: datetime
    ) -> AssignmentEntity | None:
        """Set expiry on an active assignment. Returns None if it is no longer active."""

    async def deactivate_expired(self, now: datetime) -> list[tuple[str, str, str]]:
        """Deactivate every active row with expiry < now; return (id, user_id, tenant_id)."""

    async def tenant_counts(
        self, tenant_id: str, now: datetime, soon_until: datetime
    ) -> dict[str, int]:
        """Return counts: total, active, expired, expiring_soon."""


class IUserDirectory(Protocol):
    """Protocol for the user directory collaborator (DIP)."""

    async def get_user(self, user_id: str) -> UserSummary | None:
        """Return directory entry, or None when the user cannot be resolved."""

    async def get_users(self, user_ids: set[str]) -> dict[str, UserSummary]:
        """Return directory entries by ID (batch)."""
