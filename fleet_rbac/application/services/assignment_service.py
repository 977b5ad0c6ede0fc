"""Assignment application service: grant, revoke, extend and expire user roles."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING

from fleet_rbac.application.dtos.assignment import AssignmentView
from fleet_rbac.application.dtos.user import UserSummary
from fleet_rbac.application.interfaces.repositories import (
    IAssignmentRepository,
    IRoleRepository,
    IUserDirectory,
)
from fleet_rbac.domain.entities.assignment import AssignmentEntity, validate_expiry
from fleet_rbac.domain.entities.role import RoleEntity
from fleet_rbac.domain.exceptions import (
    AssignmentNotFoundException,
    DuplicateAssignmentException,
    FleetRbacException,
    ResourceNotFoundException,
    RoleTenantMismatchException,
    ValidationException,
)
from fleet_rbac.shared.utils import days_from_now, ensure_utc, generate_cuid, utc_now

if TYPE_CHECKING:
    from fleet_rbac.application.services.authorization_service import (
        PermissionEvaluationEngine,
    )

logger = logging.getLogger(__name__)


class AssignmentService:
    """Lifecycle of user-role assignments.

    At most one active assignment exists per (user, role); the store enforces
    it atomically, so of two racing assign calls one fails with
    DuplicateAssignmentException. Revocation is terminal: a revoked
    assignment is never reactivated, a new one must be created.
    """

    def __init__(
        self,
        assignment_repo: IAssignmentRepository,
        role_repo: IRoleRepository,
        user_directory: IUserDirectory,
        authorization: PermissionEvaluationEngine | None = None,
        *,
        expiring_soon_days: int = 7,
    ) -> None:
        self._assignment_repo = assignment_repo
        self._role_repo = role_repo
        self._users = user_directory
        self._authorization = authorization
        self._expiring_soon_days = expiring_soon_days

    async def assign(
        self,
        user_id: str,
        role_id: str,
        tenant_id: str,
        *,
        agency_id: str | None = None,
        expires_at: datetime | None = None,
        reason: str | None = None,
        assigned_by: str | None = None,
        now: datetime | None = None,
    ) -> AssignmentEntity:
        """Grant role to user in tenant, optionally narrowed to one agency.

        Raises:
            ResourceNotFoundException: Unknown role or user.
            RoleTenantMismatchException: Role belongs to another tenant.
            ValidationException: Expiry not after the assignment time.
            DuplicateAssignmentException: (user, role) already actively assigned.
        """
        role = await self._get_assignable_role(role_id, tenant_id)
        return await self._assign_role(
            user_id,
            role,
            agency_id=agency_id,
            expires_at=expires_at,
            reason=reason,
            assigned_by=assigned_by,
            now=now,
        )

    async def bulk_assign(
        self,
        user_ids: Iterable[str],
        role_id: str,
        tenant_id: str,
        *,
        agency_id: str | None = None,
        expires_at: datetime | None = None,
        reason: str | None = None,
        assigned_by: str | None = None,
        now: datetime | None = None,
    ) -> list[AssignmentEntity]:
        """Assign one role to many users, best effort.

        Role-level problems (unknown role, tenant mismatch) raise before any
        write. Per-user failures (unknown user, duplicate, invalid expiry) are
        logged and skipped; only the created assignments are returned.
        """
        role = await self._get_assignable_role(role_id, tenant_id)
        created: list[AssignmentEntity] = []
        skipped = 0
        for user_id in dict.fromkeys(user_ids):
            try:
                created.append(
                    await self._assign_role(
                        user_id,
                        role,
                        agency_id=agency_id,
                        expires_at=expires_at,
                        reason=reason,
                        assigned_by=assigned_by,
                        now=now,
                    )
                )
            except FleetRbacException as exc:
                skipped += 1
                logger.warning(
                    "Bulk assignment of role %s skipped user %s: %s",
                    role_id,
                    user_id,
                    exc.message,
                )
        logger.info(
            "Bulk assignment of role %s: %d created, %d skipped",
            role_id,
            len(created),
            skipped,
        )
        return created

    async def revoke(
        self,
        user_id: str,
        role_id: str,
        *,
        tenant_id: str | None = None,
        revoked_by: str | None = None,
        now: datetime | None = None,
    ) -> None:
        """Deactivate the active assignment of role to user.

        Raises:
            AssignmentNotFoundException: No active assignment exists (in tenant,
                when given).
        """
        assignment = await self._assignment_repo.get_active(user_id, role_id)
        if assignment is None or (tenant_id and assignment.tenant_id != tenant_id):
            raise AssignmentNotFoundException(user_id, role_id)
        await self._deactivate(assignment, revoked_by, now or utc_now())

    async def revoke_assignment(
        self,
        assignment_id: str,
        *,
        tenant_id: str | None = None,
        revoked_by: str | None = None,
        now: datetime | None = None,
    ) -> AssignmentEntity:
        """Deactivate an assignment by id. Already inactive is a no-op."""
        assignment = await self._get_assignment(assignment_id, tenant_id)
        if assignment.is_active:
            await self._deactivate(assignment, revoked_by, now or utc_now())
        return await self._get_assignment(assignment_id)

    async def extend(
        self,
        assignment_id: str,
        additional_days: int,
        *,
        tenant_id: str | None = None,
        now: datetime | None = None,
    ) -> AssignmentEntity:
        """Push expiry forward by additional_days, or set now + days when unset.

        Raises:
            ValidationException: additional_days < 1, or assignment revoked.
        """
        if additional_days < 1:
            raise ValidationException(
                "Additional days must be a positive number", field="additional_days"
            )
        assignment = await self._get_assignment(assignment_id, tenant_id)
        if not assignment.is_active:
            raise ValidationException(
                "Cannot extend a revoked assignment", field="assignment_id"
            )
        base = ensure_utc(assignment.expires_at) or ensure_utc(now or utc_now())
        updated = await self._assignment_repo.set_expiry(
            assignment_id, days_from_now(additional_days, base)
        )
        if updated is None:
            raise ValidationException(
                "Cannot extend a revoked assignment", field="assignment_id"
            )
        await self._invalidate(updated.user_id, updated.tenant_id)
        logger.info(
            "Assignment %s extended by %d days until %s",
            assignment_id,
            additional_days,
            updated.expires_at.isoformat(),
        )
        return updated

    async def sweep_expired(self, now: datetime | None = None) -> int:
        """Deactivate every active assignment whose expiry is before now.

        Idempotent: rows already inactive are untouched, so re-running or
        racing a revoke never resurrects or double-counts anything.
        """
        now = now or utc_now()
        expired = await self._assignment_repo.deactivate_expired(now)
        for user_id, tenant_id in {(user, tenant) for _, user, tenant in expired}:
            await self._invalidate(user_id, tenant_id)
        if expired:
            logger.info("Deactivated %d expired role assignments", len(expired))
        else:
            logger.debug("No expired role assignments to deactivate")
        return len(expired)

    async def list_user_assignments(
        self,
        user_id: str,
        tenant_id: str | None = None,
        *,
        active_only: bool = False,
        now: datetime | None = None,
    ) -> list[AssignmentView]:
        """Assignments of a user with role and user display fields.

        User fields are omitted (None) when the directory cannot resolve the user.
        """
        now = now or utc_now()
        assignments = await self._assignment_repo.list_for_user(
            user_id, tenant_id, active_only=active_only
        )
        if not assignments:
            return []
        roles = await self._role_repo.get_roles({a.role_id for a in assignments})
        user = await self._users.get_user(user_id)
        if user is None:
            logger.debug("User %s not found in directory; omitting display fields", user_id)
        return [self._to_view(a, roles.get(a.role_id), user, now) for a in assignments]

    def _to_view(
        self,
        a: AssignmentEntity,
        role: RoleEntity | None,
        user: UserSummary | None,
        now: datetime,
    ) -> AssignmentView:
        return AssignmentView(
            id=a.id,
            user_id=a.user_id,
            role_id=a.role_id,
            tenant_id=a.tenant_id,
            agency_id=a.agency_id,
            assigned_at=a.assigned_at,
            expires_at=a.expires_at,
            is_active=a.is_active,
            assignment_reason=a.assignment_reason,
            assigned_by=a.assigned_by,
            revoked_at=a.revoked_at,
            role_name=role.name if role else None,
            role_description=role.description if role else None,
            role_color=role.color if role else None,
            role_icon=role.icon if role else None,
            user_full_name=user.full_name if user else None,
            user_email=user.email if user else None,
            is_expired=a.is_expired(now),
            days_until_expiration=a.days_until_expiration(now),
            is_expiring_soon=a.is_expiring_soon(self._expiring_soon_days, now),
        )

    # Helpers

    async def _get_assignable_role(self, role_id: str, tenant_id: str) -> RoleEntity:
        role = await self._role_repo.get_role(role_id)
        if role is None:
            raise ResourceNotFoundException("role", role_id)
        if role.tenant_id != tenant_id:
            raise RoleTenantMismatchException(role_id, role.tenant_id, tenant_id)
        return role

    async def _assign_role(
        self,
        user_id: str,
        role: RoleEntity,
        *,
        agency_id: str | None,
        expires_at: datetime | None,
        reason: str | None,
        assigned_by: str | None,
        now: datetime | None,
    ) -> AssignmentEntity:
        if await self._users.get_user(user_id) is None:
            raise ResourceNotFoundException("user", user_id)
        assigned_at = ensure_utc(now) or utc_now()
        expires_at = ensure_utc(expires_at)
        validate_expiry(assigned_at, expires_at)
        if await self._assignment_repo.get_active(user_id, role.id) is not None:
            raise DuplicateAssignmentException(user_id, role.id)
        created = await self._assignment_repo.add(
            AssignmentEntity(
                id=generate_cuid(),
                user_id=user_id,
                role_id=role.id,
                tenant_id=role.tenant_id,
                agency_id=agency_id,
                assigned_at=assigned_at,
                expires_at=expires_at,
                assignment_reason=reason,
                assigned_by=assigned_by,
            )
        )
        await self._invalidate(user_id, role.tenant_id)
        logger.info(
            "Role %s assigned to user %s in tenant %s%s",
            role.id,
            user_id,
            role.tenant_id,
            f" (agency {agency_id})" if agency_id else "",
        )
        return created

    async def _get_assignment(
        self, assignment_id: str, tenant_id: str | None = None
    ) -> AssignmentEntity:
        assignment = await self._assignment_repo.get(assignment_id)
        if assignment is None or (tenant_id and assignment.tenant_id != tenant_id):
            raise ResourceNotFoundException("role_assignment", assignment_id)
        return assignment

    async def _deactivate(
        self, assignment: AssignmentEntity, revoked_by: str | None, now: datetime
    ) -> None:
        changed = await self._assignment_repo.deactivate(assignment.id, now, revoked_by)
        await self._invalidate(assignment.user_id, assignment.tenant_id)
        if changed:
            logger.info(
                "Role %s revoked from user %s", assignment.role_id, assignment.user_id
            )
        else:
            logger.info("Assignment %s was already inactive", assignment.id)

    async def _invalidate(self, user_id: str, tenant_id: str) -> None:
        if self._authorization is not None:
            await self._authorization.invalidate_user_cache(user_id, tenant_id)
