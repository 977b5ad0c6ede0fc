"""Assignment repository: user-role grants with atomic state transitions.

Deactivation and expiry changes are conditional UPDATEs on is_active
(compare-and-set), so a revoke racing the expiry sweep updates the row
once and the loser matches no row. Duplicate active grants are rejected
by the partial unique index on (user_id, role_id) WHERE is_active.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rbac.domain.entities.assignment import AssignmentEntity
from fleet_rbac.domain.exceptions import DuplicateAssignmentException
from fleet_rbac.infrastructure.persistence.models.assignment import RoleAssignment
from fleet_rbac.infrastructure.persistence.repositories.base import BaseRepository
from fleet_rbac.shared.utils.datetime import ensure_utc


def _assignment_to_entity(a: RoleAssignment) -> AssignmentEntity:
    """Map ORM RoleAssignment to domain AssignmentEntity."""
    return AssignmentEntity(
        id=a.id,
        user_id=a.user_id,
        role_id=a.role_id,
        tenant_id=a.tenant_id,
        assigned_at=ensure_utc(a.assigned_at),
        agency_id=a.agency_id,
        expires_at=ensure_utc(a.expires_at),
        is_active=a.is_active,
        assignment_reason=a.assignment_reason,
        assigned_by=a.assigned_by,
        revoked_at=ensure_utc(a.revoked_at),
        revoked_by=a.revoked_by,
    )


class AssignmentRepository(BaseRepository[RoleAssignment]):
    """Assignment store backed by the role_assignment table."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, RoleAssignment)

    async def add(self, assignment: AssignmentEntity) -> AssignmentEntity:
        """Insert; a concurrent active grant for (user, role) -> DuplicateAssignmentException."""
        row = RoleAssignment(
            id=assignment.id,
            user_id=assignment.user_id,
            role_id=assignment.role_id,
            tenant_id=assignment.tenant_id,
            agency_id=assignment.agency_id,
            assigned_at=ensure_utc(assignment.assigned_at),
            expires_at=ensure_utc(assignment.expires_at),
            is_active=assignment.is_active,
            assignment_reason=assignment.assignment_reason,
            assigned_by=assignment.assigned_by,
        )
        try:
            created = await self.create(row)
        except IntegrityError:
            raise DuplicateAssignmentException(
                assignment.user_id, assignment.role_id
            ) from None
        return _assignment_to_entity(created)

    async def get(self, assignment_id: str) -> AssignmentEntity | None:
        row = await self.get_by_id(assignment_id)
        return _assignment_to_entity(row) if row else None

    async def get_active(self, user_id: str, role_id: str) -> AssignmentEntity | None:
        result = await self.db.execute(
            select(RoleAssignment).where(
                RoleAssignment.user_id == user_id,
                RoleAssignment.role_id == role_id,
                RoleAssignment.is_active.is_(True),
            )
        )
        row = result.scalar_one_or_none()
        return _assignment_to_entity(row) if row else None

    async def list_valid_for_user(
        self, user_id: str, tenant_id: str, now: datetime
    ) -> list[AssignmentEntity]:
        """Active AND (no expiry OR expiry > now) in tenant."""
        now = ensure_utc(now)
        result = await self.db.execute(
            select(RoleAssignment).where(
                RoleAssignment.user_id == user_id,
                RoleAssignment.tenant_id == tenant_id,
                RoleAssignment.is_active.is_(True),
                or_(RoleAssignment.expires_at.is_(None), RoleAssignment.expires_at > now),
            )
        )
        return [_assignment_to_entity(a) for a in result.scalars().all()]

    async def list_for_user(
        self, user_id: str, tenant_id: str | None = None, *, active_only: bool = False
    ) -> list[AssignmentEntity]:
        q = select(RoleAssignment).where(RoleAssignment.user_id == user_id)
        if tenant_id is not None:
            q = q.where(RoleAssignment.tenant_id == tenant_id)
        if active_only:
            q = q.where(RoleAssignment.is_active.is_(True))
        q = q.order_by(RoleAssignment.assigned_at.desc())
        result = await self.db.execute(q)
        return [_assignment_to_entity(a) for a in result.scalars().all()]

    async def count_active_for_role(self, role_id: str) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(RoleAssignment)
            .where(RoleAssignment.role_id == role_id, RoleAssignment.is_active.is_(True))
        )
        return int(result.scalar_one())

    async def deactivate(
        self, assignment_id: str, now: datetime, revoked_by: str | None = None
    ) -> bool:
        """Flip is_active to False only if it is still True. Returns whether a row changed."""
        result = await self.db.execute(
            update(RoleAssignment)
            .where(RoleAssignment.id == assignment_id, RoleAssignment.is_active.is_(True))
            .values(is_active=False, revoked_at=ensure_utc(now), revoked_by=revoked_by)
            .returning(RoleAssignment.id)
            .execution_options(synchronize_session="fetch")
        )
        return len(result.all()) == 1

    async def set_expiry(
        self, assignment_id: str, expires_at: datetime
    ) -> AssignmentEntity | None:
        result = await self.db.execute(
            update(RoleAssignment)
            .where(RoleAssignment.id == assignment_id, RoleAssignment.is_active.is_(True))
            .values(expires_at=ensure_utc(expires_at))
            .returning(RoleAssignment.id)
            .execution_options(synchronize_session="fetch")
        )
        if len(result.all()) != 1:
            return None
        return await self.get(assignment_id)

    async def deactivate_expired(self, now: datetime) -> list[tuple[str, str, str]]:
        """Deactivate active rows with expires_at < now. Returns (id, user_id, tenant_id)."""
        now = ensure_utc(now)
        result = await self.db.execute(
            update(RoleAssignment)
            .where(
                RoleAssignment.is_active.is_(True),
                RoleAssignment.expires_at.is_not(None),
                RoleAssignment.expires_at < now,
            )
            .values(is_active=False, revoked_at=now)
            .returning(RoleAssignment.id, RoleAssignment.user_id, RoleAssignment.tenant_id)
            .execution_options(synchronize_session="fetch")
        )
        return [(row.id, row.user_id, row.tenant_id) for row in result.all()]

    async def tenant_counts(
        self, tenant_id: str, now: datetime, soon_until: datetime
    ) -> dict[str, int]:
        """Counts for stats: total, active (valid now), expired, expiring_soon."""
        now = ensure_utc(now)
        soon_until = ensure_utc(soon_until)
        ra = RoleAssignment
        unexpired = or_(ra.expires_at.is_(None), ra.expires_at > now)

        def _sum(cond):
            return func.coalesce(func.sum(case((cond, 1), else_=0)), 0)

        result = await self.db.execute(
            select(
                func.count(),
                _sum(ra.is_active.is_(True) & unexpired),
                _sum(ra.expires_at.is_not(None) & (ra.expires_at <= now)),
                _sum(
                    ra.is_active.is_(True)
                    & (ra.expires_at > now)
                    & (ra.expires_at <= soon_until)
                ),
            ).where(ra.tenant_id == tenant_id)
        )
        total, active, expired, expiring_soon = result.one()
        return {
            "total": int(total),
            "active": int(active),
            "expired": int(expired),
            "expiring_soon": int(expiring_soon),
        }
