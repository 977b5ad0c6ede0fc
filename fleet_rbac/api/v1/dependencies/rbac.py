"""Repository and RBAC service dependencies (composition root).

Reads use get_db; writes use get_db_transactional so a request's writes
commit or roll back together.
"""

from __future__ import annotations

from functools import partial
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rbac.application.services.assignment_service import AssignmentService
from fleet_rbac.application.services.authorization_service import (
    PermissionEvaluationEngine,
)
from fleet_rbac.application.services.role_service import RoleService
from fleet_rbac.core.config import get_settings
from fleet_rbac.infrastructure.persistence.database import (
    get_db,
    get_db_transactional,
    on_commit,
)
from fleet_rbac.infrastructure.persistence.repositories import (
    AssignmentRepository,
    RoleRepository,
    UserRepository,
)


def _build_engine(
    request: Request, db: AsyncSession, *, writes: bool = False
) -> PermissionEvaluationEngine:
    """Engine over db with the optional cache set in app lifespan (app.state.cache).

    With writes, cache invalidations are repeated once db commits.
    """
    return PermissionEvaluationEngine(
        role_repo=RoleRepository(db),
        assignment_repo=AssignmentRepository(db),
        cache=getattr(request.app.state, "cache", None),
        cache_ttl=get_settings().cache_ttl_permissions,
        after_commit=partial(on_commit, db) if writes else None,
    )


async def get_permission_engine(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PermissionEvaluationEngine:
    """Permission evaluation engine for access checks (read session)."""
    return _build_engine(request, db)


async def get_role_query_service(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RoleService:
    """Role service for read-only endpoints (list, get, stats)."""
    settings = get_settings()
    return RoleService(
        role_repo=RoleRepository(db),
        assignment_repo=AssignmentRepository(db),
        stats_period_days=settings.role_stats_period_days,
        expiring_soon_days=settings.assignment_expiring_soon_days,
    )


async def get_role_service(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> RoleService:
    """Role service for create/update/delete (transactional, invalidates cache)."""
    settings = get_settings()
    return RoleService(
        role_repo=RoleRepository(db),
        assignment_repo=AssignmentRepository(db),
        authorization=_build_engine(request, db, writes=True),
        stats_period_days=settings.role_stats_period_days,
        expiring_soon_days=settings.assignment_expiring_soon_days,
    )


async def get_assignment_service(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> AssignmentService:
    """Assignment service for grant/revoke/extend/sweep (transactional)."""
    return AssignmentService(
        assignment_repo=AssignmentRepository(db),
        role_repo=RoleRepository(db),
        user_directory=UserRepository(db),
        authorization=_build_engine(request, db, writes=True),
        expiring_soon_days=get_settings().assignment_expiring_soon_days,
    )


async def get_assignment_query_service(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AssignmentService:
    """Assignment service for listing (read session)."""
    return AssignmentService(
        assignment_repo=AssignmentRepository(db),
        role_repo=RoleRepository(db),
        user_directory=UserRepository(db),
        expiring_soon_days=get_settings().assignment_expiring_soon_days,
    )
