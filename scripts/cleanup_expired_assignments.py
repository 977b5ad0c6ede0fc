"""Deactivate role assignments whose expiry has passed (all organizations).

Usage:
    uv run python -m scripts.cleanup_expired_assignments
Safe to run repeatedly (cron). When REDIS_ENABLED is set, cached permission
sets of affected users are invalidated.
"""

import asyncio
import logging
from functools import partial

import fleet_rbac.infrastructure.persistence.database as database
from fleet_rbac.application.services.assignment_service import AssignmentService
from fleet_rbac.application.services.authorization_service import (
    PermissionEvaluationEngine,
)
from fleet_rbac.core.config import get_settings
from fleet_rbac.infrastructure.cache import CacheService
from fleet_rbac.infrastructure.persistence.repositories import (
    AssignmentRepository,
    RoleRepository,
    UserRepository,
)
from fleet_rbac.shared.logging_config import setup_logging

logger = logging.getLogger("scripts.cleanup_expired_assignments")


async def main() -> None:
    """Run one expiry sweep in a single transaction."""
    settings = get_settings()
    setup_logging()
    session_factory = database._ensure_engine()

    cache = None
    if settings.redis_enabled:
        cache = CacheService()
        await cache.connect()

    try:
        async with session_factory() as session:
            async with session.begin():
                assignment_repo = AssignmentRepository(session)
                role_repo = RoleRepository(session)
                service = AssignmentService(
                    assignment_repo,
                    role_repo,
                    UserRepository(session),
                    PermissionEvaluationEngine(
                        role_repo,
                        assignment_repo,
                        cache=cache,
                        cache_ttl=settings.cache_ttl_permissions,
                        after_commit=partial(database.on_commit, session),
                    ),
                )
                count = await service.sweep_expired()
            await database.run_after_commit(session)
        print(f"Done. Deactivated {count} expired assignment(s)")
    finally:
        if cache is not None:
            await cache.disconnect()
        await database.dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
