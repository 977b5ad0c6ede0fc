"""Seed RBAC for an organization: system roles, default roles, optional owner grant.

Usage:
    uv run python -m scripts.seed_rbac <tenant_id> [owner_user_id]
Creates the platform Super Administrator role if missing, provisions the
default roles missing from the organization and, when owner_user_id is
given, assigns the Owner role to that user. Safe to run repeatedly.
"""

import asyncio
import sys

import fleet_rbac.infrastructure.persistence.database as database
from fleet_rbac.application.services.assignment_service import AssignmentService
from fleet_rbac.application.services.role_service import RoleService
from fleet_rbac.core.config import get_settings
from fleet_rbac.domain.exceptions import FleetRbacException
from fleet_rbac.domain.role_types import DEFAULT_ROLE_TEMPLATES
from fleet_rbac.infrastructure.persistence.repositories import (
    AssignmentRepository,
    RoleRepository,
    UserRepository,
)


async def main() -> None:
    """Seed roles (and the owner assignment) for the given organization."""
    if len(sys.argv) < 2:
        print(
            "Usage: uv run python -m scripts.seed_rbac <tenant_id> [owner_user_id]",
            file=sys.stderr,
        )
        sys.exit(1)
    tenant_id = sys.argv[1]
    owner_user_id = sys.argv[2] if len(sys.argv) > 2 else None

    get_settings()
    session_factory = database._ensure_engine()
    try:
        async with session_factory() as session:
            async with session.begin():
                role_repo = RoleRepository(session)
                assignment_repo = AssignmentRepository(session)
                roles = RoleService(role_repo, assignment_repo)
                await roles.ensure_system_roles()
                created = await roles.provision_default_roles(tenant_id)
                print(f"Provisioned {len(created)} default role(s) for tenant {tenant_id}")

                if owner_user_id:
                    owner_name = DEFAULT_ROLE_TEMPLATES[0].name
                    owner = await role_repo.get_by_name(tenant_id, owner_name)
                    assignments = AssignmentService(
                        assignment_repo, role_repo, UserRepository(session)
                    )
                    try:
                        await assignments.assign(
                            owner_user_id,
                            owner.id,
                            tenant_id,
                            reason="Organization owner (seed)",
                        )
                        print(f"Assigned {owner_name} to user {owner_user_id}")
                    except FleetRbacException as e:
                        print(f"Owner not assigned: {e.message}", file=sys.stderr)
    finally:
        await database.dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
