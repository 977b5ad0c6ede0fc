"""Create a directory user (if missing) and print a bearer token for it. Development only.

Usage:
    uv run python -m scripts.issue_dev_token <tenant_id> <email> [user_type] [--minutes N]
user_type is one of client, owner, staff, super_admin (default staff).
Requires SECRET_KEY (the identity service's signing key).
"""

import argparse
import asyncio
import sys
from datetime import timedelta

import fleet_rbac.infrastructure.persistence.database as database
from fleet_rbac.core.config import get_settings
from fleet_rbac.domain.enums import UserType
from fleet_rbac.domain.value_objects.identity import IdentityContext
from fleet_rbac.infrastructure.persistence.repositories import UserRepository
from fleet_rbac.infrastructure.security.jwt import create_access_token


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("tenant_id")
    parser.add_argument("email")
    parser.add_argument(
        "user_type", nargs="?", default=UserType.STAFF.value, choices=UserType.values()
    )
    parser.add_argument("--minutes", type=int, default=None)
    return parser.parse_args()


async def main() -> None:
    """Ensure the user exists, then print its id and a signed token."""
    args = _parse_args()
    settings = get_settings()
    user_type = UserType(args.user_type)
    tenant_id = None if user_type == UserType.SUPER_ADMIN else args.tenant_id

    session_factory = database._ensure_engine()
    try:
        async with session_factory() as session:
            async with session.begin():
                users = UserRepository(session)
                user = await users.get_by_email(args.email)
                if user is None:
                    user = await users.add_user(
                        tenant_id=tenant_id,
                        email=args.email,
                        full_name=args.email.split("@")[0],
                        user_type=user_type.value,
                    )
                user_id = user.id
    finally:
        await database.dispose_engine()

    minutes = args.minutes or settings.access_token_expire_minutes
    token = create_access_token(
        IdentityContext(user_id=user_id, tenant_id=tenant_id, user_type=user_type),
        expires_delta=timedelta(minutes=minutes),
    )
    print(f"user_id: {user_id}", file=sys.stderr)
    print(token)


if __name__ == "__main__":
    asyncio.run(main())
