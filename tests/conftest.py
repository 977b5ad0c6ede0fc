"""Pytest configuration and fixtures for fleet_rbac.

Each test gets its own file-backed SQLite database (sqlite+aiosqlite) with
the schema created from the ORM metadata. HTTP tests run fleet_rbac.main:app
over httpx's ASGITransport with the DB dependencies pointed at that database.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("REDIS_ENABLED", "false")

from collections.abc import Iterable  # noqa: E402
from datetime import timedelta  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from fleet_rbac.application.services.assignment_service import (  # noqa: E402
    AssignmentService,
)
from fleet_rbac.application.services.authorization_service import (  # noqa: E402
    PermissionEvaluationEngine,
)
from fleet_rbac.application.services.role_service import RoleService  # noqa: E402
from fleet_rbac.core.limiter import limiter  # noqa: E402
from fleet_rbac.domain.enums import UserType  # noqa: E402
from fleet_rbac.domain.value_objects.identity import IdentityContext  # noqa: E402
from fleet_rbac.infrastructure.persistence import models  # noqa: E402,F401
from fleet_rbac.infrastructure.persistence.database import (  # noqa: E402
    Base,
    build_engine,
    build_session_factory,
    get_db,
    get_db_transactional,
    run_after_commit,
)
from fleet_rbac.infrastructure.persistence.repositories import (  # noqa: E402
    AssignmentRepository,
    RoleRepository,
    UserRepository,
)
from fleet_rbac.infrastructure.security.jwt import create_access_token  # noqa: E402
from fleet_rbac.main import app  # noqa: E402

TENANT_ID = "tenant-alpha"
OTHER_TENANT_ID = "tenant-beta"


class InMemoryCache:
    """Dict-backed ICacheService double that records deletions."""

    def __init__(self) -> None:
        self.store: dict[str, Any] = {}
        self.deleted: list[str] = []

    def is_available(self) -> bool:
        return True

    async def get(self, key: str) -> Any | None:
        return self.store.get(key)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        self.store[key] = value
        return True

    async def delete(self, key: str) -> bool:
        self.deleted.append(key)
        return self.store.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        prefix = pattern.rstrip("*")
        keys = [k for k in self.store if k.startswith(prefix)]
        for key in keys:
            del self.store[key]
        self.deleted.append(pattern)
        return len(keys)


@pytest.fixture(autouse=True)
def _disable_rate_limits():
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
async def db_engine(tmp_path):
    """Async engine over a fresh SQLite file with all tables created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'rbac.sqlite'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
async def db_session(session_factory) -> AsyncSession:
    """Session inside an open transaction, rolled back after the test."""
    async with session_factory() as session:
        await session.begin()
        yield session
        await session.rollback()


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def role_repo(db_session) -> RoleRepository:
    return RoleRepository(db_session)


@pytest.fixture
def assignment_repo(db_session) -> AssignmentRepository:
    return AssignmentRepository(db_session)


@pytest.fixture
def user_repo(db_session) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def permission_engine(role_repo, assignment_repo, cache) -> PermissionEvaluationEngine:
    return PermissionEvaluationEngine(role_repo, assignment_repo, cache=cache)


@pytest.fixture
def role_service(role_repo, assignment_repo, permission_engine) -> RoleService:
    return RoleService(role_repo, assignment_repo, permission_engine)


@pytest.fixture
def assignment_service(
    assignment_repo, role_repo, user_repo, permission_engine
) -> AssignmentService:
    return AssignmentService(assignment_repo, role_repo, user_repo, permission_engine)


@pytest.fixture
def make_users(user_repo):
    """Create active directory users in a tenant; returns their ids."""

    async def _make(count: int = 1, tenant_id: str = TENANT_ID) -> list[str]:
        ids = []
        for i in range(count):
            user = await user_repo.add_user(
                tenant_id=tenant_id, full_name=f"Test User {i}"
            )
            ids.append(user.id)
        return ids

    return _make


def token_headers(
    user_id: str,
    tenant_id: str | None = TENANT_ID,
    user_type: UserType = UserType.STAFF,
    agency_id: str | None = None,
    extra: dict[str, str] | None = None,
) -> dict[str, str]:
    """Authorization (and tenant) headers for a signed test token."""
    token = create_access_token(
        IdentityContext(
            user_id=user_id,
            tenant_id=tenant_id,
            agency_id=agency_id,
            user_type=user_type,
        ),
        expires_delta=timedelta(minutes=5),
    )
    headers = {"Authorization": f"Bearer {token}"}
    if tenant_id:
        headers["X-Tenant-ID"] = tenant_id
    headers.update(extra or {})
    return headers


@pytest.fixture
async def client(session_factory) -> AsyncClient:
    """Async HTTP client against the FastAPI app with per-test database sessions."""

    async def _get_db():
        async with session_factory() as session:
            yield session

    async def _get_db_transactional():
        async with session_factory() as session:
            async with session.begin():
                yield session
            await run_after_commit(session)

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_db_transactional] = _get_db_transactional
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


class Seeder:
    """Commits users, roles and assignments for HTTP tests (one transaction each)."""

    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory

    async def user(
        self,
        tenant_id: str | None = TENANT_ID,
        user_type: UserType = UserType.STAFF,
        full_name: str = "Seeded User",
        email: str | None = None,
    ) -> str:
        async with self._session_factory() as session:
            async with session.begin():
                user = await UserRepository(session).add_user(
                    tenant_id=tenant_id,
                    full_name=full_name,
                    email=email,
                    user_type=user_type.value,
                )
        return user.id

    async def role(
        self,
        name: str,
        permissions: Iterable[str],
        tenant_id: str = TENANT_ID,
        **kwargs: Any,
    ):
        async with self._session_factory() as session:
            async with session.begin():
                service = RoleService(RoleRepository(session), AssignmentRepository(session))
                return await service.create_role(
                    tenant_id, name, permissions=permissions, **kwargs
                )

    async def assign(self, user_id: str, role_id: str, tenant_id: str = TENANT_ID, **kwargs: Any):
        async with self._session_factory() as session:
            async with session.begin():
                service = AssignmentService(
                    AssignmentRepository(session),
                    RoleRepository(session),
                    UserRepository(session),
                )
                return await service.assign(user_id, role_id, tenant_id, **kwargs)

    async def system_role(self):
        async with self._session_factory() as session:
            async with session.begin():
                service = RoleService(RoleRepository(session), AssignmentRepository(session))
                return await service.ensure_system_roles()

    async def admin(self, permissions: Iterable[str], tenant_id: str = TENANT_ID) -> str:
        """A staff user holding one role with exactly these permissions."""
        user_id = await self.user(tenant_id)
        role = await self.role(f"Grant {user_id[-10:]}", permissions, tenant_id)
        await self.assign(user_id, role.id, tenant_id)
        return user_id


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)
