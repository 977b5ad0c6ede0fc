"""Unit tests for PermissionEvaluationEngine with mocked stores."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from fleet_rbac.application.services.authorization_service import (
    PermissionEvaluationEngine,
)
from fleet_rbac.domain.entities.assignment import AssignmentEntity
from fleet_rbac.domain.entities.role import RoleEntity
from fleet_rbac.domain.enums import AccessLevel, RoleType, UserType
from fleet_rbac.domain.exceptions import (
    AuthorizationException,
    InvalidIdentityContextException,
    ValidationException,
)
from fleet_rbac.domain.value_objects.identity import IdentityContext
from tests.conftest import InMemoryCache

TENANT = "t1"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _role(role_id: str, permissions: set[str], **kw) -> RoleEntity:
    return RoleEntity(
        id=role_id,
        tenant_id=TENANT,
        name=f"Role {role_id}",
        permissions=frozenset(permissions),
        **kw,
    )


def _grant(role_id: str, user_id: str = "u1", **kw) -> AssignmentEntity:
    return AssignmentEntity(
        id=f"a-{role_id}",
        user_id=user_id,
        role_id=role_id,
        tenant_id=TENANT,
        assigned_at=NOW - timedelta(days=30),
        **kw,
    )


def _engine(
    roles: list[RoleEntity],
    assignments: list[AssignmentEntity],
    cache: InMemoryCache | None = None,
) -> PermissionEvaluationEngine:
    role_repo = MagicMock()
    role_repo.get_roles = AsyncMock(
        side_effect=lambda ids: {r.id: r for r in roles if r.id in ids}
    )
    assignment_repo = MagicMock()
    assignment_repo.list_valid_for_user = AsyncMock(return_value=assignments)
    return PermissionEvaluationEngine(role_repo, assignment_repo, cache=cache)


def _staff(user_id: str = "u1", **kw) -> IdentityContext:
    return IdentityContext(user_id=user_id, tenant_id=TENANT, **kw)


async def test_effective_permissions_is_union_of_roles() -> None:
    engine = _engine(
        [_role("r1", {"vehicle_read", "rental_read"}), _role("r2", {"rental_read", "driver_read"})],
        [_grant("r1"), _grant("r2")],
    )
    assert await engine.effective_permissions("u1", TENANT) == frozenset(
        {"vehicle_read", "rental_read", "driver_read"}
    )


async def test_no_assignments_yields_empty_set() -> None:
    engine = _engine([], [])
    assert await engine.effective_permissions("u1", TENANT) == frozenset()
    engine.role_repo.get_roles.assert_not_awaited()


async def test_expired_assignment_filtered_at_read_time() -> None:
    """Store still returns the row; the engine drops it because expiry has passed."""
    engine = _engine(
        [_role("r1", {"vehicle_read"}), _role("r2", {"rental_read"})],
        [_grant("r1"), _grant("r2", expires_at=NOW - timedelta(hours=1))],
    )
    assert await engine.effective_permissions("u1", TENANT, now=NOW) == frozenset(
        {"vehicle_read"}
    )


async def test_inactive_role_contributes_nothing() -> None:
    engine = _engine(
        [_role("r1", {"vehicle_read"}, is_active=False), _role("r2", {"rental_read"})],
        [_grant("r1"), _grant("r2")],
    )
    assert await engine.effective_permissions("u1", TENANT) == frozenset({"rental_read"})


async def test_missing_role_is_skipped() -> None:
    engine = _engine([_role("r1", {"vehicle_read"})], [_grant("r1"), _grant("gone")])
    assert await engine.effective_permissions("u1", TENANT) == frozenset({"vehicle_read"})


@pytest.mark.parametrize("user_id,tenant_id", [("", TENANT), ("u1", ""), ("u1", None)])
async def test_missing_ids_raise(user_id, tenant_id) -> None:
    engine = _engine([], [])
    with pytest.raises(InvalidIdentityContextException):
        await engine.effective_permissions(user_id, tenant_id)


async def test_cache_is_populated_and_reused() -> None:
    cache = InMemoryCache()
    engine = _engine([_role("r1", {"vehicle_read"})], [_grant("r1")], cache=cache)
    first = await engine.effective_permissions("u1", TENANT)
    assert cache.store["permission:t1:u1"] == ["vehicle_read"]
    second = await engine.effective_permissions("u1", TENANT)
    assert first == second
    assert engine.assignment_repo.list_valid_for_user.await_count == 1


async def test_explicit_now_bypasses_cache() -> None:
    cache = InMemoryCache()
    cache.store["permission:t1:u1"] = ["system_admin"]
    engine = _engine([_role("r1", {"vehicle_read"})], [_grant("r1")], cache=cache)
    assert await engine.effective_permissions("u1", TENANT, now=NOW) == frozenset(
        {"vehicle_read"}
    )
    assert cache.store["permission:t1:u1"] == ["system_admin"]


async def test_invalidation() -> None:
    cache = InMemoryCache()
    cache.store.update({"permission:t1:u1": [], "permission:t1:u2": [], "permission:t2:u1": []})
    engine = _engine([], [], cache=cache)
    await engine.invalidate_user_cache("u1", "t1")
    assert "permission:t1:u1" not in cache.store
    await engine.invalidate_tenant_cache("t1")
    assert list(cache.store) == ["permission:t2:u1"]


async def test_invalidation_repeats_after_commit() -> None:
    cache = InMemoryCache()
    scheduled = []
    engine = _engine([], [], cache=cache)
    engine.after_commit = scheduled.append

    await engine.invalidate_user_cache("u1", "t1")
    await engine.invalidate_tenant_cache("t2")
    assert cache.deleted == ["permission:t1:u1", "permission:t2:*"]
    assert len(scheduled) == 2

    # A set cached from pre-commit rows is dropped by the scheduled pass.
    cache.store.update({"permission:t1:u1": ["rental_read"], "permission:t2:u9": []})
    for callback in scheduled:
        await callback()
    assert cache.store == {}
    assert cache.deleted[2:] == ["permission:t1:u1", "permission:t2:*"]


async def test_invalidation_without_cache_schedules_nothing() -> None:
    scheduled = []
    engine = _engine([], [])
    engine.after_commit = scheduled.append
    await engine.invalidate_user_cache("u1", "t1")
    assert scheduled == []


async def test_has_permission_and_super_admin_short_circuit() -> None:
    engine = _engine([_role("r1", {"vehicle_read"})], [_grant("r1")])
    assert await engine.has_permission(_staff(), "vehicle_read")
    assert not await engine.has_permission(_staff(), "vehicle_delete")
    root = IdentityContext(user_id="root", tenant_id=None, user_type=UserType.SUPER_ADMIN)
    assert await engine.has_permission(root, "vehicle_delete", TENANT)


async def test_has_any_and_all() -> None:
    engine = _engine([_role("r1", {"vehicle_read", "rental_read"})], [_grant("r1")])
    ctx = _staff()
    assert await engine.has_any_permission(ctx, ["vehicle_delete", "rental_read"])
    assert not await engine.has_any_permission(ctx, ["vehicle_delete"])
    assert await engine.has_all_permissions(ctx, ["vehicle_read", "rental_read"])
    assert not await engine.has_all_permissions(ctx, ["vehicle_read", "vehicle_delete"])


async def test_empty_code_lists_are_never_satisfied() -> None:
    engine = _engine([_role("r1", {"vehicle_read"})], [_grant("r1")])
    root = IdentityContext(user_id="root", tenant_id=None, user_type=UserType.SUPER_ADMIN)
    assert not await engine.has_any_permission(_staff(), [])
    assert not await engine.has_all_permissions(_staff(), [])
    assert not await engine.has_all_permissions(root, [], TENANT)


async def test_has_role() -> None:
    engine = _engine(
        [_role("r1", {"rental_read"}, role_type=RoleType.RENTAL_AGENT)], [_grant("r1")]
    )
    assert await engine.has_role(_staff(), RoleType.RENTAL_AGENT)
    assert not await engine.has_role(_staff(), RoleType.AGENCY_MANAGER)


def test_has_tenant_access() -> None:
    engine = _engine([], [])
    assert engine.has_tenant_access(_staff(), TENANT)
    assert not engine.has_tenant_access(_staff(), "t2")
    root = IdentityContext(user_id="root", tenant_id=None, user_type=UserType.SUPER_ADMIN)
    assert engine.has_tenant_access(root, "t2")


async def test_agency_access() -> None:
    engine = _engine([_role("r1", {"rental_read"})], [_grant("r1", agency_id="ag-1")])
    assert await engine.has_agency_access(_staff(), "ag-1")
    assert not await engine.has_agency_access(_staff(), "ag-2")
    owner = _staff(user_type=UserType.OWNER)
    assert await engine.has_agency_access(owner, "ag-2")


async def test_tenant_wide_grant_covers_every_agency() -> None:
    engine = _engine([_role("r1", {"rental_read"})], [_grant("r1")])
    assert await engine.has_agency_access(_staff(), "ag-9")


async def test_permission_in_context() -> None:
    engine = _engine([_role("r1", {"rental_read"})], [_grant("r1", agency_id="ag-1")])
    ctx = _staff()
    assert await engine.has_permission_in_context(ctx, "rental_read", TENANT, "ag-1")
    assert not await engine.has_permission_in_context(ctx, "rental_read", TENANT, "ag-2")
    assert not await engine.has_permission_in_context(ctx, "rental_read", "t2")
    assert not await engine.has_permission_in_context(ctx, "rental_write", TENANT)


async def test_evaluate_expression() -> None:
    engine = _engine([_role("r1", {"vehicle_read", "rental_read"})], [_grant("r1")])
    ctx = _staff()
    assert await engine.evaluate_expression(ctx, "vehicle_read AND rental_read")
    assert not await engine.evaluate_expression(ctx, "vehicle_read AND rental_write")
    assert await engine.evaluate_expression(ctx, "rental_write OR rental_read")
    with pytest.raises(ValidationException):
        await engine.evaluate_expression(ctx, "vehicle_read AND rental_read OR x")


async def test_can_access_user_data() -> None:
    engine = _engine([_role("r1", {"user_read"})], [_grant("r1", user_id="u2")])
    assert await engine.can_access_user_data(_staff("u1"), "u1")
    engine_no_grant = _engine([], [])
    assert not await engine_no_grant.can_access_user_data(_staff("u1"), "u9")
    assert await engine.can_access_user_data(_staff("u2"), "u9")


async def test_require_guards_raise_permission_denied() -> None:
    engine = _engine([_role("r1", {"vehicle_read"})], [_grant("r1")])
    await engine.require_permission(_staff(), "vehicle_read")
    with pytest.raises(AuthorizationException) as exc_info:
        await engine.require_permission(_staff(), "vehicle_delete")
    assert exc_info.value.details == {"permission": "vehicle_delete"}
    with pytest.raises(AuthorizationException):
        await engine.require_permission_in_context(_staff(), "vehicle_read", "t2")


async def test_get_user_permissions_orders_roles_and_classifies() -> None:
    engine = _engine(
        [
            _role("r1", {"vehicle_read"}, priority=10),
            _role("r2", {"organization_update"}, priority=50),
        ],
        [_grant("r1"), _grant("r2")],
    )
    result = await engine.get_user_permissions("u1", TENANT)
    assert [r.id for r in result.roles] == ["r2", "r1"]
    assert result.effective_permissions == frozenset({"vehicle_read", "organization_update"})
    assert result.access_level == AccessLevel.MANAGER
    assert not result.has_full_access


def test_access_level_display_classification() -> None:
    assert PermissionEvaluationEngine.access_level({"system_admin"}) == AccessLevel.ADMIN
    assert PermissionEvaluationEngine.access_level(set()) == AccessLevel.LIMITED
