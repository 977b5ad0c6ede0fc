"""AssignmentService integration tests against a per-test SQLite database."""

from datetime import timedelta

import pytest

from fleet_rbac.domain.exceptions import (
    AssignmentNotFoundException,
    DuplicateAssignmentException,
    ResourceNotFoundException,
    RoleTenantMismatchException,
    ValidationException,
)
from fleet_rbac.shared.utils import utc_now
from tests.conftest import OTHER_TENANT_ID, TENANT_ID


@pytest.fixture
async def agent_role(role_service):
    return await role_service.create_role(
        TENANT_ID, "Rental Desk", permissions=["rental_read", "rental_write"], color="#45B7D1"
    )


async def test_assign(assignment_service, agent_role, make_users, cache) -> None:
    (user_id,) = await make_users(1)
    cache.store[f"permission:{TENANT_ID}:{user_id}"] = []
    assignment = await assignment_service.assign(
        user_id,
        agent_role.id,
        TENANT_ID,
        agency_id="agency-1",
        reason="Summer staffing",
        assigned_by="admin-1",
    )
    assert assignment.is_active
    assert assignment.tenant_id == TENANT_ID
    assert assignment.agency_id == "agency-1"
    assert assignment.assignment_reason == "Summer staffing"
    assert assignment.expires_at is None
    assert f"permission:{TENANT_ID}:{user_id}" in cache.deleted


async def test_assign_unknown_role(assignment_service, make_users) -> None:
    (user_id,) = await make_users(1)
    with pytest.raises(ResourceNotFoundException):
        await assignment_service.assign(user_id, "missing-role", TENANT_ID)


async def test_assign_unknown_user(assignment_service, agent_role) -> None:
    with pytest.raises(ResourceNotFoundException) as exc_info:
        await assignment_service.assign("ghost", agent_role.id, TENANT_ID)
    assert exc_info.value.details["resource_type"] == "user"


async def test_assign_role_of_other_tenant(assignment_service, agent_role, make_users) -> None:
    (user_id,) = await make_users(1, OTHER_TENANT_ID)
    with pytest.raises(RoleTenantMismatchException):
        await assignment_service.assign(user_id, agent_role.id, OTHER_TENANT_ID)


async def test_expiry_must_be_in_the_future(assignment_service, agent_role, make_users) -> None:
    (user_id,) = await make_users(1)
    with pytest.raises(ValidationException):
        await assignment_service.assign(
            user_id, agent_role.id, TENANT_ID, expires_at=utc_now() - timedelta(minutes=1)
        )


async def test_duplicate_active_assignment_rejected(
    assignment_service, agent_role, make_users
) -> None:
    (user_id,) = await make_users(1)
    await assignment_service.assign(user_id, agent_role.id, TENANT_ID)
    with pytest.raises(DuplicateAssignmentException):
        await assignment_service.assign(user_id, agent_role.id, TENANT_ID)


async def test_reassign_after_revoke_creates_new_row(
    assignment_service, agent_role, make_users
) -> None:
    (user_id,) = await make_users(1)
    first = await assignment_service.assign(user_id, agent_role.id, TENANT_ID)
    await assignment_service.revoke(user_id, agent_role.id, revoked_by="admin-1")
    second = await assignment_service.assign(user_id, agent_role.id, TENANT_ID)
    assert second.id != first.id

    history = await assignment_service.list_user_assignments(user_id, TENANT_ID)
    assert {v.id: v.is_active for v in history} == {first.id: False, second.id: True}


async def test_bulk_assign_skips_existing_holders(
    assignment_service, agent_role, make_users
) -> None:
    users = await make_users(5)
    await assignment_service.assign(users[2], agent_role.id, TENANT_ID)

    created = await assignment_service.bulk_assign(
        [*users, users[0], "ghost"], agent_role.id, TENANT_ID, assigned_by="admin-1"
    )
    assert len(created) == 4
    assert {a.user_id for a in created} == set(users) - {users[2]}
    assert all(a.assigned_by == "admin-1" for a in created)


async def test_bulk_assign_role_errors_raise(assignment_service, make_users) -> None:
    users = await make_users(2)
    with pytest.raises(ResourceNotFoundException):
        await assignment_service.bulk_assign(users, "missing-role", TENANT_ID)


async def test_revoke(assignment_service, agent_role, make_users) -> None:
    (user_id,) = await make_users(1)
    assignment = await assignment_service.assign(user_id, agent_role.id, TENANT_ID)
    await assignment_service.revoke(user_id, agent_role.id, revoked_by="admin-9")
    views = await assignment_service.list_user_assignments(user_id)
    assert views[0].id == assignment.id
    assert not views[0].is_active
    assert views[0].revoked_at is not None
    with pytest.raises(AssignmentNotFoundException):
        await assignment_service.revoke(user_id, agent_role.id)


async def test_revoke_scoped_to_tenant(assignment_service, agent_role, make_users) -> None:
    (user_id,) = await make_users(1)
    await assignment_service.assign(user_id, agent_role.id, TENANT_ID)
    with pytest.raises(AssignmentNotFoundException):
        await assignment_service.revoke(user_id, agent_role.id, tenant_id=OTHER_TENANT_ID)


async def test_revoke_assignment_is_idempotent(
    assignment_service, agent_role, make_users
) -> None:
    (user_id,) = await make_users(1)
    assignment = await assignment_service.assign(user_id, agent_role.id, TENANT_ID)
    revoked = await assignment_service.revoke_assignment(assignment.id, revoked_by="admin-1")
    assert not revoked.is_active
    assert revoked.revoked_by == "admin-1"
    again = await assignment_service.revoke_assignment(assignment.id, revoked_by="admin-2")
    assert again.revoked_by == "admin-1"
    with pytest.raises(ResourceNotFoundException):
        await assignment_service.revoke_assignment(assignment.id, tenant_id=OTHER_TENANT_ID)


async def test_extend_without_expiry_starts_from_now(
    assignment_service, agent_role, make_users
) -> None:
    (user_id,) = await make_users(1)
    assignment = await assignment_service.assign(user_id, agent_role.id, TENANT_ID)
    now = utc_now()
    extended = await assignment_service.extend(assignment.id, 10, now=now)
    assert extended.expires_at == now + timedelta(days=10)


async def test_extend_pushes_existing_expiry(
    assignment_service, agent_role, make_users
) -> None:
    (user_id,) = await make_users(1)
    expires = utc_now() + timedelta(days=2)
    assignment = await assignment_service.assign(
        user_id, agent_role.id, TENANT_ID, expires_at=expires
    )
    extended = await assignment_service.extend(assignment.id, 5, tenant_id=TENANT_ID)
    assert extended.expires_at == expires + timedelta(days=5)


async def test_extend_rejects_bad_input(assignment_service, agent_role, make_users) -> None:
    (user_id,) = await make_users(1)
    assignment = await assignment_service.assign(user_id, agent_role.id, TENANT_ID)
    with pytest.raises(ValidationException):
        await assignment_service.extend(assignment.id, 0)
    with pytest.raises(ResourceNotFoundException):
        await assignment_service.extend("missing", 5)
    await assignment_service.revoke_assignment(assignment.id)
    with pytest.raises(ValidationException):
        await assignment_service.extend(assignment.id, 5)


async def test_sweep_expired(assignment_service, agent_role, make_users, cache) -> None:
    fresh, stale = await make_users(2)
    now = utc_now()
    await assignment_service.assign(fresh, agent_role.id, TENANT_ID)
    await assignment_service.assign(
        stale,
        agent_role.id,
        TENANT_ID,
        now=now - timedelta(days=10),
        expires_at=now - timedelta(days=1),
    )
    assert await assignment_service.sweep_expired(now) == 1
    assert await assignment_service.sweep_expired(now) == 0
    assert f"permission:{TENANT_ID}:{stale}" in cache.deleted

    views = await assignment_service.list_user_assignments(stale, TENANT_ID, active_only=True)
    assert views == []


async def test_list_user_assignments_view(
    assignment_service, agent_role, user_repo
) -> None:
    user = await user_repo.add_user(
        tenant_id=TENANT_ID, full_name="Dana Ortiz", email="dana@example.com"
    )
    now = utc_now()
    await assignment_service.assign(
        user.id, agent_role.id, TENANT_ID, now=now, expires_at=now + timedelta(days=3, hours=1)
    )
    (view,) = await assignment_service.list_user_assignments(user.id, TENANT_ID, now=now)
    assert view.role_name == "Rental Desk"
    assert view.role_color == "#45B7D1"
    assert view.user_full_name == "Dana Ortiz"
    assert view.user_email == "dana@example.com"
    assert view.days_until_expiration == 3
    assert view.is_expiring_soon
    assert not view.is_expired


async def test_list_user_assignments_empty(assignment_service) -> None:
    assert await assignment_service.list_user_assignments("nobody", TENANT_ID) == []
