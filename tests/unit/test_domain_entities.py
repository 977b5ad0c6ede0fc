"""Tests for RoleEntity and AssignmentEntity business rules."""

from datetime import UTC, datetime, timedelta

import pytest

from fleet_rbac.domain.entities.assignment import AssignmentEntity, validate_expiry
from fleet_rbac.domain.entities.role import (
    RoleEntity,
    clamp_priority,
    normalize_role_name,
    validate_description,
)
from fleet_rbac.domain.exceptions import InvalidPermissionException, ValidationException
from fleet_rbac.domain.role_types import SYSTEM_TENANT_ID

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _role(**overrides) -> RoleEntity:
    fields = {
        "id": "role-1",
        "tenant_id": "tenant-1",
        "name": "Fleet Manager",
        "permissions": frozenset({"vehicle_read", "vehicle_write"}),
    }
    fields.update(overrides)
    return RoleEntity(**fields)


def _assignment(**overrides) -> AssignmentEntity:
    fields = {
        "id": "a-1",
        "user_id": "user-1",
        "role_id": "role-1",
        "tenant_id": "tenant-1",
        "assigned_at": NOW,
    }
    fields.update(overrides)
    return AssignmentEntity(**fields)


class TestRoleEntity:
    def test_valid_role(self) -> None:
        role = _role()
        assert role.has_permission("vehicle_read")
        assert not role.has_permission("rental_read")
        assert role.is_custom
        assert not role.is_global

    def test_name_is_required(self) -> None:
        with pytest.raises(ValidationException) as exc_info:
            _role(name="   ")
        assert exc_info.value.details == {"field": "name"}

    def test_name_length_bounds(self) -> None:
        with pytest.raises(ValidationException):
            _role(name="A")
        with pytest.raises(ValidationException):
            _role(name="x" * 101)
        assert _role(name="x" * 100).name == "x" * 100

    def test_description_max_length(self) -> None:
        with pytest.raises(ValidationException):
            _role(description="d" * 256)

    def test_negative_priority_rejected(self) -> None:
        with pytest.raises(ValidationException):
            _role(priority=-1)

    def test_unknown_permission_rejected(self) -> None:
        with pytest.raises(InvalidPermissionException):
            _role(permissions=frozenset({"vehicle_read", "teleport"}))

    def test_tenant_required(self) -> None:
        with pytest.raises(ValidationException):
            _role(tenant_id="")

    def test_system_role_is_immutable_and_undeletable(self) -> None:
        role = _role(is_system_role=True, tenant_id=SYSTEM_TENANT_ID)
        assert not role.can_be_modified()
        assert not role.can_be_deleted()
        assert role.is_global

    def test_default_role_modifiable_but_not_deletable(self) -> None:
        role = _role(is_default_role=True)
        assert role.can_be_modified()
        assert not role.can_be_deleted()

    def test_with_permissions_replaces_and_revalidates(self) -> None:
        role = _role()
        updated = role.with_permissions({"rental_read"})
        assert updated.permissions == frozenset({"rental_read"})
        assert role.permissions == frozenset({"vehicle_read", "vehicle_write"})
        with pytest.raises(InvalidPermissionException):
            role.with_permissions({"bogus"})

    def test_is_equivalent_to(self) -> None:
        a = _role()
        b = _role(id="role-2", name="Other Name")
        c = _role(id="role-3", permissions=frozenset({"vehicle_read"}))
        assert a.is_equivalent_to(b)
        assert not a.is_equivalent_to(c)

    def test_summary(self) -> None:
        assert _role().summary() == "Fleet Manager (2 permissions, priority 0)"
        inactive_default = _role(is_default_role=True, is_active=False, priority=5)
        assert inactive_default.summary().endswith("[default, inactive]")


class TestRoleHelpers:
    def test_normalize_role_name_trims(self) -> None:
        assert normalize_role_name("  Agent  ") == "Agent"

    def test_normalize_role_name_none(self) -> None:
        with pytest.raises(ValidationException):
            normalize_role_name(None)

    def test_validate_description_passes_none(self) -> None:
        assert validate_description(None) is None

    def test_clamp_priority(self) -> None:
        assert clamp_priority(-5) == 0
        assert clamp_priority(None) == 0
        assert clamp_priority(42) == 42


class TestAssignmentEntity:
    def test_no_expiry_never_expires(self) -> None:
        a = _assignment()
        assert not a.is_expired(NOW + timedelta(days=10_000))
        assert a.is_valid(NOW)
        assert a.days_until_expiration(NOW) is None
        assert not a.is_expiring_soon(now=NOW)

    def test_expiry_boundary_is_inclusive(self) -> None:
        a = _assignment(expires_at=NOW + timedelta(hours=1))
        assert not a.is_expired(NOW + timedelta(minutes=59))
        assert a.is_expired(NOW + timedelta(hours=1))
        assert not a.is_valid(NOW + timedelta(hours=1))

    def test_inactive_is_not_valid(self) -> None:
        assert not _assignment(is_active=False).is_valid(NOW)

    def test_expiry_must_follow_assignment(self) -> None:
        with pytest.raises(ValidationException) as exc_info:
            _assignment(expires_at=NOW)
        assert exc_info.value.details == {"field": "expires_at"}
        with pytest.raises(ValidationException):
            _assignment(expires_at=NOW - timedelta(days=1))

    def test_naive_datetimes_are_treated_as_utc(self) -> None:
        a = _assignment(expires_at=datetime(2026, 3, 2, 12, 0))
        assert a.days_until_expiration(NOW) == 1

    def test_days_until_expiration_and_expiring_soon(self) -> None:
        a = _assignment(expires_at=NOW + timedelta(days=5, hours=1))
        assert a.days_until_expiration(NOW) == 5
        assert a.is_expiring_soon(7, NOW)
        assert not a.is_expiring_soon(3, NOW)

    def test_expired_is_not_expiring_soon(self) -> None:
        a = _assignment(expires_at=NOW + timedelta(days=1))
        assert not a.is_expiring_soon(7, NOW + timedelta(days=2))
        assert a.days_until_expiration(NOW + timedelta(days=2)) < 0

    def test_agency_scope(self) -> None:
        tenant_wide = _assignment()
        scoped = _assignment(agency_id="agency-1")
        assert not tenant_wide.is_agency_specific
        assert tenant_wide.covers_agency("agency-9")
        assert scoped.is_agency_specific
        assert scoped.covers_agency("agency-1")
        assert not scoped.covers_agency("agency-2")

    def test_required_ids(self) -> None:
        with pytest.raises(ValidationException):
            _assignment(user_id="")
        with pytest.raises(ValidationException):
            _assignment(role_id="")
        with pytest.raises(ValidationException):
            _assignment(tenant_id="")


def test_validate_expiry_allows_none() -> None:
    validate_expiry(NOW, None)
