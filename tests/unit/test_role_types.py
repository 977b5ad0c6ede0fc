"""Tests for role kinds, default templates and the access-level heuristic."""

from fleet_rbac.domain.enums import AccessLevel, RoleType, UserType
from fleet_rbac.domain.permissions import PERMISSION_CATALOG, Permission
from fleet_rbac.domain.role_types import (
    ACCESS_LEVEL_USER_THRESHOLD,
    DEFAULT_ROLE_TEMPLATES,
    access_level_for,
    all_role_types,
    default_permissions_for,
    role_type_info,
    validate_role_type_configuration,
)


def test_fifteen_role_kinds_all_configured() -> None:
    assert len(RoleType) == 15
    assert {info.role_type for info in all_role_types()} == set(RoleType)


def test_role_kind_metadata() -> None:
    info = role_type_info(RoleType.ORGANIZATION_OWNER)
    assert info.color == "#FF6B35"
    assert info.icon == "crown"
    assert info.name


def test_super_admin_gets_whole_catalog() -> None:
    assert default_permissions_for(RoleType.SUPER_ADMIN) == frozenset(PERMISSION_CATALOG)


def test_role_kind_classification() -> None:
    assert RoleType.SUPER_ADMIN.is_system_role
    assert not RoleType.ORGANIZATION_OWNER.is_system_role
    assert RoleType.ORGANIZATION_ADMIN.is_admin_role
    assert not RoleType.AGENCY_MANAGER.is_admin_role
    assert RoleType.PAYMENT_MANAGER.is_manager_role
    assert not RoleType.CLIENT.is_manager_role


def test_enum_values_helper() -> None:
    assert UserType.values() == ["client", "owner", "staff", "super_admin"]


def test_configuration_is_consistent_with_catalog() -> None:
    assert validate_role_type_configuration() is True


def test_default_templates() -> None:
    names = [t.name for t in DEFAULT_ROLE_TEMPLATES]
    assert names == ["Owner", "Agency Manager", "Rental Agent", "Client"]
    priorities = [t.priority for t in DEFAULT_ROLE_TEMPLATES]
    assert priorities == [100, 80, 50, 10]
    for template in DEFAULT_ROLE_TEMPLATES:
        assert template.is_default
        assert template.permissions <= frozenset(PERMISSION_CATALOG)
        assert template.role_type is not RoleType.SUPER_ADMIN


def test_template_display_metadata_comes_from_role_kind() -> None:
    for template in DEFAULT_ROLE_TEMPLATES:
        info = role_type_info(template.role_type)
        assert (template.color, template.icon) == (info.color, info.icon)
    rental_agent = next(t for t in DEFAULT_ROLE_TEMPLATES if t.name == "Rental Agent")
    assert rental_agent.color == "#96CEB4"
    assert rental_agent.icon == "clipboard-list"


def test_access_level_admin_when_system_admin_present() -> None:
    assert access_level_for({Permission.SYSTEM_ADMIN.value}) is AccessLevel.ADMIN


def test_access_level_manager_when_organization_update_present() -> None:
    perms = {Permission.ORGANIZATION_UPDATE.value, Permission.VEHICLE_READ.value}
    assert access_level_for(perms) is AccessLevel.MANAGER


def test_access_level_user_above_threshold() -> None:
    codes = sorted(
        c for c in PERMISSION_CATALOG if c not in ("system_admin", "organization_update")
    )
    assert access_level_for(set(codes[: ACCESS_LEVEL_USER_THRESHOLD + 1])) is AccessLevel.USER


def test_access_level_limited_at_threshold() -> None:
    codes = sorted(
        c for c in PERMISSION_CATALOG if c not in ("system_admin", "organization_update")
    )
    assert access_level_for(set(codes[:ACCESS_LEVEL_USER_THRESHOLD])) is AccessLevel.LIMITED
    assert access_level_for(set()) is AccessLevel.LIMITED
