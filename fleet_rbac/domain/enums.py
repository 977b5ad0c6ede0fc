"""Domain enumerations for fleet_rbac.

Closed taxonomies used across the RBAC core: permission resource
categories, predefined role kinds, user kinds and the coarse access level.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class PermissionResource(_ValuesMixin, str, Enum):
    """Resource category a permission belongs to (grouping and UI)."""

    VEHICLE = "vehicle"
    DRIVER = "driver"
    RENTAL = "rental"
    USER = "user"
    AGENCY = "agency"
    ORGANIZATION = "organization"
    ROLE = "role"
    PAYMENT = "payment"
    REPORT = "report"
    SETTINGS = "settings"
    SYSTEM = "system"


class RoleType(_ValuesMixin, str, Enum):
    """Predefined role archetypes. Custom roles carry no role type."""

    SUPER_ADMIN = "super_admin"
    ORGANIZATION_OWNER = "organization_owner"
    ORGANIZATION_ADMIN = "organization_admin"
    AGENCY_MANAGER = "agency_manager"
    AGENCY_SUPERVISOR = "agency_supervisor"
    RENTAL_AGENT = "rental_agent"
    DRIVER_MANAGER = "driver_manager"
    VEHICLE_MANAGER = "vehicle_manager"
    CLIENT = "client"
    VIP_CLIENT = "vip_client"
    RECEPTIONIST = "receptionist"
    MECHANIC = "mechanic"
    DRIVER = "driver"
    ACCOUNTANT = "accountant"
    PAYMENT_MANAGER = "payment_manager"

    @property
    def is_system_role(self) -> bool:
        """Only the platform super-admin archetype is a system role."""
        return self is RoleType.SUPER_ADMIN

    @property
    def is_admin_role(self) -> bool:
        return self in (
            RoleType.SUPER_ADMIN,
            RoleType.ORGANIZATION_OWNER,
            RoleType.ORGANIZATION_ADMIN,
        )

    @property
    def is_manager_role(self) -> bool:
        return self in (
            RoleType.AGENCY_MANAGER,
            RoleType.DRIVER_MANAGER,
            RoleType.VEHICLE_MANAGER,
            RoleType.PAYMENT_MANAGER,
        )


class UserType(_ValuesMixin, str, Enum):
    """Coarse user kind supplied by the identity context."""

    CLIENT = "client"
    OWNER = "owner"
    STAFF = "staff"
    SUPER_ADMIN = "super_admin"


class AccessLevel(_ValuesMixin, str, Enum):
    """Display-only classification of a permission set. Never gates operations."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    USER = "USER"
    LIMITED = "LIMITED"
