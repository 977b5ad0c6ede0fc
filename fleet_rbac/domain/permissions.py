"""Permission catalog: the closed, versioned table of atomic capability codes.

Codes are opaque, case-sensitive strings; compare them verbatim. The catalog
ships with the software and is never persisted as mutable data. Resource
labels and descriptions for UI grouping are centralized here.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from fleet_rbac.domain.enums import PermissionResource
from fleet_rbac.domain.exceptions import InvalidPermissionException


class Permission(str, Enum):
    """Catalog permission codes."""

    VEHICLE_READ = "vehicle_read"
    VEHICLE_WRITE = "vehicle_write"
    VEHICLE_UPDATE = "vehicle_update"
    VEHICLE_DELETE = "vehicle_delete"
    VEHICLE_MANAGE_IMAGES = "vehicle_manage_images"
    VEHICLE_CHANGE_STATUS = "vehicle_change_status"

    DRIVER_READ = "driver_read"
    DRIVER_WRITE = "driver_write"
    DRIVER_UPDATE = "driver_update"
    DRIVER_DELETE = "driver_delete"
    DRIVER_MANAGE_DOCUMENTS = "driver_manage_documents"
    DRIVER_MANAGE_SCHEDULE = "driver_manage_schedule"

    RENTAL_READ = "rental_read"
    RENTAL_WRITE = "rental_write"
    RENTAL_UPDATE = "rental_update"
    RENTAL_DELETE = "rental_delete"
    RENTAL_APPROVE = "rental_approve"
    RENTAL_CANCEL = "rental_cancel"
    RENTAL_EXTEND = "rental_extend"

    USER_READ = "user_read"
    USER_WRITE = "user_write"
    USER_UPDATE = "user_update"
    USER_DELETE = "user_delete"
    USER_MANAGE_ROLES = "user_manage_roles"
    USER_RESET_PASSWORD = "user_reset_password"

    AGENCY_READ = "agency_read"
    AGENCY_WRITE = "agency_write"
    AGENCY_UPDATE = "agency_update"
    AGENCY_DELETE = "agency_delete"
    AGENCY_MANAGE_STAFF = "agency_manage_staff"

    ORGANIZATION_READ = "organization_read"
    ORGANIZATION_UPDATE = "organization_update"
    ORGANIZATION_MANAGE_SETTINGS = "organization_manage_settings"
    ORGANIZATION_MANAGE_SUBSCRIPTION = "organization_manage_subscription"

    ROLE_READ = "role_read"
    ROLE_WRITE = "role_write"
    ROLE_UPDATE = "role_update"
    ROLE_DELETE = "role_delete"
    ROLE_ASSIGN_PERMISSIONS = "role_assign_permissions"

    PAYMENT_READ = "payment_read"
    PAYMENT_PROCESS = "payment_process"
    PAYMENT_REFUND = "payment_refund"
    PAYMENT_VIEW_DETAILS = "payment_view_details"

    REPORT_READ = "report_read"
    REPORT_GENERATE = "report_generate"
    REPORT_EXPORT = "report_export"
    REPORT_ADVANCED = "report_advanced"

    SETTINGS_READ = "settings_read"
    SETTINGS_WRITE = "settings_write"
    SETTINGS_MANAGE_NOTIFICATIONS = "settings_manage_notifications"

    SYSTEM_ADMIN = "system_admin"
    SYSTEM_BACKUP = "system_backup"
    SYSTEM_LOGS = "system_logs"
    SYSTEM_MONITORING = "system_monitoring"


@dataclass(frozen=True)
class PermissionInfo:
    """Immutable catalog entry."""

    code: str
    description: str
    resource: PermissionResource


_R = PermissionResource
_P = Permission

_CATALOG: tuple[tuple[Permission, str, PermissionResource], ...] = (
    (_P.VEHICLE_READ, "Read vehicle information", _R.VEHICLE),
    (_P.VEHICLE_WRITE, "Create new vehicles", _R.VEHICLE),
    (_P.VEHICLE_UPDATE, "Update existing vehicles", _R.VEHICLE),
    (_P.VEHICLE_DELETE, "Delete vehicles", _R.VEHICLE),
    (_P.VEHICLE_MANAGE_IMAGES, "Manage vehicle images", _R.VEHICLE),
    (_P.VEHICLE_CHANGE_STATUS, "Change vehicle status", _R.VEHICLE),
    (_P.DRIVER_READ, "Read driver information", _R.DRIVER),
    (_P.DRIVER_WRITE, "Create new drivers", _R.DRIVER),
    (_P.DRIVER_UPDATE, "Update existing drivers", _R.DRIVER),
    (_P.DRIVER_DELETE, "Delete drivers", _R.DRIVER),
    (_P.DRIVER_MANAGE_DOCUMENTS, "Manage driver documents", _R.DRIVER),
    (_P.DRIVER_MANAGE_SCHEDULE, "Manage driver schedules", _R.DRIVER),
    (_P.RENTAL_READ, "Read rental information", _R.RENTAL),
    (_P.RENTAL_WRITE, "Create new rentals", _R.RENTAL),
    (_P.RENTAL_UPDATE, "Update existing rentals", _R.RENTAL),
    (_P.RENTAL_DELETE, "Delete rentals", _R.RENTAL),
    (_P.RENTAL_APPROVE, "Approve rental requests", _R.RENTAL),
    (_P.RENTAL_CANCEL, "Cancel rentals", _R.RENTAL),
    (_P.RENTAL_EXTEND, "Extend rentals", _R.RENTAL),
    (_P.USER_READ, "Read user information", _R.USER),
    (_P.USER_WRITE, "Create new users", _R.USER),
    (_P.USER_UPDATE, "Update existing users", _R.USER),
    (_P.USER_DELETE, "Delete users", _R.USER),
    (_P.USER_MANAGE_ROLES, "Manage user roles", _R.USER),
    (_P.USER_RESET_PASSWORD, "Reset user passwords", _R.USER),
    (_P.AGENCY_READ, "Read agency information", _R.AGENCY),
    (_P.AGENCY_WRITE, "Create new agencies", _R.AGENCY),
    (_P.AGENCY_UPDATE, "Update existing agencies", _R.AGENCY),
    (_P.AGENCY_DELETE, "Delete agencies", _R.AGENCY),
    (_P.AGENCY_MANAGE_STAFF, "Manage agency staff", _R.AGENCY),
    (_P.ORGANIZATION_READ, "Read organization information", _R.ORGANIZATION),
    (_P.ORGANIZATION_UPDATE, "Update organization information", _R.ORGANIZATION),
    (_P.ORGANIZATION_MANAGE_SETTINGS, "Manage organization settings", _R.ORGANIZATION),
    (_P.ORGANIZATION_MANAGE_SUBSCRIPTION, "Manage organization subscription", _R.ORGANIZATION),
    (_P.ROLE_READ, "Read role information", _R.ROLE),
    (_P.ROLE_WRITE, "Create new roles", _R.ROLE),
    (_P.ROLE_UPDATE, "Update existing roles", _R.ROLE),
    (_P.ROLE_DELETE, "Delete roles", _R.ROLE),
    (_P.ROLE_ASSIGN_PERMISSIONS, "Assign permissions to roles", _R.ROLE),
    (_P.PAYMENT_READ, "Read payment information", _R.PAYMENT),
    (_P.PAYMENT_PROCESS, "Process payments", _R.PAYMENT),
    (_P.PAYMENT_REFUND, "Issue refunds", _R.PAYMENT),
    (_P.PAYMENT_VIEW_DETAILS, "View transaction details", _R.PAYMENT),
    (_P.REPORT_READ, "Read reports", _R.REPORT),
    (_P.REPORT_GENERATE, "Generate reports", _R.REPORT),
    (_P.REPORT_EXPORT, "Export reports", _R.REPORT),
    (_P.REPORT_ADVANCED, "Access advanced reports", _R.REPORT),
    (_P.SETTINGS_READ, "Read settings", _R.SETTINGS),
    (_P.SETTINGS_WRITE, "Update settings", _R.SETTINGS),
    (_P.SETTINGS_MANAGE_NOTIFICATIONS, "Manage notifications", _R.SETTINGS),
    (_P.SYSTEM_ADMIN, "Full platform administration", _R.SYSTEM),
    (_P.SYSTEM_BACKUP, "Run backups", _R.SYSTEM),
    (_P.SYSTEM_LOGS, "Access system logs", _R.SYSTEM),
    (_P.SYSTEM_MONITORING, "Access monitoring", _R.SYSTEM),
)

PERMISSION_CATALOG: dict[str, PermissionInfo] = {
    perm.value: PermissionInfo(code=perm.value, description=desc, resource=resource)
    for perm, desc, resource in _CATALOG
}

RESOURCE_LABELS: dict[PermissionResource, str] = {
    _R.VEHICLE: "Vehicles",
    _R.DRIVER: "Drivers",
    _R.RENTAL: "Rentals",
    _R.USER: "Users",
    _R.AGENCY: "Agencies",
    _R.ORGANIZATION: "Organization",
    _R.ROLE: "Roles",
    _R.PAYMENT: "Payments",
    _R.REPORT: "Reports",
    _R.SETTINGS: "Settings",
    _R.SYSTEM: "System",
}

RESOURCE_DESCRIPTIONS: dict[PermissionResource, str] = {
    _R.VEHICLE: "Fleet vehicle management",
    _R.DRIVER: "Driver management",
    _R.RENTAL: "Rental and booking management",
    _R.USER: "User management",
    _R.AGENCY: "Agency management",
    _R.ORGANIZATION: "Organization management",
    _R.ROLE: "Role and permission management",
    _R.PAYMENT: "Payment and transaction management",
    _R.REPORT: "Report generation and viewing",
    _R.SETTINGS: "Settings configuration",
    _R.SYSTEM: "Platform administration",
}


def all_permissions() -> frozenset[PermissionInfo]:
    """Return every catalog entry."""
    return frozenset(PERMISSION_CATALOG.values())


def all_permission_codes() -> frozenset[str]:
    return frozenset(PERMISSION_CATALOG)


def all_resources() -> list[PermissionResource]:
    """Resources that have at least one permission, in catalog order."""
    seen: dict[PermissionResource, None] = {}
    for info in PERMISSION_CATALOG.values():
        seen.setdefault(info.resource, None)
    return list(seen)


def permissions_for_resource(resource: PermissionResource | str) -> frozenset[PermissionInfo]:
    """Return catalog entries for a resource (case-insensitive name). Unknown -> empty."""
    name = resource.value if isinstance(resource, PermissionResource) else str(resource).lower()
    return frozenset(p for p in PERMISSION_CATALOG.values() if p.resource.value == name)


def is_valid(code: str) -> bool:
    """Return True if code is an exact catalog member."""
    return code in PERMISSION_CATALOG


def get_permission(code: str) -> PermissionInfo | None:
    return PERMISSION_CATALOG.get(code)


def validate_permission_codes(codes: Iterable[str]) -> frozenset[str]:
    """Return codes as a frozenset; raise InvalidPermissionException if any is unknown."""
    code_set = frozenset(codes)
    invalid = sorted(c for c in code_set if c not in PERMISSION_CATALOG)
    if invalid:
        raise InvalidPermissionException(invalid)
    return code_set


@dataclass(frozen=True)
class PermissionGroup:
    """Catalog entries of one resource, flagged with whether each is assigned."""

    resource: PermissionResource
    label: str
    description: str
    permissions: tuple[tuple[PermissionInfo, bool], ...]

    @property
    def assigned_count(self) -> int:
        return sum(1 for _, assigned in self.permissions if assigned)


def group_permissions(assigned: Iterable[str] = ()) -> list[PermissionGroup]:
    """Group the whole catalog by resource, sorted by resource label.

    Within a group, entries are sorted by code. Each entry carries True when
    its code is in ``assigned``.
    """
    assigned_set = frozenset(assigned)
    groups = []
    for resource in all_resources():
        entries = sorted(permissions_for_resource(resource), key=lambda p: p.code)
        groups.append(
            PermissionGroup(
                resource=resource,
                label=RESOURCE_LABELS[resource],
                description=RESOURCE_DESCRIPTIONS[resource],
                permissions=tuple((p, p.code in assigned_set) for p in entries),
            )
        )
    groups.sort(key=lambda g: g.label)
    return groups
