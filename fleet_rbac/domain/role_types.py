"""Role-kind configuration: display metadata and default permission sets.

One closed table keyed by RoleType; all lookups (name, description, color,
icon, default permissions) go through it. Also holds the fixed templates
used to provision a new tenant and the platform super-admin definition.
"""

import logging
from dataclasses import dataclass

from fleet_rbac.domain.enums import AccessLevel, RoleType
from fleet_rbac.domain.permissions import PERMISSION_CATALOG, Permission

logger = logging.getLogger(__name__)

# Tenant id carried by platform-wide system roles.
SYSTEM_TENANT_ID = "00000000-0000-0000-0000-000000000000"

SUPER_ADMIN_ROLE_NAME = "Super Administrator"
SUPER_ADMIN_PRIORITY = 1000

# More permissions than this classifies as USER rather than LIMITED.
ACCESS_LEVEL_USER_THRESHOLD = 10


@dataclass(frozen=True)
class RoleTypeInfo:
    """Display metadata and default permission set for one role kind."""

    role_type: RoleType
    name: str
    description: str
    color: str
    icon: str
    default_permissions: frozenset[str]


def _codes(*perms: Permission) -> frozenset[str]:
    return frozenset(p.value for p in perms)


_P = Permission

_ROLE_TYPES: dict[RoleType, RoleTypeInfo] = {
    info.role_type: info
    for info in (
        RoleTypeInfo(
            RoleType.SUPER_ADMIN,
            "Super Administrator",
            "System administrator with full access to the whole platform",
            "#FF0000",
            "shield-check",
            frozenset(PERMISSION_CATALOG),
        ),
        RoleTypeInfo(
            RoleType.ORGANIZATION_OWNER,
            "Organization Owner",
            "Owner of the organization with full rights over it",
            "#FF6B35",
            "crown",
            _codes(
                _P.ORGANIZATION_READ, _P.ORGANIZATION_UPDATE,
                _P.ORGANIZATION_MANAGE_SETTINGS, _P.ORGANIZATION_MANAGE_SUBSCRIPTION,
                _P.AGENCY_READ, _P.AGENCY_WRITE, _P.AGENCY_UPDATE, _P.AGENCY_DELETE,
                _P.AGENCY_MANAGE_STAFF,
                _P.USER_READ, _P.USER_WRITE, _P.USER_UPDATE, _P.USER_DELETE,
                _P.USER_MANAGE_ROLES, _P.USER_RESET_PASSWORD,
                _P.ROLE_READ, _P.ROLE_WRITE, _P.ROLE_UPDATE, _P.ROLE_DELETE,
                _P.ROLE_ASSIGN_PERMISSIONS,
                _P.REPORT_READ, _P.REPORT_GENERATE, _P.REPORT_EXPORT, _P.REPORT_ADVANCED,
                _P.SETTINGS_READ, _P.SETTINGS_WRITE, _P.SETTINGS_MANAGE_NOTIFICATIONS,
            ),
        ),
        RoleTypeInfo(
            RoleType.ORGANIZATION_ADMIN,
            "Organization Administrator",
            "Organization administrator with extended rights",
            "#FF8C42",
            "settings",
            _codes(
                _P.ORGANIZATION_READ, _P.ORGANIZATION_MANAGE_SETTINGS,
                _P.AGENCY_READ, _P.AGENCY_WRITE, _P.AGENCY_UPDATE, _P.AGENCY_MANAGE_STAFF,
                _P.USER_READ, _P.USER_WRITE, _P.USER_UPDATE, _P.USER_MANAGE_ROLES,
                _P.ROLE_READ, _P.ROLE_WRITE, _P.ROLE_UPDATE,
                _P.REPORT_READ, _P.REPORT_GENERATE, _P.REPORT_EXPORT,
                _P.SETTINGS_READ, _P.SETTINGS_WRITE,
            ),
        ),
        RoleTypeInfo(
            RoleType.AGENCY_MANAGER,
            "Agency Manager",
            "Agency manager with full rights over the agency",
            "#4ECDC4",
            "building",
            _codes(
                _P.AGENCY_READ, _P.AGENCY_UPDATE,
                _P.VEHICLE_READ, _P.VEHICLE_WRITE, _P.VEHICLE_UPDATE, _P.VEHICLE_DELETE,
                _P.VEHICLE_MANAGE_IMAGES, _P.VEHICLE_CHANGE_STATUS,
                _P.DRIVER_READ, _P.DRIVER_WRITE, _P.DRIVER_UPDATE, _P.DRIVER_DELETE,
                _P.DRIVER_MANAGE_DOCUMENTS, _P.DRIVER_MANAGE_SCHEDULE,
                _P.RENTAL_READ, _P.RENTAL_WRITE, _P.RENTAL_UPDATE, _P.RENTAL_DELETE,
                _P.RENTAL_APPROVE, _P.RENTAL_CANCEL, _P.RENTAL_EXTEND,
                _P.USER_READ, _P.USER_WRITE, _P.USER_UPDATE,
                _P.REPORT_READ, _P.REPORT_GENERATE,
                _P.SETTINGS_READ,
            ),
        ),
        RoleTypeInfo(
            RoleType.AGENCY_SUPERVISOR,
            "Agency Supervisor",
            "Agency supervisor with oversight rights",
            "#45B7D1",
            "eye",
            _codes(
                _P.AGENCY_READ,
                _P.VEHICLE_READ, _P.VEHICLE_UPDATE, _P.VEHICLE_CHANGE_STATUS,
                _P.DRIVER_READ, _P.DRIVER_UPDATE, _P.DRIVER_MANAGE_SCHEDULE,
                _P.RENTAL_READ, _P.RENTAL_WRITE, _P.RENTAL_UPDATE, _P.RENTAL_APPROVE,
                _P.RENTAL_CANCEL,
                _P.USER_READ,
                _P.REPORT_READ, _P.REPORT_GENERATE,
            ),
        ),
        RoleTypeInfo(
            RoleType.RENTAL_AGENT,
            "Rental Agent",
            "Rental agent handling customer bookings",
            "#96CEB4",
            "clipboard-list",
            _codes(
                _P.VEHICLE_READ, _P.DRIVER_READ,
                _P.RENTAL_READ, _P.RENTAL_WRITE, _P.RENTAL_UPDATE,
                _P.USER_READ,
            ),
        ),
        RoleTypeInfo(
            RoleType.DRIVER_MANAGER,
            "Driver Manager",
            "Manager specialised in driver administration",
            "#FECA57",
            "users",
            _codes(
                _P.DRIVER_READ, _P.DRIVER_WRITE, _P.DRIVER_UPDATE, _P.DRIVER_DELETE,
                _P.DRIVER_MANAGE_DOCUMENTS, _P.DRIVER_MANAGE_SCHEDULE,
                _P.VEHICLE_READ,
                _P.RENTAL_READ, _P.RENTAL_UPDATE,
                _P.REPORT_READ, _P.REPORT_GENERATE,
            ),
        ),
        RoleTypeInfo(
            RoleType.VEHICLE_MANAGER,
            "Vehicle Manager",
            "Manager specialised in fleet vehicles",
            "#FF9FF3",
            "truck",
            _codes(
                _P.VEHICLE_READ, _P.VEHICLE_WRITE, _P.VEHICLE_UPDATE, _P.VEHICLE_DELETE,
                _P.VEHICLE_MANAGE_IMAGES, _P.VEHICLE_CHANGE_STATUS,
                _P.DRIVER_READ,
                _P.RENTAL_READ,
                _P.REPORT_READ, _P.REPORT_GENERATE,
            ),
        ),
        RoleTypeInfo(
            RoleType.CLIENT,
            "Client",
            "Standard customer with access to rental features",
            "#A8E6CF",
            "user",
            _codes(_P.VEHICLE_READ, _P.DRIVER_READ, _P.RENTAL_READ, _P.RENTAL_WRITE),
        ),
        RoleTypeInfo(
            RoleType.VIP_CLIENT,
            "VIP Client",
            "VIP customer with extended privileges",
            "#FFD93D",
            "star",
            _codes(
                _P.VEHICLE_READ, _P.DRIVER_READ, _P.RENTAL_READ, _P.RENTAL_WRITE,
                _P.RENTAL_EXTEND, _P.REPORT_READ,
            ),
        ),
        RoleTypeInfo(
            RoleType.RECEPTIONIST,
            "Receptionist",
            "Front desk handling first customer contact",
            "#88D8C0",
            "phone",
            _codes(
                _P.VEHICLE_READ, _P.DRIVER_READ,
                _P.RENTAL_READ, _P.RENTAL_WRITE, _P.RENTAL_UPDATE,
                _P.USER_READ, _P.USER_WRITE,
            ),
        ),
        RoleTypeInfo(
            RoleType.MECHANIC,
            "Mechanic",
            "Mechanic responsible for vehicle maintenance",
            "#FFA726",
            "wrench",
            _codes(_P.VEHICLE_READ, _P.VEHICLE_UPDATE, _P.VEHICLE_CHANGE_STATUS, _P.RENTAL_READ),
        ),
        RoleTypeInfo(
            RoleType.DRIVER,
            "Driver",
            "Driver with limited access to the information they need",
            "#81C784",
            "steering-wheel",
            _codes(_P.VEHICLE_READ, _P.DRIVER_READ, _P.RENTAL_READ),
        ),
        RoleTypeInfo(
            RoleType.ACCOUNTANT,
            "Accountant",
            "Accountant handling the financial side",
            "#9575CD",
            "calculator",
            _codes(
                _P.RENTAL_READ, _P.USER_READ, _P.VEHICLE_READ, _P.DRIVER_READ,
                _P.PAYMENT_READ, _P.PAYMENT_PROCESS, _P.PAYMENT_REFUND,
                _P.PAYMENT_VIEW_DETAILS,
                _P.REPORT_READ, _P.REPORT_GENERATE, _P.REPORT_EXPORT, _P.REPORT_ADVANCED,
            ),
        ),
        RoleTypeInfo(
            RoleType.PAYMENT_MANAGER,
            "Payment Manager",
            "Manager specialised in payments",
            "#7986CB",
            "credit-card",
            _codes(
                _P.RENTAL_READ, _P.USER_READ,
                _P.PAYMENT_READ, _P.PAYMENT_PROCESS, _P.PAYMENT_REFUND,
                _P.PAYMENT_VIEW_DETAILS,
                _P.REPORT_READ, _P.REPORT_GENERATE,
            ),
        ),
    )
}


def role_type_info(role_type: RoleType) -> RoleTypeInfo:
    """Return metadata for a role kind."""
    return _ROLE_TYPES[role_type]


def all_role_types() -> list[RoleTypeInfo]:
    return list(_ROLE_TYPES.values())


def default_permissions_for(role_type: RoleType) -> frozenset[str]:
    return _ROLE_TYPES[role_type].default_permissions


def validate_role_type_configuration() -> bool:
    """Check every configured default permission against the catalog.

    Logs each offending (role kind, code) pair at ERROR and returns False if
    any were found.
    """
    logger.info("Validating role permission configuration")
    valid = True
    for info in _ROLE_TYPES.values():
        for code in sorted(info.default_permissions):
            if code not in PERMISSION_CATALOG:
                logger.error(
                    "Invalid permission %r configured for role type %s",
                    code,
                    info.role_type.value,
                )
                valid = False
        logger.debug(
            "Role type %s has %d permissions configured",
            info.role_type.value,
            len(info.default_permissions),
        )
    if not valid:
        logger.error("Role permission configuration contains errors")
    return valid


@dataclass(frozen=True)
class RoleTemplate:
    """Fixed role definition instantiated once per tenant at provisioning."""

    name: str
    description: str
    role_type: RoleType
    priority: int
    permissions: frozenset[str]
    is_default: bool = True

    @property
    def color(self) -> str:
        return role_type_info(self.role_type).color

    @property
    def icon(self) -> str:
        return role_type_info(self.role_type).icon


DEFAULT_ROLE_TEMPLATES: tuple[RoleTemplate, ...] = (
    RoleTemplate(
        name="Owner",
        description="Organization owner with all rights",
        role_type=RoleType.ORGANIZATION_OWNER,
        priority=100,
        permissions=_codes(
            _P.ORGANIZATION_READ, _P.ORGANIZATION_UPDATE, _P.ORGANIZATION_MANAGE_SETTINGS,
            _P.AGENCY_READ, _P.AGENCY_WRITE, _P.AGENCY_UPDATE, _P.AGENCY_DELETE,
            _P.ROLE_READ, _P.ROLE_WRITE, _P.ROLE_UPDATE, _P.ROLE_DELETE,
            _P.USER_READ, _P.USER_WRITE, _P.USER_UPDATE, _P.USER_MANAGE_ROLES,
        ),
    ),
    RoleTemplate(
        name="Agency Manager",
        description="Manager of an agency",
        role_type=RoleType.AGENCY_MANAGER,
        priority=80,
        permissions=_codes(
            _P.VEHICLE_READ, _P.VEHICLE_WRITE, _P.VEHICLE_UPDATE,
            _P.DRIVER_READ, _P.DRIVER_WRITE, _P.DRIVER_UPDATE,
            _P.RENTAL_READ, _P.RENTAL_WRITE, _P.RENTAL_UPDATE, _P.RENTAL_APPROVE,
            _P.USER_READ,
            _P.REPORT_READ, _P.REPORT_GENERATE,
        ),
    ),
    RoleTemplate(
        name="Rental Agent",
        description="Agent in charge of rentals",
        role_type=RoleType.RENTAL_AGENT,
        priority=50,
        permissions=_codes(
            _P.VEHICLE_READ, _P.DRIVER_READ,
            _P.RENTAL_READ, _P.RENTAL_WRITE, _P.RENTAL_UPDATE,
            _P.USER_READ,
        ),
    ),
    RoleTemplate(
        name="Client",
        description="Customer of the organization",
        role_type=RoleType.CLIENT,
        priority=10,
        permissions=_codes(_P.VEHICLE_READ, _P.RENTAL_READ),
    ),
)


def access_level_for(permissions: frozenset[str] | set[str]) -> AccessLevel:
    """Classify a permission set for display. Not a security boundary."""
    if Permission.SYSTEM_ADMIN.value in permissions:
        return AccessLevel.ADMIN
    if Permission.ORGANIZATION_UPDATE.value in permissions:
        return AccessLevel.MANAGER
    if len(permissions) > ACCESS_LEVEL_USER_THRESHOLD:
        return AccessLevel.USER
    return AccessLevel.LIMITED
