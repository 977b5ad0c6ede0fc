"""Role API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from fleet_rbac.application.dtos.role import RoleStats
from fleet_rbac.domain.entities.role import (
    ROLE_DESCRIPTION_MAX_LENGTH,
    ROLE_NAME_MAX_LENGTH,
    RoleEntity,
)
from fleet_rbac.domain.enums import RoleType
from fleet_rbac.domain.role_types import RoleTemplate


class RoleCreateRequest(BaseModel):
    """Request body for creating a role. Permission codes are checked against the catalog."""

    name: str = Field(..., min_length=1, max_length=ROLE_NAME_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=ROLE_DESCRIPTION_MAX_LENGTH)
    role_type: RoleType | None = None
    permissions: list[str] = Field(default_factory=list, max_length=200)
    priority: int = 0
    color: str | None = Field(default=None, max_length=20)
    icon: str | None = Field(default=None, max_length=50)
    is_default: bool = False


class RoleUpdateRequest(BaseModel):
    """Request body for updating a role (partial). permissions replaces the whole set."""

    name: str | None = Field(default=None, min_length=1, max_length=ROLE_NAME_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=ROLE_DESCRIPTION_MAX_LENGTH)
    priority: int | None = None
    color: str | None = Field(default=None, max_length=20)
    icon: str | None = Field(default=None, max_length=50)
    is_active: bool | None = None
    is_default_role: bool | None = None
    permissions: list[str] | None = Field(default=None, max_length=200)


class RolePermissionsUpdate(BaseModel):
    """Request body for replacing a role's permission set."""

    permissions: list[str] = Field(default_factory=list, max_length=200)


class RoleCloneRequest(BaseModel):
    """Request body for cloning a role, optionally into another organization."""

    name: str = Field(..., min_length=1, max_length=ROLE_NAME_MAX_LENGTH)
    tenant_id: str | None = Field(default=None, max_length=64)


class RoleResponse(BaseModel):
    """Role list/detail response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    name: str
    description: str | None
    role_type: RoleType | None
    permissions: list[str]
    is_system_role: bool
    is_default_role: bool
    is_active: bool
    priority: int
    color: str | None
    icon: str | None
    created_at: datetime | None
    updated_at: datetime | None
    created_by: str | None
    updated_by: str | None

    @classmethod
    def from_entity(cls, role: RoleEntity) -> "RoleResponse":
        return cls(
            id=role.id,
            tenant_id=role.tenant_id,
            name=role.name,
            description=role.description,
            role_type=role.role_type,
            permissions=sorted(role.permissions),
            is_system_role=role.is_system_role,
            is_default_role=role.is_default_role,
            is_active=role.is_active,
            priority=role.priority,
            color=role.color,
            icon=role.icon,
            created_at=role.created_at,
            updated_at=role.updated_at,
            created_by=role.created_by,
            updated_by=role.updated_by,
        )


class RoleTemplateResponse(BaseModel):
    """Default role template offered at tenant provisioning."""

    name: str
    description: str
    role_type: RoleType
    priority: int
    color: str
    icon: str
    permissions: list[str]
    is_default: bool

    @classmethod
    def from_template(cls, template: RoleTemplate) -> "RoleTemplateResponse":
        return cls(
            name=template.name,
            description=template.description,
            role_type=template.role_type,
            priority=template.priority,
            color=template.color,
            icon=template.icon,
            permissions=sorted(template.permissions),
            is_default=template.is_default,
        )


class RoleStatsResponse(BaseModel):
    """Role and assignment counters for one organization."""

    model_config = ConfigDict(from_attributes=True)

    total_roles: int
    active_roles: int
    inactive_roles: int
    system_roles: int
    custom_roles: int
    default_roles: int
    total_assignments: int
    active_assignments: int
    expired_assignments: int
    expiring_soon_assignments: int
    roles_created_this_period: int
    average_permissions_per_role: float

    @classmethod
    def from_stats(cls, stats: RoleStats) -> "RoleStatsResponse":
        return cls.model_validate(stats)
