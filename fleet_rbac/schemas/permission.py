"""Permission catalog and evaluation API schemas."""

from typing import Literal

from pydantic import BaseModel, Field

from fleet_rbac.application.dtos.permission import UserPermissionsResult
from fleet_rbac.domain.enums import AccessLevel, PermissionResource
from fleet_rbac.domain.permissions import PermissionGroup, PermissionInfo
from fleet_rbac.schemas.role import RoleResponse


class PermissionResponse(BaseModel):
    """One catalog entry."""

    code: str
    description: str
    resource: PermissionResource

    @classmethod
    def from_info(cls, info: PermissionInfo) -> "PermissionResponse":
        return cls(code=info.code, description=info.description, resource=info.resource)


class GroupedPermissionEntry(PermissionResponse):
    """Catalog entry flagged with whether it is assigned."""

    assigned: bool


class PermissionGroupResponse(BaseModel):
    """Catalog entries of one resource."""

    resource: PermissionResource
    label: str
    description: str
    assigned_count: int
    permissions: list[GroupedPermissionEntry]

    @classmethod
    def from_group(cls, group: PermissionGroup) -> "PermissionGroupResponse":
        return cls(
            resource=group.resource,
            label=group.label,
            description=group.description,
            assigned_count=group.assigned_count,
            permissions=[
                GroupedPermissionEntry(
                    code=info.code,
                    description=info.description,
                    resource=info.resource,
                    assigned=assigned,
                )
                for info, assigned in group.permissions
            ],
        )


class ResourceResponse(BaseModel):
    """A permission resource with its label."""

    resource: PermissionResource
    label: str
    description: str
    permission_count: int


class UserPermissionsResponse(BaseModel):
    """Effective permissions of a user in one organization."""

    user_id: str
    tenant_id: str
    permissions: list[str]
    roles: list[RoleResponse]
    groups: list[PermissionGroupResponse]
    has_full_access: bool
    access_level: AccessLevel

    @classmethod
    def from_result(cls, result: UserPermissionsResult) -> "UserPermissionsResponse":
        return cls(
            user_id=result.user_id,
            tenant_id=result.tenant_id,
            permissions=sorted(result.effective_permissions),
            roles=[RoleResponse.from_entity(r) for r in result.roles],
            groups=[PermissionGroupResponse.from_group(g) for g in result.groups],
            has_full_access=result.has_full_access,
            access_level=result.access_level,
        )


class PermissionCheckRequest(BaseModel):
    """Request body for checking one or more permission codes."""

    permissions: list[str] = Field(..., min_length=1, max_length=100)
    mode: Literal["any", "all"] = "all"
    agency_id: str | None = Field(default=None, max_length=64)


class ExpressionCheckRequest(BaseModel):
    """Request body for evaluating a permission expression."""

    expression: str = Field(..., min_length=1, max_length=2000)


class PermissionCheckResponse(BaseModel):
    """Outcome of a permission check."""

    allowed: bool
