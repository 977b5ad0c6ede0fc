"""Roles API: list, get, create, clone, update, toggle, delete, provisioning and stats (tenant-scoped)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from fleet_rbac.api.v1.dependencies import (
    get_role_query_service,
    get_role_service,
    get_tenant_id,
    require_permission,
)
from fleet_rbac.application.dtos.role import RoleUpdate
from fleet_rbac.application.services.role_service import RoleService
from fleet_rbac.core.limiter import limit_writes
from fleet_rbac.domain.entities.role import RoleEntity
from fleet_rbac.domain.exceptions import ResourceNotFoundException
from fleet_rbac.domain.permissions import Permission
from fleet_rbac.domain.role_types import SYSTEM_TENANT_ID
from fleet_rbac.domain.value_objects.identity import IdentityContext
from fleet_rbac.schemas.role import (
    RoleCloneRequest,
    RoleCreateRequest,
    RolePermissionsUpdate,
    RoleResponse,
    RoleStatsResponse,
    RoleTemplateResponse,
    RoleUpdateRequest,
)

router = APIRouter()


async def _get_tenant_role(
    service: RoleService, role_id: str, tenant_id: str, *, allow_system: bool = False
) -> RoleEntity:
    """Role by id, 404 unless it belongs to tenant (or is a system role when allowed)."""
    role = await service.get_role(role_id)
    if role.tenant_id == tenant_id or (allow_system and role.tenant_id == SYSTEM_TENANT_ID):
        return role
    raise ResourceNotFoundException("role", role_id)


@router.get("", response_model=list[RoleResponse])
async def list_roles(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[RoleService, Depends(get_role_query_service)],
    _: Annotated[IdentityContext, Depends(require_permission(Permission.ROLE_READ))],
    include_inactive: bool = True,
):
    """List the organization's roles, highest priority first."""
    roles = await service.list_roles(tenant_id, include_inactive=include_inactive)
    return [RoleResponse.from_entity(r) for r in roles]


@router.get("/templates", response_model=list[RoleTemplateResponse])
async def list_role_templates(
    _: Annotated[IdentityContext, Depends(require_permission(Permission.ROLE_READ))],
):
    """Default role templates instantiated for new organizations."""
    return [RoleTemplateResponse.from_template(t) for t in RoleService.role_templates()]


@router.get("/stats", response_model=RoleStatsResponse)
async def get_role_stats(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[RoleService, Depends(get_role_query_service)],
    _: Annotated[IdentityContext, Depends(require_permission(Permission.ROLE_READ))],
):
    """Role and assignment counters for the organization."""
    return RoleStatsResponse.from_stats(await service.get_role_stats(tenant_id))


@router.post("", response_model=RoleResponse, status_code=201)
@limit_writes
async def create_role(
    request: Request,
    body: RoleCreateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[RoleService, Depends(get_role_service)],
    identity: Annotated[IdentityContext, Depends(require_permission(Permission.ROLE_WRITE))],
):
    """Create a custom role in the organization."""
    role = await service.create_role(
        tenant_id,
        body.name,
        description=body.description,
        role_type=body.role_type,
        permissions=body.permissions,
        priority=body.priority,
        color=body.color,
        icon=body.icon,
        is_default=body.is_default,
        created_by=identity.user_id,
    )
    return RoleResponse.from_entity(role)


@router.post("/provision-defaults", response_model=list[RoleResponse], status_code=201)
@limit_writes
async def provision_default_roles(
    request: Request,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[RoleService, Depends(get_role_service)],
    identity: Annotated[IdentityContext, Depends(require_permission(Permission.ROLE_WRITE))],
):
    """Create the default roles missing from the organization. Returns only new roles."""
    created = await service.provision_default_roles(tenant_id, created_by=identity.user_id)
    return [RoleResponse.from_entity(r) for r in created]


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[RoleService, Depends(get_role_query_service)],
    _: Annotated[IdentityContext, Depends(require_permission(Permission.ROLE_READ))],
):
    """Get a role of the organization, or a system role."""
    role = await _get_tenant_role(service, role_id, tenant_id, allow_system=True)
    return RoleResponse.from_entity(role)


@router.put("/{role_id}", response_model=RoleResponse)
@limit_writes
async def update_role(
    request: Request,
    role_id: str,
    body: RoleUpdateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[RoleService, Depends(get_role_service)],
    identity: Annotated[IdentityContext, Depends(require_permission(Permission.ROLE_UPDATE))],
):
    """Partially update a role. A permissions list replaces the whole set."""
    await _get_tenant_role(service, role_id, tenant_id, allow_system=True)
    changes = RoleUpdate(
        name=body.name,
        description=body.description,
        priority=body.priority,
        color=body.color,
        icon=body.icon,
        is_active=body.is_active,
        is_default_role=body.is_default_role,
        permissions=frozenset(body.permissions) if body.permissions is not None else None,
    )
    role = await service.update_role(role_id, changes, updated_by=identity.user_id)
    return RoleResponse.from_entity(role)


@router.put("/{role_id}/permissions", response_model=RoleResponse)
@limit_writes
async def replace_role_permissions(
    request: Request,
    role_id: str,
    body: RolePermissionsUpdate,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[RoleService, Depends(get_role_service)],
    identity: Annotated[
        IdentityContext, Depends(require_permission(Permission.ROLE_ASSIGN_PERMISSIONS))
    ],
):
    """Replace the role's permission set."""
    await _get_tenant_role(service, role_id, tenant_id, allow_system=True)
    role = await service.update_role_permissions(
        role_id, body.permissions, updated_by=identity.user_id
    )
    return RoleResponse.from_entity(role)


@router.post("/{role_id}/toggle-status", response_model=RoleResponse)
@limit_writes
async def toggle_role_status(
    request: Request,
    role_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[RoleService, Depends(get_role_service)],
    identity: Annotated[IdentityContext, Depends(require_permission(Permission.ROLE_UPDATE))],
):
    """Activate an inactive role or deactivate an active one."""
    await _get_tenant_role(service, role_id, tenant_id, allow_system=True)
    role = await service.toggle_role_status(role_id, updated_by=identity.user_id)
    return RoleResponse.from_entity(role)


@router.post("/{role_id}/clone", response_model=RoleResponse, status_code=201)
@limit_writes
async def clone_role(
    request: Request,
    role_id: str,
    body: RoleCloneRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[RoleService, Depends(get_role_service)],
    identity: Annotated[IdentityContext, Depends(require_permission(Permission.ROLE_WRITE))],
):
    """Copy a role (of the organization or the system) under a new name.

    The copy lands in the request's organization unless a target tenant is
    given, which requires access to that tenant too.
    """
    await _get_tenant_role(service, role_id, tenant_id, allow_system=True)
    target = body.tenant_id or tenant_id
    if target != tenant_id and not identity.is_super_admin:
        raise ResourceNotFoundException("tenant", target)
    role = await service.clone_role(role_id, body.name, target, created_by=identity.user_id)
    return RoleResponse.from_entity(role)


@router.delete("/{role_id}", status_code=204)
@limit_writes
async def delete_role(
    request: Request,
    role_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[RoleService, Depends(get_role_service)],
    _: Annotated[IdentityContext, Depends(require_permission(Permission.ROLE_DELETE))],
):
    """Delete a custom role with no active assignments."""
    await _get_tenant_role(service, role_id, tenant_id, allow_system=True)
    await service.delete_role(role_id)
