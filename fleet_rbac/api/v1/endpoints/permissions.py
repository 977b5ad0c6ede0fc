"""Permissions API: catalog, grouped view, effective permissions and access checks."""

from typing import Annotated

from fastapi import APIRouter, Depends

from fleet_rbac.api.v1.dependencies import (
    get_agency_id,
    get_current_identity,
    get_permission_engine,
    get_role_query_service,
    get_tenant_id,
)
from fleet_rbac.application.services.authorization_service import (
    PermissionEvaluationEngine,
)
from fleet_rbac.application.services.role_service import RoleService
from fleet_rbac.domain.exceptions import AuthorizationException, ResourceNotFoundException
from fleet_rbac.domain.permissions import (
    RESOURCE_DESCRIPTIONS,
    RESOURCE_LABELS,
    Permission,
    all_permissions,
    all_resources,
    group_permissions,
    permissions_for_resource,
)
from fleet_rbac.domain.role_types import SYSTEM_TENANT_ID
from fleet_rbac.domain.value_objects.identity import IdentityContext
from fleet_rbac.schemas.permission import (
    ExpressionCheckRequest,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionGroupResponse,
    PermissionResponse,
    ResourceResponse,
    UserPermissionsResponse,
)

router = APIRouter()


@router.get("", response_model=list[PermissionResponse])
async def list_permissions(
    _: Annotated[IdentityContext, Depends(get_current_identity)],
    resource: str | None = None,
):
    """The permission catalog, optionally narrowed to one resource."""
    infos = permissions_for_resource(resource) if resource else all_permissions()
    return [PermissionResponse.from_info(p) for p in sorted(infos, key=lambda p: p.code)]


@router.get("/resources", response_model=list[ResourceResponse])
async def list_resources(
    _: Annotated[IdentityContext, Depends(get_current_identity)],
):
    """Permission resources with labels and catalog sizes."""
    return [
        ResourceResponse(
            resource=r,
            label=RESOURCE_LABELS[r],
            description=RESOURCE_DESCRIPTIONS[r],
            permission_count=len(permissions_for_resource(r)),
        )
        for r in all_resources()
    ]


@router.get("/grouped", response_model=list[PermissionGroupResponse])
async def list_grouped_permissions(
    identity: Annotated[IdentityContext, Depends(get_current_identity)],
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    engine: Annotated[PermissionEvaluationEngine, Depends(get_permission_engine)],
    roles: Annotated[RoleService, Depends(get_role_query_service)],
    role_id: str | None = None,
):
    """Catalog grouped by resource, flagged with the permissions a role holds."""
    assigned: frozenset[str] = frozenset()
    if role_id is not None:
        await engine.require_permission_in_context(
            identity, Permission.ROLE_READ.value, tenant_id
        )
        role = await roles.get_role(role_id)
        if role.tenant_id not in (tenant_id, SYSTEM_TENANT_ID):
            raise ResourceNotFoundException("role", role_id)
        assigned = role.permissions
    return [PermissionGroupResponse.from_group(g) for g in group_permissions(assigned)]


@router.get("/me", response_model=UserPermissionsResponse)
async def get_my_permissions(
    identity: Annotated[IdentityContext, Depends(get_current_identity)],
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    engine: Annotated[PermissionEvaluationEngine, Depends(get_permission_engine)],
):
    """Effective permissions of the caller in the organization."""
    if not engine.has_tenant_access(identity, tenant_id):
        raise AuthorizationException(message="No access to this organization")
    result = await engine.get_user_permissions(identity.user_id, tenant_id)
    return UserPermissionsResponse.from_result(result)


@router.get("/users/{user_id}", response_model=UserPermissionsResponse)
async def get_user_permissions(
    user_id: str,
    identity: Annotated[IdentityContext, Depends(get_current_identity)],
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    engine: Annotated[PermissionEvaluationEngine, Depends(get_permission_engine)],
):
    """Effective permissions of a user. Own data, or user_read required."""
    if not engine.has_tenant_access(identity, tenant_id) or not (
        await engine.can_access_user_data(identity, user_id, tenant_id)
    ):
        raise AuthorizationException(permission=Permission.USER_READ.value)
    result = await engine.get_user_permissions(user_id, tenant_id)
    return UserPermissionsResponse.from_result(result)


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permissions(
    body: PermissionCheckRequest,
    identity: Annotated[IdentityContext, Depends(get_current_identity)],
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    agency_id: Annotated[str | None, Depends(get_agency_id)],
    engine: Annotated[PermissionEvaluationEngine, Depends(get_permission_engine)],
):
    """Whether the caller holds any/all of the codes in the organization (and agency)."""
    agency = body.agency_id or agency_id
    if not engine.has_tenant_access(identity, tenant_id):
        return PermissionCheckResponse(allowed=False)
    if agency is not None and not await engine.has_agency_access(identity, agency, tenant_id):
        return PermissionCheckResponse(allowed=False)
    if body.mode == "any":
        allowed = await engine.has_any_permission(identity, body.permissions, tenant_id)
    else:
        allowed = await engine.has_all_permissions(identity, body.permissions, tenant_id)
    return PermissionCheckResponse(allowed=allowed)


@router.post("/evaluate", response_model=PermissionCheckResponse)
async def evaluate_expression(
    body: ExpressionCheckRequest,
    identity: Annotated[IdentityContext, Depends(get_current_identity)],
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    engine: Annotated[PermissionEvaluationEngine, Depends(get_permission_engine)],
):
    """Evaluate an all-AND or all-OR permission expression for the caller."""
    if not engine.has_tenant_access(identity, tenant_id):
        return PermissionCheckResponse(allowed=False)
    allowed = await engine.evaluate_expression(identity, body.expression, tenant_id)
    return PermissionCheckResponse(allowed=allowed)
