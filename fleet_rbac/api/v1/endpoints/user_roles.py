"""User-roles API: a user's assignments (including /me/roles) and revocation by role."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from fleet_rbac.api.v1.dependencies import (
    get_assignment_query_service,
    get_assignment_service,
    get_current_identity,
    get_permission_engine,
    get_tenant_id,
    require_permission,
)
from fleet_rbac.application.services.assignment_service import AssignmentService
from fleet_rbac.application.services.authorization_service import (
    PermissionEvaluationEngine,
)
from fleet_rbac.core.limiter import limit_writes
from fleet_rbac.domain.exceptions import AuthorizationException
from fleet_rbac.domain.permissions import Permission
from fleet_rbac.domain.value_objects.identity import IdentityContext
from fleet_rbac.schemas.assignment import UserAssignmentResponse

router = APIRouter()


@router.get("/me/roles", response_model=list[UserAssignmentResponse])
async def list_my_roles(
    identity: Annotated[IdentityContext, Depends(get_current_identity)],
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[AssignmentService, Depends(get_assignment_query_service)],
    active_only: bool = True,
):
    """Assignments of the authenticated caller in the organization."""
    views = await service.list_user_assignments(
        identity.user_id, tenant_id, active_only=active_only
    )
    return [UserAssignmentResponse.model_validate(v) for v in views]


@router.get("/{user_id}/roles", response_model=list[UserAssignmentResponse])
async def list_user_roles(
    user_id: str,
    identity: Annotated[IdentityContext, Depends(get_current_identity)],
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    engine: Annotated[PermissionEvaluationEngine, Depends(get_permission_engine)],
    service: Annotated[AssignmentService, Depends(get_assignment_query_service)],
    active_only: bool = False,
):
    """Assignments of a user in the organization. Own data, or user_read required."""
    if not engine.has_tenant_access(identity, tenant_id) or not (
        await engine.can_access_user_data(identity, user_id, tenant_id)
    ):
        raise AuthorizationException(permission=Permission.USER_READ.value)
    views = await service.list_user_assignments(user_id, tenant_id, active_only=active_only)
    return [UserAssignmentResponse.model_validate(v) for v in views]


@router.delete("/{user_id}/roles/{role_id}", status_code=204)
@limit_writes
async def revoke_user_role(
    request: Request,
    user_id: str,
    role_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[AssignmentService, Depends(get_assignment_service)],
    identity: Annotated[
        IdentityContext, Depends(require_permission(Permission.USER_MANAGE_ROLES))
    ],
):
    """Revoke the user's active assignment of the role."""
    await service.revoke(user_id, role_id, tenant_id=tenant_id, revoked_by=identity.user_id)
