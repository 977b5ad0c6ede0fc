"""Role assignments API: assign, bulk assign, revoke, extend and the expiry sweep."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from fleet_rbac.api.v1.dependencies import (
    get_assignment_service,
    get_tenant_id,
    require_permission,
)
from fleet_rbac.application.services.assignment_service import AssignmentService
from fleet_rbac.core.limiter import limit_bulk, limit_writes
from fleet_rbac.domain.permissions import Permission
from fleet_rbac.domain.value_objects.identity import IdentityContext
from fleet_rbac.schemas.assignment import (
    AssignmentCreate,
    AssignmentExtend,
    AssignmentResponse,
    BulkAssignmentCreate,
    BulkAssignmentResponse,
    CleanupResponse,
)

router = APIRouter()


@router.post("", response_model=AssignmentResponse, status_code=201)
@limit_writes
async def assign_role(
    request: Request,
    body: AssignmentCreate,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[AssignmentService, Depends(get_assignment_service)],
    identity: Annotated[
        IdentityContext, Depends(require_permission(Permission.USER_MANAGE_ROLES))
    ],
):
    """Assign a role of the organization to a user, optionally scoped to an agency."""
    assignment = await service.assign(
        body.user_id,
        body.role_id,
        tenant_id,
        agency_id=body.agency_id,
        expires_at=body.expires_at,
        reason=body.reason,
        assigned_by=identity.user_id,
    )
    return AssignmentResponse.from_entity(assignment)


@router.post("/bulk", response_model=BulkAssignmentResponse, status_code=201)
@limit_bulk
async def bulk_assign_role(
    request: Request,
    body: BulkAssignmentCreate,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[AssignmentService, Depends(get_assignment_service)],
    identity: Annotated[
        IdentityContext, Depends(require_permission(Permission.USER_MANAGE_ROLES))
    ],
):
    """Assign one role to many users; users that cannot receive it are skipped."""
    created = await service.bulk_assign(
        body.user_ids,
        body.role_id,
        tenant_id,
        agency_id=body.agency_id,
        expires_at=body.expires_at,
        reason=body.reason,
        assigned_by=identity.user_id,
    )
    assigned = {a.user_id for a in created}
    return BulkAssignmentResponse(
        created=[AssignmentResponse.from_entity(a) for a in created],
        skipped_user_ids=[u for u in dict.fromkeys(body.user_ids) if u not in assigned],
    )


@router.post("/cleanup-expired", response_model=CleanupResponse)
@limit_writes
async def cleanup_expired_assignments(
    request: Request,
    service: Annotated[AssignmentService, Depends(get_assignment_service)],
    _: Annotated[IdentityContext, Depends(require_permission(Permission.SYSTEM_ADMIN))],
):
    """Deactivate every assignment whose expiry has passed (all organizations)."""
    return CleanupResponse(deactivated=await service.sweep_expired())


@router.post("/{assignment_id}/revoke", response_model=AssignmentResponse)
@limit_writes
async def revoke_assignment(
    request: Request,
    assignment_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[AssignmentService, Depends(get_assignment_service)],
    identity: Annotated[
        IdentityContext, Depends(require_permission(Permission.USER_MANAGE_ROLES))
    ],
):
    """Revoke an assignment. Revoking an already inactive assignment is a no-op."""
    assignment = await service.revoke_assignment(
        assignment_id, tenant_id=tenant_id, revoked_by=identity.user_id
    )
    return AssignmentResponse.from_entity(assignment)


@router.post("/{assignment_id}/extend", response_model=AssignmentResponse)
@limit_writes
async def extend_assignment(
    request: Request,
    assignment_id: str,
    body: AssignmentExtend,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[AssignmentService, Depends(get_assignment_service)],
    _: Annotated[IdentityContext, Depends(require_permission(Permission.USER_MANAGE_ROLES))],
):
    """Push an active assignment's expiry forward by a number of days."""
    assignment = await service.extend(
        assignment_id, body.additional_days, tenant_id=tenant_id
    )
    return AssignmentResponse.from_entity(assignment)
