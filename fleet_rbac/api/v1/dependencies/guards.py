"""Permission guard dependencies."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from fleet_rbac.application.services.authorization_service import (
    PermissionEvaluationEngine,
)
from fleet_rbac.domain.permissions import Permission
from fleet_rbac.domain.value_objects.identity import IdentityContext

from .auth import get_current_identity
from .rbac import get_permission_engine
from .tenant import get_agency_id, get_tenant_id


def require_permission(permission: Permission):
    """Dependency factory: caller must hold permission in the request's tenant (and agency)."""

    async def _require(
        identity: Annotated[IdentityContext, Depends(get_current_identity)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        agency_id: Annotated[str | None, Depends(get_agency_id)],
        engine: Annotated[PermissionEvaluationEngine, Depends(get_permission_engine)],
    ) -> IdentityContext:
        await engine.require_permission_in_context(
            identity, permission.value, tenant_id, agency_id
        )
        return identity

    return _require
