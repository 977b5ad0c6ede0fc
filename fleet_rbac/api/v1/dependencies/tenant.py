"""Tenant and agency scope dependencies (composition root)."""

from __future__ import annotations

import re
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from fleet_rbac.core.config import get_settings
from fleet_rbac.domain.value_objects.identity import IdentityContext

from .auth import get_current_identity

SCOPE_ID_MAX_LENGTH = 64
_SCOPE_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{1," + str(SCOPE_ID_MAX_LENGTH) + r"}$")


def is_valid_scope_id(value: str) -> bool:
    """Return True for cuid/uuid-style ids: alphanumeric, hyphen, underscore."""
    return bool(value) and bool(_SCOPE_ID_RE.fullmatch(value))


def _header_value(request: Request, name: str) -> str | None:
    value = request.headers.get(name)
    if value is None:
        return None
    if not is_valid_scope_id(value):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid {name} format (use alphanumeric, hyphen, underscore; max 64 characters)",
        )
    return value


async def get_tenant_id(
    request: Request,
    identity: Annotated[IdentityContext, Depends(get_current_identity)],
) -> str:
    """Tenant the request acts in: the tenant header, else the caller's own tenant."""
    name = get_settings().tenant_header_name
    tenant_id = _header_value(request, name) or identity.tenant_id
    if not tenant_id:
        raise HTTPException(status_code=400, detail=f"Missing required header: {name}")
    return tenant_id


async def get_agency_id(request: Request) -> str | None:
    """Optional agency the request is narrowed to (agency header)."""
    return _header_value(request, get_settings().agency_header_name)
