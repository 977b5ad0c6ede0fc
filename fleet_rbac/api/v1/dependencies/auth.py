"""Caller identity from the bearer token (composition root)."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from fleet_rbac.domain.exceptions import AuthenticationException
from fleet_rbac.domain.value_objects.identity import IdentityContext
from fleet_rbac.infrastructure.security.jwt import identity_from_token

_http_bearer = HTTPBearer(auto_error=False)


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_http_bearer)],
) -> IdentityContext:
    """IdentityContext from the bearer JWT; 401 when missing or invalid."""
    if credentials is None:
        raise AuthenticationException("Not authenticated")
    return identity_from_token(credentials.credentials)
