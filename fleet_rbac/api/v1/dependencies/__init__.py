"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for DB sessions, the caller's identity and scope,
and the application services. Routes depend only on these, never on
infrastructure directly.
"""

from .auth import get_current_identity
from .guards import require_permission
from .rbac import (
    get_assignment_query_service,
    get_assignment_service,
    get_permission_engine,
    get_role_query_service,
    get_role_service,
)
from .tenant import get_agency_id, get_tenant_id

__all__ = [
    "get_agency_id",
    "get_assignment_query_service",
    "get_assignment_service",
    "get_current_identity",
    "get_permission_engine",
    "get_role_query_service",
    "get_role_service",
    "get_tenant_id",
    "require_permission",
]
