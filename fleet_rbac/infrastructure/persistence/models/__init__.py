"""ORM models. Importing this package registers every table on Base.metadata."""

from fleet_rbac.infrastructure.persistence.models.assignment import RoleAssignment
from fleet_rbac.infrastructure.persistence.models.role import Role
from fleet_rbac.infrastructure.persistence.models.user import AppUser

__all__ = ["AppUser", "Role", "RoleAssignment"]
