"""Domain entities.

Pure domain models; no ORM or persistence concerns.
"""

from fleet_rbac.domain.entities.assignment import AssignmentEntity
from fleet_rbac.domain.entities.role import RoleEntity

__all__ = [
    "AssignmentEntity",
    "RoleEntity",
]
