"""SQLAlchemy implementations of the application repository ports."""

from fleet_rbac.infrastructure.persistence.repositories.assignment_repo import (
    AssignmentRepository,
)
from fleet_rbac.infrastructure.persistence.repositories.role_repo import RoleRepository
from fleet_rbac.infrastructure.persistence.repositories.user_repo import UserRepository

__all__ = ["AssignmentRepository", "RoleRepository", "UserRepository"]
