"""Role domain entity.

A named, tenant-scoped bundle of permission codes. The permission set is an
immutable value: changes produce a new entity via with_permissions().
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime

from fleet_rbac.domain.enums import RoleType
from fleet_rbac.domain.exceptions import ValidationException
from fleet_rbac.domain.permissions import validate_permission_codes
from fleet_rbac.domain.role_types import SYSTEM_TENANT_ID

ROLE_NAME_MIN_LENGTH = 2
ROLE_NAME_MAX_LENGTH = 100
ROLE_DESCRIPTION_MAX_LENGTH = 255


def normalize_role_name(name: str | None) -> str:
    """Trim and length-check a role name. Raises ValidationException."""
    value = (name or "").strip()
    if not value:
        raise ValidationException("Role name is required", field="name")
    if not ROLE_NAME_MIN_LENGTH <= len(value) <= ROLE_NAME_MAX_LENGTH:
        raise ValidationException(
            f"Role name must be between {ROLE_NAME_MIN_LENGTH} and "
            f"{ROLE_NAME_MAX_LENGTH} characters",
            field="name",
        )
    return value


def validate_description(description: str | None) -> str | None:
    if description is not None and len(description) > ROLE_DESCRIPTION_MAX_LENGTH:
        raise ValidationException(
            f"Description cannot exceed {ROLE_DESCRIPTION_MAX_LENGTH} characters",
            field="description",
        )
    return description


def clamp_priority(priority: int | None) -> int:
    """Priority is a display/ranking hint; negatives are clamped to 0."""
    return max(0, priority or 0)


@dataclass(frozen=True)
class RoleEntity:
    """Domain entity for a role (SRP: role rules separate from persistence).

    Validation runs on construction: name length, description length, and
    every permission code must be a catalog member.
    """

    id: str
    tenant_id: str
    name: str
    permissions: frozenset[str] = field(default_factory=frozenset)
    description: str | None = None
    role_type: RoleType | None = None
    is_system_role: bool = False
    is_default_role: bool = False
    is_active: bool = True
    priority: int = 0
    color: str | None = None
    icon: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str | None = None
    updated_by: str | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Validate role business rules. Raises ValidationException if invalid."""
        if not self.id:
            raise ValidationException("Role ID is required", field="id")
        if not self.tenant_id:
            raise ValidationException("Organization ID is required", field="tenant_id")
        normalize_role_name(self.name)
        validate_description(self.description)
        if self.priority < 0:
            raise ValidationException("Priority cannot be negative", field="priority")
        validate_permission_codes(self.permissions)

    def can_be_modified(self) -> bool:
        """System roles are immutable."""
        return not self.is_system_role

    def can_be_deleted(self) -> bool:
        """Neither system roles nor roles still marked default may be deleted."""
        return not self.is_system_role and not self.is_default_role

    @property
    def is_global(self) -> bool:
        return self.tenant_id == SYSTEM_TENANT_ID

    @property
    def is_custom(self) -> bool:
        return self.role_type is None

    def has_permission(self, code: str) -> bool:
        return code in self.permissions

    def with_permissions(self, codes: frozenset[str] | set[str]) -> RoleEntity:
        """Return a copy carrying a new validated permission set (full replace)."""
        return dataclasses.replace(self, permissions=frozenset(codes))

    def is_equivalent_to(self, other: RoleEntity) -> bool:
        """True when both roles grant exactly the same permissions."""
        return self.permissions == other.permissions

    def summary(self) -> str:
        """One-line description for logs and listings."""
        flags = []
        if self.is_system_role:
            flags.append("system")
        if self.is_default_role:
            flags.append("default")
        if not self.is_active:
            flags.append("inactive")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        return f"{self.name} ({len(self.permissions)} permissions, priority {self.priority}){suffix}"
