"""Domain exceptions for fleet_rbac.

Defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns. Presentation
layer maps them to HTTP responses in exception handlers.

Authorization *denials* are not modelled here as errors: the evaluation
engine returns False and callers decide. AuthorizationException is only
raised by the explicit require_* guards.
"""

from typing import Any


class FleetRbacException(Exception):
    """Base exception for all fleet_rbac errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API error bodies."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(FleetRbacException):
    """Raised when input validation fails (e.g. malformed expiry, bad name)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class InvalidPermissionException(ValidationException):
    """Raised when one or more permission codes are not in the catalog."""

    def __init__(self, codes: list[str]) -> None:
        super().__init__(
            f"Invalid permission code(s): {', '.join(codes)}",
            field="permissions",
        )
        self.details["invalid_codes"] = codes


class RoleTenantMismatchException(ValidationException):
    """Raised when a role is assigned under a tenant it does not belong to."""

    def __init__(self, role_id: str, role_tenant_id: str, tenant_id: str) -> None:
        super().__init__(
            "Role does not belong to the specified organization",
            field="tenant_id",
        )
        self.details.update(
            {"role_id": role_id, "role_tenant_id": role_tenant_id, "tenant_id": tenant_id}
        )


class InvalidIdentityContextException(ValidationException):
    """Raised for malformed evaluation input (missing user or tenant).

    Callers must treat this as a hard authorization failure (deny).
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, field=field)
        self.error_code = "INVALID_IDENTITY_CONTEXT"


class ConflictException(FleetRbacException):
    """Raised when a write collides with an existing record (uniqueness)."""

    def __init__(
        self,
        message: str,
        error_code: str = "CONFLICT",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)


class DuplicateRoleNameException(ConflictException):
    """Raised when a role name already exists in the tenant."""

    def __init__(self, name: str, tenant_id: str) -> None:
        super().__init__(
            f"A role named '{name}' already exists in the organization",
            "DUPLICATE_ROLE_NAME",
            {"name": name, "tenant_id": tenant_id},
        )


class DuplicateAssignmentException(ConflictException):
    """Raised when the user already holds an active assignment of the role."""

    def __init__(self, user_id: str, role_id: str) -> None:
        super().__init__(
            "User already has this role assigned",
            "DUPLICATE_ASSIGNMENT",
            {"user_id": user_id, "role_id": role_id},
        )


class ImmutableRoleException(FleetRbacException):
    """Raised when mutating or deleting a system (or default-protected) role."""

    def __init__(self, role_id: str, reason: str) -> None:
        super().__init__(reason, "IMMUTABLE_ROLE", {"role_id": role_id})


class RoleInUseException(FleetRbacException):
    """Raised when deleting a role that still has active assignments."""

    def __init__(self, role_id: str, active_assignments: int) -> None:
        super().__init__(
            "Cannot delete role that is assigned to users. Revoke all assignments first.",
            "ROLE_IN_USE",
            {"role_id": role_id, "active_assignments": active_assignments},
        )


class ResourceNotFoundException(FleetRbacException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'role', 'user').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class AssignmentNotFoundException(ResourceNotFoundException):
    """Raised when no active assignment exists for a (user, role) pair."""

    def __init__(self, user_id: str, role_id: str) -> None:
        super().__init__("role_assignment", f"{user_id}:{role_id}")
        self.message = "Active role assignment not found"
        self.details.update({"user_id": user_id, "role_id": role_id})


class AuthenticationException(FleetRbacException):
    """Raised when the bearer token is missing or invalid."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class AuthorizationException(FleetRbacException):
    """Raised by guard functions when the caller lacks a permission."""

    def __init__(
        self,
        permission: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        """Initialize with optional permission code and message.

        Args:
            permission: Permission code (or expression) that was required.
            message: Human-readable message; default used when permission omitted.
        """
        details: dict[str, Any] = {}
        if permission:
            message = f"Permission denied: {permission}"
            details["permission"] = permission
        super().__init__(message, "PERMISSION_DENIED", details)
