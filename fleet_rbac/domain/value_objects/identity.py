"""Identity context value object.

Supplied by the identity/session collaborator for each request and passed
explicitly into every evaluation call; there is no ambient "current user".
"""

from dataclasses import dataclass

from fleet_rbac.domain.enums import UserType
from fleet_rbac.domain.exceptions import InvalidIdentityContextException


@dataclass(frozen=True)
class IdentityContext:
    """Who is calling: user, home tenant, optional agency and coarse user kind."""

    user_id: str
    tenant_id: str | None
    agency_id: str | None = None
    user_type: UserType = UserType.STAFF

    def __post_init__(self) -> None:
        if not self.user_id or not str(self.user_id).strip():
            raise InvalidIdentityContextException("User ID is required", field="user_id")
        # Platform admins operate outside any tenant.
        if self.user_type != UserType.SUPER_ADMIN and not self.tenant_id:
            raise InvalidIdentityContextException(
                "Tenant context is required", field="tenant_id"
            )

    @property
    def is_super_admin(self) -> bool:
        return self.user_type == UserType.SUPER_ADMIN

    @property
    def is_owner(self) -> bool:
        return self.user_type == UserType.OWNER

    @property
    def bypasses_agency_scope(self) -> bool:
        """Platform admins and tenant owners are not narrowed by agency."""
        return self.is_super_admin or self.is_owner
