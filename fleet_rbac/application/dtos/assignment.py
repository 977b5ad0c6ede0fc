"""DTOs for assignment use cases (no dependency on ORM)."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class AssignmentView:
    """Denormalized assignment: the grant plus role and user display fields.

    user_full_name and user_email are None when the directory cannot
    resolve the user.
    """

    id: str
    user_id: str
    role_id: str
    tenant_id: str
    agency_id: str | None
    assigned_at: datetime
    expires_at: datetime | None
    is_active: bool
    assignment_reason: str | None
    assigned_by: str | None
    revoked_at: datetime | None
    role_name: str | None
    role_description: str | None
    role_color: str | None
    role_icon: str | None
    user_full_name: str | None
    user_email: str | None
    is_expired: bool
    days_until_expiration: int | None
    is_expiring_soon: bool
