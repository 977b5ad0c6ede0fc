"""DTOs for the user directory (no dependency on ORM)."""

from dataclasses import dataclass


@dataclass(frozen=True)
class UserSummary:
    """Directory entry used for existence checks and display fields."""

    id: str
    tenant_id: str | None
    full_name: str | None
    email: str | None
    user_type: str
    is_active: bool
