"""Assignment domain entity: one time-bounded grant of a role to a user."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from fleet_rbac.domain.exceptions import ValidationException
from fleet_rbac.shared.utils.datetime import ensure_utc, utc_now


def validate_expiry(assigned_at: datetime, expires_at: datetime | None) -> None:
    """Expiry, when set, must be strictly after the assignment timestamp."""
    if expires_at is not None and ensure_utc(expires_at) <= ensure_utc(assigned_at):
        raise ValidationException(
            "Expiration date must be after the assignment date",
            field="expires_at",
        )


@dataclass(frozen=True)
class AssignmentEntity:
    """Domain entity for a user-role assignment.

    An inactive assignment is permanently inert: revocation is terminal and
    a new assignment is required to grant the role again. Validity is
    computed at read time (active AND not expired), independently of
    whether the expiry sweep has run.
    """

    id: str
    user_id: str
    role_id: str
    tenant_id: str
    assigned_at: datetime
    agency_id: str | None = None
    expires_at: datetime | None = None
    is_active: bool = True
    assignment_reason: str | None = None
    assigned_by: str | None = None
    revoked_at: datetime | None = None
    revoked_by: str | None = None

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValidationException("User ID is required", field="user_id")
        if not self.role_id:
            raise ValidationException("Role ID is required", field="role_id")
        if not self.tenant_id:
            raise ValidationException("Organization ID is required", field="tenant_id")
        validate_expiry(self.assigned_at, self.expires_at)

    def is_expired(self, now: datetime | None = None) -> bool:
        """True once now >= expires_at. Never expired without an expiry."""
        if self.expires_at is None:
            return False
        return ensure_utc(self.expires_at) <= ensure_utc(now or utc_now())

    def is_valid(self, now: datetime | None = None) -> bool:
        """Active and not expired."""
        return self.is_active and not self.is_expired(now)

    def days_until_expiration(self, now: datetime | None = None) -> int | None:
        """Whole days left before expiry (negative once past); None without expiry."""
        if self.expires_at is None:
            return None
        delta = ensure_utc(self.expires_at) - ensure_utc(now or utc_now())
        return delta.days

    def is_expiring_soon(self, days: int = 7, now: datetime | None = None) -> bool:
        """True when still valid and the expiry falls within the next `days` days."""
        remaining = self.days_until_expiration(now)
        if remaining is None or self.is_expired(now):
            return False
        return remaining <= days

    @property
    def is_agency_specific(self) -> bool:
        return self.agency_id is not None

    def covers_agency(self, agency_id: str) -> bool:
        """Tenant-wide grants cover every agency; scoped grants cover only theirs."""
        return self.agency_id is None or self.agency_id == agency_id
