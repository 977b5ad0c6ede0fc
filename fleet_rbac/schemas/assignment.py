"""Role assignment API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from fleet_rbac.domain.entities.assignment import AssignmentEntity


class AssignmentCreate(BaseModel):
    """Request body for assigning a role to a user."""

    user_id: str = Field(..., min_length=1, max_length=64)
    role_id: str = Field(..., min_length=1, max_length=64)
    agency_id: str | None = Field(default=None, max_length=64)
    expires_at: datetime | None = None
    reason: str | None = Field(default=None, max_length=1000)


class BulkAssignmentCreate(BaseModel):
    """Request body for assigning one role to many users."""

    user_ids: list[str] = Field(..., min_length=1, max_length=500)
    role_id: str = Field(..., min_length=1, max_length=64)
    agency_id: str | None = Field(default=None, max_length=64)
    expires_at: datetime | None = None
    reason: str | None = Field(default=None, max_length=1000)


class AssignmentExtend(BaseModel):
    """Request body for extending an assignment's expiry."""

    additional_days: int = Field(..., ge=1, le=3650)


class AssignmentResponse(BaseModel):
    """Assignment as stored."""

    model_config = ConfigDict(from_attributes=True)

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
    revoked_by: str | None

    @classmethod
    def from_entity(cls, assignment: AssignmentEntity) -> "AssignmentResponse":
        return cls.model_validate(assignment)


class BulkAssignmentResponse(BaseModel):
    """Created assignments plus the ids of users that were skipped."""

    created: list[AssignmentResponse]
    skipped_user_ids: list[str]


class UserAssignmentResponse(BaseModel):
    """Assignment with role and user display fields."""

    model_config = ConfigDict(from_attributes=True)

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


class CleanupResponse(BaseModel):
    """Result of an expiry sweep."""

    deactivated: int
