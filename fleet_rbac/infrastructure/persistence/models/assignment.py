"""RoleAssignment ORM model. User-role grants, kept after revocation for audit."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from fleet_rbac.infrastructure.persistence.database import Base
from fleet_rbac.infrastructure.persistence.models.mixins import MultiTenantModel


class RoleAssignment(MultiTenantModel, Base):
    """Role assignment. Table: role_assignment.

    At most one active row per (user_id, role_id), enforced by a partial
    unique index. role_id has no foreign key so revoked rows outlive the
    role they granted.
    """

    __tablename__ = "role_assignment"

    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    role_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    agency_id: Mapped[str | None] = mapped_column(String, nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    assignment_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    assigned_by: Mapped[str | None] = mapped_column(String, nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        Index(
            "uq_role_assignment_active_user_role",
            "user_id",
            "role_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active = true"),
        ),
        Index("ix_role_assignment_user_tenant", "user_id", "tenant_id"),
        Index("ix_role_assignment_active_expiry", "is_active", "expires_at"),
    )
