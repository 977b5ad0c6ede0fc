"""AppUser ORM model. Read-only directory mirror used for existence and display."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from fleet_rbac.infrastructure.persistence.database import Base
from fleet_rbac.infrastructure.persistence.models.mixins import CuidMixin, TimestampMixin


class AppUser(CuidMixin, TimestampMixin, Base):
    """Directory user. Table: app_user.

    tenant_id is nullable: platform super-admins belong to no organization.
    """

    __tablename__ = "app_user"

    tenant_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    user_type: Mapped[str] = mapped_column(String(20), nullable=False, default="staff")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
