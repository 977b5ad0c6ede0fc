"""create role, role_assignment and app_user tables

Revision ID: a1f3c5e7b9d2
Revises:
Create Date: 2026-10-19

Roles carry their permission codes as a JSON list. At most one active
assignment per (user_id, role_id), enforced by a partial unique index.
"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa
from alembic import op

revision: str = "a1f3c5e7b9d2"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "role",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("role_type", sa.String(length=50), nullable=True),
        sa.Column("is_system_role", sa.Boolean(), nullable=False),
        sa.Column("is_default_role", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("color", sa.String(length=20), nullable=True),
        sa.Column("icon", sa.String(length=50), nullable=True),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("updated_by", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_role_tenant_name"),
    )
    op.create_index("ix_role_tenant_id", "role", ["tenant_id"], unique=False)

    op.create_table(
        "role_assignment",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("role_id", sa.String(), nullable=False),
        sa.Column("agency_id", sa.String(), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("assignment_reason", sa.Text(), nullable=True),
        sa.Column("assigned_by", sa.String(), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_by", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_role_assignment_tenant_id", "role_assignment", ["tenant_id"], unique=False
    )
    op.create_index(
        "ix_role_assignment_user_id", "role_assignment", ["user_id"], unique=False
    )
    op.create_index(
        "ix_role_assignment_role_id", "role_assignment", ["role_id"], unique=False
    )
    op.create_index(
        "uq_role_assignment_active_user_role",
        "role_assignment",
        ["user_id", "role_id"],
        unique=True,
        sqlite_where=sa.text("is_active = 1"),
        postgresql_where=sa.text("is_active = true"),
    )
    op.create_index(
        "ix_role_assignment_user_tenant",
        "role_assignment",
        ["user_id", "tenant_id"],
        unique=False,
    )
    op.create_index(
        "ix_role_assignment_active_expiry",
        "role_assignment",
        ["is_active", "expires_at"],
        unique=False,
    )

    op.create_table(
        "app_user",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("full_name", sa.String(length=200), nullable=True),
        sa.Column("user_type", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_app_user_tenant_id", "app_user", ["tenant_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_app_user_tenant_id", table_name="app_user")
    op.drop_table("app_user")
    op.drop_index("ix_role_assignment_active_expiry", table_name="role_assignment")
    op.drop_index("ix_role_assignment_user_tenant", table_name="role_assignment")
    op.drop_index("uq_role_assignment_active_user_role", table_name="role_assignment")
    op.drop_index("ix_role_assignment_role_id", table_name="role_assignment")
    op.drop_index("ix_role_assignment_user_id", table_name="role_assignment")
    op.drop_index("ix_role_assignment_tenant_id", table_name="role_assignment")
    op.drop_table("role_assignment")
    op.drop_index("ix_role_tenant_id", table_name="role")
    op.drop_table("role")
