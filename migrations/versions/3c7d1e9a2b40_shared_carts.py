"""staff users and shared carts

Revision ID: 3c7d1e9a2b40
Revises:
Create Date: 2026-10-19 10:12:44.318207
"""
from __future__ import annotations

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from cartshare.db.types import GUID

# revision identifiers, used by Alembic.
revision: str = "3c7d1e9a2b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SHARED_CART_STATUSES = ("pending", "contacted", "converted", "expired")


def _status_type(bind) -> sa.types.TypeEngine:
    if bind.dialect.name == "postgresql":
        status_enum = postgresql.ENUM(*SHARED_CART_STATUSES, name="sharedcartstatus")
        status_enum.create(bind, checkfirst=True)
        return postgresql.ENUM(*SHARED_CART_STATUSES, name="sharedcartstatus", create_type=False)
    return sa.Enum(*SHARED_CART_STATUSES, name="sharedcartstatus")


def upgrade() -> None:
    bind = op.get_bind()

    op.create_table(
        "staff_users",
        sa.Column("id", GUID(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=True),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_superuser", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_staff_users_email", "staff_users", ["email"], unique=True)

    op.create_table(
        "shared_carts",
        sa.Column("id", GUID(), primary_key=True, nullable=False),
        sa.Column("short_code", sa.String(length=16), nullable=False),
        sa.Column("cart_data", sa.JSON(), nullable=False),
        sa.Column("customer_info", sa.JSON(), nullable=True),
        sa.Column("status", _status_type(bind), nullable=False, server_default="pending"),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("short_code", name="uq_shared_carts_short_code"),
        sa.CheckConstraint("views >= 0", name="ck_shared_carts_views_non_negative"),
    )
    op.create_index("ix_shared_carts_status_created_at", "shared_carts", ["status", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_shared_carts_status_created_at", table_name="shared_carts")
    op.drop_table("shared_carts")
    op.drop_index("ix_staff_users_email", table_name="staff_users")
    op.drop_table("staff_users")
    if op.get_bind().dialect.name == "postgresql":
        postgresql.ENUM(name="sharedcartstatus").drop(op.get_bind(), checkfirst=True)
