"""Create users table

Revision ID: 3f9c1a7d2b10
Revises:
Create Date: 2026-10-17 09:00:00.000000

This migration creates the users table:

1. **Columns**: BIGINT identity key, email, username, password hash,
   optional first/last name, last login time, soft delete flag, audit
   timestamps and the optimistic lock version.

2. **Constraints**: email and username are unique across all rows,
   including soft-deleted ones.

3. **Indexes**: is_active, used by nearly every query to hide deleted users.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9c1a7d2b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "users",
        sa.Column(
            "id",
            sa.BigInteger(),
            sa.Identity(always=False),
            nullable=False,
            comment="Primary key assigned by the database",
        ),
        sa.Column("email", sa.String(length=255), nullable=False, comment="User email address"),
        sa.Column(
            "username", sa.String(length=50), nullable=False, comment="Unique username identifier"
        ),
        sa.Column(
            "password", sa.String(length=255), nullable=False, comment="Salted password hash"
        ),
        sa.Column(
            "first_name", sa.String(length=100), nullable=True, comment="User's first name (optional)"
        ),
        sa.Column(
            "last_name", sa.String(length=100), nullable=True, comment="User's last name (optional)"
        ),
        sa.Column(
            "last_login_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Timestamp of the most recent login",
        ),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
            comment="Soft delete flag (False when the row is deleted)",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            comment="Timestamp of entity creation",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            comment="Timestamp of last modification",
        ),
        sa.Column(
            "version",
            sa.BigInteger(),
            nullable=False,
            server_default="0",
            comment="Optimistic lock counter, incremented on every update",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        comment="User accounts with soft delete support",
    )

    op.create_index("ix_users_is_active", "users", ["is_active"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("ix_users_is_active", table_name="users")
    op.drop_table("users")
