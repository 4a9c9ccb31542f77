"""Add password reset fields to user table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "003"
down_revision: str | None = "002"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    with op.batch_alter_table("user") as batch_op:
        batch_op.add_column(sa.Column("password_reset_token_hash", sa.String(length=64), nullable=True))
        batch_op.add_column(sa.Column("password_reset_expires_at", sa.DateTime(), nullable=True))
        batch_op.create_check_constraint(
            "ck_user_reset_token_pair",
            "(password_reset_token_hash IS NULL) = (password_reset_expires_at IS NULL)",
        )
        batch_op.create_index(
            batch_op.f("ix_user_password_reset_token_hash"), ["password_reset_token_hash"], unique=False
        )


def downgrade() -> None:
    with op.batch_alter_table("user") as batch_op:
        batch_op.drop_index(batch_op.f("ix_user_password_reset_token_hash"))
        batch_op.drop_constraint("ck_user_reset_token_pair", type_="check")
        batch_op.drop_column("password_reset_expires_at")
        batch_op.drop_column("password_reset_token_hash")
