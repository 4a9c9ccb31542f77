"""Create blog table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "blog",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("featured_image", sa.String(length=512), nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_blog_author_id"), "blog", ["author_id"])
    op.create_index(op.f("ix_blog_created_at"), "blog", ["created_at"])


def downgrade() -> None:
    op.drop_index(op.f("ix_blog_created_at"), table_name="blog")
    op.drop_index(op.f("ix_blog_author_id"), table_name="blog")
    op.drop_table("blog")
