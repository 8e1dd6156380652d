"""Create drafts table.

Revision ID: 001_create_drafts
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""

import sqlalchemy as sa
from alembic import op

revision = "001_create_drafts"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- drafts ---
    op.create_table(
        "drafts",
        sa.Column("position", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("title", sa.Text, nullable=False, server_default=""),
        sa.Column("class", sa.Text, nullable=False, server_default=""),
        sa.Column("name", sa.Text, nullable=False, server_default=""),
        sa.Column("content", sa.Text, nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_drafts_id", "drafts", ["id"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_drafts_id", table_name="drafts")
    op.drop_table("drafts")
