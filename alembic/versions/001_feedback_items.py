"""Create feedback_items table for classified feedback records

Revision ID: 001_feedback_items
Revises:
Create Date: 2026-02-02
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_feedback_items"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "feedback_items",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("source", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.String(length=64), nullable=False),
        sa.Column("sentiment", sa.String(length=16), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("themes_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("metadata_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_feedback_items_source", "feedback_items", ["source"])
    op.create_index("ix_feedback_items_timestamp", "feedback_items", ["timestamp"])
    op.create_index("ix_feedback_items_sentiment", "feedback_items", ["sentiment"])


def downgrade() -> None:
    op.drop_index("ix_feedback_items_sentiment", table_name="feedback_items")
    op.drop_index("ix_feedback_items_timestamp", table_name="feedback_items")
    op.drop_index("ix_feedback_items_source", table_name="feedback_items")
    op.drop_table("feedback_items")
