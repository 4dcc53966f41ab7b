"""Initial schema - behaviors, calls, feedback.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "behaviors",
        sa.Column("behavior_id", sa.UUID(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_behaviors_active_position", "behaviors", ["is_active", "position"])

    op.create_table(
        "calls",
        sa.Column("call_id", sa.UUID(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("transcription", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )

    op.create_table(
        "feedback",
        sa.Column("feedback_id", sa.UUID(), primary_key=True),
        sa.Column(
            "call_id",
            sa.UUID(),
            sa.ForeignKey("calls.call_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("positive", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("negative", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("opportunities", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("behaviors_analysis", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("generated_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    # One feedback row per call - the at-most-once write relies on it
    op.create_unique_constraint("uq_feedback_call_id", "feedback", ["call_id"])
    op.create_check_constraint(
        "ck_feedback_score_range",
        "feedback",
        "score IS NULL OR (score >= 0 AND score <= 100)",
    )


def downgrade() -> None:
    op.drop_table("feedback")
    op.drop_table("calls")
    op.drop_index("ix_behaviors_active_position", table_name="behaviors")
    op.drop_table("behaviors")
