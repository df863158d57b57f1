"""add question bank and quiz results

Revision ID: 0002_add_quiz_results
Revises: 0001_initial_schema
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_add_quiz_results"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table("event_quizzes") as batch_op:
        batch_op.add_column(sa.Column("negative_marking_enabled", sa.Boolean(), server_default="0", nullable=False))
        batch_op.add_column(sa.Column("questions", sa.JSON()))

    op.create_table(
        "event_quiz_results",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("quiz_id", sa.Integer(), sa.ForeignKey("event_quizzes.id"), nullable=False),
        sa.Column("credential_id", sa.Integer(), sa.ForeignKey("quiz_credentials.id")),
        sa.Column("participant_email", sa.String(length=255), nullable=False),
        sa.Column("participant_info", sa.JSON()),
        sa.Column("answers", sa.JSON()),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_marks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("time_taken", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("quiz_id", "participant_email", name="uq_event_quiz_results_quiz_email"),
    )
    op.create_index("ix_event_quiz_results_quiz_score", "event_quiz_results", ["quiz_id", "score"])


def downgrade():
    op.drop_index("ix_event_quiz_results_quiz_score", table_name="event_quiz_results")
    op.drop_table("event_quiz_results")
    with op.batch_alter_table("event_quizzes") as batch_op:
        batch_op.drop_column("questions")
        batch_op.drop_column("negative_marking_enabled")
