"""Initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # deletion_reason enum (non-native to keep compatibility across SQLite/Postgres)
    deletion_reason_enum = sa.Enum(
        "Quiz deleted by event manager",
        "Account deactivated",
        "Other",
        name="deletion_reason",
        native_enum=False,
        length=64,
    )

    op.create_table(
        "event_quizzes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("instructions", sa.Text()),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("total_questions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_marks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
        ),
    )

    op.create_table(
        "quiz_credentials",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("quiz_id", sa.Integer(), sa.ForeignKey("event_quizzes.id"), nullable=False, index=True),
        sa.Column("username", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_team", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("team_name", sa.String(length=255)),
        sa.Column("participant_name", sa.String(length=120)),
        sa.Column("participant_email", sa.String(length=255)),
        sa.Column("college", sa.String(length=255)),
        sa.Column("department", sa.String(length=120)),
        sa.Column("year", sa.String(length=20)),
        sa.Column("phone_number", sa.String(length=50)),
        sa.Column("admission_number", sa.String(length=100)),
        sa.Column("team_members", sa.JSON()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("has_attempted_quiz", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("session_token", sa.String(length=64)),
        sa.Column("failed_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("locked", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("lock_expiry", sa.DateTime()),
        sa.Column("last_successful_login", sa.DateTime()),
        sa.Column("deletion_reason", deletion_reason_enum),
        sa.Column("deleted_at", sa.DateTime()),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
        ),
    )
    op.create_index("ix_quiz_credentials_quiz_username", "quiz_credentials", ["quiz_id", "username"])
    op.create_index("ix_quiz_credentials_quiz_active", "quiz_credentials", ["quiz_id", "is_active"])

    op.create_table(
        "quiz_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("college_id", sa.String(length=64), nullable=False, unique=True, server_default="default"),
        sa.Column("admin_override_enabled", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("admin_override_password_hash", sa.String(length=255), nullable=False),
        sa.Column("admin_override_session_timeout", sa.Integer(), nullable=False, server_default="300"),
        sa.Column("emergency_access_enabled", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("emergency_password_hash", sa.String(length=255), nullable=False),
        sa.Column("emergency_access_description", sa.String(length=255)),
        sa.Column(
            "last_updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
        ),
    )


def downgrade():
    op.drop_table("quiz_settings")
    op.drop_index("ix_quiz_credentials_quiz_active", table_name="quiz_credentials")
    op.drop_index("ix_quiz_credentials_quiz_username", table_name="quiz_credentials")
    op.drop_table("quiz_credentials")
    op.drop_table("event_quizzes")
