"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-03-02 00:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "studies",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("product_id", sa.String(length=255), nullable=False),
        sa.Column("feature_id", sa.String(length=255), nullable=True),
        sa.Column("archived", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "people",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "role IN ('participant', 'facilitator', 'observer')", name="ck_person_role"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_people_role", "people", ["role"], unique=False)

    op.create_table(
        "sessions",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("study_id", sa.String(length=64), nullable=False),
        sa.Column("participant_id", sa.String(length=64), nullable=False),
        sa.Column("facilitator_id", sa.String(length=64), nullable=False),
        sa.Column("observer_ids", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("status IN ('in_progress', 'completed')", name="ck_session_status"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sessions_study_id", "sessions", ["study_id"], unique=False)
    op.create_index("ix_sessions_participant_id", "sessions", ["participant_id"], unique=False)
    op.create_index("ix_sessions_created_at", "sessions", ["created_at"], unique=False)

    op.create_table(
        "assessment_types",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("questions", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("kind"),
    )

    op.create_table(
        "assessment_responses",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("assessment_type_id", sa.String(length=64), nullable=False),
        sa.Column("task_description", sa.Text(), nullable=False),
        sa.Column("responses", sa.JSON(), nullable=False),
        sa.Column("calculated_metrics", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_assessment_responses_session_id", "assessment_responses", ["session_id"], unique=False
    )
    op.create_index(
        "ix_assessment_responses_assessment_type_id",
        "assessment_responses",
        ["assessment_type_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_assessment_responses_assessment_type_id", table_name="assessment_responses")
    op.drop_index("ix_assessment_responses_session_id", table_name="assessment_responses")
    op.drop_table("assessment_responses")
    op.drop_table("assessment_types")
    op.drop_index("ix_sessions_created_at", table_name="sessions")
    op.drop_index("ix_sessions_participant_id", table_name="sessions")
    op.drop_index("ix_sessions_study_id", table_name="sessions")
    op.drop_table("sessions")
    op.drop_index("ix_people_role", table_name="people")
    op.drop_table("people")
    op.drop_table("studies")
