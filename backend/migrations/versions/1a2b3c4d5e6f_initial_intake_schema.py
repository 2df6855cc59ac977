"""Initial intake schema: users, applications, votes, comments, notifications, events.

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "1a2b3c4d5e6f"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = inspector.get_table_names()

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("name", sa.String(), server_default="", nullable=False),
            sa.Column("email", sa.String(), nullable=True),
            sa.Column("role", sa.String(length=40), nullable=False),
            sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_users_email", "users", ["email"])
        op.create_index("ix_users_role", "users", ["role"])
        op.create_index("ix_users_is_active", "users", ["is_active"])

    if "applications" not in existing_tables:
        op.create_table(
            "applications",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("applicant_id", sa.Uuid(), nullable=False),
            sa.Column("status", sa.String(length=40), nullable=False),
            sa.Column("first_name", sa.String(), server_default="", nullable=False),
            sa.Column("last_name", sa.String(), server_default="", nullable=False),
            sa.Column("email", sa.String(), server_default="", nullable=False),
            sa.Column("phone_number", sa.String(), server_default="", nullable=False),
            sa.Column("address", sa.String(), nullable=True),
            sa.Column("city", sa.String(), nullable=True),
            sa.Column("state", sa.String(), nullable=True),
            sa.Column("zip_code", sa.String(), nullable=True),
            sa.Column("occupation", sa.String(), nullable=True),
            sa.Column("date_of_birth", sa.DateTime(), nullable=True),
            sa.Column("funding_types_requested", sa.JSON(), nullable=True),
            sa.Column("estimated_monthly_cost", sa.Numeric(10, 2), nullable=True),
            sa.Column("program_duration_months", sa.Integer(), server_default="12", nullable=False),
            sa.Column("funding_details", sa.String(), nullable=True),
            sa.Column("personal_statement", sa.String(), server_default="", nullable=False),
            sa.Column("expected_benefits", sa.String(), server_default="", nullable=False),
            sa.Column("commitment_statement", sa.String(), server_default="", nullable=False),
            sa.Column("concerns_obstacles", sa.String(), nullable=True),
            sa.Column("signature", sa.String(), nullable=True),
            sa.Column("signed_date", sa.DateTime(), nullable=True),
            sa.Column(
                "votes_required_for_approval",
                sa.Integer(),
                server_default="0",
                nullable=False,
            ),
            sa.Column("submitted_date", sa.DateTime(), nullable=True),
            sa.Column("review_started_date", sa.DateTime(), nullable=True),
            sa.Column("decision_date", sa.DateTime(), nullable=True),
            sa.Column("final_decision", sa.String(length=40), nullable=True),
            sa.Column("decision_message", sa.String(), nullable=True),
            sa.Column("decision_made_by_id", sa.Uuid(), nullable=True),
            sa.Column("assigned_sponsor_id", sa.Uuid(), nullable=True),
            sa.Column("approved_monthly_amount", sa.Numeric(10, 2), nullable=True),
            sa.Column("program_start_date", sa.DateTime(), nullable=True),
            sa.Column("program_end_date", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["applicant_id"], ["users.id"]),
            sa.ForeignKeyConstraint(["decision_made_by_id"], ["users.id"]),
            sa.ForeignKeyConstraint(["assigned_sponsor_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_applications_applicant_id", "applications", ["applicant_id"])
        op.create_index("ix_applications_status", "applications", ["status"])
        op.create_index("ix_applications_submitted_date", "applications", ["submitted_date"])
        op.create_index(
            "ix_applications_assigned_sponsor_id",
            "applications",
            ["assigned_sponsor_id"],
        )

    if "application_votes" not in existing_tables:
        op.create_table(
            "application_votes",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("application_id", sa.Integer(), nullable=False),
            sa.Column("voter_id", sa.Uuid(), nullable=False),
            sa.Column("decision", sa.String(length=40), nullable=False),
            sa.Column("reasoning", sa.String(), server_default="", nullable=False),
            sa.Column("confidence_level", sa.Integer(), server_default="3", nullable=False),
            sa.Column("is_locked", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("voted_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["application_id"], ["applications.id"]),
            sa.ForeignKeyConstraint(["voter_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint(
                "application_id",
                "voter_id",
                name="uq_application_votes_application_voter",
            ),
        )
        op.create_index(
            "ix_application_votes_application_id",
            "application_votes",
            ["application_id"],
        )
        op.create_index("ix_application_votes_voter_id", "application_votes", ["voter_id"])

    if "application_comments" not in existing_tables:
        op.create_table(
            "application_comments",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("application_id", sa.Integer(), nullable=False),
            sa.Column("author_id", sa.Uuid(), nullable=False),
            sa.Column("content", sa.String(), nullable=False),
            sa.Column("is_private", sa.Boolean(), server_default=sa.true(), nullable=False),
            sa.Column(
                "is_information_request",
                sa.Boolean(),
                server_default=sa.false(),
                nullable=False,
            ),
            sa.Column("has_response", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("parent_comment_id", sa.Integer(), nullable=True),
            sa.Column("is_edited", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("is_deleted", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["application_id"], ["applications.id"]),
            sa.ForeignKeyConstraint(["author_id"], ["users.id"]),
            sa.ForeignKeyConstraint(["parent_comment_id"], ["application_comments.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_application_comments_application_id",
            "application_comments",
            ["application_id"],
        )
        op.create_index(
            "ix_application_comments_author_id",
            "application_comments",
            ["author_id"],
        )
        op.create_index(
            "ix_application_comments_parent_comment_id",
            "application_comments",
            ["parent_comment_id"],
        )
        op.create_index(
            "ix_application_comments_is_deleted",
            "application_comments",
            ["is_deleted"],
        )

    if "application_notifications" not in existing_tables:
        op.create_table(
            "application_notifications",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("recipient_id", sa.Uuid(), nullable=False),
            sa.Column("application_id", sa.Integer(), nullable=True),
            sa.Column("notification_type", sa.String(length=40), nullable=False),
            sa.Column("title", sa.String(), nullable=False),
            sa.Column("message", sa.String(), nullable=False),
            sa.Column("action_url", sa.String(), nullable=True),
            sa.Column("is_read", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("read_at", sa.DateTime(), nullable=True),
            sa.Column("is_sent", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("sent_at", sa.DateTime(), nullable=True),
            sa.Column(
                "email_requested",
                sa.Boolean(),
                server_default=sa.false(),
                nullable=False,
            ),
            sa.Column("email_sent", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("email_sent_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("expires_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["recipient_id"], ["users.id"]),
            sa.ForeignKeyConstraint(["application_id"], ["applications.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_application_notifications_recipient_id",
            "application_notifications",
            ["recipient_id"],
        )
        op.create_index(
            "ix_application_notifications_application_id",
            "application_notifications",
            ["application_id"],
        )
        op.create_index(
            "ix_application_notifications_is_read",
            "application_notifications",
            ["is_read"],
        )
        op.create_index(
            "ix_application_notifications_email_sent",
            "application_notifications",
            ["email_sent"],
        )

    if "application_events" not in existing_tables:
        op.create_table(
            "application_events",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("application_id", sa.Integer(), nullable=False),
            sa.Column("actor_id", sa.Uuid(), nullable=True),
            sa.Column("action", sa.String(), nullable=False),
            sa.Column("from_status", sa.String(), nullable=True),
            sa.Column("to_status", sa.String(), nullable=True),
            sa.Column("payload", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["application_id"], ["applications.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_application_events_application_id",
            "application_events",
            ["application_id"],
        )
        op.create_index("ix_application_events_actor_id", "application_events", ["actor_id"])
        op.create_index("ix_application_events_action", "application_events", ["action"])


def downgrade() -> None:
    op.drop_table("application_events")
    op.drop_table("application_notifications")
    op.drop_table("application_comments")
    op.drop_table("application_votes")
    op.drop_table("applications")
    op.drop_table("users")
