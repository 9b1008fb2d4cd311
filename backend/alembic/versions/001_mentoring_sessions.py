# backend/alembic/versions/001_mentoring_sessions.py
"""Mentoring sessions - users, availability rules and booked sessions

Revision ID: 001_mentoring_sessions
Revises:
Create Date: 2025-11-03 00:00:00.000000

Users are provisioned by the identity service and only read here. Sessions
keep the mentor, start and duration on the row itself, so deactivating an
availability rule never touches sessions already booked against it.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_mentoring_sessions"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, availabilities and mentoring_sessions tables."""
    print("Creating mentoring session tables...")

    op.create_table(
        "users",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="mentee"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_check_constraint(
        "ck_users_role",
        "users",
        "role IN ('admin', 'mentor', 'mentee')",
    )

    op.create_table(
        "availabilities",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("mentor_id", sa.String(26), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="recurring"),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        # Rule entries, only the column matching ``type`` is populated
        sa.Column("recurring", sa.JSON(), nullable=True),
        sa.Column("one_off", sa.JSON(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["mentor_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_availabilities_mentor_id", "availabilities", ["mentor_id"])
    op.create_index("idx_availabilities_mentor_active", "availabilities", ["mentor_id", "active"])
    op.create_check_constraint(
        "ck_availabilities_type",
        "availabilities",
        "type IN ('recurring', 'oneoff')",
    )
    op.create_check_constraint(
        "ck_availabilities_capacity",
        "availabilities",
        "capacity >= 1 AND capacity <= 50",
    )

    op.create_table(
        "mentoring_sessions",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("mentor_id", sa.String(26), nullable=False),
        sa.Column("mentee_id", sa.String(26), nullable=True),
        sa.Column("availability_id", sa.String(26), nullable=True),
        sa.Column("subject", sa.String(200), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("room", sa.Text(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_group", sa.Boolean(), nullable=False, server_default=sa.false()),
        # Reservation key the session was created under
        sa.Column("lock_key", sa.String(128), nullable=True),
        # Timestamps
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        # Cancellation details
        sa.Column("cancelled_by_id", sa.String(26), nullable=True),
        sa.Column("cancellation_reason", sa.String(500), nullable=True),
        # Foreign keys
        sa.ForeignKeyConstraint(["mentor_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["mentee_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["availability_id"], ["availabilities.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["cancelled_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        comment="Booked mentoring sessions, created only under a booking reservation",
    )

    op.create_index("ix_mentoring_sessions_id", "mentoring_sessions", ["id"])
    op.create_index("ix_mentoring_sessions_status", "mentoring_sessions", ["status"])

    # Capacity checks count sessions at an exact (mentor, start)
    op.create_index(
        "idx_mentoring_sessions_mentor_scheduled",
        "mentoring_sessions",
        ["mentor_id", "scheduled_at"],
    )
    op.create_index(
        "idx_mentoring_sessions_mentee_scheduled",
        "mentoring_sessions",
        ["mentee_id", "scheduled_at"],
    )
    op.create_index(
        "idx_mentoring_sessions_mentor_status",
        "mentoring_sessions",
        ["mentor_id", "status"],
    )

    op.create_check_constraint(
        "ck_mentoring_sessions_status",
        "mentoring_sessions",
        "status IN ('pending', 'confirmed', 'rescheduled', 'cancelled', 'completed')",
    )
    op.create_check_constraint(
        "ck_mentoring_sessions_duration",
        "mentoring_sessions",
        "duration_minutes >= 0",
    )
    op.create_check_constraint(
        "ck_mentoring_sessions_capacity",
        "mentoring_sessions",
        "capacity >= 1",
    )

    print("Mentoring session tables created successfully!")


def downgrade() -> None:
    """Drop mentoring session tables."""
    print("Dropping mentoring session tables...")

    op.drop_constraint("ck_mentoring_sessions_capacity", "mentoring_sessions", type_="check")
    op.drop_constraint("ck_mentoring_sessions_duration", "mentoring_sessions", type_="check")
    op.drop_constraint("ck_mentoring_sessions_status", "mentoring_sessions", type_="check")
    op.drop_index("idx_mentoring_sessions_mentor_status", table_name="mentoring_sessions")
    op.drop_index("idx_mentoring_sessions_mentee_scheduled", table_name="mentoring_sessions")
    op.drop_index("idx_mentoring_sessions_mentor_scheduled", table_name="mentoring_sessions")
    op.drop_index("ix_mentoring_sessions_status", table_name="mentoring_sessions")
    op.drop_index("ix_mentoring_sessions_id", table_name="mentoring_sessions")
    op.drop_table("mentoring_sessions")

    op.drop_constraint("ck_availabilities_capacity", "availabilities", type_="check")
    op.drop_constraint("ck_availabilities_type", "availabilities", type_="check")
    op.drop_index("idx_availabilities_mentor_active", table_name="availabilities")
    op.drop_index("ix_availabilities_mentor_id", table_name="availabilities")
    op.drop_table("availabilities")

    op.drop_constraint("ck_users_role", "users", type_="check")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")

    print("Mentoring session tables dropped successfully!")
