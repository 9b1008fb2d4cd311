# backend/alembic/versions/002_booking_locks.py
"""Booking locks - short-lived reservations guarding session creation

Revision ID: 002_booking_locks
Revises: 001_mentoring_sessions
Create Date: 2025-11-03 00:00:01.000000

A reservation row is keyed by mentor, UTC start and duration. The unique
index on ``key`` is what serializes concurrent bookings of the same slot
across every API worker; the expiry index backs the background sweeper.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "002_booking_locks"
down_revision: Union[str, None] = "001_mentoring_sessions"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create booking_locks table."""
    print("Creating booking_locks table...")

    op.create_table(
        "booking_locks",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("key", sa.String(128), nullable=False),
        sa.Column("mentor_id", sa.String(26), nullable=False),
        sa.Column("created_by_id", sa.String(26), nullable=False),
        sa.Column("availability_id", sa.String(26), nullable=True),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="60"),
        # Snapshot of the session the holder intends to create
        sa.Column("session_candidate", sa.JSON(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["mentor_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["availability_id"], ["availabilities.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key", name="uq_booking_locks_key"),
        sa.CheckConstraint(
            "duration_minutes >= 15 AND duration_minutes <= 240",
            name="ck_booking_locks_duration",
        ),
        comment="Slot reservations; a live row blocks other bookings of the same slot",
    )

    op.create_index("ix_booking_locks_expires_at", "booking_locks", ["expires_at"])
    op.create_index(
        "ix_booking_locks_mentor_scheduled",
        "booking_locks",
        ["mentor_id", "scheduled_at"],
    )

    print("booking_locks table created successfully!")


def downgrade() -> None:
    """Drop booking_locks table."""
    print("Dropping booking_locks table...")

    op.drop_index("ix_booking_locks_mentor_scheduled", table_name="booking_locks")
    op.drop_index("ix_booking_locks_expires_at", table_name="booking_locks")
    op.drop_table("booking_locks")

    print("booking_locks table dropped successfully!")
