# backend/alembic/versions/003_session_lifecycle_slot_guard.py
"""Slot guard on booking locks and session outcome columns

Revision ID: 003_session_lifecycle_slot_guard
Revises: 002_booking_locks
Create Date: 2025-11-17 00:00:00.000000

``booking_locks.slot_key`` is the mentor and UTC start without the duration.
Its unique constraint makes attempts with different durations at the same
start collide, so the capacity count always runs under one reservation.
Reservations are short-lived, so existing rows are dropped instead of
backfilled.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "003_session_lifecycle_slot_guard"
down_revision: Union[str, None] = "002_booking_locks"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add booking_locks.slot_key and the session outcome columns."""
    print("Adding slot guard to booking_locks...")

    op.execute("DELETE FROM booking_locks")
    with op.batch_alter_table("booking_locks") as batch_op:
        batch_op.add_column(sa.Column("slot_key", sa.String(128), nullable=False))
        batch_op.create_unique_constraint("uq_booking_locks_slot_key", ["slot_key"])

    print("Adding outcome columns to mentoring_sessions...")

    with op.batch_alter_table("mentoring_sessions") as batch_op:
        batch_op.add_column(sa.Column("rescheduled_at", sa.DateTime(timezone=True), nullable=True))
        batch_op.add_column(sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True))
        batch_op.add_column(sa.Column("attended", sa.Boolean(), nullable=True))
        batch_op.add_column(sa.Column("tasks_completed", sa.Integer(), nullable=True))
        batch_op.add_column(sa.Column("notes", sa.Text(), nullable=True))
        batch_op.create_check_constraint(
            "ck_mentoring_sessions_tasks_completed",
            "tasks_completed IS NULL OR tasks_completed >= 0",
        )

    print("Migration 003 applied successfully!")


def downgrade() -> None:
    """Drop the outcome columns and booking_locks.slot_key."""
    print("Reverting migration 003...")

    with op.batch_alter_table("mentoring_sessions") as batch_op:
        batch_op.drop_constraint("ck_mentoring_sessions_tasks_completed", type_="check")
        batch_op.drop_column("notes")
        batch_op.drop_column("tasks_completed")
        batch_op.drop_column("attended")
        batch_op.drop_column("completed_at")
        batch_op.drop_column("rescheduled_at")

    with op.batch_alter_table("booking_locks") as batch_op:
        batch_op.drop_constraint("uq_booking_locks_slot_key", type_="unique")
        batch_op.drop_column("slot_key")

    print("Migration 003 reverted successfully!")
