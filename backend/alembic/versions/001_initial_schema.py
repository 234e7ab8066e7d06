"""Initial schema: courts, availability, bookings, queue sessions/entries/matches

Revision ID: 001_initial
Revises:
Create Date: 2026-01-25 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "court",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True, server_default="1"),
        sa.Column("hourly_rate", sa.Float(), nullable=True),
        sa.Column("reservation_fee_percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_court_owner_id", "court", ["owner_id"])

    op.create_table(
        "courtavailability",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("court_id", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("open_time", sa.Time(), nullable=False),
        sa.Column("close_time", sa.Time(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["court_id"], ["court.id"]),
        sa.UniqueConstraint("court_id", "day_of_week", name="uq_availability_court_day"),
    )
    op.create_index("ix_courtavailability_court_id", "courtavailability", ["court_id"])

    op.create_table(
        "courtbooking",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("court_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("day_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="confirmed"),
        sa.Column("payment_status", sa.String(), nullable=False, server_default="reserved"),
        sa.Column("shuttlecock_count", sa.Integer(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["court_id"], ["court.id"]),
    )
    op.create_index("ix_courtbooking_user_id", "courtbooking", ["user_id"])
    op.create_index("ix_courtbooking_court_date_status", "courtbooking", ["court_id", "day_date", "status"])

    op.create_table(
        "bookingdaylock",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("court_id", sa.Integer(), nullable=False),
        sa.Column("day_date", sa.Date(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["court_id"], ["court.id"]),
        sa.UniqueConstraint("court_id", "day_date", name="uq_bookingdaylock_court_date"),
    )

    op.create_table(
        "queuesession",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("day_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="upcoming"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_queuesession_owner_id", "queuesession", ["owner_id"])

    op.create_table(
        "queueentry",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("guest_name", sa.String(), nullable=True),
        sa.Column("display_name", sa.String(), nullable=False, server_default=""),
        sa.Column("level", sa.Float(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="waiting"),
        sa.Column("games_played", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("joined_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["session_id"], ["queuesession.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "(user_id IS NULL) <> (guest_name IS NULL)",
            name="ck_queueentry_user_xor_guest",
        ),
    )
    op.create_index("ix_queueentry_session_status", "queueentry", ["session_id", "status"])

    op.create_table(
        "queuematch",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("court_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("shuttlecocks_used", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["session_id"], ["queuesession.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["court_id"], ["court.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_queuematch_session_id", "queuematch", ["session_id"])
    # One active match per court within a session
    op.create_index(
        "uq_queuematch_active_session_court",
        "queuematch",
        ["session_id", "court_id"],
        unique=True,
        sqlite_where=sa.text("status = 'active'"),
        postgresql_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "queuematchplayer",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("queue_entry_id", sa.Integer(), nullable=False),
        sa.Column("team", sa.String(length=1), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["match_id"], ["queuematch.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["queue_entry_id"], ["queueentry.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("match_id", "queue_entry_id", name="uq_matchplayer_match_entry"),
        sa.CheckConstraint("team IN ('A', 'B')", name="ck_matchplayer_team"),
    )
    op.create_index("ix_queuematchplayer_match_id", "queuematchplayer", ["match_id"])
    op.create_index("ix_queuematchplayer_queue_entry_id", "queuematchplayer", ["queue_entry_id"])


def downgrade() -> None:
    op.drop_table("queuematchplayer")
    op.drop_index("uq_queuematch_active_session_court", table_name="queuematch")
    op.drop_table("queuematch")
    op.drop_table("queueentry")
    op.drop_table("queuesession")
    op.drop_table("bookingdaylock")
    op.drop_table("courtbooking")
    op.drop_table("courtavailability")
    op.drop_table("court")
