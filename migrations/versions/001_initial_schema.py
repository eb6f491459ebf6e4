"""Initial schema: users, vehicles, stops, trips, messages.

Revision ID: 001
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("username", sa.String(80), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column(
            "role",
            sa.Enum("driver", "admin", name="userrole"),
            nullable=False,
        ),
        sa.Column("plate", sa.String(20), nullable=True),
        sa.Column("active_trip_id", sa.String(32), nullable=True),
        sa.Column("last_lat", sa.Float, nullable=True),
        sa.Column("last_lng", sa.Float, nullable=True),
        sa.Column(
            "location_updated_at", sa.DateTime(timezone=True), nullable=True
        ),
        _created_at(),
    )
    op.create_index("idx_users_role", "users", ["role"])
    op.create_index("idx_users_active_trip", "users", ["active_trip_id"])

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("plate", sa.String(20), unique=True, nullable=False),
        sa.Column("model", sa.String(120), nullable=False),
        sa.Column("fuel_type", sa.String(40), nullable=True),
        _created_at(),
    )

    # ── stops ─────────────────────────────────────────────────────────
    op.create_table(
        "stops",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("lat", sa.Float, nullable=False),
        sa.Column("lng", sa.Float, nullable=False),
        _created_at(),
    )

    # ── trips ─────────────────────────────────────────────────────────
    op.create_table(
        "trips",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("details", sa.Text, nullable=False),
        sa.Column("consignment_number", sa.String(64), nullable=True),
        sa.Column("stops", sa.JSON, nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "pending",
                "assigned",
                "active",
                "completed",
                name="tripstatus",
            ),
            nullable=False,
        ),
        sa.Column(
            "assigned_driver_id",
            sa.String(32),
            sa.ForeignKey("users.id"),
            nullable=True,
        ),
        sa.Column("assigned_driver_name", sa.String(120), nullable=True),
        _created_at(),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_trips_status", "trips", ["status"])
    op.create_index("idx_trips_driver", "trips", ["assigned_driver_id"])

    # ── messages ──────────────────────────────────────────────────────
    op.create_table(
        "messages",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("sender", sa.String(120), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column(
            "recipient_id",
            sa.String(32),
            sa.ForeignKey("users.id"),
            nullable=True,
        ),
        _created_at(),
    )
    op.create_index("idx_messages_recipient", "messages", ["recipient_id"])


def downgrade() -> None:
    op.drop_table("messages")
    op.drop_table("trips")
    op.drop_table("stops")
    op.drop_table("vehicles")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS tripstatus")
    op.execute("DROP TYPE IF EXISTS userrole")
