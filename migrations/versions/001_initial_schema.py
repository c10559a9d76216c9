"""Initial schema: bookings with fare breakdown and journey columns.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "bookings",
        sa.Column("request_id", sa.String(32), primary_key=True),
        # ── customer ──────────────────────────────────────────────────
        sa.Column("customer_name", sa.String(120), nullable=False, server_default=""),
        sa.Column("phone", sa.String(32), nullable=False, server_default=""),
        sa.Column("email", sa.String(255), nullable=False, server_default=""),
        sa.Column("general_query", sa.Text, nullable=True),
        sa.Column("preferred_reply", sa.String(16), nullable=True),
        # ── route ─────────────────────────────────────────────────────
        sa.Column("pickup_eircode", sa.String(16), nullable=False, server_default=""),
        sa.Column("destination_eircode", sa.String(16), nullable=False, server_default=""),
        sa.Column("origin_address", sa.String(255), nullable=False, server_default=""),
        sa.Column("destination_address", sa.String(255), nullable=False, server_default=""),
        sa.Column("pickup_lat", sa.Float, nullable=True),
        sa.Column("pickup_lng", sa.Float, nullable=True),
        sa.Column("destination_lat", sa.Float, nullable=True),
        sa.Column("destination_lng", sa.Float, nullable=True),
        sa.Column("distance_km", sa.Numeric(8, 1), nullable=False, server_default="0"),
        sa.Column("duration_minutes", sa.Integer, nullable=False, server_default="0"),
        # ── commercial ────────────────────────────────────────────────
        sa.Column("vehicle_type", sa.String(64), nullable=False, server_default=""),
        sa.Column("passenger_count", sa.Integer, nullable=False, server_default="1"),
        sa.Column("scheduled_date", sa.String(10), nullable=False, server_default=""),
        sa.Column("scheduled_time", sa.String(8), nullable=False, server_default=""),
        sa.Column("status", sa.String(9), nullable=False, server_default="Requested"),
        # ── fare ──────────────────────────────────────────────────────
        sa.Column("initial_charge", sa.Numeric(8, 2), nullable=True),
        sa.Column("tariff_a", sa.Numeric(8, 2), nullable=True),
        sa.Column("tariff_b", sa.Numeric(8, 2), nullable=True),
        sa.Column("total_fare", sa.Numeric(8, 2), nullable=True),
        sa.Column("rate_type", sa.String(8), nullable=True),
        sa.Column("rate_name", sa.String(80), nullable=True),
        sa.Column("adjusted_fare", sa.Numeric(8, 2), nullable=True),
        sa.Column("owner_fare", sa.Numeric(8, 2), nullable=True),
        # ── journey ───────────────────────────────────────────────────
        sa.Column("journey_status", sa.String(9), nullable=True),
        sa.Column("driver_name", sa.String(120), nullable=True),
        sa.Column("vehicle_reg", sa.String(16), nullable=True),
        sa.Column("pickup_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completion_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_km_driven", sa.Numeric(8, 1), nullable=True),
        sa.Column("actual_duration_minutes", sa.Integer, nullable=True),
        sa.Column("driver_lat", sa.Float, nullable=True),
        sa.Column("driver_lng", sa.Float, nullable=True),
        sa.Column(
            "override_granted", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_bookings_status", "bookings", ["status"])
    op.create_index("idx_bookings_journey_status", "bookings", ["journey_status"])
    op.create_index("idx_bookings_driver", "bookings", ["driver_name"])


def downgrade() -> None:
    op.drop_index("idx_bookings_driver", table_name="bookings")
    op.drop_index("idx_bookings_journey_status", table_name="bookings")
    op.drop_index("idx_bookings_status", table_name="bookings")
    op.drop_table("bookings")
