"""Initial schema: riders, drivers, vehicles, bookings, payments.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

VEHICLE_TYPE = ("HATCHBACK", "SEDAN", "SUV")
BOOKING_STATUS = ("PENDING", "CONFIRMED", "COMPLETED", "CANCELLED")
PAYMENT_STATUS = ("PENDING", "SUCCESS", "FAILED")


def _enum(values, name):
    return postgresql.ENUM(*values, name=name, create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    for values, name in (
        (VEHICLE_TYPE, "vehicletype"),
        (BOOKING_STATUS, "bookingstatus"),
        (PAYMENT_STATUS, "paymentstatus"),
    ):
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    # ── riders ────────────────────────────────────────────────────────
    op.create_table(
        "riders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── drivers ───────────────────────────────────────────────────────
    op.create_table(
        "drivers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("license_number", sa.String(40), unique=True, nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("rating", sa.Float, default=5.0),
    )

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("registration_number", sa.String(20), unique=True, nullable=False),
        sa.Column("vehicle_type", _enum(VEHICLE_TYPE, "vehicletype"), nullable=False),
        sa.Column("rate_per_km", sa.Float, nullable=False),
        sa.Column("is_electric", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("seats", sa.Integer, nullable=False, server_default="4"),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True),
    )
    op.create_index(
        "idx_vehicles_available", "vehicles", ["is_available", "is_electric"]
    )

    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("rider_id", sa.Integer, sa.ForeignKey("riders.id"), nullable=False),
        sa.Column("vehicle_id", sa.Integer, sa.ForeignKey("vehicles.id"), nullable=False),
        sa.Column("pickup_location", sa.String(255), nullable=False),
        sa.Column("drop_location", sa.String(255), nullable=False),
        sa.Column("distance", sa.Float, nullable=False),
        sa.Column("fare", sa.Float, nullable=False),
        sa.Column("status", _enum(BOOKING_STATUS, "bookingstatus"), nullable=False),
        sa.Column("eco_ride", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("carbon_saved", sa.Float, nullable=False, server_default="0"),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column(
            "payment_status",
            _enum(PAYMENT_STATUS, "paymentstatus"),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column("payment_details", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_bookings_rider", "bookings", ["rider_id"])
    op.create_index("idx_bookings_vehicle", "bookings", ["vehicle_id"])
    op.create_index("idx_bookings_status", "bookings", ["status"])

    # ── payments ──────────────────────────────────────────────────────
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "booking_id",
            sa.Integer,
            sa.ForeignKey("bookings.id"),
            unique=True,
            nullable=False,
        ),
        sa.Column("method", sa.String(20), nullable=False),
        sa.Column("amount", sa.Float, nullable=False),
        sa.Column("status", _enum(PAYMENT_STATUS, "paymentstatus"), nullable=False),
        sa.Column("details", sa.JSON, nullable=True),
        sa.Column("settled_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("bookings")
    op.drop_table("vehicles")
    op.drop_table("drivers")
    op.drop_table("riders")
    op.execute("DROP TYPE IF EXISTS paymentstatus")
    op.execute("DROP TYPE IF EXISTS bookingstatus")
    op.execute("DROP TYPE IF EXISTS vehicletype")
