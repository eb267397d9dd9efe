"""Initial schema: tenants, units, readings, adjustments, advances, bills, payments.

Revision ID: 001_initial_billing_schema
Revises:
Create Date: 2025-11-20 09:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial_billing_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    ]


def _money(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.Numeric(12, 2), nullable=True)
    return sa.Column(name, sa.Numeric(12, 2), nullable=False, server_default="0")


def _water_schedule_columns(kind: str) -> list[sa.Column]:
    columns = []
    for tier in range(1, 8):
        if tier < 7:
            columns.append(sa.Column(f"water_{kind}_tier{tier}_max", sa.Numeric(12, 3), nullable=False))
        columns.append(
            sa.Column(f"water_{kind}_tier{tier}_rate", sa.Numeric(12, 4), nullable=False, server_default="0")
        )
    return columns


def _reading_table(name: str, constraint: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("billing_period", sa.Date(), nullable=False),
        sa.Column("previous_reading", sa.Numeric(12, 3), nullable=False),
        sa.Column("present_reading", sa.Numeric(12, 3), nullable=False),
        sa.Column("consumption", sa.Numeric(12, 3), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("unit_id", "billing_period", name=constraint),
        sa.Index(f"ix_{name}_unit_id", "unit_id"),
        sa.Index(f"ix_{name}_billing_period", "billing_period"),
    )


def upgrade() -> None:
    # Create tenants table
    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("bill_prefix", sa.String(length=10), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )

    # Create tenant_settings table (one rate configuration per tenant)
    op.create_table(
        "tenant_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("electric_rate", sa.Numeric(12, 4), nullable=False, server_default="0"),
        sa.Column("electric_min_charge", sa.Numeric(12, 4), nullable=False, server_default="0"),
        sa.Column("association_dues_rate", sa.Numeric(12, 4), nullable=False, server_default="0"),
        sa.Column("parking_rate", sa.Numeric(12, 4), nullable=False, server_default="0"),
        sa.Column("penalty_rate", sa.Numeric(12, 4), nullable=False, server_default="0"),
        *_water_schedule_columns("res"),
        *_water_schedule_columns("com"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id"),
        sa.Index("ix_tenant_settings_tenant_id", "tenant_id"),
    )

    # Create owners table
    op.create_table(
        "owners",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("middle_name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_owners_tenant_id", "tenant_id"),
    )

    # Create units table
    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=True),
        sa.Column("unit_number", sa.String(length=20), nullable=False),
        sa.Column("floor_level", sa.String(length=20), nullable=False),
        sa.Column("unit_type", sa.String(length=20), nullable=False, server_default="RESIDENTIAL"),
        sa.Column("area", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("parking_area", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["owner_id"], ["owners.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "unit_number", name="uq_unit_tenant_number"),
        sa.Index("ix_units_tenant_id", "tenant_id"),
        sa.Index("ix_units_owner_id", "owner_id"),
        sa.Index("ix_units_is_active", "is_active"),
        sa.Index("idx_unit_tenant_active", "tenant_id", "is_active"),
    )

    # Meter readings (billing_period = first day of the reading month)
    _reading_table("electric_readings", "uq_electric_reading_unit_period")
    _reading_table("water_readings", "uq_water_reading_unit_period")

    # Create billing_adjustments table
    op.create_table(
        "billing_adjustments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("billing_period", sa.Date(), nullable=False),
        _money("sp_assessment"),
        _money("discounts"),
        sa.Column("remarks", sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "tenant_id", "unit_id", "billing_period", name="uq_adjustment_tenant_unit_period"
        ),
        sa.Index("ix_billing_adjustments_tenant_id", "tenant_id"),
        sa.Index("ix_billing_adjustments_unit_id", "unit_id"),
    )

    # Create unit_advance_balances table
    op.create_table(
        "unit_advance_balances",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        _money("advance_dues"),
        _money("advance_utilities"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("unit_id"),
        sa.Index("ix_unit_advance_balances_tenant_id", "tenant_id"),
    )

    # Create bills table
    op.create_table(
        "bills",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("bill_number", sa.String(length=40), nullable=False),
        sa.Column(
            "bill_type",
            sa.Enum("REGULAR", "OPENING_BALANCE", name="billtype"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum("UNPAID", "PARTIAL", "PAID", name="billstatus"),
            nullable=False,
        ),
        sa.Column("billing_month", sa.Date(), nullable=False),
        sa.Column("billing_period_start", sa.Date(), nullable=False),
        sa.Column("billing_period_end", sa.Date(), nullable=False),
        sa.Column("statement_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("electric_consumption", sa.Numeric(12, 3), nullable=False, server_default="0"),
        sa.Column("water_consumption", sa.Numeric(12, 3), nullable=False, server_default="0"),
        _money("electric_amount"),
        _money("water_amount"),
        _money("association_dues", nullable=True),
        _money("parking_fee", nullable=True),
        _money("sp_assessment"),
        _money("discounts"),
        _money("advance_dues_applied"),
        _money("advance_util_applied"),
        _money("previous_balance"),
        _money("penalty_amount"),
        _money("total_amount"),
        _money("paid_amount"),
        _money("balance"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "bill_number", name="uq_bill_tenant_number"),
        sa.UniqueConstraint(
            "tenant_id", "unit_id", "billing_month", "bill_type", name="uq_bill_unit_month_type"
        ),
        sa.Index("ix_bills_tenant_id", "tenant_id"),
        sa.Index("ix_bills_unit_id", "unit_id"),
        sa.Index("ix_bills_billing_month", "billing_month"),
        sa.Index("idx_bill_tenant_month", "tenant_id", "billing_month"),
        sa.Index("idx_bill_unit_status", "unit_id", "status"),
    )

    # Create payments table
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("bill_id", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("reference", sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"]),
        sa.ForeignKeyConstraint(["bill_id"], ["bills.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_payments_tenant_id", "tenant_id"),
        sa.Index("ix_payments_unit_id", "unit_id"),
        sa.Index("ix_payments_bill_id", "bill_id"),
        sa.Index("ix_payments_payment_date", "payment_date"),
    )

    # Create audit_logs table
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=True),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True, comment="Administrator; null for system runs"),
        sa.Column("changes", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_audit_tenant_entity", "audit_logs", ["tenant_id", "entity_type", "entity_id"]
    )


def downgrade() -> None:
    for table in (
        "audit_logs",
        "payments",
        "bills",
        "unit_advance_balances",
        "billing_adjustments",
        "water_readings",
        "electric_readings",
        "units",
        "owners",
        "tenant_settings",
        "tenants",
    ):
        op.drop_table(table)
