"""Bill ORM model - the monthly statement ledger for each unit."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class BillType(str, Enum):
    """Types of bills that can be tracked."""

    REGULAR = "REGULAR"
    """Monthly bill produced by bill generation"""

    OPENING_BALANCE = "OPENING_BALANCE"
    """One-time bill carrying migrated legacy debt; never touched by regeneration"""


class BillStatus(str, Enum):
    """Payment status of a bill."""

    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


def _money() -> Mapped[Decimal]:
    return mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))


class Bill(Base, BaseModel):
    """
    Monthly bill for one unit.

    Component amounts are stored individually so that
    total_amount = electric_amount + water_amount + association_dues + parking_fee
    + sp_assessment + previous_balance + penalty_amount - discounts
    - advance_dues_applied - advance_util_applied.

    Bills are created UNPAID with balance = total_amount. Penalty is computed
    once, at creation, and never edited afterwards.
    """

    __tablename__ = "bills"

    # Foreign keys
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"), nullable=False, index=True)
    unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False, index=True)

    bill_number: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        comment="Tenant-scoped sequential number: <PREFIX>-<YYYYMM>-<NNNN>",
    )
    bill_type: Mapped[BillType] = mapped_column(
        SQLEnum(BillType),
        nullable=False,
        default=BillType.REGULAR,
    )
    status: Mapped[BillStatus] = mapped_column(
        SQLEnum(BillStatus),
        nullable=False,
        default=BillStatus.UNPAID,
    )

    # Period dates
    billing_month: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        index=True,
        comment="First day of the month the bill is issued for",
    )
    billing_period_start: Mapped[date] = mapped_column(Date, nullable=False)
    billing_period_end: Mapped[date] = mapped_column(Date, nullable=False)
    statement_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Consumption snapshot
    electric_consumption: Mapped[Decimal] = mapped_column(
        Numeric(12, 3), nullable=False, default=Decimal("0")
    )
    water_consumption: Mapped[Decimal] = mapped_column(
        Numeric(12, 3), nullable=False, default=Decimal("0")
    )

    # Charges
    electric_amount: Mapped[Decimal] = _money()
    water_amount: Mapped[Decimal] = _money()
    association_dues: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        comment="Null on imported opening balance bills that did not record dues",
    )
    parking_fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    sp_assessment: Mapped[Decimal] = _money()
    discounts: Mapped[Decimal] = _money()
    advance_dues_applied: Mapped[Decimal] = _money()
    advance_util_applied: Mapped[Decimal] = _money()
    previous_balance: Mapped[Decimal] = _money()
    penalty_amount: Mapped[Decimal] = _money()

    # Totals
    total_amount: Mapped[Decimal] = _money()
    paid_amount: Mapped[Decimal] = _money()
    balance: Mapped[Decimal] = _money()

    unit: Mapped["Unit"] = relationship("Unit", foreign_keys=[unit_id])  # noqa: F821

    # Indexes for common queries
    __table_args__ = (
        UniqueConstraint("tenant_id", "bill_number", name="uq_bill_tenant_number"),
        UniqueConstraint(
            "tenant_id", "unit_id", "billing_month", "bill_type", name="uq_bill_unit_month_type"
        ),
        Index("idx_bill_tenant_month", "tenant_id", "billing_month"),
        Index("idx_bill_unit_status", "unit_id", "status"),
    )

    @property
    def current_charges(self) -> Decimal:
        """Electric + water + dues + parking + SP assessment."""
        return (
            (self.electric_amount or Decimal("0"))
            + (self.water_amount or Decimal("0"))
            + (self.association_dues or Decimal("0"))
            + (self.parking_fee or Decimal("0"))
            + (self.sp_assessment or Decimal("0"))
        )

    def __repr__(self) -> str:
        return (
            f"<Bill(id={self.id}, bill_number={self.bill_number!r}, unit_id={self.unit_id}, "
            f"billing_month={self.billing_month}, bill_type={self.bill_type}, "
            f"total_amount={self.total_amount}, balance={self.balance}, status={self.status})>"
        )


__all__ = ["Bill", "BillStatus", "BillType"]
