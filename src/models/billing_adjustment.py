"""Billing adjustment ORM model (one-time SP assessment and discounts)."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.models import Base, BaseModel


class BillingAdjustment(Base, BaseModel):
    """Per-unit adjustment applied to a single bill month.

    Maintained by the adjustments workflow; bill generation only reads it.
    """

    __tablename__ = "billing_adjustments"

    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"), nullable=False, index=True)
    unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False, index=True)
    billing_period: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="First day of the bill month the adjustment applies to",
    )
    sp_assessment: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    discounts: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    remarks: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "unit_id", "billing_period", name="uq_adjustment_tenant_unit_period"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<BillingAdjustment(unit_id={self.unit_id}, billing_period={self.billing_period}, "
            f"sp_assessment={self.sp_assessment}, discounts={self.discounts})>"
        )


__all__ = ["BillingAdjustment"]
