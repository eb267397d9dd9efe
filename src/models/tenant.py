"""Tenant and tenant rate settings ORM models."""

from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class Tenant(Base, BaseModel):
    """A condominium corporation billed as one unit of ownership.

    Every unit, bill, reading and advance balance is scoped to a tenant.
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Short tenant code (e.g., 'MT')",
    )
    bill_prefix: Mapped[str | None] = mapped_column(
        String(10),
        nullable=True,
        comment="Bill number prefix; falls back to BILL_NUMBER_PREFIX when null",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    settings: Mapped["TenantSettings | None"] = relationship(
        "TenantSettings",
        back_populates="tenant",
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, code={self.code!r}, name={self.name!r})>"


def _rate_column(comment: str) -> Mapped[Decimal]:
    return mapped_column(Numeric(12, 4), nullable=False, default=Decimal("0"), comment=comment)


def _bound_column(comment: str) -> Mapped[Decimal]:
    return mapped_column(Numeric(12, 3), nullable=False, comment=comment)


class TenantSettings(Base, BaseModel):
    """Billing constants for a tenant (one active row per tenant).

    Water tier maxima are inclusive upper bounds in cu.m. Tier 7 is open ended
    and only carries a rate. Residential and commercial units use independent
    schedules.
    """

    __tablename__ = "tenant_settings"

    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id"),
        nullable=False,
        unique=True,
        index=True,
    )

    # Electric
    electric_rate: Mapped[Decimal] = _rate_column("Electric rate per kWh")
    electric_min_charge: Mapped[Decimal] = _rate_column("Minimum electric charge")

    # Dues, parking, penalty
    association_dues_rate: Mapped[Decimal] = _rate_column("Association dues per sq.m")
    parking_rate: Mapped[Decimal] = _rate_column("Parking fee per sq.m of parking area")
    penalty_rate: Mapped[Decimal] = _rate_column("Monthly penalty rate as a fraction (0.10 = 10%)")

    # Residential water schedule
    water_res_tier1_max: Mapped[Decimal] = _bound_column("Residential tier 1 max cu.m")
    water_res_tier1_rate: Mapped[Decimal] = _rate_column("Residential tier 1 flat fee")
    water_res_tier2_max: Mapped[Decimal] = _bound_column("Residential tier 2 max cu.m")
    water_res_tier2_rate: Mapped[Decimal] = _rate_column("Residential tier 2 flat fee")
    water_res_tier3_max: Mapped[Decimal] = _bound_column("Residential tier 3 max cu.m")
    water_res_tier3_rate: Mapped[Decimal] = _rate_column("Residential tier 3 flat fee")
    water_res_tier4_max: Mapped[Decimal] = _bound_column("Residential tier 4 max cu.m")
    water_res_tier4_rate: Mapped[Decimal] = _rate_column("Residential tier 4 rate per cu.m")
    water_res_tier5_max: Mapped[Decimal] = _bound_column("Residential tier 5 max cu.m")
    water_res_tier5_rate: Mapped[Decimal] = _rate_column("Residential tier 5 rate per cu.m")
    water_res_tier6_max: Mapped[Decimal] = _bound_column("Residential tier 6 max cu.m")
    water_res_tier6_rate: Mapped[Decimal] = _rate_column("Residential tier 6 rate per cu.m")
    water_res_tier7_rate: Mapped[Decimal] = _rate_column("Residential tier 7 rate per cu.m")

    # Commercial water schedule
    water_com_tier1_max: Mapped[Decimal] = _bound_column("Commercial tier 1 max cu.m")
    water_com_tier1_rate: Mapped[Decimal] = _rate_column("Commercial tier 1 flat fee")
    water_com_tier2_max: Mapped[Decimal] = _bound_column("Commercial tier 2 max cu.m")
    water_com_tier2_rate: Mapped[Decimal] = _rate_column("Commercial tier 2 flat fee")
    water_com_tier3_max: Mapped[Decimal] = _bound_column("Commercial tier 3 max cu.m")
    water_com_tier3_rate: Mapped[Decimal] = _rate_column("Commercial tier 3 flat fee")
    water_com_tier4_max: Mapped[Decimal] = _bound_column("Commercial tier 4 max cu.m")
    water_com_tier4_rate: Mapped[Decimal] = _rate_column("Commercial tier 4 rate per cu.m")
    water_com_tier5_max: Mapped[Decimal] = _bound_column("Commercial tier 5 max cu.m")
    water_com_tier5_rate: Mapped[Decimal] = _rate_column("Commercial tier 5 rate per cu.m")
    water_com_tier6_max: Mapped[Decimal] = _bound_column("Commercial tier 6 max cu.m")
    water_com_tier6_rate: Mapped[Decimal] = _rate_column("Commercial tier 6 rate per cu.m")
    water_com_tier7_rate: Mapped[Decimal] = _rate_column("Commercial tier 7 rate per cu.m")

    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="settings")

    def __repr__(self) -> str:
        return (
            f"<TenantSettings(tenant_id={self.tenant_id}, electric_rate={self.electric_rate}, "
            f"association_dues_rate={self.association_dues_rate}, penalty_rate={self.penalty_rate})>"
        )


__all__ = ["Tenant", "TenantSettings"]
