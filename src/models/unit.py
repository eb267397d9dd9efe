"""Unit ORM model for condominium units (residential or commercial)."""

from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class UnitType(str, Enum):
    """Unit classification; selects the water tier schedule."""

    RESIDENTIAL = "RESIDENTIAL"
    COMMERCIAL = "COMMERCIAL"


class Unit(Base, BaseModel):
    """Model representing a billable condominium unit.

    Association dues are charged on ``area`` and parking fees on
    ``parking_area``. Only active units are billed.
    """

    __tablename__ = "units"

    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"), nullable=False, index=True)
    owner_id: Mapped[int | None] = mapped_column(ForeignKey("owners.id"), nullable=True, index=True)

    unit_number: Mapped[str] = mapped_column(String(20), nullable=False)
    floor_level: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Floor label used for ordering (e.g., 'GF', '2F')",
    )
    unit_type: Mapped[UnitType] = mapped_column(
        String(20),
        nullable=False,
        default=UnitType.RESIDENTIAL,
    )

    area: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Floor area in sq.m",
    )
    parking_area: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Parking area in sq.m",
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    owner: Mapped["Owner | None"] = relationship(  # noqa: F821
        "Owner",
        back_populates="units",
        foreign_keys=[owner_id],
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "unit_number", name="uq_unit_tenant_number"),
        Index("idx_unit_tenant_active", "tenant_id", "is_active"),
    )

    def __repr__(self) -> str:
        return (
            f"<Unit(id={self.id}, tenant_id={self.tenant_id}, unit_number={self.unit_number!r}, "
            f"floor_level={self.floor_level!r}, unit_type={self.unit_type}, area={self.area}, "
            f"parking_area={self.parking_area}, is_active={self.is_active})>"
        )


__all__ = ["Unit", "UnitType"]
