"""Electric and water meter reading ORM models."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from src.models import Base, BaseModel


class MeterReadingMixin:
    """Columns shared by electric and water readings.

    ``billing_period`` is the first day of the reading month, which is always
    one month before the month of the bill that consumes it.
    """

    unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False, index=True)
    billing_period: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    previous_reading: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    present_reading: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    consumption: Mapped[Decimal] = mapped_column(
        Numeric(12, 3),
        nullable=False,
        comment="present_reading - previous_reading",
    )

    @declared_attr
    def unit(cls) -> Mapped["Unit"]:  # noqa: F821
        return relationship("Unit")


class ElectricReading(MeterReadingMixin, Base, BaseModel):
    """Monthly electric meter reading (kWh)."""

    __tablename__ = "electric_readings"
    __table_args__ = (
        UniqueConstraint("unit_id", "billing_period", name="uq_electric_reading_unit_period"),
    )

    def __repr__(self) -> str:
        return (
            f"<ElectricReading(unit_id={self.unit_id}, billing_period={self.billing_period}, "
            f"consumption={self.consumption})>"
        )


class WaterReading(MeterReadingMixin, Base, BaseModel):
    """Monthly water meter reading (cu.m)."""

    __tablename__ = "water_readings"
    __table_args__ = (
        UniqueConstraint("unit_id", "billing_period", name="uq_water_reading_unit_period"),
    )

    def __repr__(self) -> str:
        return (
            f"<WaterReading(unit_id={self.unit_id}, billing_period={self.billing_period}, "
            f"consumption={self.consumption})>"
        )


__all__ = ["ElectricReading", "WaterReading"]
