"""Unit advance balance ORM model - prepaid credit pools per unit."""

from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from src.models import Base, BaseModel


class UnitAdvanceBalance(Base, BaseModel):
    """Two independent prepaid pools held for a unit.

    ``advance_dues`` offsets association dues, ``advance_utilities`` offsets
    electric + water. Both are replenished by payment recording and only
    drawn down by bill generation.
    """

    __tablename__ = "unit_advance_balances"

    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"), nullable=False, index=True)
    unit_id: Mapped[int] = mapped_column(
        ForeignKey("units.id"),
        nullable=False,
        unique=True,
        index=True,
    )
    advance_dues: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    advance_utilities: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )

    def __repr__(self) -> str:
        return (
            f"<UnitAdvanceBalance(unit_id={self.unit_id}, advance_dues={self.advance_dues}, "
            f"advance_utilities={self.advance_utilities})>"
        )


__all__ = ["UnitAdvanceBalance"]
