"""Owner ORM model for unit owners."""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class Owner(Base, BaseModel):
    """Registered owner of one or more units."""

    __tablename__ = "owners"

    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"), nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    middle_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    units: Mapped[list["Unit"]] = relationship(  # noqa: F821
        "Unit",
        back_populates="owner",
    )

    @property
    def display_name(self) -> str:
        """Statement style name: 'Last, First M.'"""
        name = f"{self.last_name}, {self.first_name}"
        if self.middle_name:
            name += f" {self.middle_name[0]}."
        return name

    def __repr__(self) -> str:
        return f"<Owner(id={self.id}, name={self.display_name!r})>"


__all__ = ["Owner"]
