"""Audit trail of bill generation and advance ledger movements."""

from typing import Any

from sqlalchemy import JSON, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models import Base, BaseModel


class AuditLog(Base, BaseModel):
    """One audited action.

    Batch generation is logged once per run against the tenant
    (entity_type "bill_batch"); advance movements once per unit balance
    (entity_type "advance_balance"). ``changes`` holds a JSON snapshot such as
    ``{"billing_month": "2025-02", "count": 3, "total_amount": "10924.00"}``.
    """

    __tablename__ = "audit_logs"

    tenant_id: Mapped[int | None] = mapped_column(ForeignKey("tenants.id"), nullable=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[int] = mapped_column(nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    actor_id: Mapped[int | None] = mapped_column(nullable=True, comment="Administrator; null for system runs")
    changes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (Index("idx_audit_tenant_entity", "tenant_id", "entity_type", "entity_id"),)

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, {self.entity_type}#{self.entity_id} {self.action})>"


__all__ = ["AuditLog"]
