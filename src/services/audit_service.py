"""Audit entries for bill generation and advance ledger movements."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from src.models.audit_log import AuditLog

BILL_BATCH = "bill_batch"
ADVANCE_BALANCE = "advance_balance"


def _json_safe(value):
    """Make a changes snapshot JSON serialisable (money as strings, dates ISO)."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


class AuditService:
    """Writes AuditLog rows into the caller's session.

    Nothing is flushed here: an entry commits or rolls back together with
    the bills or balances it describes.
    """

    @staticmethod
    def log(
        session: AsyncSession,
        entity_type: str,
        entity_id: int,
        action: str,
        actor_id: int | None = None,
        changes: dict | None = None,
        tenant_id: int | None = None,
    ) -> AuditLog:
        """Add an audit entry and return it.

        Args:
            session: Session of the enclosing transaction
            entity_type: BILL_BATCH or ADVANCE_BALANCE
            entity_id: Tenant id for batches, balance id for advances
            action: "create", "regenerate", "regenerate_delete", "credit" or "debit"
            actor_id: Administrator performing the action, if known
            changes: Snapshot of the affected values
            tenant_id: Owning tenant
        """
        audit = AuditLog(
            tenant_id=tenant_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            changes=_json_safe(changes) if changes is not None else None,
        )
        session.add(audit)
        return audit


__all__ = ["ADVANCE_BALANCE", "AuditService", "BILL_BATCH"]
