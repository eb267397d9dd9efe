"""Tests for audit log entries."""

from datetime import date
from decimal import Decimal

from sqlalchemy import select

from src.models.audit_log import AuditLog
from src.models.bill import BillStatus
from src.services.audit_service import BILL_BATCH, AuditService


async def test_entry_commits_with_session_and_stores_json_safe_changes(async_db_session, building):
    AuditService.log(
        async_db_session,
        entity_type=BILL_BATCH,
        entity_id=building.tenant_id,
        action="create",
        actor_id=3,
        tenant_id=building.tenant_id,
        changes={
            "total_amount": Decimal("10924.00"),
            "due_date": date(2025, 3, 6),
            "status": BillStatus.UNPAID,
            "bill_numbers": ("MT-202502-0001",),
        },
    )
    await async_db_session.commit()

    audit = await async_db_session.scalar(select(AuditLog))
    assert audit.changes == {
        "total_amount": "10924.00",
        "due_date": "2025-03-06",
        "status": "UNPAID",
        "bill_numbers": ["MT-202502-0001"],
    }


async def test_entry_is_discarded_on_rollback(async_db_session, building):
    AuditService.log(async_db_session, BILL_BATCH, building.tenant_id, "create")
    await async_db_session.rollback()

    assert (await async_db_session.execute(select(AuditLog))).scalars().all() == []
