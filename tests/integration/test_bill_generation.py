"""Integration tests for BillGenerationService against an in-memory database."""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from src.models.advance_balance import UnitAdvanceBalance
from src.models.audit_log import AuditLog
from src.models.bill import Bill, BillStatus, BillType
from src.models.billing_adjustment import BillingAdjustment
from src.models.payment import Payment
from src.models.tenant import Tenant, TenantSettings
from src.models.unit import Unit
from src.services.bill_assembler import MISSING_ELECTRIC_READING
from src.services.bills_service import BillGenerationService
from src.services.config import BillingConfig
from src.services.errors import ComputationError, ConflictError, NotFoundError, ValidationError


@pytest.fixture
def service(async_db_session) -> BillGenerationService:
    return BillGenerationService(async_db_session, BillingConfig())


async def bill_count(session, **filters) -> int:
    stmt = select(func.count(Bill.id))
    for name, value in filters.items():
        stmt = stmt.where(getattr(Bill, name) == value)
    return await session.scalar(stmt)


async def bills_for(session, tenant_id: int, month: date) -> list[Bill]:
    result = await session.execute(
        select(Bill)
        .where(Bill.tenant_id == tenant_id, Bill.billing_month == month)
        .order_by(Bill.id)
    )
    return list(result.scalars().all())


def opening_balance_bill(tenant_id: int, unit_id: int, month: date, amount: str) -> Bill:
    return Bill(
        tenant_id=tenant_id,
        unit_id=unit_id,
        bill_number="OB-LEGACY-0001",
        bill_type=BillType.OPENING_BALANCE,
        status=BillStatus.UNPAID,
        billing_month=month,
        billing_period_start=month,
        billing_period_end=month,
        statement_date=month,
        due_date=month,
        electric_amount=Decimal("0"),
        water_amount=Decimal("0"),
        association_dues=None,
        parking_fee=None,
        total_amount=Decimal(amount),
        balance=Decimal(amount),
    )


class TestPreview:
    """preview() computes every active unit without writing."""

    async def test_preview_lists_active_units_in_floor_order(self, service, building):
        preview = await service.preview(building.tenant_id, "2025-02")

        assert [b.unit_number for b in preview.bills] == ["101", "102", "201"]
        assert [b.total_amount for b in preview.bills] == [
            Decimal("4409.00"),
            Decimal("3075.00"),
            Decimal("3440.00"),
        ]
        assert preview.period.due_date == date(2025, 3, 6)

    async def test_preview_summary_and_warnings(self, service, building):
        preview = await service.preview(building.tenant_id, "2025-02")

        summary = preview.summary
        assert summary.total_units == 3
        assert summary.units_with_electric_readings == 2
        assert summary.units_with_water_readings == 3
        assert summary.units_with_warnings == 1
        assert summary.total_amount == Decimal("10924.00")

        unit_201 = preview.bills[2]
        assert unit_201.owner_name == "No Owner"
        assert unit_201.warnings == [MISSING_ELECTRIC_READING]

        warnings = preview.validation_warnings
        assert warnings.previous_month_label == "January 2025"
        assert warnings.no_payments_recorded is False
        assert warnings.no_adjustments is True

    async def test_preview_writes_nothing(self, async_db_session, service, building):
        async_db_session.add(
            UnitAdvanceBalance(
                tenant_id=building.tenant_id,
                unit_id=building.unit_101,
                advance_dues=Decimal("1000"),
                advance_utilities=Decimal("0"),
            )
        )
        await async_db_session.commit()

        first = await service.preview(building.tenant_id, "2025-02")
        second = await service.preview(building.tenant_id, "2025-02")

        assert first.bills == second.bills
        assert first.bills[0].advance_dues_applied == Decimal("1000.00")
        assert await bill_count(async_db_session) == 0
        balance = await async_db_session.scalar(
            select(UnitAdvanceBalance.advance_dues).where(UnitAdvanceBalance.unit_id == building.unit_101)
        )
        assert balance == Decimal("1000")

    async def test_adjustments_are_applied_and_counted(self, async_db_session, service, building):
        async_db_session.add(
            BillingAdjustment(
                tenant_id=building.tenant_id,
                unit_id=building.unit_102,
                billing_period=date(2025, 2, 1),
                sp_assessment=Decimal("500"),
                discounts=Decimal("75"),
            )
        )
        await async_db_session.commit()

        preview = await service.preview(building.tenant_id, "2025-02")

        assert preview.bills[1].total_amount == Decimal("3500.00")
        assert preview.validation_warnings.adjustments_count == 1
        assert preview.validation_warnings.no_adjustments is False

    async def test_unknown_tenant(self, service, building):
        with pytest.raises(NotFoundError, match="Tenant not found"):
            await service.preview(9999, "2025-02")

    async def test_missing_settings(self, async_db_session, service):
        tenant = Tenant(name="Bare", code="BR")
        async_db_session.add(tenant)
        await async_db_session.commit()

        with pytest.raises(NotFoundError, match="Tenant settings not found"):
            await service.preview(tenant.id, "2025-02")

    async def test_no_active_units(self, async_db_session, service, building):
        result = await async_db_session.execute(select(Unit).where(Unit.tenant_id == building.tenant_id))
        for unit in result.scalars().all():
            unit.is_active = False
        await async_db_session.commit()

        with pytest.raises(NotFoundError, match="No active units found"):
            await service.preview(building.tenant_id, "2025-02")

    async def test_malformed_month(self, service, building):
        with pytest.raises(ValidationError):
            await service.preview(building.tenant_id, "2025-13")

    async def test_malformed_rates(self, async_db_session, service, building):
        settings = await async_db_session.scalar(
            select(TenantSettings).where(TenantSettings.tenant_id == building.tenant_id)
        )
        settings.water_res_tier2_max = Decimal("1")
        await async_db_session.commit()

        with pytest.raises(ComputationError, match="tier 2 maximum"):
            await service.preview(building.tenant_id, "2025-02")


class TestCommit:
    """commit() persists all bills atomically."""

    async def test_commit_persists_preview_values(self, async_db_session, service, building):
        preview = await service.preview(building.tenant_id, "2025-02")

        result = await service.commit(building.tenant_id, "2025-02")

        assert result.message == "Successfully generated 3 bill(s) for 2025-02"
        assert result.total_bills == 3
        assert result.total_amount == preview.summary.total_amount
        assert result.deleted_count == 0

        bills = await bills_for(async_db_session, building.tenant_id, date(2025, 2, 1))
        assert [b.bill_number for b in bills] == ["MT-202502-0001", "MT-202502-0002", "MT-202502-0003"]
        assert [b.total_amount for b in bills] == [p.total_amount for p in preview.bills]
        for bill in bills:
            assert bill.status == BillStatus.UNPAID
            assert bill.bill_type == BillType.REGULAR
            assert bill.balance == bill.total_amount
            assert bill.paid_amount == Decimal("0")
            assert bill.due_date == date(2025, 3, 6)
            assert bill.billing_period_start == date(2025, 1, 27)

    async def test_commit_writes_batch_audit_entry(self, async_db_session, service, building):
        await service.commit(building.tenant_id, "2025-02", actor_id=7)

        audit = await async_db_session.scalar(
            select(AuditLog).where(AuditLog.entity_type == "bill_batch")
        )
        assert audit.action == "create"
        assert audit.actor_id == 7
        assert audit.changes["count"] == 3
        assert audit.changes["last_bill_number"] == "MT-202502-0003"

    async def test_duplicate_commit_rejected(self, async_db_session, service, building):
        await service.commit(building.tenant_id, "2025-02")

        with pytest.raises(ConflictError, match="Found 3 existing bill") as exc_info:
            await service.commit(building.tenant_id, "2025-02")

        assert exc_info.value.existing_count == 3
        assert await bill_count(async_db_session) == 3

    async def test_opening_balance_bills_do_not_block_generation(self, async_db_session, service, building):
        async_db_session.add(
            opening_balance_bill(building.tenant_id, building.unit_101, date(2025, 2, 1), "100")
        )
        await async_db_session.commit()

        result = await service.commit(building.tenant_id, "2025-02")

        assert result.total_bills == 3

    async def test_tenant_prefix_falls_back_to_config(self, async_db_session, building):
        tenant = await async_db_session.get(Tenant, building.tenant_id)
        tenant.bill_prefix = None
        await async_db_session.commit()

        service = BillGenerationService(async_db_session, BillingConfig(bill_number_prefix="CB"))
        result = await service.commit(building.tenant_id, "2025-02")

        assert result.bills[0].bill_number == "CB-202502-0001"

    async def test_numbering_continues_across_periods(self, async_db_session, service, building):
        await service.commit(building.tenant_id, "2025-02")

        result = await service.commit(building.tenant_id, "2025-03")

        assert [b.bill_number for b in result.bills] == [
            "MT-202503-0004",
            "MT-202503-0005",
            "MT-202503-0006",
        ]

    async def test_unpaid_bills_carry_forward_with_penalty(self, async_db_session, service, building):
        await service.commit(building.tenant_id, "2025-02")

        preview = await service.preview(building.tenant_id, "2025-03")

        unit_101 = preview.bills[0]
        assert unit_101.previous_balance == Decimal("4409.00")
        assert unit_101.penalty_amount == Decimal("440.90")
        assert preview.validation_warnings.no_payments_recorded is True
        assert preview.validation_warnings.previous_month_unpaid_count == 3

    async def test_advances_are_debited_on_commit(self, async_db_session, service, building):
        async_db_session.add(
            UnitAdvanceBalance(
                tenant_id=building.tenant_id,
                unit_id=building.unit_101,
                advance_dues=Decimal("1000"),
                advance_utilities=Decimal("5000"),
            )
        )
        await async_db_session.commit()

        result = await service.commit(building.tenant_id, "2025-02")

        bill = result.bills[0]
        assert bill.advance_dues_applied == Decimal("1000.00")
        assert bill.advance_util_applied == Decimal("1409.00")
        assert bill.total_amount == Decimal("2000.00")

        row = (
            await async_db_session.execute(
                select(UnitAdvanceBalance.advance_dues, UnitAdvanceBalance.advance_utilities).where(
                    UnitAdvanceBalance.unit_id == building.unit_101
                )
            )
        ).one()
        assert row.advance_dues == Decimal("0")
        assert row.advance_utilities == Decimal("3591")

    async def test_failure_rolls_back_everything(self, async_db_session, service, building):
        async_db_session.add(
            UnitAdvanceBalance(
                tenant_id=building.tenant_id,
                unit_id=building.unit_101,
                advance_dues=Decimal("1000"),
                advance_utilities=Decimal("0"),
            )
        )
        await async_db_session.commit()

        with patch(
            "src.services.bills_service.AuditService.log",
            side_effect=SQLAlchemyError("disk I/O error"),
        ):
            with pytest.raises(ComputationError, match="Failed to generate bills"):
                await service.commit(building.tenant_id, "2025-02")

        assert await bill_count(async_db_session) == 0
        dues = await async_db_session.scalar(
            select(UnitAdvanceBalance.advance_dues).where(UnitAdvanceBalance.unit_id == building.unit_101)
        )
        assert dues == Decimal("1000")


class TestRegenerate:
    """commit(regenerate=True) replaces a month's regular bills."""

    async def test_regenerate_replaces_regular_bills_only(self, async_db_session, service, building):
        async_db_session.add(
            opening_balance_bill(building.tenant_id, building.unit_102, date(2025, 2, 1), "100")
        )
        await async_db_session.commit()
        await service.commit(building.tenant_id, "2025-02")

        result = await service.commit(building.tenant_id, "2025-02", regenerate=True)

        assert result.deleted_count == 3
        assert result.total_bills == 3
        assert await bill_count(async_db_session, bill_type=BillType.REGULAR) == 3
        assert await bill_count(async_db_session, bill_type=BillType.OPENING_BALANCE) == 1

    async def test_regenerate_returns_advances_before_recomputing(
        self, async_db_session, service, building
    ):
        async_db_session.add(
            UnitAdvanceBalance(
                tenant_id=building.tenant_id,
                unit_id=building.unit_101,
                advance_dues=Decimal("1000"),
                advance_utilities=Decimal("0"),
            )
        )
        await async_db_session.commit()
        await service.commit(building.tenant_id, "2025-02")

        result = await service.commit(building.tenant_id, "2025-02", regenerate=True)

        assert result.bills[0].advance_dues_applied == Decimal("1000.00")
        dues = await async_db_session.scalar(
            select(UnitAdvanceBalance.advance_dues).where(UnitAdvanceBalance.unit_id == building.unit_101)
        )
        assert dues == Decimal("0")

    async def test_regenerate_refused_when_a_bill_has_a_payment(self, async_db_session, service, building):
        await service.commit(building.tenant_id, "2025-02")
        first_bill = (await bills_for(async_db_session, building.tenant_id, date(2025, 2, 1)))[0]
        async_db_session.add(
            Payment(
                tenant_id=building.tenant_id,
                unit_id=first_bill.unit_id,
                bill_id=first_bill.id,
                amount=Decimal("500"),
                payment_date=date(2025, 3, 1),
            )
        )
        await async_db_session.commit()

        with pytest.raises(ConflictError, match="already have payments"):
            await service.commit(building.tenant_id, "2025-02", regenerate=True)

        numbers = await async_db_session.scalars(
            select(Bill.bill_number).where(Bill.tenant_id == building.tenant_id).order_by(Bill.id)
        )
        assert list(numbers) == ["MT-202502-0001", "MT-202502-0002", "MT-202502-0003"]

    async def test_regenerate_refused_for_partially_paid_bill(self, async_db_session, service, building):
        """A paid amount blocks regeneration even without a linked payment row."""
        await service.commit(building.tenant_id, "2025-02")
        first_bill = (await bills_for(async_db_session, building.tenant_id, date(2025, 2, 1)))[0]
        first_bill.paid_amount = Decimal("100")
        first_bill.status = BillStatus.PARTIAL
        await async_db_session.commit()

        with pytest.raises(ConflictError, match="1 bill\\(s\\) already have payments") as exc_info:
            await service.commit(building.tenant_id, "2025-02", regenerate=True)

        assert exc_info.value.existing_count == 3
        assert await bill_count(async_db_session, bill_type=BillType.REGULAR) == 3


class TestNextPeriod:
    """get_next_period() looks at regular bills and readings."""

    async def test_no_history(self, async_db_session, service):
        tenant = Tenant(name="New", code="NW")
        async_db_session.add(tenant)
        await async_db_session.commit()

        info = await service.get_next_period(tenant.id)

        assert info.has_history is False
        assert info.next_billing_month is None

    async def test_readings_only(self, service, building):
        info = await service.get_next_period(building.tenant_id)

        assert info.last_billing_month == date(2025, 1, 1)
        assert info.next_billing_month == date(2025, 2, 1)
        assert info.message == "Last billing was January 2025. Next billing should be February 2025."

    async def test_after_commit(self, service, building):
        await service.commit(building.tenant_id, "2025-02")

        info = await service.get_next_period(building.tenant_id)

        assert info.last_billing_month == date(2025, 2, 1)
        assert info.next_billing_month == date(2025, 3, 1)
