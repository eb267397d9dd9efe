"""Bill generation service: preview and commit a tenant's monthly bills."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.models.advance_balance import UnitAdvanceBalance
from src.models.bill import Bill, BillStatus, BillType
from src.models.billing_adjustment import BillingAdjustment
from src.models.payment import Payment
from src.models.reading import ElectricReading, WaterReading
from src.models.tenant import Tenant, TenantSettings
from src.models.unit import Unit
from src.services.advance_balance_service import AdvanceBalanceService
from src.services.audit_service import BILL_BATCH, AuditService
from src.services.bill_assembler import BillPreview, assemble_bill
from src.services.bill_numbering import BillNumberService
from src.services.billing_period import (
    BillingPeriod,
    BillingSchedule,
    add_months,
    month_label,
)
from src.services.config import BillingConfig
from src.services.errors import BillingError, ComputationError, ConflictError, NotFoundError
from src.services.penalty_service import UNPAID_STATUSES, PriorBill
from src.services.rate_calculator import ZERO, RateConfiguration, WaterTierPolicy, round_money

logger = logging.getLogger(__name__)


class ValidationWarnings(NamedTuple):
    """Batch-level hints shown before committing. Never block generation."""

    no_payments_recorded: bool
    previous_month_label: str
    previous_month_payments_count: int
    previous_month_unpaid_count: int
    no_adjustments: bool
    adjustments_count: int


class GenerationSummary(NamedTuple):
    """Totals over a preview batch."""

    total_units: int
    units_with_electric_readings: int
    units_with_water_readings: int
    units_with_warnings: int
    total_amount: Decimal


@dataclass
class GenerationPreview:
    """Everything a preview returns; nothing is written."""

    tenant_id: int
    period: BillingPeriod
    bills: list[BillPreview]
    summary: GenerationSummary
    validation_warnings: ValidationWarnings


@dataclass
class GenerationResult:
    """Outcome of a committed generation."""

    tenant_id: int
    period: BillingPeriod
    bills: list[Bill]
    total_bills: int
    total_amount: Decimal
    deleted_count: int
    message: str


class NextPeriodInfo(NamedTuple):
    """Latest billed or read month and the month that follows it."""

    has_history: bool
    last_billing_month: date | None
    next_billing_month: date | None
    message: str


@dataclass
class _GenerationContext:
    """Inputs loaded for one (tenant, month)."""

    tenant: Tenant
    rates: RateConfiguration
    units: list[Unit]
    electric_readings: dict[int, ElectricReading]
    water_readings: dict[int, WaterReading]
    adjustments: dict[int, BillingAdjustment]
    advance_balances: dict[int, UnitAdvanceBalance]
    prior_bills: dict[int, list[PriorBill]] = field(default_factory=dict)


def _summarize(previews: list[BillPreview]) -> GenerationSummary:
    return GenerationSummary(
        total_units=len(previews),
        units_with_electric_readings=sum(1 for p in previews if p.electric_reading is not None),
        units_with_water_readings=sum(1 for p in previews if p.water_reading is not None),
        units_with_warnings=sum(1 for p in previews if p.warnings),
        total_amount=round_money(sum((p.total_amount for p in previews), ZERO)),
    )


class BillGenerationService:
    """Async service generating monthly bills for all active units of a tenant.

    preview() is read-only. commit() runs in a single transaction on the
    session: either every unit's bill is written together with the advance
    debits, or nothing is.
    """

    def __init__(self, session: AsyncSession, config: BillingConfig | None = None):
        """Initialize with async database session and optional billing config."""
        self.session = session
        self.config = config or BillingConfig()
        self.schedule = BillingSchedule(
            reading_day=self.config.reading_day,
            statement_day=self.config.statement_day,
            due_day=self.config.due_day,
        )
        self.water_policy = WaterTierPolicy(
            flat_tiers=self.config.water_flat_tiers,
            charge_minimum_on_zero=self.config.water_charge_minimum_on_zero,
        )
        self.numbers = BillNumberService(session)
        self.advances = AdvanceBalanceService(session)

    def period_for(self, billing_month: str) -> BillingPeriod:
        """Parse 'YYYY-MM' into a billing period using the configured days."""
        return BillingPeriod.parse(billing_month, self.schedule)

    async def preview(self, tenant_id: int, billing_month: str) -> GenerationPreview:
        """Compute every active unit's bill for the month without writing.

        Raises:
            ValidationError: Malformed month or negative consumption
            NotFoundError: Tenant, settings or active units missing
            ComputationError: Malformed rate configuration
        """
        period = self.period_for(billing_month)
        context = await self._load_context(tenant_id, period)
        previews = self._assemble_all(context, period)
        warnings = await self._validation_warnings(tenant_id, period, context)

        summary = _summarize(previews)
        logger.info(
            "Previewed %d bill(s) for tenant %d, %s: total=%s, units with warnings=%d",
            summary.total_units,
            tenant_id,
            period.label,
            summary.total_amount,
            summary.units_with_warnings,
        )
        return GenerationPreview(
            tenant_id=tenant_id,
            period=period,
            bills=previews,
            summary=summary,
            validation_warnings=warnings,
        )

    async def commit(
        self,
        tenant_id: int,
        billing_month: str,
        regenerate: bool = False,
        actor_id: int | None = None,
    ) -> GenerationResult:
        """Persist the month's bills atomically.

        Args:
            tenant_id: Tenant to bill
            billing_month: Bill month as 'YYYY-MM'
            regenerate: Replace existing regular bills for the month; refused
                when any of them already has a payment recorded
            actor_id: Administrator performing the action (audit only)

        Returns:
            GenerationResult with the created bills

        Raises:
            ConflictError: Bills exist and regenerate is False, or a bill to
                replace already has a payment
            ValidationError, NotFoundError: As for preview
            ComputationError: Persistence failure (transaction rolled back)
        """
        period = self.period_for(billing_month)

        try:
            result = await self._generate(tenant_id, period, regenerate, actor_id)
            await self.session.commit()
        except BillingError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Bill generation failed for tenant %d, %s", tenant_id, period.label, exc_info=True
            )
            raise ComputationError(f"Failed to generate bills: {e}") from e
        except Exception:
            await self.session.rollback()
            logger.error(
                "Bill generation failed for tenant %d, %s", tenant_id, period.label, exc_info=True
            )
            raise

        logger.info(
            "Generated %d bill(s) for tenant %d, %s (replaced %d): total=%s",
            result.total_bills,
            tenant_id,
            period.label,
            result.deleted_count,
            result.total_amount,
        )
        return result

    async def get_next_period(self, tenant_id: int) -> NextPeriodInfo:
        """Latest month among regular bills and meter readings, plus the next one."""
        last_bill = await self.session.scalar(
            select(func.max(Bill.billing_month)).where(
                Bill.tenant_id == tenant_id,
                Bill.bill_type != BillType.OPENING_BALANCE,
            )
        )
        last_electric = await self.session.scalar(
            select(func.max(ElectricReading.billing_period))
            .join(Unit, ElectricReading.unit_id == Unit.id)
            .where(Unit.tenant_id == tenant_id)
        )
        last_water = await self.session.scalar(
            select(func.max(WaterReading.billing_period))
            .join(Unit, WaterReading.unit_id == Unit.id)
            .where(Unit.tenant_id == tenant_id)
        )

        months = [m for m in (last_bill, last_electric, last_water) if m is not None]
        if not months:
            return NextPeriodInfo(
                has_history=False,
                last_billing_month=None,
                next_billing_month=None,
                message="No billing history found. You can select any billing month.",
            )

        last = max(months).replace(day=1)
        following = add_months(last, 1)
        return NextPeriodInfo(
            has_history=True,
            last_billing_month=last,
            next_billing_month=following,
            message=(
                f"Last billing was {month_label(last)}. "
                f"Next billing should be {month_label(following)}."
            ),
        )

    async def _generate(
        self,
        tenant_id: int,
        period: BillingPeriod,
        regenerate: bool,
        actor_id: int | None,
    ) -> GenerationResult:
        await self._lock_tenant(tenant_id)

        existing = await self._existing_regular_bills(tenant_id, period)
        deleted_count = 0
        if existing:
            if not regenerate:
                logger.warning(
                    "Bills already exist for tenant %d, %s: %d bill(s)",
                    tenant_id,
                    period.label,
                    len(existing),
                )
                raise ConflictError(
                    f"Bills already exist for {period.label}. Found {len(existing)} existing "
                    "bill(s). Use regenerate option to replace them.",
                    existing_count=len(existing),
                )
            deleted_count = await self._delete_for_regeneration(tenant_id, period, existing, actor_id)

        context = await self._load_context(tenant_id, period)
        previews = self._assemble_all(context, period)

        prefix = context.tenant.bill_prefix or self.config.bill_number_prefix
        numbers = await self.numbers.reserve(tenant_id, prefix, period, len(previews))

        bills = [
            self._bill_from_preview(tenant_id, period, preview, number)
            for preview, number in zip(previews, numbers)
        ]
        self.session.add_all(bills)
        await self.session.flush()

        for bill, preview in zip(bills, previews):
            balance = context.advance_balances.get(preview.unit_id)
            if balance is not None:
                await self.advances.apply_allocation(
                    balance, preview.allocation, bill_number=bill.bill_number, actor_id=actor_id
                )
            elif not preview.allocation.is_empty:
                raise ComputationError(
                    f"Advance applied to unit {preview.unit_number} without an advance balance"
                )

        total_amount = round_money(sum((b.total_amount for b in bills), ZERO))
        AuditService.log(
            self.session,
            entity_type=BILL_BATCH,
            entity_id=tenant_id,
            action="regenerate" if deleted_count else "create",
            actor_id=actor_id,
            tenant_id=tenant_id,
            changes={
                "billing_month": period.label,
                "count": len(bills),
                "deleted": deleted_count,
                "first_bill_number": numbers[0] if numbers else None,
                "last_bill_number": numbers[-1] if numbers else None,
                "total_amount": total_amount,
            },
        )
        await self.session.flush()

        return GenerationResult(
            tenant_id=tenant_id,
            period=period,
            bills=bills,
            total_bills=len(bills),
            total_amount=total_amount,
            deleted_count=deleted_count,
            message=f"Successfully generated {len(bills)} bill(s) for {period.label}",
        )

    async def _lock_tenant(self, tenant_id: int) -> Tenant:
        # FOR UPDATE serialises concurrent commits for the same tenant (no-op on SQLite)
        result = await self.session.execute(
            select(Tenant).where(Tenant.id == tenant_id).with_for_update()
        )
        tenant = result.scalar_one_or_none()
        if tenant is None:
            raise NotFoundError("Tenant not found")
        return tenant

    async def _existing_regular_bills(self, tenant_id: int, period: BillingPeriod) -> list[Bill]:
        result = await self.session.execute(
            select(Bill).where(
                Bill.tenant_id == tenant_id,
                Bill.billing_month == period.billing_month,
                Bill.bill_type != BillType.OPENING_BALANCE,
            )
        )
        return list(result.scalars().all())

    async def _delete_for_regeneration(
        self,
        tenant_id: int,
        period: BillingPeriod,
        existing: list[Bill],
        actor_id: int | None,
    ) -> int:
        """Remove the month's regular bills, returning their advances to the pools.

        Refused with ConflictError, before anything is deleted, when any of
        the bills has a paid amount or a Payment row pointing at it. Deleting
        such a bill would orphan the payment (Payment.bill_id is a foreign
        key) and silently drop money already collected; the payment has to be
        voided first.
        """
        bill_ids = [bill.id for bill in existing]

        paid_ids = {bill.id for bill in existing if (bill.paid_amount or ZERO) > 0}
        with_payments = await self.session.execute(
            select(Payment.bill_id).where(Payment.bill_id.in_(bill_ids)).distinct()
        )
        paid_ids.update(with_payments.scalars().all())
        if paid_ids:
            raise ConflictError(
                f"Cannot regenerate {period.label}: {len(paid_ids)} bill(s) already have "
                "payments recorded.",
                existing_count=len(existing),
            )

        for bill in existing:
            dues = bill.advance_dues_applied or ZERO
            utilities = bill.advance_util_applied or ZERO
            if dues > 0 or utilities > 0:
                await self.advances.credit(
                    tenant_id, bill.unit_id, dues=dues, utilities=utilities, actor_id=actor_id
                )

        await self.session.execute(delete(Bill).where(Bill.id.in_(bill_ids)))
        AuditService.log(
            self.session,
            entity_type=BILL_BATCH,
            entity_id=tenant_id,
            action="regenerate_delete",
            actor_id=actor_id,
            tenant_id=tenant_id,
            changes={
                "billing_month": period.label,
                "count": len(bill_ids),
                "bill_numbers": [bill.bill_number for bill in existing],
            },
        )
        logger.info(
            "Deleted %d existing bill(s) for tenant %d, %s before regeneration",
            len(bill_ids),
            tenant_id,
            period.label,
        )
        return len(bill_ids)

    async def _load_context(self, tenant_id: int, period: BillingPeriod) -> _GenerationContext:
        tenant = await self.session.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found")

        settings_result = await self.session.execute(
            select(TenantSettings).where(TenantSettings.tenant_id == tenant_id)
        )
        settings = settings_result.scalar_one_or_none()
        if settings is None:
            raise NotFoundError("Tenant settings not found")
        rates = RateConfiguration.from_settings(settings)

        units_result = await self.session.execute(
            select(Unit)
            .options(selectinload(Unit.owner))
            .where(Unit.tenant_id == tenant_id, Unit.is_active.is_(True))
            .order_by(Unit.floor_level, Unit.unit_number)
        )
        units = list(units_result.scalars().all())
        if not units:
            raise NotFoundError("No active units found")
        unit_ids = [unit.id for unit in units]

        electric = await self.session.execute(
            select(ElectricReading).where(
                ElectricReading.unit_id.in_(unit_ids),
                ElectricReading.billing_period == period.reading_period,
            )
        )
        water = await self.session.execute(
            select(WaterReading).where(
                WaterReading.unit_id.in_(unit_ids),
                WaterReading.billing_period == period.reading_period,
            )
        )
        adjustments = await self.session.execute(
            select(BillingAdjustment).where(
                BillingAdjustment.tenant_id == tenant_id,
                BillingAdjustment.billing_period == period.billing_month,
            )
        )

        prior_result = await self.session.execute(
            select(Bill).where(
                Bill.tenant_id == tenant_id,
                Bill.billing_month < period.billing_month,
                Bill.status.in_([BillStatus(s) for s in UNPAID_STATUSES]),
            )
        )
        prior_bills: dict[int, list[PriorBill]] = defaultdict(list)
        for bill in prior_result.scalars().all():
            prior_bills[bill.unit_id].append(PriorBill.from_bill(bill))

        return _GenerationContext(
            tenant=tenant,
            rates=rates,
            units=units,
            electric_readings={r.unit_id: r for r in electric.scalars().all()},
            water_readings={r.unit_id: r for r in water.scalars().all()},
            adjustments={a.unit_id: a for a in adjustments.scalars().all()},
            advance_balances=await self.advances.get_balances(tenant_id),
            prior_bills=prior_bills,
        )

    def _assemble_all(self, context: _GenerationContext, period: BillingPeriod) -> list[BillPreview]:
        return [
            assemble_bill(
                unit,
                context.electric_readings.get(unit.id),
                context.water_readings.get(unit.id),
                context.adjustments.get(unit.id),
                context.advance_balances.get(unit.id),
                context.prior_bills.get(unit.id, []),
                context.rates,
                period,
                water_policy=self.water_policy,
            )
            for unit in context.units
        ]

    async def _validation_warnings(
        self, tenant_id: int, period: BillingPeriod, context: _GenerationContext
    ) -> ValidationWarnings:
        previous = period.previous_month
        payments_count = await self.session.scalar(
            select(func.count(Payment.id)).where(
                Payment.tenant_id == tenant_id,
                Payment.payment_date >= previous,
                Payment.payment_date < period.billing_month,
            )
        )
        previous_bills = await self.session.execute(
            select(Bill).where(Bill.tenant_id == tenant_id, Bill.billing_month == previous)
        )
        previous_bills = list(previous_bills.scalars().all())
        unpaid_count = sum(
            1
            for bill in previous_bills
            if (bill.balance or ZERO) > 0 and bill.status != BillStatus.PAID
        )
        adjustments_count = sum(
            1
            for adjustment in context.adjustments.values()
            if (adjustment.sp_assessment or ZERO) > 0 or (adjustment.discounts or ZERO) > 0
        )

        return ValidationWarnings(
            no_payments_recorded=bool(previous_bills) and not payments_count,
            previous_month_label=month_label(previous),
            previous_month_payments_count=payments_count or 0,
            previous_month_unpaid_count=unpaid_count,
            no_adjustments=adjustments_count == 0,
            adjustments_count=adjustments_count,
        )

    @staticmethod
    def _bill_from_preview(
        tenant_id: int, period: BillingPeriod, preview: BillPreview, bill_number: str
    ) -> Bill:
        total = round_money(preview.total_amount)
        return Bill(
            tenant_id=tenant_id,
            unit_id=preview.unit_id,
            bill_number=bill_number,
            bill_type=BillType.REGULAR,
            status=BillStatus.UNPAID,
            billing_month=period.billing_month,
            billing_period_start=period.period_from,
            billing_period_end=period.period_to,
            statement_date=period.statement_date,
            due_date=period.due_date,
            electric_consumption=preview.electric_consumption,
            water_consumption=preview.water_consumption,
            electric_amount=preview.electric_amount,
            water_amount=preview.water_amount,
            association_dues=preview.association_dues,
            parking_fee=preview.parking_fee,
            sp_assessment=preview.sp_assessment,
            discounts=preview.discounts,
            advance_dues_applied=preview.advance_dues_applied,
            advance_util_applied=preview.advance_util_applied,
            previous_balance=preview.previous_balance,
            penalty_amount=preview.penalty_amount,
            total_amount=total,
            paid_amount=ZERO,
            balance=total,
        )


__all__ = [
    "BillGenerationService",
    "GenerationPreview",
    "GenerationResult",
    "GenerationSummary",
    "NextPeriodInfo",
    "ValidationWarnings",
]
