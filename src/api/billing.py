"""Billing generation API endpoints.

POST /api/billing/generate previews (default) or commits a month's bills.
GET  /api/billing/next-period reports the month that should be billed next.

Tenant resolution and authentication belong to the hosting application; the
tenant is passed explicitly.
"""

import logging
import time
from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.errors import ErrorResponse
from src.models.bill import Bill, BillStatus, BillType
from src.services import get_async_session
from src.services.bill_assembler import BillPreview
from src.services.bills_service import (
    BillGenerationService,
    GenerationPreview,
    GenerationResult,
)
from src.services.billing_period import BillingPeriod, format_billing_month, month_label
from src.services.config import BillingConfig, load_config
from src.services.errors import BillingError, ComputationError
from src.services.penalty_service import PenaltyClassification, PenaltyLine
from src.services.rate_calculator import TierCharge, round_money

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/billing", tags=["billing"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input or bills already exist"},
    404: {"model": ErrorResponse, "description": "Tenant, settings or units not found"},
    500: {"model": ErrorResponse, "description": "Server error"},
}


def _money(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


# Request schemas
class GenerateBillsRequest(BaseModel):
    """Body of POST /api/billing/generate."""

    tenant_id: int
    billing_month: str | None = None
    """Bill month as 'YYYY-MM'."""

    preview: bool = True
    """Compute without writing when true."""

    regenerate: bool = False
    """Replace the month's existing regular bills (commit only)."""

    actor_id: int | None = None
    """Administrator performing the commit, recorded in the audit log."""


# Response schemas
class BillingPeriodResponse(BaseModel):
    """Dates derived from the bill month."""

    billing_month: str
    label: str
    period_from: date
    period_to: date
    statement_date: date
    due_date: date

    model_config = ConfigDict(from_attributes=True)


class MeterReadingResponse(BaseModel):
    previous: float
    present: float
    consumption: float


class TierChargeResponse(BaseModel):
    """Consumption attributed to one water tier."""

    tier: int
    consumption: float
    rate: float
    amount: float

    model_config = ConfigDict(from_attributes=True)


class PenaltyLineResponse(BaseModel):
    """How one unpaid prior bill entered the penalty."""

    billing_month: date
    bill_number: str
    months_overdue: int
    unpaid_balance: float
    migrated_debt: float
    eligible_balance: float
    classification: PenaltyClassification
    cumulative_interest: float

    model_config = ConfigDict(from_attributes=True)


class UnitBillPreviewResponse(BaseModel):
    """One unit's computed bill."""

    unit_id: int
    unit_number: str
    floor_level: str
    unit_type: str
    owner_name: str
    owner_email: str | None = None
    area: float
    parking_area: float

    electric_reading: MeterReadingResponse | None = None
    water_reading: MeterReadingResponse | None = None

    electric_amount: float
    water_amount: float
    water_tier: int
    association_dues: float
    parking_fee: float
    sp_assessment: float
    discounts: float
    advance_dues_applied: float
    advance_util_applied: float
    previous_balance: float
    penalty_amount: float
    current_charges: float
    total_amount: float

    water_breakdown: list[TierChargeResponse]
    penalty_lines: list[PenaltyLineResponse]
    warnings: list[str]

    model_config = ConfigDict(from_attributes=True)


class PreviewSummaryResponse(BaseModel):
    total_units: int
    units_with_electric_readings: int
    units_with_water_readings: int
    units_with_warnings: int
    total_amount: float


class ValidationWarningsResponse(BaseModel):
    """Batch-level hints; never block generation."""

    no_payments_recorded: bool
    previous_month_label: str
    previous_month_payments_count: int
    previous_month_unpaid_count: int
    no_adjustments: bool
    adjustments_count: int

    model_config = ConfigDict(from_attributes=True)


class GeneratePreviewResponse(BaseModel):
    """Preview of every active unit's bill; nothing was written."""

    preview: bool = True
    billing_period: BillingPeriodResponse
    bills: list[UnitBillPreviewResponse]
    summary: PreviewSummaryResponse
    validation_warnings: ValidationWarningsResponse


class GeneratedBillResponse(BaseModel):
    """A persisted bill with every charge component."""

    id: int
    bill_number: str
    unit_id: int
    bill_type: BillType
    status: BillStatus
    billing_month: date
    billing_period_start: date
    billing_period_end: date
    statement_date: date
    due_date: date

    electric_consumption: float
    water_consumption: float
    electric_amount: float
    water_amount: float
    association_dues: float | None = None
    parking_fee: float | None = None
    sp_assessment: float
    discounts: float
    advance_dues_applied: float
    advance_util_applied: float
    previous_balance: float
    penalty_amount: float
    total_amount: float
    paid_amount: float
    balance: float

    model_config = ConfigDict(from_attributes=True)


class CommitSummaryResponse(BaseModel):
    total_bills: int
    total_amount: float


class GenerateCommitResponse(BaseModel):
    """Result of committing a month's bills."""

    preview: bool = False
    success: bool = True
    message: str
    billing_period: BillingPeriodResponse
    bills: list[GeneratedBillResponse]
    summary: CommitSummaryResponse
    deleted_count: int


class NextPeriodResponse(BaseModel):
    """Last billed (or read) month and the month to bill next."""

    has_history: bool
    last_billing_period: str | None = None
    last_billing_period_display: str | None = None
    next_billing_period: str | None = None
    next_billing_period_display: str | None = None
    message: str


def get_billing_config() -> BillingConfig:
    """Dependency returning billing configuration from the environment."""
    return load_config()


def _period_response(period: BillingPeriod) -> BillingPeriodResponse:
    return BillingPeriodResponse(
        billing_month=period.label,
        label=month_label(period.billing_month),
        period_from=period.period_from,
        period_to=period.period_to,
        statement_date=period.statement_date,
        due_date=period.due_date,
    )


def _reading_response(snapshot) -> MeterReadingResponse | None:
    if snapshot is None:
        return None
    return MeterReadingResponse(
        previous=float(snapshot.previous),
        present=float(snapshot.present),
        consumption=float(snapshot.consumption),
    )


def _tier_charge_response(charge: TierCharge) -> TierChargeResponse:
    return TierChargeResponse(
        tier=charge.tier,
        consumption=float(charge.consumption),
        rate=float(charge.rate),
        amount=_money(round_money(charge.amount)),
    )


def _penalty_line_response(line: PenaltyLine) -> PenaltyLineResponse:
    return PenaltyLineResponse(
        billing_month=line.billing_month,
        bill_number=line.bill_number,
        months_overdue=line.months_overdue,
        unpaid_balance=_money(line.unpaid_balance),
        migrated_debt=_money(line.migrated_debt),
        eligible_balance=_money(line.eligible_balance),
        classification=line.classification,
        cumulative_interest=_money(round_money(line.cumulative_interest)),
    )


def _unit_preview_response(preview: BillPreview) -> UnitBillPreviewResponse:
    return UnitBillPreviewResponse(
        unit_id=preview.unit_id,
        unit_number=preview.unit_number,
        floor_level=preview.floor_level,
        unit_type=preview.unit_type,
        owner_name=preview.owner_name,
        owner_email=preview.owner_email,
        area=_money(preview.area),
        parking_area=_money(preview.parking_area),
        electric_reading=_reading_response(preview.electric_reading),
        water_reading=_reading_response(preview.water_reading),
        electric_amount=_money(preview.electric_amount),
        water_amount=_money(preview.water_amount),
        water_tier=preview.water_tier,
        association_dues=_money(preview.association_dues),
        parking_fee=_money(preview.parking_fee),
        sp_assessment=_money(preview.sp_assessment),
        discounts=_money(preview.discounts),
        advance_dues_applied=_money(preview.advance_dues_applied),
        advance_util_applied=_money(preview.advance_util_applied),
        previous_balance=_money(preview.previous_balance),
        penalty_amount=_money(preview.penalty_amount),
        current_charges=_money(preview.current_charges),
        total_amount=_money(preview.total_amount),
        water_breakdown=[_tier_charge_response(c) for c in preview.water_breakdown],
        penalty_lines=[_penalty_line_response(line) for line in preview.penalty_lines],
        warnings=list(preview.warnings),
    )


def _preview_response(result: GenerationPreview) -> GeneratePreviewResponse:
    summary = result.summary
    return GeneratePreviewResponse(
        billing_period=_period_response(result.period),
        bills=[_unit_preview_response(p) for p in result.bills],
        summary=PreviewSummaryResponse(
            total_units=summary.total_units,
            units_with_electric_readings=summary.units_with_electric_readings,
            units_with_water_readings=summary.units_with_water_readings,
            units_with_warnings=summary.units_with_warnings,
            total_amount=_money(summary.total_amount),
        ),
        validation_warnings=ValidationWarningsResponse.model_validate(
            result.validation_warnings._asdict()
        ),
    )


def _bill_response(bill: Bill) -> GeneratedBillResponse:
    return GeneratedBillResponse(
        id=bill.id,
        bill_number=bill.bill_number,
        unit_id=bill.unit_id,
        bill_type=bill.bill_type,
        status=bill.status,
        billing_month=bill.billing_month,
        billing_period_start=bill.billing_period_start,
        billing_period_end=bill.billing_period_end,
        statement_date=bill.statement_date,
        due_date=bill.due_date,
        electric_consumption=_money(bill.electric_consumption),
        water_consumption=_money(bill.water_consumption),
        electric_amount=_money(bill.electric_amount),
        water_amount=_money(bill.water_amount),
        association_dues=_money(bill.association_dues),
        parking_fee=_money(bill.parking_fee),
        sp_assessment=_money(bill.sp_assessment),
        discounts=_money(bill.discounts),
        advance_dues_applied=_money(bill.advance_dues_applied),
        advance_util_applied=_money(bill.advance_util_applied),
        previous_balance=_money(bill.previous_balance),
        penalty_amount=_money(bill.penalty_amount),
        total_amount=_money(bill.total_amount),
        paid_amount=_money(bill.paid_amount),
        balance=_money(bill.balance),
    )


def _commit_response(result: GenerationResult) -> GenerateCommitResponse:
    return GenerateCommitResponse(
        message=result.message,
        billing_period=_period_response(result.period),
        bills=[_bill_response(b) for b in result.bills],
        summary=CommitSummaryResponse(
            total_bills=result.total_bills,
            total_amount=_money(result.total_amount),
        ),
        deleted_count=result.deleted_count,
    )


@router.post(
    "/generate",
    response_model=GeneratePreviewResponse | GenerateCommitResponse,
    responses=_ERROR_RESPONSES,
)
async def generate_bills(
    request: GenerateBillsRequest,
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    config: BillingConfig = Depends(get_billing_config),  # noqa: B008
) -> GeneratePreviewResponse | GenerateCommitResponse:
    """Preview or commit bills for every active unit of a tenant.

    Returns:
        GeneratePreviewResponse when ``preview`` is true, otherwise
        GenerateCommitResponse

    Raises:
        400: Malformed month, negative consumption, bills already exist
        404: Tenant, tenant settings or active units not found
        500: Rate configuration or persistence failure
    """
    start_time = time.time()
    service = BillGenerationService(session, config)
    try:
        if request.preview:
            preview = await service.preview(request.tenant_id, request.billing_month)
            response = _preview_response(preview)
        else:
            result = await service.commit(
                request.tenant_id,
                request.billing_month,
                regenerate=request.regenerate,
                actor_id=request.actor_id,
            )
            response = _commit_response(result)
    except BillingError:
        raise
    except Exception as e:
        logger.error("Error in /api/billing/generate: %s", e, exc_info=True)
        raise ComputationError("Failed to generate bills") from e

    logger.debug(
        "billing.generate: tenant_id=%d month=%s preview=%s elapsed=%.3fs",
        request.tenant_id,
        request.billing_month,
        request.preview,
        time.time() - start_time,
    )
    return response


@router.get("/next-period", response_model=NextPeriodResponse, responses=_ERROR_RESPONSES)
async def get_next_period(
    tenant_id: int = Query(...),  # noqa: B008
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    config: BillingConfig = Depends(get_billing_config),  # noqa: B008
) -> NextPeriodResponse:
    """Return the last billing period and the next month to bill."""
    service = BillGenerationService(session, config)
    try:
        info = await service.get_next_period(tenant_id)
    except BillingError:
        raise
    except Exception as e:
        logger.error("Error in /api/billing/next-period: %s", e, exc_info=True)
        raise ComputationError("Failed to get billing period info") from e

    if not info.has_history:
        return NextPeriodResponse(has_history=False, message=info.message)

    return NextPeriodResponse(
        has_history=True,
        last_billing_period=format_billing_month(info.last_billing_month),
        last_billing_period_display=month_label(info.last_billing_month),
        next_billing_period=format_billing_month(info.next_billing_month),
        next_billing_period_display=month_label(info.next_billing_month),
        message=info.message,
    )


__all__ = ["router", "get_billing_config"]
