"""Bill assembler: compose one unit's bill for one period.

Pure and side-effect free. Combines the rate calculator, the penalty engine
and the credit allocator with the unit's adjustment:

    current_charges = electric + water + dues + parking + sp_assessment
    total = current_charges + previous_balance + penalties
            - discounts - advance_dues_applied - advance_util_applied

Missing readings are billed as zero consumption and reported as warnings.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import NamedTuple

from src.services.billing_period import BillingPeriod
from src.services.credit_allocator import AdvanceAllocation, allocate
from src.services.errors import ValidationError
from src.services.penalty_service import PenaltyLine, PriorBill, accrue_penalty
from src.services.rate_calculator import (
    DEFAULT_WATER_POLICY,
    ZERO,
    RateConfiguration,
    TierCharge,
    WaterTierPolicy,
    compute_electric,
    compute_water,
    round_money,
    to_decimal,
)

logger = logging.getLogger(__name__)

MISSING_ELECTRIC_READING = "Missing electric meter reading"
MISSING_WATER_READING = "Missing water meter reading"


class ReadingSnapshot(NamedTuple):
    """Meter values shown on the bill."""

    previous: Decimal
    present: Decimal
    consumption: Decimal


@dataclass
class BillPreview:
    """Itemised bill for one unit, ready to display or persist."""

    unit_id: int
    unit_number: str
    floor_level: str
    unit_type: str
    owner_name: str
    owner_email: str | None
    area: Decimal
    parking_area: Decimal

    electric_reading: ReadingSnapshot | None
    water_reading: ReadingSnapshot | None

    electric_amount: Decimal
    water_amount: Decimal
    water_tier: int
    water_breakdown: list[TierCharge]
    association_dues: Decimal
    parking_fee: Decimal
    sp_assessment: Decimal
    discounts: Decimal
    advance_dues_applied: Decimal
    advance_util_applied: Decimal
    previous_balance: Decimal
    penalty_amount: Decimal
    current_charges: Decimal
    total_amount: Decimal

    penalty_lines: list[PenaltyLine] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def electric_consumption(self) -> Decimal:
        return self.electric_reading.consumption if self.electric_reading else ZERO

    @property
    def water_consumption(self) -> Decimal:
        return self.water_reading.consumption if self.water_reading else ZERO

    @property
    def allocation(self) -> AdvanceAllocation:
        return AdvanceAllocation(self.advance_dues_applied, self.advance_util_applied)


def _snapshot(reading, kind: str, unit_number: str) -> ReadingSnapshot | None:
    if reading is None:
        return None
    previous = to_decimal(reading.previous_reading)
    present = to_decimal(reading.present_reading)
    consumption = reading.consumption
    consumption = present - previous if consumption is None else to_decimal(consumption)
    if consumption < 0:
        raise ValidationError(
            f"Negative {kind} consumption for unit {unit_number}: "
            f"present {present} is below previous {previous}"
        )
    return ReadingSnapshot(previous=previous, present=present, consumption=consumption)


def _owner_fields(unit) -> tuple[str, str | None]:
    owner = getattr(unit, "owner", None)
    if owner is None:
        return "No Owner", None
    return owner.display_name, owner.email


def assemble_bill(
    unit,
    electric_reading,
    water_reading,
    adjustment,
    advance_balance,
    prior_bills: list[PriorBill],
    rates: RateConfiguration,
    period: BillingPeriod,
    *,
    water_policy: WaterTierPolicy = DEFAULT_WATER_POLICY,
) -> BillPreview:
    """Assemble the bill for ``unit`` in ``period``.

    Args:
        unit: Unit row (id, unit_number, floor_level, unit_type, area, parking_area, owner)
        electric_reading: Reading for the previous month or None
        water_reading: Reading for the previous month or None
        adjustment: BillingAdjustment for the bill month or None
        advance_balance: UnitAdvanceBalance or None
        prior_bills: PriorBill values for the unit
        rates: Tenant rate configuration
        period: Billing period being generated
        water_policy: Tier boundary policy

    Returns:
        BillPreview with all components, totals and warnings

    Raises:
        ValidationError: If a reading has negative consumption
    """
    warnings: list[str] = []

    electric = _snapshot(electric_reading, "electric", unit.unit_number)
    water = _snapshot(water_reading, "water", unit.unit_number)
    if electric is None:
        warnings.append(MISSING_ELECTRIC_READING)
    if water is None:
        warnings.append(MISSING_WATER_READING)

    electric_amount = compute_electric(
        electric.consumption if electric else ZERO,
        rates.electric_rate,
        rates.electric_min_charge,
    )
    water_charge = compute_water(
        water.consumption if water else ZERO,
        rates.water_schedule_for(unit.unit_type),
        water_policy,
    )

    area = to_decimal(unit.area)
    parking_area = to_decimal(unit.parking_area)
    association_dues = round_money(area * rates.association_dues_rate)
    parking_fee = round_money(parking_area * rates.parking_rate)

    sp_assessment = round_money(to_decimal(adjustment.sp_assessment)) if adjustment else round_money(ZERO)
    discounts = round_money(to_decimal(adjustment.discounts)) if adjustment else round_money(ZERO)

    penalty = accrue_penalty(
        prior_bills,
        period.billing_month,
        rates.penalty_rate,
        dues_fallback=association_dues,
        parking_fallback=parking_fee,
    )

    allocation = allocate(
        advance_balance.advance_dues if advance_balance else ZERO,
        advance_balance.advance_utilities if advance_balance else ZERO,
        association_dues,
        electric_amount,
        water_charge.amount,
    )
    dues_applied = round_money(allocation.dues_applied)
    util_applied = round_money(allocation.util_applied)

    current_charges = electric_amount + water_charge.amount + association_dues + parking_fee + sp_assessment
    total = (
        current_charges
        + penalty.previous_balance
        + penalty.total_penalty
        - discounts
        - dues_applied
        - util_applied
    )

    owner_name, owner_email = _owner_fields(unit)

    logger.debug(
        "Assembled unit %s for %s: current=%s previous=%s penalty=%s total=%s warnings=%d",
        unit.unit_number,
        period.label,
        current_charges,
        penalty.previous_balance,
        penalty.total_penalty,
        total,
        len(warnings),
    )

    return BillPreview(
        unit_id=unit.id,
        unit_number=unit.unit_number,
        floor_level=unit.floor_level,
        unit_type=getattr(unit.unit_type, "value", unit.unit_type),
        owner_name=owner_name,
        owner_email=owner_email,
        area=area,
        parking_area=parking_area,
        electric_reading=electric,
        water_reading=water,
        electric_amount=electric_amount,
        water_amount=water_charge.amount,
        water_tier=water_charge.tier,
        water_breakdown=water_charge.breakdown,
        association_dues=association_dues,
        parking_fee=parking_fee,
        sp_assessment=sp_assessment,
        discounts=discounts,
        advance_dues_applied=dues_applied,
        advance_util_applied=util_applied,
        previous_balance=penalty.previous_balance,
        penalty_amount=penalty.total_penalty,
        current_charges=current_charges,
        total_amount=total,
        penalty_lines=penalty.lines,
        warnings=warnings,
    )


__all__ = [
    "BillPreview",
    "MISSING_ELECTRIC_READING",
    "MISSING_WATER_READING",
    "ReadingSnapshot",
    "assemble_bill",
]
