"""Penalty accrual engine: cumulative, compounding interest on unpaid bills.

Replicates the association's spreadsheet formula. Unpaid bills are walked
oldest first; each bill overdue by at least one month contributes its
penalty-eligible balance:

    first accruing bill:   interest = principal x rate
    every later bill:      interest = (interest + principal x rate) x (1 + rate)

The result is charged once, on the new bill. Prior bills are never modified.

Opening balance bills carry migrated legacy debt that is not penalised; only
the part of their unpaid balance that stems from current charges
(electric + water + dues + parking) is eligible.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import NamedTuple

from src.services.billing_period import month_index
from src.services.rate_calculator import ZERO, round_money, to_decimal

UNPAID_STATUSES = frozenset({"UNPAID", "PARTIAL"})


def _enum_value(value) -> str:
    return getattr(value, "value", value)


class PriorBill(NamedTuple):
    """The parts of an earlier bill the penalty engine needs."""

    billing_month: date
    status: str
    bill_type: str
    balance: Decimal
    total_amount: Decimal
    electric_amount: Decimal = ZERO
    water_amount: Decimal = ZERO
    association_dues: Decimal | None = None
    parking_fee: Decimal | None = None
    bill_number: str = ""

    @classmethod
    def from_bill(cls, bill) -> "PriorBill":
        """Build from a Bill ORM row (or anything with the same attributes)."""
        return cls(
            billing_month=bill.billing_month,
            status=_enum_value(bill.status),
            bill_type=_enum_value(bill.bill_type),
            balance=to_decimal(bill.balance),
            total_amount=to_decimal(bill.total_amount),
            electric_amount=to_decimal(bill.electric_amount),
            water_amount=to_decimal(bill.water_amount),
            association_dues=(
                to_decimal(bill.association_dues) if bill.association_dues is not None else None
            ),
            parking_fee=to_decimal(bill.parking_fee) if bill.parking_fee is not None else None,
            bill_number=bill.bill_number or "",
        )


class PenaltyClassification(str, Enum):
    """Why a prior bill did or did not accrue interest."""

    ACCRUED = "ACCRUED"
    GRACE_PERIOD = "GRACE_PERIOD"
    NO_ELIGIBLE_BALANCE = "NO_ELIGIBLE_BALANCE"


class PenaltyLine(NamedTuple):
    """Per-bill trace of the accrual walk."""

    billing_month: date
    bill_number: str
    months_overdue: int
    unpaid_balance: Decimal
    migrated_debt: Decimal
    eligible_balance: Decimal
    classification: PenaltyClassification
    cumulative_interest: Decimal


class PenaltyResult(NamedTuple):
    """Total penalty for the new bill plus the carried balance it applies to."""

    total_penalty: Decimal
    previous_balance: Decimal
    lines: list[PenaltyLine]


def select_unpaid_prior_bills(prior_bills, billing_month: date) -> list[PriorBill]:
    """Bills strictly before ``billing_month`` that are still UNPAID/PARTIAL, oldest first."""
    selected = [
        bill
        for bill in prior_bills
        if bill.billing_month < billing_month and _enum_value(bill.status) in UNPAID_STATUSES
    ]
    return sorted(selected, key=lambda b: (b.billing_month, b.bill_number))


def migrated_debt_of(bill: PriorBill, dues_fallback=ZERO, parking_fallback=ZERO) -> Decimal:
    """Legacy debt carried by an opening balance bill (zero for regular bills)."""
    if _enum_value(bill.bill_type) != "OPENING_BALANCE":
        return ZERO
    dues = bill.association_dues if bill.association_dues is not None else to_decimal(dues_fallback)
    parking = bill.parking_fee if bill.parking_fee is not None else to_decimal(parking_fallback)
    current_charges = bill.electric_amount + bill.water_amount + dues + parking
    return max(ZERO, bill.total_amount - current_charges)


def accrue_penalty(
    prior_bills,
    billing_month: date,
    penalty_rate,
    *,
    dues_fallback=ZERO,
    parking_fallback=ZERO,
) -> PenaltyResult:
    """Compute the cumulative penalty charged on the bill for ``billing_month``.

    Args:
        prior_bills: PriorBill values for the unit (any order, any status)
        billing_month: First day of the month being billed
        penalty_rate: Monthly rate as a fraction (0.10 = 10%)
        dues_fallback: Dues to assume for opening balance bills without stored dues
        parking_fallback: Parking fee to assume for opening balance bills without one

    Returns:
        PenaltyResult with the rounded total penalty, the sum of unpaid
        balances and one line per considered bill
    """
    rate = to_decimal(penalty_rate)
    bills = select_unpaid_prior_bills(prior_bills, billing_month)

    cumulative = ZERO
    accrued_count = 0
    previous_balance = ZERO
    lines: list[PenaltyLine] = []

    for bill in bills:
        unpaid = max(ZERO, bill.balance)
        previous_balance += unpaid
        months_overdue = month_index(billing_month) - month_index(bill.billing_month)

        migrated = migrated_debt_of(bill, dues_fallback, parking_fallback)
        eligible = max(ZERO, unpaid - migrated)

        if months_overdue < 1:
            classification = PenaltyClassification.GRACE_PERIOD
        elif eligible <= 0:
            classification = PenaltyClassification.NO_ELIGIBLE_BALANCE
        else:
            classification = PenaltyClassification.ACCRUED
            if accrued_count == 0:
                cumulative = eligible * rate
            else:
                # Add this month's principal interest, then compound the whole pool
                cumulative = (cumulative + eligible * rate) * (1 + rate)
            accrued_count += 1

        lines.append(
            PenaltyLine(
                billing_month=bill.billing_month,
                bill_number=bill.bill_number,
                months_overdue=months_overdue,
                unpaid_balance=unpaid,
                migrated_debt=migrated,
                eligible_balance=eligible,
                classification=classification,
                cumulative_interest=cumulative,
            )
        )

    return PenaltyResult(
        total_penalty=round_money(cumulative),
        previous_balance=round_money(previous_balance),
        lines=lines,
    )


__all__ = [
    "PenaltyClassification",
    "PenaltyLine",
    "PenaltyResult",
    "PriorBill",
    "UNPAID_STATUSES",
    "accrue_penalty",
    "migrated_debt_of",
    "select_unpaid_prior_bills",
]
