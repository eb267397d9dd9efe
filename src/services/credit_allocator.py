"""Credit allocator: draw advance-payment pools against current charges.

The dues pool only offsets association dues. The utilities pool offsets
electric + water as a single sum. Allocation is a pure decision; the ledger
debit happens separately, inside the generation commit.
"""

from decimal import Decimal
from typing import NamedTuple

from src.services.rate_calculator import ZERO, to_decimal


class AdvanceAllocation(NamedTuple):
    """Amounts to draw from each advance pool."""

    dues_applied: Decimal
    util_applied: Decimal

    @property
    def is_empty(self) -> bool:
        return self.dues_applied <= 0 and self.util_applied <= 0

    @property
    def total(self) -> Decimal:
        return self.dues_applied + self.util_applied


NO_ALLOCATION = AdvanceAllocation(dues_applied=ZERO, util_applied=ZERO)


def allocate(
    available_dues_advance,
    available_util_advance,
    association_dues_charge,
    electric_charge,
    water_charge,
) -> AdvanceAllocation:
    """Decide how much of each advance pool applies to this bill.

    dues_applied = min(available dues advance, dues charge)
    util_applied = min(available utilities advance, electric + water)

    Both are clamped at zero, so negative balances or charges never produce
    a negative draw.
    """
    dues_pool = max(ZERO, to_decimal(available_dues_advance))
    util_pool = max(ZERO, to_decimal(available_util_advance))
    dues_charge = max(ZERO, to_decimal(association_dues_charge))
    utility_charges = max(ZERO, to_decimal(electric_charge) + to_decimal(water_charge))

    return AdvanceAllocation(
        dues_applied=min(dues_pool, dues_charge),
        util_applied=min(util_pool, utility_charges),
    )


__all__ = ["AdvanceAllocation", "NO_ALLOCATION", "allocate"]
