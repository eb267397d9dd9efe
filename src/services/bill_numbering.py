"""Bill numbering: tenant-wide sequential numbers <PREFIX>-<YYYYMM>-<NNNN>.

The sequence is global per tenant, not per month. The next number continues
from the numeric suffix of the tenant's most recently created bill, so a
regenerated older period receives numbers after those of newer periods.
"""

import re

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.bill import Bill
from src.services.billing_period import BillingPeriod

_SUFFIX_RE = re.compile(r"(\d+)$")
NUMBER_WIDTH = 4


def parse_sequence(bill_number: str | None) -> int:
    """Trailing numeric suffix of a bill number (0 if there is none)."""
    if not bill_number:
        return 0
    match = _SUFFIX_RE.search(bill_number.strip())
    return int(match.group(1)) if match else 0


def format_bill_number(prefix: str, period: BillingPeriod, sequence: int) -> str:
    """'MT', January 2025, 7 -> 'MT-202501-0007'."""
    return f"{prefix}-{period.number_segment}-{sequence:0{NUMBER_WIDTH}d}"


class BillNumberService:
    """Issues bill numbers for one tenant inside the caller's transaction."""

    def __init__(self, session: AsyncSession):
        """Initialize with async database session."""
        self.session = session

    async def last_sequence(self, tenant_id: int) -> int:
        """Numeric suffix of the tenant's most recently created bill."""
        result = await self.session.execute(
            select(Bill.bill_number)
            .where(Bill.tenant_id == tenant_id)
            .order_by(Bill.id.desc())
            .limit(1)
        )
        return parse_sequence(result.scalar_one_or_none())

    async def reserve(self, tenant_id: int, prefix: str, period: BillingPeriod, count: int) -> list[str]:
        """Return ``count`` consecutive numbers following the tenant's last bill."""
        start = await self.last_sequence(tenant_id) + 1
        return [format_bill_number(prefix, period, start + offset) for offset in range(count)]


__all__ = ["BillNumberService", "format_bill_number", "parse_sequence"]
