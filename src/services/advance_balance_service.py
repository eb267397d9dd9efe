"""Advance balance ledger: credit and debit the per-unit prepaid pools."""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.advance_balance import UnitAdvanceBalance
from src.services.audit_service import ADVANCE_BALANCE, AuditService
from src.services.credit_allocator import AdvanceAllocation
from src.services.errors import ComputationError
from src.services.rate_calculator import ZERO, to_decimal

logger = logging.getLogger(__name__)


class AdvanceBalanceService:
    """Async ledger over UnitAdvanceBalance rows.

    Methods only add/modify rows in the session; committing is the caller's
    job so that debits land in the same transaction as the bills that caused them.
    """

    def __init__(self, session: AsyncSession):
        """Initialize with async database session."""
        self.session = session

    async def get_balances(self, tenant_id: int) -> dict[int, UnitAdvanceBalance]:
        """Map unit_id -> advance balance row for a tenant."""
        result = await self.session.execute(
            select(UnitAdvanceBalance).where(UnitAdvanceBalance.tenant_id == tenant_id)
        )
        return {row.unit_id: row for row in result.scalars().all()}

    async def get_balance(self, unit_id: int) -> UnitAdvanceBalance | None:
        result = await self.session.execute(
            select(UnitAdvanceBalance).where(UnitAdvanceBalance.unit_id == unit_id)
        )
        return result.scalar_one_or_none()

    async def credit(
        self,
        tenant_id: int,
        unit_id: int,
        *,
        dues: Decimal = ZERO,
        utilities: Decimal = ZERO,
        actor_id: int | None = None,
    ) -> UnitAdvanceBalance:
        """Add prepaid credit to a unit's pools, creating the row if needed."""
        dues = to_decimal(dues)
        utilities = to_decimal(utilities)
        if dues < 0 or utilities < 0:
            raise ComputationError("Advance credit amounts must be >= 0")

        balance = await self.get_balance(unit_id)
        if balance is None:
            balance = UnitAdvanceBalance(
                tenant_id=tenant_id,
                unit_id=unit_id,
                advance_dues=ZERO,
                advance_utilities=ZERO,
            )
            self.session.add(balance)

        balance.advance_dues = to_decimal(balance.advance_dues) + dues
        balance.advance_utilities = to_decimal(balance.advance_utilities) + utilities
        await self.session.flush()

        AuditService.log(
            self.session,
            entity_type=ADVANCE_BALANCE,
            entity_id=balance.id,
            action="credit",
            actor_id=actor_id,
            tenant_id=tenant_id,
            changes={"unit_id": unit_id, "dues": dues, "utilities": utilities},
        )
        return balance

    def debit(self, balance: UnitAdvanceBalance, allocation: AdvanceAllocation) -> None:
        """Draw exactly the allocated amounts from a loaded balance row.

        Raises:
            ComputationError: If a draw exceeds what the pool holds
        """
        dues_left = to_decimal(balance.advance_dues) - allocation.dues_applied
        util_left = to_decimal(balance.advance_utilities) - allocation.util_applied
        if dues_left < 0 or util_left < 0:
            raise ComputationError(
                f"Advance allocation exceeds balance for unit {balance.unit_id}: "
                f"dues {balance.advance_dues} - {allocation.dues_applied}, "
                f"utilities {balance.advance_utilities} - {allocation.util_applied}"
            )
        balance.advance_dues = dues_left
        balance.advance_utilities = util_left

    async def apply_allocation(
        self,
        balance: UnitAdvanceBalance,
        allocation: AdvanceAllocation,
        *,
        bill_number: str,
        actor_id: int | None = None,
    ) -> None:
        """Debit a unit's pools for a generated bill and audit the draw."""
        if allocation.is_empty:
            return

        self.debit(balance, allocation)

        AuditService.log(
            self.session,
            entity_type=ADVANCE_BALANCE,
            entity_id=balance.id,
            action="debit",
            actor_id=actor_id,
            tenant_id=balance.tenant_id,
            changes={
                "unit_id": balance.unit_id,
                "bill_number": bill_number,
                "dues_applied": allocation.dues_applied,
                "util_applied": allocation.util_applied,
            },
        )
        logger.info(
            "Debited advance balance for unit %d (bill %s): dues=%s utilities=%s",
            balance.unit_id,
            bill_number,
            allocation.dues_applied,
            allocation.util_applied,
        )


__all__ = ["AdvanceBalanceService"]
