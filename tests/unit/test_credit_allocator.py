"""Unit tests for advance credit allocation."""

from decimal import Decimal

import pytest

from src.services.credit_allocator import NO_ALLOCATION, AdvanceAllocation, allocate


class TestAllocate:
    """Tests for allocate()."""

    def test_dues_pool_covers_dues_only(self):
        allocation = allocate(Decimal("5000"), Decimal("0"), Decimal("3000"), Decimal("839"), Decimal("570"))

        assert allocation == AdvanceAllocation(Decimal("3000"), Decimal("0"))

    def test_utility_pool_covers_electric_plus_water(self):
        allocation = allocate(Decimal("0"), Decimal("5000"), Decimal("3000"), Decimal("839"), Decimal("570"))

        assert allocation.util_applied == Decimal("1409")
        assert allocation.dues_applied == Decimal("0")

    def test_partial_pools_are_fully_drawn(self):
        allocation = allocate(Decimal("1000"), Decimal("300"), Decimal("3000"), Decimal("839"), Decimal("570"))

        assert allocation == AdvanceAllocation(Decimal("1000"), Decimal("300"))
        assert allocation.total == Decimal("1300")

    @pytest.mark.parametrize(
        "dues_pool, util_pool, dues, electric, water",
        [
            ("0", "0", "3000", "839", "570"),
            ("100", "100", "0", "0", "0"),
            ("-50", "-10", "3000", "839", "570"),
            ("2400.50", "49.99", "2400", "50", "0"),
        ],
    )
    def test_never_exceeds_availability_or_charges(self, dues_pool, util_pool, dues, electric, water):
        allocation = allocate(*(Decimal(v) for v in (dues_pool, util_pool, dues, electric, water)))

        assert Decimal("0") <= allocation.dues_applied <= max(Decimal("0"), Decimal(dues_pool))
        assert allocation.dues_applied <= Decimal(dues)
        assert Decimal("0") <= allocation.util_applied <= max(Decimal("0"), Decimal(util_pool))
        assert allocation.util_applied <= Decimal(electric) + Decimal(water)

    def test_accepts_none_and_floats(self):
        allocation = allocate(None, 10.5, 20, 5, 5.25)

        assert allocation == AdvanceAllocation(Decimal("0"), Decimal("10.25"))

    def test_empty_allocation(self):
        assert NO_ALLOCATION.is_empty
        assert not AdvanceAllocation(Decimal("0"), Decimal("0.01")).is_empty
