"""Pytest configuration: in-memory async database and a seeded building."""

import os

# Keep sessions opened through get_async_session off the developer database
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402

from src.models import Base  # noqa: E402
from src.models.owner import Owner  # noqa: E402
from src.models.reading import ElectricReading, WaterReading  # noqa: E402
from src.models.tenant import Tenant, TenantSettings  # noqa: E402
from src.models.unit import Unit, UnitType  # noqa: E402
from src.services import create_billing_engine, create_session_factory  # noqa: E402

RESIDENTIAL_MAXIMA = ["1", "5", "10", "20", "30", "40"]
RESIDENTIAL_RATES = ["80", "200", "370", "40", "45", "50", "55"]
COMMERCIAL_MAXIMA = ["1", "5", "10", "20", "30", "40"]
COMMERCIAL_RATES = ["200", "250", "740", "55", "60", "65", "85"]


def settings_kwargs() -> dict:
    """Column values for a TenantSettings row with the association's standard rates."""
    values = {
        "electric_rate": Decimal("8.39"),
        "electric_min_charge": Decimal("50"),
        "association_dues_rate": Decimal("60"),
        "parking_rate": Decimal("50"),
        "penalty_rate": Decimal("0.10"),
    }
    for kind, maxima, rates in (
        ("res", RESIDENTIAL_MAXIMA, RESIDENTIAL_RATES),
        ("com", COMMERCIAL_MAXIMA, COMMERCIAL_RATES),
    ):
        for i, maximum in enumerate(maxima, start=1):
            values[f"water_{kind}_tier{i}_max"] = Decimal(maximum)
        for i, rate in enumerate(rates, start=1):
            values[f"water_{kind}_tier{i}_rate"] = Decimal(rate)
    return values


@pytest.fixture
def standard_settings() -> SimpleNamespace:
    """Unsaved settings object usable by RateConfiguration.from_settings."""
    return SimpleNamespace(**settings_kwargs())


@pytest.fixture
async def async_db_session():
    """Create async test database session."""
    engine = create_billing_engine("sqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with create_session_factory(engine)() as session:
        yield session

    await engine.dispose()


@pytest.fixture
async def building(async_db_session):
    """Tenant 'MT' with settings, three active units and one inactive unit.

    Readings are recorded for January 2025, i.e. consumed by the 2025-02 bills:

    - 101 (1F, residential, 50 sq.m): 100 kWh, 15 cu.m
    - 102 (1F, residential, 40 sq.m + 12.5 sq.m parking): 5 kWh, 0 cu.m
    - 201 (2F, commercial, 30 sq.m, no owner): no electric reading, 25 cu.m

    Returns plain ids so tests never touch ORM state after a rollback.
    """
    session = async_db_session

    tenant = Tenant(name="Megatower Residences", code="MT", bill_prefix="MT", is_active=True)
    session.add(tenant)
    await session.flush()

    session.add(TenantSettings(tenant_id=tenant.id, **settings_kwargs()))

    dela_cruz = Owner(
        tenant_id=tenant.id,
        first_name="Juan",
        last_name="Dela Cruz",
        middle_name="Mercado",
        email="juan@example.com",
    )
    santos = Owner(tenant_id=tenant.id, first_name="Maria", last_name="Santos")
    session.add_all([dela_cruz, santos])
    await session.flush()

    unit_101 = Unit(
        tenant_id=tenant.id,
        owner_id=dela_cruz.id,
        unit_number="101",
        floor_level="1F",
        unit_type=UnitType.RESIDENTIAL.value,
        area=Decimal("50"),
        parking_area=Decimal("0"),
    )
    unit_102 = Unit(
        tenant_id=tenant.id,
        owner_id=santos.id,
        unit_number="102",
        floor_level="1F",
        unit_type=UnitType.RESIDENTIAL.value,
        area=Decimal("40"),
        parking_area=Decimal("12.5"),
    )
    unit_201 = Unit(
        tenant_id=tenant.id,
        owner_id=None,
        unit_number="201",
        floor_level="2F",
        unit_type=UnitType.COMMERCIAL.value,
        area=Decimal("30"),
        parking_area=Decimal("0"),
    )
    unit_301 = Unit(
        tenant_id=tenant.id,
        unit_number="301",
        floor_level="3F",
        unit_type=UnitType.RESIDENTIAL.value,
        area=Decimal("45"),
        is_active=False,
    )
    session.add_all([unit_101, unit_102, unit_201, unit_301])
    await session.flush()

    january = date(2025, 1, 1)
    session.add_all(
        [
            ElectricReading(
                unit_id=unit_101.id,
                billing_period=january,
                previous_reading=Decimal("1000"),
                present_reading=Decimal("1100"),
                consumption=Decimal("100"),
            ),
            ElectricReading(
                unit_id=unit_102.id,
                billing_period=january,
                previous_reading=Decimal("500"),
                present_reading=Decimal("505"),
                consumption=Decimal("5"),
            ),
            WaterReading(
                unit_id=unit_101.id,
                billing_period=january,
                previous_reading=Decimal("100"),
                present_reading=Decimal("115"),
                consumption=Decimal("15"),
            ),
            WaterReading(
                unit_id=unit_102.id,
                billing_period=january,
                previous_reading=Decimal("200"),
                present_reading=Decimal("200"),
                consumption=Decimal("0"),
            ),
            WaterReading(
                unit_id=unit_201.id,
                billing_period=january,
                previous_reading=Decimal("50"),
                present_reading=Decimal("75"),
                consumption=Decimal("25"),
            ),
        ]
    )
    await session.commit()

    return SimpleNamespace(
        tenant_id=tenant.id,
        unit_101=unit_101.id,
        unit_102=unit_102.id,
        unit_201=unit_201.id,
        unit_301=unit_301.id,
    )
