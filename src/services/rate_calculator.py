"""Tiered rate calculator for electric and water charges.

Electric: flat rate per kWh with a minimum charge.

Water: seven-tier schedule per unit type. With the default policy the first
three tiers are flat fees (charged once for any consumption inside the band)
and tiers 4-7 are progressive per-cu.m bands stacked on top of tier 3's fee:

    consumption 15, bounds 1/5/10/20/30/40, residential rates 80/200/370/40/45/50/55
    -> 370 (tier 3 fee, 10 cu.m) + 5 x 40 (tier 4) = 570

Tier maxima are inclusive upper bounds. This is a pure module: no database access.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple

from src.services.errors import ComputationError, ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")
TIER_COUNT = 7


def to_decimal(value) -> Decimal:
    """Convert numbers/strings to Decimal without float artefacts."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    """Round to centavos, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class WaterTier(NamedTuple):
    """One tier of a water schedule. ``max_consumption`` is None for tier 7."""

    number: int
    max_consumption: Decimal | None
    rate: Decimal


class TierCharge(NamedTuple):
    """Consumption attributed to one tier and what it cost."""

    tier: int
    consumption: Decimal
    rate: Decimal
    amount: Decimal


class WaterCharge(NamedTuple):
    """Water charge with the occupied tier and per-tier breakdown."""

    amount: Decimal
    tier: int
    breakdown: list[TierCharge]


@dataclass(frozen=True)
class WaterTierSchedule:
    """Seven water tiers: tiers 1-6 with an inclusive maximum, tier 7 open ended."""

    tiers: tuple[WaterTier, ...]

    def __post_init__(self) -> None:
        if len(self.tiers) != TIER_COUNT:
            raise ComputationError(f"Water schedule must have {TIER_COUNT} tiers, got {len(self.tiers)}")

        previous_max = ZERO
        for index, tier in enumerate(self.tiers):
            if tier.rate < 0:
                raise ComputationError(f"Water tier {tier.number} rate must be >= 0, got {tier.rate}")
            if index == TIER_COUNT - 1:
                if tier.max_consumption is not None:
                    raise ComputationError("Water tier 7 is open ended and must not have a maximum")
                continue
            if tier.max_consumption is None or tier.max_consumption <= previous_max:
                raise ComputationError(
                    f"Water tier {tier.number} maximum must be greater than {previous_max}, "
                    f"got {tier.max_consumption}"
                )
            previous_max = tier.max_consumption

    @classmethod
    def from_values(cls, maxima: list, rates: list) -> "WaterTierSchedule":
        """Build from six maxima and seven rates."""
        if len(maxima) != TIER_COUNT - 1 or len(rates) != TIER_COUNT:
            raise ComputationError("Water schedule needs 6 maxima and 7 rates")
        bounds = [to_decimal(m) if m is not None else None for m in maxima] + [None]
        return cls(
            tiers=tuple(
                WaterTier(number=i + 1, max_consumption=bounds[i], rate=to_decimal(rates[i]))
                for i in range(TIER_COUNT)
            )
        )


@dataclass(frozen=True)
class WaterTierPolicy:
    """How tier boundaries are charged.

    flat_tiers: leading tiers charged as a flat fee once reached (0 = fully progressive)
    charge_minimum_on_zero: bill tier 1's fee for a zero reading
    """

    flat_tiers: int = 3
    charge_minimum_on_zero: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.flat_tiers < TIER_COUNT:
            raise ComputationError(f"flat_tiers must be between 0 and {TIER_COUNT - 1}")


DEFAULT_WATER_POLICY = WaterTierPolicy()


@dataclass(frozen=True)
class RateConfiguration:
    """Snapshot of a tenant's billing constants."""

    electric_rate: Decimal
    electric_min_charge: Decimal
    association_dues_rate: Decimal
    parking_rate: Decimal
    penalty_rate: Decimal
    residential_water: WaterTierSchedule
    commercial_water: WaterTierSchedule

    def __post_init__(self) -> None:
        for name in (
            "electric_rate",
            "electric_min_charge",
            "association_dues_rate",
            "parking_rate",
            "penalty_rate",
        ):
            if getattr(self, name) < 0:
                raise ComputationError(f"{name} must be >= 0, got {getattr(self, name)}")

    @classmethod
    def from_settings(cls, settings) -> "RateConfiguration":
        """Materialise a TenantSettings row, validating the tier invariants."""

        def schedule(kind: str) -> WaterTierSchedule:
            maxima = [getattr(settings, f"water_{kind}_tier{i}_max") for i in range(1, 7)]
            rates = [getattr(settings, f"water_{kind}_tier{i}_rate") for i in range(1, 8)]
            return WaterTierSchedule.from_values(maxima, rates)

        return cls(
            electric_rate=to_decimal(settings.electric_rate),
            electric_min_charge=to_decimal(settings.electric_min_charge),
            association_dues_rate=to_decimal(settings.association_dues_rate),
            parking_rate=to_decimal(settings.parking_rate),
            penalty_rate=to_decimal(settings.penalty_rate),
            residential_water=schedule("res"),
            commercial_water=schedule("com"),
        )

    def water_schedule_for(self, unit_type: str) -> WaterTierSchedule:
        """Residential or commercial schedule for a unit type."""
        return water_schedule_for(unit_type, self)


def water_schedule_for(unit_type: str, config: RateConfiguration) -> WaterTierSchedule:
    """Select the water schedule for a unit type."""
    kind = getattr(unit_type, "value", unit_type)
    if kind == "RESIDENTIAL":
        return config.residential_water
    if kind == "COMMERCIAL":
        return config.commercial_water
    raise ComputationError(f"Unknown unit type: {unit_type!r}")


def compute_electric(consumption, rate, min_charge) -> Decimal:
    """Electric charge: max(consumption x rate, min_charge), rounded to centavos.

    Raises:
        ValidationError: If consumption is negative
    """
    consumption = to_decimal(consumption)
    if consumption < 0:
        raise ValidationError(f"Electric consumption cannot be negative: {consumption}")
    amount = consumption * to_decimal(rate)
    return round_money(max(amount, to_decimal(min_charge)))


def compute_water(
    consumption,
    schedule: WaterTierSchedule,
    policy: WaterTierPolicy = DEFAULT_WATER_POLICY,
) -> WaterCharge:
    """Water charge for one unit, with the consumption attributed to each tier.

    Raises:
        ValidationError: If consumption is negative
    """
    consumption = to_decimal(consumption)
    if consumption < 0:
        raise ValidationError(f"Water consumption cannot be negative: {consumption}")
    if consumption == 0 and not policy.charge_minimum_on_zero:
        return WaterCharge(amount=round_money(ZERO), tier=0, breakdown=[])

    tiers = schedule.tiers
    occupied = next(
        i
        for i, tier in enumerate(tiers)
        if tier.max_consumption is None or consumption <= tier.max_consumption
    )

    # Flat band: the tier's fee covers the whole consumption
    if occupied < policy.flat_tiers:
        tier = tiers[occupied]
        charge = TierCharge(tier.number, consumption, tier.rate, tier.rate)
        return WaterCharge(amount=round_money(tier.rate), tier=tier.number, breakdown=[charge])

    breakdown: list[TierCharge] = []
    amount = ZERO
    lower = ZERO
    if policy.flat_tiers:
        last_flat = tiers[policy.flat_tiers - 1]
        lower = last_flat.max_consumption
        amount = last_flat.rate
        breakdown.append(TierCharge(last_flat.number, lower, last_flat.rate, last_flat.rate))

    for tier in tiers[policy.flat_tiers : occupied + 1]:
        upper = consumption if tier.number == occupied + 1 else tier.max_consumption
        quantity = upper - lower
        tier_amount = quantity * tier.rate
        breakdown.append(TierCharge(tier.number, quantity, tier.rate, tier_amount))
        amount += tier_amount
        lower = upper

    return WaterCharge(amount=round_money(amount), tier=occupied + 1, breakdown=breakdown)


__all__ = [
    "DEFAULT_WATER_POLICY",
    "RateConfiguration",
    "TierCharge",
    "WaterCharge",
    "WaterTier",
    "WaterTierPolicy",
    "WaterTierSchedule",
    "compute_electric",
    "compute_water",
    "round_money",
    "to_decimal",
    "water_schedule_for",
]
