"""Rate table schema for utility providers.

A rate table is static, versioned tariff data: progressive tiers, linear
per-unit charges, flat fees, tax rules and an optional incentive schedule.
Tables are frozen once built and validated on construction.

Tier upper bounds are exclusive and cumulative; the lower bound of a tier is
the previous tier's upper bound. Example (Air Selangor)::

    tiers=[
        Tier(upper_bound="20", rate="0", label="Free Allocation (1-20 m³)"),
        Tier(upper_bound="35", rate="0.57", label="Usage 21-35 m³"),
        Tier(upper_bound=None, rate="1.24", label="Usage >35 m³"),
    ]
"""

from decimal import Decimal
from enum import Enum
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field, model_validator


class UtilityKind(str, Enum):
    """Kinds of utility a provider can supply."""

    ELECTRICITY = "electricity"
    WATER = "water"
    GAS = "gas"
    INTERNET = "internet"
    SEWERAGE = "sewerage"
    WASTE = "waste"


class TariffFamily(str, Enum):
    """Tariff shape used to select a calculation strategy."""

    PROGRESSIVE_TIER = "progressive_tier"
    """Usage walked through increasing tiers (all electricity providers)"""

    FREE_ALLOCATION_TIER = "free_allocation_tier"
    """Progressive tiers whose first tier is free (most water providers)"""

    FLAT_FEE = "flat_fee"
    """Fixed monthly fee per plan, usage ignored (internet, waste)"""


class ServiceArea(str, Enum):
    """Malaysian states and federal territories served by providers."""

    KUALA_LUMPUR = "kuala_lumpur"
    SELANGOR = "selangor"
    JOHOR = "johor"
    PENANG = "penang"
    PERAK = "perak"
    KEDAH = "kedah"
    KELANTAN = "kelantan"
    TERENGGANU = "terengganu"
    PAHANG = "pahang"
    NEGERI_SEMBILAN = "negeri_sembilan"
    MELAKA = "melaka"
    PERLIS = "perlis"
    SABAH = "sabah"
    SARAWAK = "sarawak"
    PUTRAJAYA = "putrajaya"
    LABUAN = "labuan"


class TaxBase(str, Enum):
    """What a tax rule is levied on."""

    SUBTOTAL = "subtotal"
    """Full pre-tax subtotal"""

    EXCESS_USAGE = "excess_usage"
    """Charges for the usage above the rule threshold only"""


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class Tier(_FrozenModel):
    """Progressive tier: usage below upper_bound is billed at rate."""

    upper_bound: Decimal | None = Field(default=None, gt=0)
    rate: Decimal
    label: str | None = None


class UnitCharge(_FrozenModel):
    """Linear per-unit charge applied to the whole usage."""

    name: str = Field(min_length=1)
    rate: Decimal = Field(ge=0)


class FlatFee(_FrozenModel):
    """Fixed amount per billing period, waived when usage <= waived_up_to."""

    name: str = Field(min_length=1)
    amount: Decimal = Field(ge=0)
    waived_up_to: Decimal | None = Field(default=None, ge=0)

    def applies_to(self, usage: Decimal) -> bool:
        return self.waived_up_to is None or usage > self.waived_up_to


class TaxRule(_FrozenModel):
    """Percentage tax levied only when usage exceeds threshold.

    With base=EXCESS_USAGE and a reference_rate, the excess usage is priced at
    that single fixed rate instead of being re-run through the tiers.
    On flat fee tariffs the threshold is ignored and the tax always applies
    to the fee.
    """

    name: str = Field(min_length=1)
    rate: Decimal = Field(ge=0)
    threshold: Decimal = Field(default=Decimal("0"), ge=0)
    base: TaxBase = TaxBase.SUBTOTAL
    reference_rate: Decimal | None = Field(default=None, ge=0)

    def applies_to(self, usage: Decimal) -> bool:
        return usage > self.threshold


class IncentiveTier(_FrozenModel):
    """Explicit incentive band [lower_bound, upper_bound) with a non-positive rate."""

    lower_bound: Decimal = Field(ge=0)
    upper_bound: Decimal
    rate: Decimal = Field(le=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "IncentiveTier":
        if self.upper_bound <= self.lower_bound:
            raise ValueError(
                f"Incentive tier upper bound {self.upper_bound} must exceed "
                f"lower bound {self.lower_bound}"
            )
        return self


class IncentiveSchedule(_FrozenModel):
    """Negative charge active only while usage <= ceiling (cliff, not phased out)."""

    name: str = Field(min_length=1)
    ceiling: Decimal = Field(gt=0)
    tiers: tuple[IncentiveTier, ...] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_contiguous(self) -> "IncentiveSchedule":
        expected_lower = Decimal("0")
        for tier in self.tiers:
            if tier.lower_bound != expected_lower:
                raise ValueError(
                    f"Incentive tiers must be contiguous from 0: expected lower bound "
                    f"{expected_lower}, got {tier.lower_bound}"
                )
            expected_lower = tier.upper_bound
        if expected_lower != self.ceiling:
            raise ValueError(
                f"Last incentive tier ends at {expected_lower}, expected ceiling {self.ceiling}"
            )
        return self

    def is_active(self, usage: Decimal) -> bool:
        return usage <= self.ceiling


class RateTable(_FrozenModel):
    """Versioned tariff of one provider.

    Invariant: tier upper bounds strictly increase and only the last tier is
    unbounded. Family-specific requirements (at least one tier, a free first
    tier, at least one fee) are enforced by the calculator, which raises
    ConfigurationError rather than substituting defaults.
    """

    provider_id: str = Field(min_length=1)
    name: str
    short_name: str
    utility_kind: UtilityKind
    family: TariffFamily
    service_areas: frozenset[ServiceArea] = frozenset()
    unit: str = "kWh"
    version: str = "1"
    website: str | None = None
    customer_service_phone: str | None = None

    tiers: tuple[Tier, ...] = ()
    unit_charges: tuple[UnitCharge, ...] = ()
    flat_fees: tuple[FlatFee, ...] = ()
    tax_rules: tuple[TaxRule, ...] = ()
    incentive: IncentiveSchedule | None = None

    @model_validator(mode="after")
    def _check_tiers(self) -> "RateTable":
        if not self.tiers:
            return self

        previous = Decimal("0")
        for index, tier in enumerate(self.tiers):
            is_last = index == len(self.tiers) - 1
            if tier.upper_bound is None:
                if not is_last:
                    raise ValueError(
                        f"{self.provider_id}: only the last tier may be unbounded "
                        f"(tier {index + 1} has no upper bound)"
                    )
                continue
            if is_last:
                raise ValueError(f"{self.provider_id}: last tier must be unbounded")
            if tier.upper_bound <= previous:
                raise ValueError(
                    f"{self.provider_id}: tier upper bounds must strictly increase "
                    f"({tier.upper_bound} after {previous})"
                )
            previous = tier.upper_bound
        return self

    def serves(self, area: ServiceArea) -> bool:
        """Check if provider serves a specific area."""
        return area in self.service_areas

    def tier_bands(self) -> Iterator[tuple[Decimal, Decimal | None, Tier]]:
        """Yield (lower_bound, upper_bound, tier) for each tier in order."""
        lower = Decimal("0")
        for tier in self.tiers:
            yield lower, tier.upper_bound, tier
            if tier.upper_bound is not None:
                lower = tier.upper_bound

    def fee(self, name: str) -> FlatFee | None:
        """Get a flat fee (plan) by name."""
        for fee in self.flat_fees:
            if fee.name == name:
                return fee
        return None
