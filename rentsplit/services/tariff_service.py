"""Tariff calculator: usage and a rate table in, itemized charges out.

Strategies by tariff family:
- PROGRESSIVE_TIER: walk usage through increasing tiers, add unit charges,
  flat fees, incentive and taxes
- FREE_ALLOCATION_TIER: same walk, first tier must be free
- FLAT_FEE: a single "Monthly Fee" component for the selected plan; its
  taxes ignore usage thresholds and always apply to the fee

Component amounts are rounded to the sen once; the subtotal is the sum of the
rounded pre-tax components and taxes are computed from it.
"""

import logging
from decimal import Decimal
from typing import Iterable

from rentsplit.errors import ConfigurationError
from rentsplit.models.charges import ChargeBreakdown
from rentsplit.models.rate_table import (
    IncentiveSchedule,
    RateTable,
    TariffFamily,
    TaxBase,
    TaxRule,
)
from rentsplit.services.money import ZERO, to_decimal, to_money

logger = logging.getLogger(__name__)

MONTHLY_FEE = "Monthly Fee"
DEFAULT_BILL_TOLERANCE = Decimal("0.50")


def progressive_walk(
    bands: Iterable[tuple[Decimal, Decimal | None, Decimal]],
    usage: Decimal,
) -> list[tuple[int, Decimal, Decimal]]:
    """Distribute usage over ordered (lower, upper, rate) bands.

    For each band: applicable = min(remaining, upper - lower), where an
    unbounded band takes all that remains. Stops once nothing remains.

    Returns:
        List of (band index, applicable usage, unrounded amount) for every
        band that received usage
    """
    remaining = usage
    result = []
    for index, (lower, upper, rate) in enumerate(bands):
        if remaining <= 0:
            break
        width = remaining if upper is None else upper - lower
        applicable = min(remaining, width)
        result.append((index, applicable, applicable * rate))
        remaining -= applicable
    return result


def _format_quantity(value: Decimal) -> str:
    return format(value.normalize(), "f")


class TariffCalculator:
    """Pure tariff calculator. Holds no state between calls."""

    def __init__(self):
        self._strategies = {
            TariffFamily.PROGRESSIVE_TIER: self._compute_tiered,
            TariffFamily.FREE_ALLOCATION_TIER: self._compute_free_allocation,
            TariffFamily.FLAT_FEE: self._compute_flat_fee,
        }

    def compute_charges(
        self,
        rate_table: RateTable,
        usage,
        plan: str | None = None,
    ) -> ChargeBreakdown:
        """Compute the itemized charges for a usage quantity.

        Args:
            rate_table: Provider tariff
            usage: Consumption in the table's unit; negative values are clamped to 0
            plan: Flat-fee plan name (FLAT_FEE tariffs only)

        Returns:
            ChargeBreakdown with components in display order

        Raises:
            ConfigurationError: If the rate table lacks data its family requires
        """
        quantity = to_decimal(usage)
        if quantity < 0:
            logger.warning(
                "Negative usage %s for %s clamped to 0", quantity, rate_table.provider_id
            )
            quantity = ZERO

        strategy = self._strategies.get(rate_table.family)
        if strategy is None:
            raise ConfigurationError(
                f"{rate_table.provider_id}: unsupported tariff family {rate_table.family}"
            )

        components = strategy(rate_table, quantity, plan)

        logger.debug(
            "Charges for %s at %s %s: %s",
            rate_table.provider_id,
            quantity,
            rate_table.unit,
            components,
        )

        return ChargeBreakdown(
            provider_id=rate_table.provider_id,
            utility_kind=rate_table.utility_kind,
            usage=quantity,
            unit=rate_table.unit,
            components=components,
        )

    def tier_amount(self, rate_table: RateTable, usage) -> Decimal:
        """Unrounded tier charges plus unit charges for a usage quantity."""
        quantity = max(to_decimal(usage), ZERO)
        bands = [(lower, upper, tier.rate) for lower, upper, tier in rate_table.tier_bands()]
        amount = sum((a for _, _, a in progressive_walk(bands, quantity)), ZERO)
        for unit_charge in rate_table.unit_charges:
            amount += quantity * unit_charge.rate
        return amount

    def incentive_amount(self, schedule: IncentiveSchedule, usage) -> Decimal:
        """Unrounded (non-positive) incentive; zero once usage exceeds the ceiling."""
        quantity = max(to_decimal(usage), ZERO)
        if not schedule.is_active(quantity):
            return ZERO
        bands = [(t.lower_bound, t.upper_bound, t.rate) for t in schedule.tiers]
        return sum((a for _, _, a in progressive_walk(bands, quantity)), ZERO)

    def average_cost_per_unit(self, total, usage) -> Decimal:
        """Average price per unit of a bill; 0 when there is no usage."""
        quantity = to_decimal(usage)
        if quantity == 0:
            return ZERO
        return to_decimal(total) / quantity

    def validate_bill_amount(
        self,
        calculated,
        provided,
        tolerance: Decimal = DEFAULT_BILL_TOLERANCE,
    ) -> bool:
        """Check a calculated bill against the amount printed on the real bill."""
        return abs(to_decimal(calculated) - to_decimal(provided)) <= to_decimal(tolerance)

    def _compute_free_allocation(
        self, rate_table: RateTable, usage: Decimal, plan: str | None
    ) -> dict[str, Decimal]:
        if rate_table.tiers:
            first = rate_table.tiers[0]
            if first.rate != 0 or first.upper_bound is None:
                raise ConfigurationError(
                    f"{rate_table.provider_id}: free allocation tariff needs a bounded "
                    "zero-rate first tier"
                )
        return self._compute_tiered(rate_table, usage, plan)

    def _compute_tiered(
        self, rate_table: RateTable, usage: Decimal, plan: str | None
    ) -> dict[str, Decimal]:
        if not rate_table.tiers:
            raise ConfigurationError(
                f"{rate_table.provider_id}: {rate_table.family.value} tariff has no tiers"
            )

        bands = list(rate_table.tier_bands())
        raw: dict[str, Decimal] = {}
        walked = progressive_walk([(lo, up, t.rate) for lo, up, t in bands], usage)
        for index, _, amount in walked:
            lower, upper, tier = bands[index]
            label = tier.label or self._tier_label(lower, upper, rate_table.unit)
            # Tiers sharing a label add up into one component
            raw[label] = raw.get(label, ZERO) + amount

        components = {label: to_money(amount) for label, amount in raw.items()}

        for unit_charge in rate_table.unit_charges:
            self._add_component(
                components, rate_table, unit_charge.name, to_money(usage * unit_charge.rate)
            )

        for fee in rate_table.flat_fees:
            amount = fee.amount if fee.applies_to(usage) else ZERO
            self._add_component(components, rate_table, fee.name, to_money(amount))

        if rate_table.incentive is not None:
            self._add_component(
                components,
                rate_table,
                rate_table.incentive.name,
                to_money(self.incentive_amount(rate_table.incentive, usage)),
            )

        self._apply_taxes(components, rate_table, usage)
        return components

    def _compute_flat_fee(
        self, rate_table: RateTable, usage: Decimal, plan: str | None
    ) -> dict[str, Decimal]:
        if not rate_table.flat_fees:
            raise ConfigurationError(f"{rate_table.provider_id}: flat fee tariff has no fees")

        if plan is not None:
            fee = rate_table.fee(plan)
            if fee is None:
                available = ", ".join(f.name for f in rate_table.flat_fees)
                raise ConfigurationError(
                    f"{rate_table.provider_id}: unknown plan '{plan}' (available: {available})"
                )
        elif len(rate_table.flat_fees) == 1:
            fee = rate_table.flat_fees[0]
        else:
            raise ConfigurationError(
                f"{rate_table.provider_id}: plan required, tariff has "
                f"{len(rate_table.flat_fees)} plans"
            )

        components = {MONTHLY_FEE: to_money(fee.amount)}
        # Usage is meaningless for a plan fee: every tax applies to the whole fee
        for rule in rate_table.tax_rules:
            if rule.base is not TaxBase.SUBTOTAL:
                raise ConfigurationError(
                    f"{rate_table.provider_id}: flat fee tariff cannot levy "
                    f"{rule.base.value} tax '{rule.name}'"
                )
            self._add_component(
                components, rate_table, rule.name, to_money(components[MONTHLY_FEE] * rule.rate)
            )
        return components

    def _apply_taxes(
        self, components: dict[str, Decimal], rate_table: RateTable, usage: Decimal
    ) -> None:
        subtotal = sum(components.values(), ZERO)
        taxes = [
            (rule.name, self._tax_amount(rule, rate_table, usage, subtotal))
            for rule in rate_table.tax_rules
        ]
        for name, amount in taxes:
            self._add_component(components, rate_table, name, amount)

    def _tax_amount(
        self, rule: TaxRule, rate_table: RateTable, usage: Decimal, subtotal: Decimal
    ) -> Decimal:
        if not rule.applies_to(usage):
            return to_money(ZERO)

        if rule.base is TaxBase.SUBTOTAL:
            return to_money(subtotal * rule.rate)

        excess = usage - rule.threshold
        if rule.reference_rate is not None:
            taxable = excess * rule.reference_rate
        else:
            taxable = self.tier_amount(rate_table, usage) - self.tier_amount(
                rate_table, rule.threshold
            )
        return to_money(taxable * rule.rate)

    @staticmethod
    def _add_component(
        components: dict[str, Decimal], rate_table: RateTable, name: str, amount: Decimal
    ) -> None:
        if name in components:
            raise ConfigurationError(
                f"{rate_table.provider_id}: duplicate charge component '{name}'"
            )
        components[name] = amount

    @staticmethod
    def _tier_label(lower: Decimal, upper: Decimal | None, unit: str) -> str:
        if upper is None:
            return f"Usage >{_format_quantity(lower)} {unit}"
        return f"Usage {_format_quantity(lower + 1)}-{_format_quantity(upper)} {unit}"


_default_calculator = TariffCalculator()


def compute_charges(rate_table: RateTable, usage, plan: str | None = None) -> ChargeBreakdown:
    """Compute charges with the shared default calculator."""
    return _default_calculator.compute_charges(rate_table, usage, plan)
