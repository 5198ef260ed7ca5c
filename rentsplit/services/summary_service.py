"""Summaries and comparisons built on top of calculation results.

- summarize: statistics of one allocation
- compare_methods: the same pool allocated both ways
- savings_opportunities: bill reduction from using less
- compare_providers / provider_savings: alternatives serving the same area
"""

import logging
from decimal import Decimal
from typing import Iterable, NamedTuple, Sequence

from rentsplit.models.allocation import AllocationMethod, AllocationResult
from rentsplit.models.charges import ChargeBreakdown
from rentsplit.models.expense import TenantUsageRecord
from rentsplit.models.rate_table import RateTable, ServiceArea, TariffFamily, UtilityKind
from rentsplit.services.allocation_service import AllocationService
from rentsplit.services.bills_service import AssembledTotal
from rentsplit.services.money import ZERO, to_decimal, to_money
from rentsplit.services.provider_registry import ProviderRegistry
from rentsplit.services.reconciliation_service import reconcile
from rentsplit.services.tariff_service import TariffCalculator

logger = logging.getLogger(__name__)

DEFAULT_SAVINGS_THRESHOLDS = (300, 600, 1000)


class CalculationSummary(NamedTuple):
    """Headline figures of one allocation."""

    method: AllocationMethod
    total_amount: Decimal
    allocated_total: Decimal
    difference: Decimal
    is_balanced: bool
    tenant_count: int
    average_per_tenant: Decimal
    min_per_tenant: Decimal
    max_per_tenant: Decimal
    total_ac_usage_kwh: Decimal
    total_ac_cost: Decimal
    anomaly_count: int


def summarize(result: AllocationResult) -> CalculationSummary:
    report = reconcile(result)
    totals = [a.total_amount for a in result.allocations]

    return CalculationSummary(
        method=result.method,
        total_amount=result.total_amount,
        allocated_total=report.allocated_total,
        difference=report.delta,
        is_balanced=report.balanced,
        tenant_count=result.tenant_count,
        average_per_tenant=to_money(result.average_per_tenant),
        min_per_tenant=min(totals, default=ZERO),
        max_per_tenant=max(totals, default=ZERO),
        total_ac_usage_kwh=sum((a.ac_usage_kwh for a in result.allocations), ZERO),
        total_ac_cost=sum((a.individual_ac_cost for a in result.allocations), ZERO),
        anomaly_count=len(result.anomalies),
    )


def compare_methods(
    service: AllocationService,
    assembled: AssembledTotal,
    tenants: Sequence[TenantUsageRecord],
    rate_table: RateTable | None = None,
) -> dict[AllocationMethod, AllocationResult]:
    """Allocate the same pool with every method."""
    return {
        method: service.allocate(assembled, tenants, method, rate_table)
        for method in AllocationMethod
    }


def savings_opportunities(
    calculator: TariffCalculator,
    rate_table: RateTable,
    usage,
    thresholds: Iterable = DEFAULT_SAVINGS_THRESHOLDS,
) -> dict[Decimal, Decimal]:
    """Saving from cutting usage down to each threshold below current usage.

    A saving can be negative just past an incentive ceiling, where using less
    brings the incentive back.
    """
    quantity = to_decimal(usage)
    current_total = calculator.compute_charges(rate_table, quantity).total

    savings = {}
    for threshold in thresholds:
        limit = to_decimal(threshold)
        if limit < quantity:
            reduced_total = calculator.compute_charges(rate_table, limit).total
            savings[limit] = current_total - reduced_total
    return savings


def _cheapest_plan(rate_table: RateTable) -> str | None:
    if rate_table.family is not TariffFamily.FLAT_FEE or len(rate_table.flat_fees) < 2:
        return None
    return min(rate_table.flat_fees, key=lambda fee: fee.amount).name


def compare_providers(
    calculator: TariffCalculator,
    registry: ProviderRegistry,
    kind: UtilityKind,
    area: ServiceArea,
    usage,
) -> list[ChargeBreakdown]:
    """Charges from every provider of a kind serving an area, cheapest first.

    Flat-fee providers with several plans are compared on their cheapest plan.
    """
    breakdowns = [
        calculator.compute_charges(table, usage, _cheapest_plan(table))
        for table in registry.providers_for(kind, area)
    ]
    breakdowns.sort(key=lambda b: b.total)
    logger.debug(
        "Compared %d %s provider(s) in %s at %s",
        len(breakdowns),
        kind.value,
        area.value,
        usage,
    )
    return breakdowns


def provider_savings(
    calculator: TariffCalculator,
    registry: ProviderRegistry,
    area: ServiceArea,
    current: Iterable[ChargeBreakdown],
) -> dict[str, Decimal]:
    """Saving from switching each current provider to the cheapest alternative.

    Returns:
        Dict mapping the current provider_id to the saving (0.00 when no
        alternative serving the area is cheaper)
    """
    savings = {}
    for breakdown in current:
        alternatives = [
            b
            for b in compare_providers(
                calculator, registry, breakdown.utility_kind, area, breakdown.usage
            )
            if b.provider_id != breakdown.provider_id
        ]
        best = alternatives[0].total if alternatives else breakdown.total
        savings[breakdown.provider_id] = max(breakdown.total - best, to_money(ZERO))
    return savings
