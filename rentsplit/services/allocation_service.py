"""Allocation service for splitting an assembled cost pool across tenants.

Supports allocation methods:
- SIMPLE_AVERAGE: every component split equally, AC usage ignored
- LAYERED_PRECISE: shared components split equally, each tenant pays for its
  own AC usage, the rest of the electricity bill is shared

Every even split works on integer sen. Remainder sen are handed out one at a
time from a cursor that keeps moving across components, so tenants end up at
most one sen apart and the shares always add up to the pool.
"""

import logging
from decimal import Decimal
from typing import Callable, Sequence

from rentsplit.config import get_settings
from rentsplit.errors import ConfigurationError, NoActiveTenantsError
from rentsplit.models.allocation import (
    AllocationMethod,
    AllocationResult,
    ElectricityCostMode,
    TenantAllocation,
)
from rentsplit.models.expense import AnomalyKind, NegativeUsageAnomaly, TenantUsageRecord
from rentsplit.models.rate_table import RateTable
from rentsplit.services.bills_service import AssembledTotal
from rentsplit.services.money import ZERO, split_evenly, split_proportionally, to_money
from rentsplit.services.reconciliation_service import assert_reconciled
from rentsplit.services.tariff_service import TariffCalculator

logger = logging.getLogger(__name__)

COMMON_AREA = "common_area"

# Components shared equally, in remainder cursor order. Electricity comes last.
_SHARED_COMPONENTS = (
    ("rent_share", "rent"),
    ("internet_share", "internet"),
    ("water_share", "water"),
    ("utilities_share", "utilities"),
    ("miscellaneous_share", "miscellaneous"),
)


class AllocationService:
    """Cost allocation engine with simple average and layered precise methods."""

    def __init__(self, calculator: TariffCalculator | None = None):
        self.calculator = calculator or TariffCalculator()
        self._methods: dict[AllocationMethod, Callable[..., AllocationResult]] = {
            AllocationMethod.SIMPLE_AVERAGE: self.allocate_simple_average,
            AllocationMethod.LAYERED_PRECISE: self.allocate_layered_precise,
        }

    def allocate(
        self,
        assembled: AssembledTotal,
        tenants: Sequence[TenantUsageRecord],
        method: AllocationMethod | str | None = None,
        rate_table: RateTable | None = None,
    ) -> AllocationResult:
        """Allocate using the given method (default: settings.default_method).

        Raises:
            ValueError: If the method is unknown
            NoActiveTenantsError: If no tenant is active
            ConfigurationError: If layered precise needs a rate table and none is given
            ReconciliationMismatch: If the shares do not add up (programming defect)
        """
        if method is None:
            method = get_settings().default_method
        try:
            allocation_method = AllocationMethod(method)
        except ValueError as e:
            raise ValueError(f"Unknown allocation method: {method}") from e

        return self._methods[allocation_method](assembled, tenants, rate_table)

    def allocate_simple_average(
        self,
        assembled: AssembledTotal,
        tenants: Sequence[TenantUsageRecord],
        rate_table: RateTable | None = None,
    ) -> AllocationResult:
        """Split every component, electricity included, equally."""
        active = self._active_tenants(tenants)
        anomalies = self._reading_anomalies(active)
        count = len(active)

        shares, cursor = self._split_shared(assembled, count)
        shares["common_electricity_share"], _ = split_evenly(
            assembled.electricity, count, cursor
        )

        allocations = tuple(
            TenantAllocation.create(
                tenant.tenant_id,
                tenant.tenant_name or tenant.tenant_id,
                rent_share=shares["rent_share"][i],
                internet_share=shares["internet_share"][i],
                water_share=shares["water_share"][i],
                utilities_share=shares["utilities_share"][i],
                common_electricity_share=shares["common_electricity_share"][i],
                individual_ac_cost=to_money(ZERO),
                miscellaneous_share=shares["miscellaneous_share"][i],
                ac_usage_kwh=tenant.ac_usage_kwh,
            )
            for i, tenant in enumerate(active)
        )

        return self._finish(
            AllocationResult(
                method=AllocationMethod.SIMPLE_AVERAGE,
                total_amount=assembled.total,
                tenant_count=count,
                allocations=allocations,
                anomalies=tuple(anomalies),
                electricity_mode=ElectricityCostMode.NONE,
            )
        )

    def allocate_layered_precise(
        self,
        assembled: AssembledTotal,
        tenants: Sequence[TenantUsageRecord],
        rate_table: RateTable | None = None,
    ) -> AllocationResult:
        """Bill each tenant's AC usage individually, share everything else.

        AC cost mode:
        1. PROPORTIONAL when the electricity total is an authoritative bill
           and total usage is known: usage x bill / total kWh
        2. TIERED otherwise: each tenant's usage through the tariff alone
        3. NONE when no tenant used any AC

        The common electricity pool is the electricity total minus all AC
        costs, so the electricity shares always add up to the bill. When AC
        usage exceeds the total usage, or AC costs exceed the electricity
        total, the common pool is 0 and the electricity total is split over
        AC users by AC kWh (proportional) or by tariff cost (tiered). No
        tenant is ever billed a negative electricity share.
        """
        active = self._active_tenants(tenants)
        anomalies = self._reading_anomalies(active)
        count = len(active)

        usages = [tenant.ac_usage_kwh for tenant in active]
        total_ac_usage = sum(usages, ZERO)

        common_usage = assembled.total_kwh_usage - total_ac_usage
        common_usage_clamped = common_usage < 0
        if common_usage_clamped:
            anomaly = NegativeUsageAnomaly(
                subject=COMMON_AREA,
                kind=AnomalyKind.COMMON_AREA,
                raw_value=common_usage,
                message=(
                    f"Tenant AC usage ({total_ac_usage} kWh) exceeds total usage "
                    f"({assembled.total_kwh_usage} kWh); common area usage treated as 0"
                ),
            )
            logger.warning(anomaly.message)
            anomalies.append(anomaly)
            common_usage = ZERO

        mode = self._electricity_mode(assembled, total_ac_usage)
        ac_costs = [self._ac_cost(mode, assembled, usage, rate_table) for usage in usages]
        shares, cursor = self._split_shared(assembled, count)

        common_pool = assembled.electricity - sum(ac_costs, ZERO)
        if mode is ElectricityCostMode.PROPORTIONAL:
            weights = usages
        else:
            weights = [max(cost, ZERO) for cost in ac_costs]
        if (common_usage_clamped or common_pool < 0) and any(w > 0 for w in weights):
            logger.warning(
                "AC costs %s scaled to electricity total %s for %s %s; common pool set to 0",
                sum(ac_costs, ZERO),
                assembled.electricity,
                assembled.property_id,
                assembled.period,
            )
            ac_costs, cursor = split_proportionally(assembled.electricity, weights, cursor)
            common_pool = to_money(ZERO)

        logger.debug(
            "Layered split for %s %s: mode=%s common usage=%s kWh common pool=%s",
            assembled.property_id,
            assembled.period,
            mode.value,
            common_usage,
            common_pool,
        )

        common_shares, _ = split_evenly(common_pool, count, cursor)

        allocations = tuple(
            TenantAllocation.create(
                tenant.tenant_id,
                tenant.tenant_name or tenant.tenant_id,
                rent_share=shares["rent_share"][i],
                internet_share=shares["internet_share"][i],
                water_share=shares["water_share"][i],
                utilities_share=shares["utilities_share"][i],
                common_electricity_share=common_shares[i],
                individual_ac_cost=ac_costs[i],
                miscellaneous_share=shares["miscellaneous_share"][i],
                ac_usage_kwh=usages[i],
            )
            for i, tenant in enumerate(active)
        )

        return self._finish(
            AllocationResult(
                method=AllocationMethod.LAYERED_PRECISE,
                total_amount=assembled.total,
                tenant_count=count,
                allocations=allocations,
                anomalies=tuple(anomalies),
                electricity_mode=mode,
            )
        )

    @staticmethod
    def _electricity_mode(
        assembled: AssembledTotal, total_ac_usage: Decimal
    ) -> ElectricityCostMode:
        if total_ac_usage <= 0:
            return ElectricityCostMode.NONE
        if assembled.electricity_from_bill and assembled.total_kwh_usage > 0:
            return ElectricityCostMode.PROPORTIONAL
        return ElectricityCostMode.TIERED

    def _ac_cost(
        self,
        mode: ElectricityCostMode,
        assembled: AssembledTotal,
        usage: Decimal,
        rate_table: RateTable | None,
    ) -> Decimal:
        if mode is ElectricityCostMode.NONE or usage <= 0:
            return to_money(ZERO)
        if mode is ElectricityCostMode.PROPORTIONAL:
            return to_money(usage * assembled.electricity / assembled.total_kwh_usage)
        if rate_table is None:
            raise ConfigurationError(
                "Layered precise allocation without an electricity bill amount "
                "needs a rate table to price AC usage"
            )
        return self.calculator.compute_charges(rate_table, usage).total

    @staticmethod
    def _active_tenants(tenants: Sequence[TenantUsageRecord]) -> list[TenantUsageRecord]:
        active = [t for t in tenants if t.is_active]
        if not active:
            raise NoActiveTenantsError("No active tenants to allocate costs to")
        return active

    @staticmethod
    def _reading_anomalies(active: Sequence[TenantUsageRecord]) -> list[NegativeUsageAnomaly]:
        anomalies = []
        for tenant in active:
            anomaly = tenant.usage_anomaly()
            if anomaly is not None:
                logger.warning(anomaly.message)
                anomalies.append(anomaly)
        return anomalies

    @staticmethod
    def _split_shared(
        assembled: AssembledTotal, count: int
    ) -> tuple[dict[str, list[Decimal]], int]:
        shares = {}
        cursor = 0
        for field_name, component in _SHARED_COMPONENTS:
            shares[field_name], cursor = split_evenly(
                getattr(assembled, component), count, cursor
            )
        return shares, cursor

    @staticmethod
    def _finish(result: AllocationResult) -> AllocationResult:
        assert_reconciled(result)
        logger.info(
            "Allocated %s across %d tenant(s) using %s",
            result.total_amount,
            result.tenant_count,
            result.method.display_name,
        )
        return result
