"""Allocation results: one share set per tenant plus the authoritative total."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from rentsplit.models.expense import NegativeUsageAnomaly


class AllocationMethod(str, Enum):
    """Cost splitting methods."""

    SIMPLE_AVERAGE = "simple_average"
    """Every cost split equally, AC usage ignored"""

    LAYERED_PRECISE = "layered_precise"
    """Shared costs split equally, individual AC usage billed per tenant"""

    @property
    def display_name(self) -> str:
        return {
            AllocationMethod.SIMPLE_AVERAGE: "Simple Average Method",
            AllocationMethod.LAYERED_PRECISE: "Layered Precise Method",
        }[self]


class ElectricityCostMode(str, Enum):
    """How individual AC usage was priced."""

    PROPORTIONAL = "proportional"
    """Average cost per kWh of the authoritative bill"""

    TIERED = "tiered"
    """Each tenant's usage run through the tariff in isolation"""

    NONE = "none"
    """No individual AC cost"""


@dataclass(frozen=True)
class TenantAllocation:
    """Named shares of one tenant. Build with create() so the total is derived."""

    tenant_id: str
    tenant_name: str
    rent_share: Decimal
    internet_share: Decimal
    water_share: Decimal
    utilities_share: Decimal
    common_electricity_share: Decimal
    individual_ac_cost: Decimal
    miscellaneous_share: Decimal
    ac_usage_kwh: Decimal
    total_amount: Decimal

    @classmethod
    def create(
        cls,
        tenant_id: str,
        tenant_name: str,
        *,
        rent_share: Decimal,
        internet_share: Decimal,
        water_share: Decimal,
        utilities_share: Decimal,
        common_electricity_share: Decimal,
        individual_ac_cost: Decimal,
        miscellaneous_share: Decimal,
        ac_usage_kwh: Decimal,
    ) -> "TenantAllocation":
        total = (
            rent_share
            + internet_share
            + water_share
            + utilities_share
            + common_electricity_share
            + individual_ac_cost
            + miscellaneous_share
        )
        return cls(
            tenant_id=tenant_id,
            tenant_name=tenant_name,
            rent_share=rent_share,
            internet_share=internet_share,
            water_share=water_share,
            utilities_share=utilities_share,
            common_electricity_share=common_electricity_share,
            individual_ac_cost=individual_ac_cost,
            miscellaneous_share=miscellaneous_share,
            ac_usage_kwh=ac_usage_kwh,
            total_amount=total,
        )

    @property
    def shares(self) -> dict[str, Decimal]:
        return {
            "rent": self.rent_share,
            "internet": self.internet_share,
            "water": self.water_share,
            "utilities": self.utilities_share,
            "common_electricity": self.common_electricity_share,
            "individual_ac": self.individual_ac_cost,
            "miscellaneous": self.miscellaneous_share,
        }

    @property
    def electricity_cost(self) -> Decimal:
        return self.common_electricity_share + self.individual_ac_cost


@dataclass(frozen=True)
class AllocationResult:
    """Per-tenant split of an assembled total."""

    method: AllocationMethod
    total_amount: Decimal
    tenant_count: int
    allocations: tuple[TenantAllocation, ...]
    anomalies: tuple[NegativeUsageAnomaly, ...] = ()
    electricity_mode: ElectricityCostMode = ElectricityCostMode.NONE

    @property
    def allocated_total(self) -> Decimal:
        return sum((a.total_amount for a in self.allocations), Decimal("0"))

    @property
    def average_per_tenant(self) -> Decimal:
        if self.tenant_count == 0:
            return Decimal("0")
        return self.total_amount / self.tenant_count

    def for_tenant(self, tenant_id: str) -> TenantAllocation | None:
        for allocation in self.allocations:
            if allocation.tenant_id == tenant_id:
                return allocation
        return None
