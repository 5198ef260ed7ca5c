"""Value objects for tariff rating and cost allocation."""

from rentsplit.models.allocation import (
    AllocationMethod,
    AllocationResult,
    ElectricityCostMode,
    TenantAllocation,
)
from rentsplit.models.charges import ChargeBreakdown
from rentsplit.models.expense import (
    AnomalyKind,
    Expense,
    NegativeUsageAnomaly,
    TenantUsageRecord,
)
from rentsplit.models.rate_table import (
    FlatFee,
    IncentiveSchedule,
    IncentiveTier,
    RateTable,
    ServiceArea,
    TariffFamily,
    TaxBase,
    TaxRule,
    Tier,
    UnitCharge,
    UtilityKind,
)

__all__ = [
    "AllocationMethod",
    "AllocationResult",
    "AnomalyKind",
    "ChargeBreakdown",
    "ElectricityCostMode",
    "Expense",
    "FlatFee",
    "IncentiveSchedule",
    "IncentiveTier",
    "NegativeUsageAnomaly",
    "RateTable",
    "ServiceArea",
    "TariffFamily",
    "TaxBase",
    "TaxRule",
    "TenantAllocation",
    "TenantUsageRecord",
    "Tier",
    "UnitCharge",
    "UtilityKind",
]
