"""Calculation services: tariff rating, bill assembly, allocation and reconciliation."""

from rentsplit.services.allocation_service import AllocationService
from rentsplit.services.bills_service import AssembledTotal, BillAssembler, assemble
from rentsplit.services.provider_registry import ProviderRegistry, get_registry
from rentsplit.services.reconciliation_service import (
    ReconciliationReport,
    assert_reconciled,
    check_breakdown,
    reconcile,
    validate,
    validate_inputs,
)
from rentsplit.services.summary_service import (
    CalculationSummary,
    compare_methods,
    compare_providers,
    provider_savings,
    savings_opportunities,
    summarize,
)
from rentsplit.services.tariff_service import TariffCalculator, compute_charges

__all__ = [
    "AllocationService",
    "AssembledTotal",
    "BillAssembler",
    "CalculationSummary",
    "ProviderRegistry",
    "ReconciliationReport",
    "TariffCalculator",
    "assemble",
    "assert_reconciled",
    "check_breakdown",
    "compare_methods",
    "compare_providers",
    "compute_charges",
    "get_registry",
    "provider_savings",
    "reconcile",
    "savings_opportunities",
    "summarize",
    "validate",
    "validate_inputs",
]
