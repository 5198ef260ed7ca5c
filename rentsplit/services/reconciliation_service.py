"""Reconciliation and input validation.

Checks that an allocation adds up to the authoritative total and that each
tenant's shares add up to the tenant's total. Tolerance is one sen, strict.
A failed reconciliation is a programming defect: assert_reconciled raises
ReconciliationMismatch instead of returning a partial result.
"""

import logging
from decimal import Decimal
from typing import NamedTuple, Sequence

from rentsplit.errors import ReconciliationMismatch
from rentsplit.models.allocation import AllocationResult
from rentsplit.models.charges import ChargeBreakdown
from rentsplit.models.expense import Expense, TenantUsageRecord
from rentsplit.services.money import to_money

logger = logging.getLogger(__name__)

RECONCILIATION_TOLERANCE = Decimal("0.01")
BREAKDOWN_TOLERANCE = Decimal("0.005")
AC_TOTAL_TOLERANCE_KWH = Decimal("1")
MIN_BILLING_YEAR = 2020


class ReconciliationReport(NamedTuple):
    """Outcome of reconciling an allocation against its total."""

    balanced: bool
    expected_total: Decimal
    allocated_total: Decimal
    delta: Decimal
    unbalanced_tenants: tuple[str, ...]


def reconcile(result: AllocationResult) -> ReconciliationReport:
    """Compare allocated shares with the authoritative total.

    Balanced when |allocated - expected| < 0.01, every tenant's shares add up
    to its total within 0.01, and there is one allocation per counted tenant.
    """
    expected = result.total_amount
    allocated = result.allocated_total
    delta = allocated - expected

    unbalanced = tuple(
        a.tenant_id
        for a in result.allocations
        if abs(a.total_amount - sum(a.shares.values(), Decimal("0"))) >= RECONCILIATION_TOLERANCE
    )

    balanced = (
        abs(delta) < RECONCILIATION_TOLERANCE
        and not unbalanced
        and result.tenant_count == len(result.allocations)
    )

    return ReconciliationReport(
        balanced=balanced,
        expected_total=expected,
        allocated_total=allocated,
        delta=delta,
        unbalanced_tenants=unbalanced,
    )


def validate(result: AllocationResult) -> bool:
    return reconcile(result).balanced


def assert_reconciled(result: AllocationResult) -> ReconciliationReport:
    """Reconcile and raise when the allocation does not balance.

    Raises:
        ReconciliationMismatch: Carrying the report, logged at ERROR first
    """
    report = reconcile(result)
    if report.balanced:
        return report

    message = (
        f"{result.method.value} allocation does not reconcile: expected "
        f"{report.expected_total}, allocated {report.allocated_total} "
        f"(delta {report.delta})"
    )
    if report.unbalanced_tenants:
        message += f"; shares do not add up for {', '.join(report.unbalanced_tenants)}"
    logger.error(message)
    raise ReconciliationMismatch(message, report)


def check_breakdown(breakdown: ChargeBreakdown) -> bool:
    """Check a breakdown holds whole-sen components that add up to its total.

    Catches breakdowns built by hand with unrounded amounts, which would
    otherwise leak fractions of a sen into the allocation.
    """
    for amount in breakdown.components.values():
        if amount != to_money(amount):
            return False
    components_sum = sum(breakdown.components.values(), Decimal("0"))
    return abs(breakdown.total - components_sum) < BREAKDOWN_TOLERANCE


def validate_inputs(expense: Expense, tenants: Sequence[TenantUsageRecord]) -> list[str]:
    """Collect human-readable problems with calculation inputs.

    Never raises; an empty list means the inputs are usable.
    """
    problems = []

    active = [t for t in tenants if t.is_active]
    if not active:
        problems.append("No active tenants found")

    if not 1 <= expense.month <= 12:
        problems.append(f"Invalid month: {expense.month}")

    if expense.year < MIN_BILLING_YEAR:
        problems.append(f"Invalid year: {expense.year}")

    for tenant in active:
        if not tenant.has_valid_readings:
            problems.append(
                f"Invalid meter readings for {tenant.tenant_name or tenant.tenant_id}: "
                f"previous {tenant.previous_reading}, current {tenant.current_reading}"
            )

    if expense.total_ac_kwh_usage is not None:
        if expense.total_ac_kwh_usage > expense.total_kwh_usage:
            problems.append(
                f"AC usage ({expense.total_ac_kwh_usage} kWh) cannot exceed total "
                f"electricity usage ({expense.total_kwh_usage} kWh)"
            )

        tenant_total = sum((t.ac_usage_kwh for t in active), Decimal("0"))
        if abs(expense.total_ac_kwh_usage - tenant_total) > AC_TOTAL_TOLERANCE_KWH:
            problems.append(
                f"Total AC usage mismatch: declared {expense.total_ac_kwh_usage} kWh, "
                f"tenant readings sum to {tenant_total} kWh"
            )

    if problems:
        logger.debug("Input validation found %d problem(s): %s", len(problems), problems)
    return problems
