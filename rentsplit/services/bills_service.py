"""Bill assembly: one period's expense record plus utility breakdowns.

The assembled total keeps every part separately so that allocation can split
each one and reports can show where the money came from.
"""

import logging
from decimal import Decimal
from typing import Iterable, NamedTuple

from rentsplit.errors import ConfigurationError, ReconciliationMismatch
from rentsplit.models.charges import ChargeBreakdown
from rentsplit.models.expense import Expense
from rentsplit.models.rate_table import UtilityKind
from rentsplit.services.money import ZERO, to_money
from rentsplit.services.reconciliation_service import check_breakdown

logger = logging.getLogger(__name__)

OTHER_UTILITY_KINDS = (UtilityKind.GAS, UtilityKind.SEWERAGE, UtilityKind.WASTE)


class AssembledTotal(NamedTuple):
    """Cost pool of one billing period, itemized."""

    property_id: str
    period: str
    rent: Decimal
    internet: Decimal
    water: Decimal
    utilities: Decimal
    miscellaneous: Decimal
    electricity: Decimal
    electricity_from_bill: bool
    total_kwh_usage: Decimal
    miscellaneous_excluded: Decimal = ZERO
    breakdowns: tuple[ChargeBreakdown, ...] = ()

    @property
    def total(self) -> Decimal:
        return (
            self.rent
            + self.internet
            + self.water
            + self.utilities
            + self.miscellaneous
            + self.electricity
        )

    def components(self) -> dict[str, Decimal]:
        """Named parts of the pool, in display order."""
        return {
            "Rent": self.rent,
            "Internet": self.internet,
            "Water": self.water,
            "Utilities": self.utilities,
            "Miscellaneous": self.miscellaneous,
            "Electricity": self.electricity,
        }


class BillAssembler:
    """Combines an expense record with computed breakdowns."""

    def assemble(
        self, expense: Expense, breakdowns: Iterable[ChargeBreakdown] = ()
    ) -> AssembledTotal:
        """Assemble the cost pool of one period.

        Args:
            expense: Monthly expense record
            breakdowns: Computed utility charges for the period

        Returns:
            AssembledTotal whose total is the exact sum of its parts

        Raises:
            ConfigurationError: If electricity usage is recorded without any
                bill amount or electricity breakdown
            ReconciliationMismatch: If a breakdown has unrounded components or
                does not add up
        """
        by_kind: dict[UtilityKind, list[ChargeBreakdown]] = {}
        for breakdown in breakdowns:
            if not check_breakdown(breakdown):
                raise ReconciliationMismatch(
                    f"Breakdown for {breakdown.provider_id} has components that are not "
                    "whole sen or do not add up to its total"
                )
            by_kind.setdefault(breakdown.utility_kind, []).append(breakdown)

        water = self._sum_or_default(by_kind.get(UtilityKind.WATER), expense.water_bill)
        internet = self._sum_or_default(by_kind.get(UtilityKind.INTERNET), expense.internet_fee)
        utilities = to_money(
            sum(
                (b.total for kind in OTHER_UTILITY_KINDS for b in by_kind.get(kind, ())),
                ZERO,
            )
        )

        if expense.split_miscellaneous:
            miscellaneous = to_money(expense.miscellaneous_expenses)
            excluded = to_money(ZERO)
        else:
            miscellaneous = to_money(ZERO)
            excluded = to_money(expense.miscellaneous_expenses)

        electricity_breakdowns = by_kind.get(UtilityKind.ELECTRICITY)
        if expense.has_electricity_bill:
            electricity = to_money(expense.total_electricity_amount)
            from_bill = True
        elif electricity_breakdowns:
            electricity = to_money(sum((b.total for b in electricity_breakdowns), ZERO))
            from_bill = False
        elif expense.total_kwh_usage > 0:
            raise ConfigurationError(
                f"{expense.property_id} {expense.period_description}: "
                f"{expense.total_kwh_usage} kWh recorded but no electricity bill amount "
                "or electricity breakdown given"
            )
        else:
            electricity = to_money(ZERO)
            from_bill = False

        assembled = AssembledTotal(
            property_id=expense.property_id,
            period=expense.period_description,
            rent=to_money(expense.base_rent),
            internet=internet,
            water=water,
            utilities=utilities,
            miscellaneous=miscellaneous,
            electricity=electricity,
            electricity_from_bill=from_bill,
            total_kwh_usage=expense.total_kwh_usage,
            miscellaneous_excluded=excluded,
            breakdowns=tuple(b for group in by_kind.values() for b in group),
        )

        logger.debug(
            "Assembled %s %s: %s total %s",
            assembled.property_id,
            assembled.period,
            assembled.components(),
            assembled.total,
        )
        return assembled

    @staticmethod
    def _sum_or_default(breakdowns: list[ChargeBreakdown] | None, default: Decimal) -> Decimal:
        if breakdowns:
            return to_money(sum((b.total for b in breakdowns), ZERO))
        return to_money(default)


_default_assembler = BillAssembler()


def assemble(expense: Expense, breakdowns: Iterable[ChargeBreakdown] = ()) -> AssembledTotal:
    """Assemble with the shared default assembler."""
    return _default_assembler.assemble(expense, breakdowns)
