"""Itemized charge breakdown produced by the tariff calculator."""

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from rentsplit.models.rate_table import UtilityKind


@dataclass(frozen=True)
class ChargeBreakdown:
    """Charges of one utility for one usage figure.

    Components keep insertion order for display and are read-only. The total
    is always derived from the components, never stored separately.
    """

    provider_id: str
    utility_kind: UtilityKind
    usage: Decimal
    unit: str
    components: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "components", MappingProxyType(dict(self.components)))

    @property
    def total(self) -> Decimal:
        return sum(self.components.values(), Decimal("0"))

    def get(self, name: str, default: Decimal = Decimal("0")) -> Decimal:
        """Get a component amount, or default when the component is absent."""
        return self.components.get(name, default)

    def __getitem__(self, name: str) -> Decimal:
        return self.components[name]

    def __contains__(self, name: object) -> bool:
        return name in self.components

    def as_dict(self) -> dict[str, Decimal]:
        """Components followed by a "Total" entry, for display and export."""
        result = dict(self.components)
        result["Total"] = self.total
        return result
