"""Expense and tenant usage inputs for one property billing period."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


class AnomalyKind(str, Enum):
    """Source of a negative usage figure."""

    TENANT_READING = "tenant_reading"
    """Current meter reading below the previous one (meter reset or typo)"""

    COMMON_AREA = "common_area"
    """Tenant AC usage exceeds the total metered usage"""


@dataclass(frozen=True)
class NegativeUsageAnomaly:
    """Negative usage that was clamped to zero, reported for user review."""

    subject: str
    kind: AnomalyKind
    raw_value: Decimal
    message: str


class Expense(BaseModel):
    """Monthly expenses of one property.

    total_electricity_amount is the authoritative electricity bill when the
    caller has one; leave it None when only usage is known.
    """

    model_config = ConfigDict(frozen=True)

    property_id: str
    month: int = Field(ge=1, le=12)
    year: int
    base_rent: Decimal = Field(default=Decimal("0"), ge=0)
    internet_fee: Decimal = Field(default=Decimal("0"), ge=0)
    water_bill: Decimal = Field(default=Decimal("0"), ge=0)
    miscellaneous_expenses: Decimal = Field(default=Decimal("0"), ge=0)
    split_miscellaneous: bool = True
    total_kwh_usage: Decimal = Field(default=Decimal("0"), ge=0)
    total_electricity_amount: Decimal | None = Field(default=None, ge=0)
    total_ac_kwh_usage: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None

    @property
    def has_electricity_bill(self) -> bool:
        return self.total_electricity_amount is not None

    @property
    def period_description(self) -> str:
        return f"{MONTH_NAMES[self.month - 1]} {self.year}"


class TenantUsageRecord(BaseModel):
    """AC meter readings of one tenant for one period."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    tenant_name: str = ""
    previous_reading: Decimal = Decimal("0")
    current_reading: Decimal = Decimal("0")
    is_active: bool = True

    @property
    def raw_usage(self) -> Decimal:
        return self.current_reading - self.previous_reading

    @property
    def has_valid_readings(self) -> bool:
        return self.current_reading >= self.previous_reading and self.previous_reading >= 0

    @property
    def ac_usage_kwh(self) -> Decimal:
        """Usage clamped to zero; a backwards reading never becomes a negative cost."""
        return max(self.raw_usage, Decimal("0"))

    def usage_anomaly(self) -> NegativeUsageAnomaly | None:
        """Describe a backwards reading, or None when the delta is non-negative."""
        if self.raw_usage >= 0:
            return None
        return NegativeUsageAnomaly(
            subject=self.tenant_id,
            kind=AnomalyKind.TENANT_READING,
            raw_value=self.raw_usage,
            message=(
                f"{self.tenant_name or self.tenant_id}: current reading "
                f"({self.current_reading}) is below previous ({self.previous_reading}); "
                "usage treated as 0"
            ),
        )
