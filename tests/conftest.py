"""Shared pytest fixtures for rating and allocation tests."""

from decimal import Decimal

import pytest

from rentsplit.config import DEFAULT_RATE_TABLES_PATH, reset_settings
from rentsplit.models import (
    Expense,
    RateTable,
    TariffFamily,
    TaxRule,
    TenantUsageRecord,
    Tier,
    UtilityKind,
)
from rentsplit.services.allocation_service import AllocationService
from rentsplit.services.provider_registry import ProviderRegistry, reset_registry
from rentsplit.services.tariff_service import TariffCalculator


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Isolate every test from RENTSPLIT_* variables and cached singletons."""
    for name in (
        "RENTSPLIT_RATE_TABLES_PATH",
        "RENTSPLIT_DEFAULT_METHOD",
        "RENTSPLIT_LOG_LEVEL",
        "RENTSPLIT_LOG_FILE",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    reset_registry()
    yield
    reset_settings()
    reset_registry()


@pytest.fixture
def calculator():
    """Create tariff calculator instance."""
    return TariffCalculator()


@pytest.fixture
def service():
    """Create allocation service instance."""
    return AllocationService()


@pytest.fixture(scope="session")
def registry():
    """Registry loaded from the packaged rate tables."""
    return ProviderRegistry.from_file(DEFAULT_RATE_TABLES_PATH)


@pytest.fixture
def three_tier_table():
    """0-200 @ 0.20, 200-400 @ 0.30, 400+ @ 0.40; 5% tax on the subtotal above 300."""
    return RateTable(
        provider_id="example_power",
        name="Example Power",
        short_name="Example",
        utility_kind=UtilityKind.ELECTRICITY,
        family=TariffFamily.PROGRESSIVE_TIER,
        tiers=(
            Tier(upper_bound=Decimal("200"), rate=Decimal("0.20"), label="Energy Charge"),
            Tier(upper_bound=Decimal("400"), rate=Decimal("0.30"), label="Energy Charge"),
            Tier(upper_bound=None, rate=Decimal("0.40"), label="Energy Charge"),
        ),
        tax_rules=(TaxRule(name="Tax", rate=Decimal("0.05"), threshold=Decimal("300")),),
    )


@pytest.fixture
def tenants():
    """Three active tenants, only the first one used AC."""
    return [
        TenantUsageRecord(
            tenant_id="A",
            tenant_name="Alice",
            previous_reading=Decimal("1000"),
            current_reading=Decimal("1100"),
        ),
        TenantUsageRecord(
            tenant_id="B",
            tenant_name="Bob",
            previous_reading=Decimal("500"),
            current_reading=Decimal("500"),
        ),
        TenantUsageRecord(
            tenant_id="C",
            tenant_name="Chen",
            previous_reading=Decimal("0"),
            current_reading=Decimal("0"),
        ),
    ]


@pytest.fixture
def electricity_only_expense():
    """350 kWh period with an authoritative 89.25 bill and no other costs."""
    return Expense(
        property_id="unit-7",
        month=3,
        year=2025,
        total_kwh_usage=Decimal("350"),
        total_electricity_amount=Decimal("89.25"),
    )
